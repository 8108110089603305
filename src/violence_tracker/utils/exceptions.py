

class ViolenceTrackerException(Exception):
    """Base Exception Class"""
    pass
class ConfigError(ViolenceTrackerException):
    """Config Error"""
    pass
class FetchError(ViolenceTrackerException):
    """Base class for everything that can go wrong while loading the incident feed"""
    pass
class NetworkError(FetchError):
    """DNS / connection level failure while requesting the feed"""
    pass
class HttpStatusError(FetchError):
    """The feed answered with a non-2xx status"""
    def __init__(self, code, message=None):
        self.code = code
        super().__init__(message or f'Feed request failed with HTTP status {code}')
class ParseError(FetchError):
    """The feed body is not valid CSV/JSON"""
    def __init__(self, reason):
        self.reason = reason
        super().__init__(f'Could not parse feed: {reason}')
class EmptyFeedError(FetchError):
    """The feed body is empty or holds zero rows"""
    pass
class NoValidRowsError(FetchError):
    """Every parsed row was discarded during normalization"""
    pass
class FeedBusyError(ViolenceTrackerException):
    """A feed load is already in flight; the new request was rejected, not queued"""
    pass
