"""
Configuration for the incident feed.

The core only ever receives an explicit FeedConfig. Reading the environment
(and a local .env file) is left to the dashboard and the scripts through
FeedConfig.from_env().
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from violence_tracker.utils.exceptions import ConfigError

# Published CSV export of the PublicData sheet
DEFAULT_FEED_URL = (
    'https://docs.google.com/spreadsheets/d/169QLiZ1dp5z92sIrn6mLp26ZsaarUc5P3-5nSwSgdkc'
    '/export?format=csv&gid=1466869679'
)
FEED_FORMATS = ('auto', 'csv', 'json')

DEFAULT_TIMEOUT = 30
DEFAULT_RETRIES = 1
DEFAULT_RATE_LIMIT = 1.0

UNTITLED = 'Untitled Incident'
UNKNOWN_CATEGORY = 'Unknown'
NO_LOCATION = 'Location not specified'

WEEK_DAYS = 7
MONTH_DAYS = 30
TOP_N = 10
OTHER_LABEL = 'Other'
RECENT_LIMIT = 20


@dataclass(frozen=True)
class FeedConfig:
    """
    Where and how to fetch the incident feed.

    Attributes:
        url (str): Feed URL (CSV export or published JSON)
        feed_format (str): 'csv', 'json' or 'auto' to sniff the response
        timeout (float): Per-request timeout in seconds handed to requests
        retries (int): Attempts per load for network errors and HTTP 429
        rate_limit (float): Base backoff between attempts in seconds
        use_mock_data (bool): Serve a generated feed instead of hitting the network
    """
    url: str = DEFAULT_FEED_URL
    feed_format: str = 'auto'
    timeout: float = DEFAULT_TIMEOUT
    retries: int = DEFAULT_RETRIES
    rate_limit: float = DEFAULT_RATE_LIMIT
    use_mock_data: bool = False

    def __post_init__(self) -> None:
        if self.feed_format not in FEED_FORMATS:
            raise ConfigError(f'Unknown feed format {self.feed_format!r}; expected one of {FEED_FORMATS}')
        if not self.use_mock_data and not self.url:
            raise ConfigError('A feed URL is required unless mock data is enabled')
        if self.retries < 1:
            raise ConfigError(f'retries must be at least 1, got {self.retries}')
        if self.timeout <= 0:
            raise ConfigError(f'timeout must be positive, got {self.timeout}')

    @classmethod
    def from_env(cls) -> 'FeedConfig':
        """Build a config from VIOLENCE_TRACKER_* variables, loading .env first."""
        load_dotenv()
        try:
            return cls(
                url=os.getenv('VIOLENCE_TRACKER_FEED_URL', DEFAULT_FEED_URL),
                feed_format=os.getenv('VIOLENCE_TRACKER_FEED_FORMAT', 'auto').lower(),
                timeout=float(os.getenv('VIOLENCE_TRACKER_TIMEOUT', DEFAULT_TIMEOUT)),
                retries=int(os.getenv('VIOLENCE_TRACKER_RETRIES', DEFAULT_RETRIES)),
                use_mock_data=os.getenv('VIOLENCE_TRACKER_USE_MOCK', '').lower() in ('1', 'true', 'yes'),
            )
        except ValueError as e:
            raise ConfigError(f'Invalid feed configuration in environment: {e}') from e
