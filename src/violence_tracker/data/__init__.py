from .models import AggregateStats, FilterSpec, IncidentRecord, NormalizationReport, ParsedFeed
from .normalize import normalize_row, normalize_rows
from .parsing import parse_feed
from .feed_loader import IncidentFeedLoader

__all__ = [
    'AggregateStats',
    'FilterSpec',
    'IncidentRecord',
    'NormalizationReport',
    'ParsedFeed',
    'normalize_row',
    'normalize_rows',
    'parse_feed',
    'IncidentFeedLoader',
]
