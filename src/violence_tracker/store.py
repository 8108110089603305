"""
Session-scoped holder of the canonical incident collection.

One IncidentStore is built per application instance and handed to whatever
renders the data. The collection is a tuple that is only ever swapped for a
new one, so a widget holding the old reference never sees a half-updated list.
"""

from datetime import datetime
from typing import Callable, List, Optional, Tuple

from violence_tracker.data.feed_loader import IncidentFeedLoader
from violence_tracker.data.models import AggregateStats, FilterSpec, IncidentRecord
from violence_tracker.query.aggregations import aggregate
from violence_tracker.query.filters import filter_incidents
from violence_tracker.utils.exceptions import FetchError
from violence_tracker.utils.logger_config import setup_logger

logger = setup_logger(__name__)

Listener = Callable[[Tuple[IncidentRecord, ...], AggregateStats], None]


class IncidentStore:
    """
    Canonical collection plus change notification.

    Attributes:
        loader (IncidentFeedLoader): Source of fresh collections
        incidents (tuple): Current canonical collection (empty before the first refresh)
        stats (AggregateStats): Aggregates of the current collection
        last_error (FetchError): Failure of the most recent refresh, None after a success
    """

    def __init__(self, loader: IncidentFeedLoader) -> None:
        self.loader = loader
        self.incidents: Tuple[IncidentRecord, ...] = ()
        self.stats: AggregateStats = aggregate(self.incidents)
        self.last_error: Optional[FetchError] = None
        self._listeners: List[Listener] = []

    @property
    def loading(self) -> bool:
        return self.loader.loading

    @property
    def last_updated(self) -> Optional[datetime]:
        return self.loader.last_updated

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a callback fired after every successful refresh. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def refresh(self) -> Tuple[IncidentRecord, ...]:
        """
        Reload the feed and swap in the new collection.

        On failure the previous collection and stats stay in place, the error is
        kept in last_error and re-raised for the caller to display.

        Raises:
            FeedBusyError: A refresh is already running
            FetchError: Any failure reported by the loader
        """
        try:
            incidents = self.loader.load()
        except FetchError as e:
            self.last_error = e
            logger.error(f'Refresh failed, keeping {len(self.incidents)} previously loaded incidents : {str(e)}')
            raise

        stats = aggregate(incidents)
        self.incidents, self.stats = incidents, stats
        self.last_error = None
        logger.info(f'Incident collection replaced ({len(incidents)} incidents)')

        for listener in list(self._listeners):
            listener(self.incidents, self.stats)
        return self.incidents

    def filter(self, spec: Optional[FilterSpec] = None) -> List[IncidentRecord]:
        return filter_incidents(self.incidents, spec)
