"""
Incident Feed Loader Module.

Fetches the published spreadsheet feed over HTTP, parses it (CSV or JSON) and
normalizes the rows into the canonical incident collection.

Note:
    Only one load may be in flight per loader. A load requested while another
    is pending is rejected with FeedBusyError straight away; it is not queued
    and no second request reaches the network.
"""

import json
import threading
import time
from datetime import datetime, timezone
from typing import Optional, Tuple

import requests

from violence_tracker.config import FeedConfig
from violence_tracker.data.mock_feed import generate_mock_feed
from violence_tracker.data.models import IncidentRecord, NormalizationReport
from violence_tracker.data.normalize import normalize_rows
from violence_tracker.data.parsing import parse_feed
from violence_tracker.utils.exceptions import (
    EmptyFeedError,
    FeedBusyError,
    HttpStatusError,
    NetworkError,
    NoValidRowsError,
)
from violence_tracker.utils.logger_config import setup_logger

logger = setup_logger(__name__)


class IncidentFeedLoader:
    """
    A class to handle fetching and normalizing the incident feed.

    Attributes:
        config (FeedConfig): Feed location, format and retry settings
        session (requests.Session): HTTP session used for every request
        last_updated (datetime): Feed's own lastUpdated stamp, or the time of the last successful load
        last_report (NormalizationReport): Data-quality counters of the last successful load

    Example:
        >>> loader = IncidentFeedLoader(FeedConfig(url='https://example.org/feed.csv'))
        >>> incidents = loader.load()
    """

    def __init__(self, config: Optional[FeedConfig] = None, session: Optional[requests.Session] = None) -> None:
        self.config = config or FeedConfig()
        self.session = session or requests.Session()
        self.last_updated: Optional[datetime] = None
        self.last_report: Optional[NormalizationReport] = None
        self._in_flight = threading.Lock()

    @property
    def loading(self) -> bool:
        return self._in_flight.locked()

    def _make_request(self) -> requests.Response:
        """
        Make an HTTP GET for the feed with retry logic.

        Returns:
            requests.Response: A 2xx response with a non-empty body

        Raises:
            NetworkError: Connection/DNS/timeout failure on the final attempt
            HttpStatusError: Non-2xx status (429 is retried until attempts run out)
            EmptyFeedError: 2xx response with an empty body
        """
        url = self.config.url
        retries = self.config.retries

        for attempt in range(retries):
            try:
                logger.debug(f'Requesting: {url}')
                response = self.session.get(url, timeout=self.config.timeout)
            except requests.exceptions.RequestException as e:
                logger.error(f'Network error (attempt {attempt + 1}): {str(e)}')
                if attempt == retries - 1:
                    raise NetworkError(f'Network error after {retries} attempts: {str(e)}') from e
                time.sleep(self.config.rate_limit * (attempt + 1))  # Progressive backoff
                continue

            if 200 <= response.status_code < 300:
                if not response.content or not response.text.strip():
                    raise EmptyFeedError(f'Feed at {url} returned an empty body')
                return response

            if response.status_code == 429 and attempt < retries - 1:  # Rate limit
                wait_time = min((attempt + 1) * self.config.rate_limit * 2, 60)
                logger.warning(f'Rate Limit Exceeded, waiting for {wait_time}s')
                time.sleep(wait_time)
                continue

            logger.error(f'Request failed with status {response.status_code}')
            raise HttpStatusError(response.status_code)

        # retries >= 1 is enforced by FeedConfig, so the loop always returns or raises
        raise NetworkError(f'No request was attempted for {url}')

    def _fetch_text(self) -> Tuple[str, Optional[str]]:
        if self.config.use_mock_data:
            logger.info('Serving generated mock feed')
            return json.dumps(generate_mock_feed()), 'application/json'
        response = self._make_request()
        return response.text, response.headers.get('Content-Type')

    def load(self) -> Tuple[IncidentRecord, ...]:
        """
        Fetch, parse and normalize the feed.

        Returns:
            Tuple[IncidentRecord, ...]: The new canonical collection, in feed order

        Raises:
            FeedBusyError: Another load on this loader has not finished yet
            FetchError: NetworkError, HttpStatusError, ParseError, EmptyFeedError or NoValidRowsError
        """
        if not self._in_flight.acquire(blocking=False):
            logger.warning('Feed load already in progress; rejecting overlapping request')
            raise FeedBusyError('A feed load is already in progress')

        try:
            logger.info(f'Fetching incident feed ({self.config.feed_format})')
            text, content_type = self._fetch_text()
            parsed = parse_feed(text, self.config.feed_format, content_type)
            records, report = normalize_rows(parsed.rows)

            if not records:
                logger.error(f'All {report.rows_read} feed rows were discarded during normalization')
                raise NoValidRowsError(f'None of the {report.rows_read} feed rows could be used')

            self.last_report = report
            self.last_updated = parsed.last_updated or datetime.now(timezone.utc).replace(tzinfo=None)
            logger.info(f'Loaded {len(records)} incidents')
            return records
        finally:
            self._in_flight.release()
