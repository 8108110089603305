import threading

import pytest

from conftest import FakeResponse, FakeSession, SAMPLE_CSV
from violence_tracker.config import FeedConfig
from violence_tracker.data.feed_loader import IncidentFeedLoader
from violence_tracker import store as store_module
from violence_tracker.query import aggregate
from violence_tracker.store import IncidentStore
from violence_tracker.utils.exceptions import (
    ConfigError,
    EmptyFeedError,
    FeedBusyError,
    FetchError,
    HttpStatusError,
    NetworkError,
    NoValidRowsError,
    ParseError,
)

URL = 'https://example.org/feed'


def make_loader(session, **kwargs):
    return IncidentFeedLoader(FeedConfig(url=URL, rate_limit=0, **kwargs), session=session)


class BlockingSession:
    """Holds the first request open until released, to observe the in-flight guard."""

    def __init__(self):
        self.calls = 0
        self.started = threading.Event()
        self.release = threading.Event()

    def get(self, url, timeout=None):
        self.calls += 1
        self.started.set()
        self.release.wait(5)
        return FakeResponse(200, SAMPLE_CSV)


class TestLoad:
    def test_csv_feed(self, csv_session):
        loader = make_loader(csv_session)
        incidents = loader.load()
        assert [i.id for i in incidents] == ['INC_001', 'INC_002', 'INC_003']
        assert csv_session.calls == [(URL, 30)]
        assert loader.last_report.discarded_unclassified == 1
        assert loader.last_updated is not None

    def test_sample_rows_normalized(self, csv_session):
        first, second, third = make_loader(csv_session).load()
        assert first.summary == 'Groom pulled off horse, beaten'
        assert first.location_summary == 'Near temple, Jaipur, Rajasthan'
        assert first.extras == {'rss_feed_id': 'feed_1'}
        assert (second.latitude, second.longitude) == (None, None)
        assert second.occurred_at.isoformat() == '2024-02-01'
        assert third.title == 'Untitled Incident'
        assert third.has_valid_coordinates is False
        assert third.occurred_at.isoformat() == '2024-03-01'

    def test_json_feed_last_updated(self):
        body = '{"lastUpdated": "2024-05-01T00:00:00Z", "data": [{"title": "A", "victimGroup": "Dalit"}]}'
        loader = make_loader(FakeSession(FakeResponse(200, body, {'Content-Type': 'application/json'})))
        (incident,) = loader.load()
        assert incident.victim_group == 'Dalit'
        assert loader.last_updated.isoformat() == '2024-05-01T00:00:00'

    def test_odd_json_cells_do_not_fail_the_load(self):
        body = ('[{"title": "A", "published_at": ["2024-01-01", "2024-02-01"], "lat": 1e999999},'
                ' {"title": "B", "published_at": "today"}]')
        loader = make_loader(FakeSession(FakeResponse(200, body, {'Content-Type': 'application/json'})))
        first, second = loader.load()
        assert first.published_at is None
        assert first.latitude is None
        assert second.published_at is None
        assert loader.last_report.unparsed_dates == 2

    def test_ragged_csv_row_is_kept(self):
        body = 'title,victim_group,state\nA,Dalit,Delhi\nB, Muslim,Bihar, extra comma in cell\nC,Adivasi,Odisha\n'
        incidents = make_loader(FakeSession(FakeResponse(200, body))).load()
        assert [i.state for i in incidents] == ['Delhi', 'Bihar', 'Odisha']

    def test_mock_feed_skips_network(self, broken_session):
        loader = make_loader(broken_session, use_mock_data=True)
        assert len(loader.load()) == 50
        assert broken_session.calls == []


class TestFailures:
    def test_network_error(self, broken_session):
        with pytest.raises(NetworkError):
            make_loader(broken_session).load()

    def test_http_status(self):
        with pytest.raises(HttpStatusError) as exc_info:
            make_loader(FakeSession(FakeResponse(404, 'Not Found'))).load()
        assert exc_info.value.code == 404

    def test_empty_body(self):
        with pytest.raises(EmptyFeedError):
            make_loader(FakeSession(FakeResponse(200, ''))).load()

    def test_parse_error(self):
        session = FakeSession(FakeResponse(200, '{"data": [', {'Content-Type': 'application/json'}))
        with pytest.raises(ParseError):
            make_loader(session).load()

    def test_no_valid_rows(self):
        body = 'summary,state\nsomething,Delhi\nelse,Bihar\n'
        with pytest.raises(NoValidRowsError):
            make_loader(FakeSession(FakeResponse(200, body))).load()

    def test_all_failures_are_fetch_errors(self, broken_session):
        with pytest.raises(FetchError):
            make_loader(broken_session).load()

    def test_rate_limit_is_retried(self):
        session = FakeSession(FakeResponse(429, 'slow down'), FakeResponse(200, SAMPLE_CSV))
        incidents = make_loader(session, retries=2).load()
        assert len(incidents) == 3
        assert len(session.calls) == 2

    def test_network_error_retried_then_raised(self, broken_session):
        with pytest.raises(NetworkError):
            make_loader(broken_session, retries=3).load()
        assert len(broken_session.calls) == 3

    def test_bad_config(self):
        with pytest.raises(ConfigError):
            FeedConfig(url=URL, feed_format='xml')
        with pytest.raises(ConfigError):
            FeedConfig(url=URL, retries=0)


class TestInFlightGuard:
    def test_second_load_is_rejected(self):
        session = BlockingSession()
        loader = make_loader(session)
        results = []
        worker = threading.Thread(target=lambda: results.append(loader.load()))
        worker.start()
        try:
            assert session.started.wait(5)
            assert loader.loading
            with pytest.raises(FeedBusyError):
                loader.load()
            assert session.calls == 1
        finally:
            session.release.set()
            worker.join(5)
        assert len(results) == 1
        assert not loader.loading

    def test_guard_released_after_failure(self, broken_session):
        loader = make_loader(broken_session)
        for _ in range(2):
            with pytest.raises(NetworkError):
                loader.load()
        assert len(broken_session.calls) == 2


class TestStore:
    def test_refresh_replaces_and_notifies(self, csv_session):
        store = IncidentStore(make_loader(csv_session))
        seen = []
        store.subscribe(lambda incidents, stats: seen.append((len(incidents), stats.total)))
        first = store.refresh()
        second = store.refresh()
        assert seen == [(3, 3), (3, 3)]
        assert first is not second
        assert store.incidents is second
        assert store.stats.most_affected_state == 'Rajasthan'

    def test_failed_refresh_keeps_previous(self):
        session = FakeSession(FakeResponse(200, SAMPLE_CSV), FakeResponse(500, 'boom'))
        store = IncidentStore(make_loader(session))
        loaded = store.refresh()
        with pytest.raises(HttpStatusError):
            store.refresh()
        assert store.incidents is loaded
        assert isinstance(store.last_error, HttpStatusError)
        assert store.stats.total == 3

    def test_unsubscribe(self, csv_session):
        store = IncidentStore(make_loader(csv_session))
        calls = []
        unsubscribe = store.subscribe(lambda *args: calls.append(args))
        unsubscribe()
        store.refresh()
        assert calls == []

    def test_filter_uses_current_collection(self, csv_session):
        from violence_tracker.data.models import FilterSpec

        store = IncidentStore(make_loader(csv_session))
        assert store.filter() == []
        store.refresh()
        assert [i.id for i in store.filter(FilterSpec(victim_group='Dalit'))] == ['INC_001', 'INC_003']

    def test_stats_swapped_with_collection(self, csv_session, monkeypatch):
        store = IncidentStore(make_loader(csv_session))
        seen_during_aggregate = []

        def recording_aggregate(incidents, now=None):
            seen_during_aggregate.append(len(store.incidents))
            return aggregate(incidents, now)

        monkeypatch.setattr(store_module, 'aggregate', recording_aggregate)
        store.refresh()
        assert seen_during_aggregate == [0]
        assert store.stats.total == len(store.incidents) == 3
