from datetime import date, datetime

import pytest

from violence_tracker.data.models import FilterSpec, IncidentRecord
from violence_tracker.query import (
    aggregate,
    filter_incidents,
    incident_type_distribution,
    incidents_with_location,
    monthly_counts,
    recent_incidents,
    to_frame,
    top_n_distribution,
    unique_values,
)


def make(id, **kwargs):
    return IncidentRecord(id=id, **kwargs)


@pytest.fixture
def incidents():
    return (
        make('1', title='Dalit groom attacked', occurred_at=date(2024, 1, 1), state='Rajasthan',
             district='Jaipur', victim_group='Dalit', incident_type='Physical Violence',
             latitude=26.9, longitude=75.8),
        make('2', title='Church vandalised', occurred_at=date(2024, 2, 1), state='Chhattisgarh',
             district='Bastar', victim_group='Christian', incident_type='Property Damage',
             alleged_perpetrator='Bajrang mob'),
        make('3', title='Boycott in village', occurred_at=date(2024, 3, 1), state='Rajasthan',
             victim_group='Dalit', incident_type='Social Boycott', summary='Families denied water access',
             latitude=27.0, longitude=74.2),
    )


class TestFilter:
    def test_empty_spec_is_identity(self, incidents):
        assert filter_incidents(incidents, FilterSpec()) == list(incidents)
        assert filter_incidents(incidents) == list(incidents)

    def test_date_window(self, incidents):
        result = filter_incidents(incidents, FilterSpec(date_from='2024-01-15', date_to='2024-02-15'))
        assert [i.id for i in result] == ['2']

    def test_date_bounds_are_inclusive(self, incidents):
        result = filter_incidents(incidents, FilterSpec(date_from=date(2024, 2, 1), date_to=datetime(2024, 3, 1, 23)))
        assert [i.id for i in result] == ['2', '3']

    def test_published_at_fallback(self):
        undated = make('u', title='x')
        published = make('p', title='y', published_at=datetime(2024, 2, 10, 9))
        result = filter_incidents([undated, published], FilterSpec(date_from='02/01/2024'))
        assert [i.id for i in result] == ['p']

    def test_invalid_bound(self, incidents):
        with pytest.raises(ValueError):
            filter_incidents(incidents, FilterSpec(date_from='soon'))

    @pytest.mark.parametrize('term, expected', [
        ('DALIT', ['1', '3']),
        ('bastar', ['2']),
        ('water', ['3']),
        ('bajrang', ['2']),
        ('property', ['2']),
        ('nothing matches', []),
    ])
    def test_search(self, incidents, term, expected):
        assert [i.id for i in filter_incidents(incidents, FilterSpec(search_text=term))] == expected

    def test_exact_matches_combine(self, incidents):
        spec = FilterSpec(state='Rajasthan', victim_group='Dalit', incident_type='Social Boycott')
        assert [i.id for i in filter_incidents(incidents, spec)] == ['3']
        assert filter_incidents(incidents, FilterSpec(state='rajasthan')) == []

    def test_input_untouched(self, incidents):
        before = list(incidents)
        filter_incidents(incidents, FilterSpec(state='Rajasthan'))
        assert list(incidents) == before


class TestSelections:
    def test_unique_values(self, incidents):
        assert unique_values(incidents, 'state') == ['Chhattisgarh', 'Rajasthan']
        assert unique_values(incidents, 'victim_group') == ['Christian', 'Dalit']

    def test_with_location(self, incidents):
        assert [i.id for i in incidents_with_location(incidents)] == ['1', '3']

    def test_recent_newest_first(self, incidents):
        undated = make('u', title='undated')
        result = recent_incidents((undated,) + incidents, limit=3)
        assert [i.id for i in result] == ['3', '2', '1']
        assert recent_incidents((undated,) + incidents)[-1].id == 'u'


class TestAggregate:
    NOW = datetime(2024, 3, 10, 12, 0)

    def test_windows(self):
        collection = [
            make('a', occurred_at=date(2024, 3, 8)),
            make('b', occurred_at=date(2024, 2, 20)),
            make('c', occurred_at=date(2024, 1, 1)),
            make('d', occurred_at=date(2024, 4, 1)),
            make('e', published_at=datetime(2024, 3, 9, 8)),
            make('f'),
        ]
        stats = aggregate(collection, now=self.NOW)
        assert stats.total == 6
        assert stats.weekly_count == 2
        assert stats.monthly_count == 3

    def test_window_edges_inclusive(self):
        collection = [
            make('a', published_at=datetime(2024, 3, 3, 12, 0)),
            make('b', published_at=datetime(2024, 3, 10, 12, 0)),
        ]
        assert aggregate(collection, now=self.NOW).weekly_count == 2

    def test_most_affected_state_tie_goes_to_first_seen(self):
        collection = [make(str(n), state=s) for n, s in enumerate(['Bihar', 'Assam', 'Assam', 'Bihar', 'Kerala'])]
        stats = aggregate(collection, now=self.NOW)
        assert stats.most_affected_state == 'Bihar'
        assert stats.state_counts == {'Bihar': 2, 'Assam': 2, 'Kerala': 1}

    def test_frequency_maps(self, incidents):
        stats = aggregate(incidents, now=self.NOW)
        assert stats.victim_group_counts == {'Dalit': 2, 'Christian': 1}
        assert stats.incident_type_counts == {'Physical Violence': 1, 'Property Damage': 1, 'Social Boycott': 1}
        assert stats.states_count == 2
        assert stats.districts_count == 2

    def test_empty_collection(self):
        stats = aggregate((), now=self.NOW)
        assert stats.total == 0
        assert stats.most_affected_state is None

    def test_idempotent(self, incidents):
        assert aggregate(incidents, now=self.NOW) == aggregate(incidents, now=self.NOW)


class TestTopN:
    def test_collapse_fifteen_categories(self):
        counts = {f'type_{n}': n for n in range(1, 16)}
        distribution = top_n_distribution(counts)
        assert len(distribution) == 11
        assert distribution[-1] == ('Other', 1 + 2 + 3 + 4 + 5)
        assert [label for label, _ in distribution[:3]] == ['type_15', 'type_14', 'type_13']

    def test_no_other_bucket_at_ten_or_fewer(self):
        counts = {f'type_{n}': n for n in range(1, 11)}
        distribution = top_n_distribution(counts)
        assert len(distribution) == 10
        assert 'Other' not in [label for label, _ in distribution]

    def test_ties_keep_first_occurrence(self):
        assert top_n_distribution({'b': 1, 'a': 1, 'c': 2}, n=2) == [('c', 2), ('b', 1), ('Other', 1)]

    def test_distribution_from_collection(self, incidents):
        assert incident_type_distribution(incidents)[0] == ('Physical Violence', 1)


class TestFrames:
    def test_to_frame(self, incidents):
        df = to_frame(incidents)
        assert list(df['id']) == ['1', '2', '3']
        assert str(df['effective_date'].dtype).startswith('datetime64')

    def test_to_frame_empty(self):
        df = to_frame([])
        assert df.empty
        assert 'latitude' in df.columns

    def test_monthly_counts(self, incidents):
        extra = make('4', occurred_at=date(2024, 1, 20))
        df = monthly_counts(incidents + (extra,))
        assert list(df['month']) == ['2024-01', '2024-02', '2024-03']
        assert list(df['incidents']) == [2, 1, 1]
