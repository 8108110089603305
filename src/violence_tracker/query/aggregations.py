"""
Aggregations - summary statistics and chart-ready distributions.

Everything here is a pure function of the collection (plus "now" for the
sliding windows), so the same collection always gives the same answer.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from violence_tracker.config import MONTH_DAYS, OTHER_LABEL, TOP_N, WEEK_DAYS
from violence_tracker.data.models import AggregateStats, IncidentRecord


def _count_by(incidents: Iterable[IncidentRecord], attribute: str) -> Dict[str, int]:
    """Frequency map in order of first occurrence; blank values are skipped."""
    counts: Dict[str, int] = {}
    for incident in incidents:
        value = getattr(incident, attribute)
        if value:
            counts[value] = counts.get(value, 0) + 1
    return counts


def _ranked(counts: Mapping[str, int]) -> List[Tuple[str, int]]:
    # sorted() is stable, so equal counts keep first-occurrence order
    return sorted(counts.items(), key=lambda item: item[1], reverse=True)


def _event_time(incident: IncidentRecord) -> Optional[datetime]:
    if incident.occurred_at is not None:
        return datetime(incident.occurred_at.year, incident.occurred_at.month, incident.occurred_at.day)
    return incident.published_at


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def aggregate(incidents: Sequence[IncidentRecord], now: Optional[datetime] = None) -> AggregateStats:
    """
    Summary statistics for the stats cards and charts.

    Args:
        incidents: Canonical collection
        now: Anchor of the 7/30 day windows (naive UTC). Defaults to the current time

    Returns:
        AggregateStats
    """
    now = now or _utcnow()
    week_start = now - timedelta(days=WEEK_DAYS)
    month_start = now - timedelta(days=MONTH_DAYS)

    weekly = monthly = 0
    state_counts: Dict[str, int] = {}
    type_counts: Dict[str, int] = {}
    group_counts: Dict[str, int] = {}
    districts = set()

    for incident in incidents:
        when = _event_time(incident)
        if when is not None and when <= now:
            if when >= week_start:
                weekly += 1
            if when >= month_start:
                monthly += 1
        if incident.state:
            state_counts[incident.state] = state_counts.get(incident.state, 0) + 1
        if incident.district:
            districts.add(incident.district)
        type_counts[incident.incident_type] = type_counts.get(incident.incident_type, 0) + 1
        group_counts[incident.victim_group] = group_counts.get(incident.victim_group, 0) + 1

    ranked_states = _ranked(state_counts)
    return AggregateStats(
        total=len(incidents),
        weekly_count=weekly,
        monthly_count=monthly,
        most_affected_state=ranked_states[0][0] if ranked_states else None,
        state_counts=state_counts,
        incident_type_counts=type_counts,
        victim_group_counts=group_counts,
        states_count=len(state_counts),
        districts_count=len(districts),
    )


def top_n_distribution(counts: Mapping[str, int], n: int = TOP_N, other_label: str = OTHER_LABEL) -> List[Tuple[str, int]]:
    """
    Keep the n largest categories and fold the rest into a trailing "Other" bucket.

    The bucket is only appended when something actually falls outside the top n.
    """
    ranked = _ranked(counts)
    top = ranked[:n]
    other = sum(count for _, count in ranked[n:])
    if other > 0:
        top.append((other_label, other))
    return top


def state_distribution(incidents: Iterable[IncidentRecord], n: int = TOP_N) -> List[Tuple[str, int]]:
    return top_n_distribution(_count_by(incidents, 'state'), n)


def incident_type_distribution(incidents: Iterable[IncidentRecord], n: int = TOP_N) -> List[Tuple[str, int]]:
    return top_n_distribution(_count_by(incidents, 'incident_type'), n)


def victim_group_distribution(incidents: Iterable[IncidentRecord], n: int = TOP_N) -> List[Tuple[str, int]]:
    return top_n_distribution(_count_by(incidents, 'victim_group'), n)


def to_frame(incidents: Iterable[IncidentRecord]) -> pd.DataFrame:
    """Tabular view for the table and map widgets. Extras are not included."""
    rows = [{**incident.to_dict(), 'effective_date': incident.effective_date} for incident in incidents]
    if not rows:
        columns = [name for name in IncidentRecord.__dataclass_fields__ if name != 'extras']
        return pd.DataFrame(columns=columns + ['effective_date'])
    df = pd.DataFrame(rows)
    df['effective_date'] = pd.to_datetime(df['effective_date'])
    return df


def monthly_counts(incidents: Iterable[IncidentRecord]) -> pd.DataFrame:
    """Incidents per calendar month of the effective date, oldest first, for the timeline chart."""
    dates = [i.effective_date for i in incidents if i.effective_date is not None]
    if not dates:
        return pd.DataFrame(columns=['month', 'incidents'])
    months = pd.to_datetime(pd.Series(dates)).dt.to_period('M')
    grouped = months.value_counts().sort_index().rename_axis('month').reset_index(name='incidents')
    grouped['month'] = grouped['month'].astype(str)
    return grouped
