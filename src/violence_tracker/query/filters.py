"""Pure, order-preserving selections over the canonical incident collection."""

from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, List, Optional, Sequence

from violence_tracker.config import RECENT_LIMIT
from violence_tracker.data.models import DateLike, FilterSpec, IncidentRecord
from violence_tracker.data.normalize import parse_date

SEARCH_FIELDS = (
    'title', 'summary', 'district', 'state',
    'victim_group', 'incident_type', 'alleged_perpetrator',
)


def _coerce_bound(value: Optional[DateLike], name: str) -> Optional[date]:
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    parsed = parse_date(value)
    if parsed is None:
        raise ValueError(f'{name} {value!r} is not a recognised date')
    return parsed


def matches_search(incident: IncidentRecord, term: str) -> bool:
    """Case-insensitive substring match against any of the searchable text fields."""
    needle = term.lower()
    for field in SEARCH_FIELDS:
        value = getattr(incident, field)
        if value and needle in value.lower():
            return True
    return False


def filter_incidents(incidents: Iterable[IncidentRecord], spec: Optional[FilterSpec] = None) -> List[IncidentRecord]:
    """
    Apply a FilterSpec. Output keeps the input order; nothing is duplicated.

    Date bounds are inclusive and compare against occurred_at, falling back to
    the publication day. Incidents with neither date are left out whenever a
    bound is set.
    """
    spec = spec or FilterSpec()
    search = (spec.search_text or '').strip()
    date_from = _coerce_bound(spec.date_from, 'date_from')
    date_to = _coerce_bound(spec.date_to, 'date_to')

    selected = []
    for incident in incidents:
        if search and not matches_search(incident, search):
            continue
        if spec.state and incident.state != spec.state:
            continue
        if spec.victim_group and incident.victim_group != spec.victim_group:
            continue
        if spec.incident_type and incident.incident_type != spec.incident_type:
            continue
        if date_from is not None or date_to is not None:
            when = incident.effective_date
            if when is None:
                continue
            if date_from is not None and when < date_from:
                continue
            if date_to is not None and when > date_to:
                continue
        selected.append(incident)
    return selected


def unique_values(incidents: Iterable[IncidentRecord], attribute: str) -> List[str]:
    """Sorted distinct non-blank values of one attribute, for filter dropdowns."""
    return sorted({getattr(i, attribute) for i in incidents if getattr(i, attribute)})


def incidents_with_location(incidents: Iterable[IncidentRecord]) -> List[IncidentRecord]:
    return [i for i in incidents if i.has_valid_coordinates]


def recent_incidents(incidents: Sequence[IncidentRecord], limit: int = RECENT_LIMIT) -> List[IncidentRecord]:
    """Newest first by effective date; undated incidents go last in feed order."""
    dated = [i for i in incidents if i.effective_date is not None]
    undated = [i for i in incidents if i.effective_date is None]
    dated.sort(key=lambda i: i.effective_date, reverse=True)
    return (dated + undated)[:limit]
