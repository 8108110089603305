"""Canonical data structures shared by ingestion, the query layer and presentation adapters."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from violence_tracker.config import NO_LOCATION, UNKNOWN_CATEGORY, UNTITLED

DateLike = Union[date, datetime, str]


@dataclass(frozen=True)
class IncidentRecord:
    """One normalized incident. Instances are never mutated after construction."""

    id: str
    title: str = UNTITLED
    summary: Optional[str] = None
    occurred_at: Optional[date] = None
    published_at: Optional[datetime] = None
    location_summary: str = NO_LOCATION
    district: Optional[str] = None
    state: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    victim_group: str = UNKNOWN_CATEGORY
    incident_type: str = UNKNOWN_CATEGORY
    alleged_perpetrator: Optional[str] = None
    police_action: Optional[str] = None
    source_url: Optional[str] = None
    source_name: Optional[str] = None
    confidence_score: Any = None
    verified_manually: Any = None
    extras: Mapping[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self) -> None:
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError(f'Incident {self.id}: latitude and longitude must both be set or both be None')
        # read-only view so the record stays immutable all the way down
        if not isinstance(self.extras, MappingProxyType):
            object.__setattr__(self, 'extras', MappingProxyType(dict(self.extras)))

    @property
    def has_valid_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def effective_date(self) -> Optional[date]:
        """occurred_at, falling back to the publication day."""
        if self.occurred_at is not None:
            return self.occurred_at
        if self.published_at is not None:
            return self.published_at.date()
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'title': self.title,
            'summary': self.summary,
            'occurred_at': self.occurred_at,
            'published_at': self.published_at,
            'location_summary': self.location_summary,
            'district': self.district,
            'state': self.state,
            'latitude': self.latitude,
            'longitude': self.longitude,
            'victim_group': self.victim_group,
            'incident_type': self.incident_type,
            'alleged_perpetrator': self.alleged_perpetrator,
            'police_action': self.police_action,
            'source_url': self.source_url,
            'source_name': self.source_name,
            'confidence_score': self.confidence_score,
            'verified_manually': self.verified_manually,
        }


@dataclass(frozen=True)
class FilterSpec:
    """Optional constraints; a field left as None passes everything through."""

    search_text: Optional[str] = None
    state: Optional[str] = None
    victim_group: Optional[str] = None
    incident_type: Optional[str] = None
    date_from: Optional[DateLike] = None
    date_to: Optional[DateLike] = None


@dataclass(frozen=True)
class AggregateStats:
    total: int = 0
    weekly_count: int = 0
    monthly_count: int = 0
    most_affected_state: Optional[str] = None
    state_counts: Mapping[str, int] = field(default_factory=dict)
    incident_type_counts: Mapping[str, int] = field(default_factory=dict)
    victim_group_counts: Mapping[str, int] = field(default_factory=dict)
    states_count: int = 0
    districts_count: int = 0


@dataclass
class NormalizationReport:
    """Data-quality counters collected while normalizing one feed."""

    rows_read: int = 0
    rows_kept: int = 0
    discarded_unclassified: int = 0
    duplicate_ids: int = 0
    unparsed_dates: int = 0
    rows_with_coordinates: int = 0
    coordinate_issues: Counter = field(default_factory=Counter)

    def as_rows(self) -> List[Tuple[str, int]]:
        rows = [
            ('rows_read', self.rows_read),
            ('rows_kept', self.rows_kept),
            ('discarded_unclassified', self.discarded_unclassified),
            ('duplicate_ids', self.duplicate_ids),
            ('unparsed_dates', self.unparsed_dates),
            ('rows_with_coordinates', self.rows_with_coordinates),
        ]
        rows.extend((f'coordinates_{reason}', count) for reason, count in sorted(self.coordinate_issues.items()))
        return rows


@dataclass(frozen=True)
class ParsedFeed:
    """Untyped rows straight out of the CSV/JSON parser."""

    rows: Tuple[Dict[str, Any], ...]
    feed_format: str
    last_updated: Optional[datetime] = None
