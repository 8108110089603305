"""Filtering and aggregation over the canonical incident collection."""

from .filters import (
    filter_incidents,
    incidents_with_location,
    matches_search,
    recent_incidents,
    unique_values,
)
from .aggregations import (
    aggregate,
    incident_type_distribution,
    monthly_counts,
    state_distribution,
    to_frame,
    top_n_distribution,
    victim_group_distribution,
)

__all__ = [
    'filter_incidents',
    'incidents_with_location',
    'matches_search',
    'recent_incidents',
    'unique_values',
    'aggregate',
    'incident_type_distribution',
    'monthly_counts',
    'state_distribution',
    'to_frame',
    'top_n_distribution',
    'victim_group_distribution',
]
