"""Alias table mapping the header spellings seen across feed revisions onto canonical fields."""

from __future__ import annotations

import re
from typing import Dict, Iterable, Optional


# Keys are normalized header names (see normalize_header); values are IncidentRecord attributes.
FIELD_ALIASES: Dict[str, str] = {
    # Identity
    "id": "id",
    "incident_id": "id",
    "record_id": "id",
    "uid": "id",

    # Headline / description
    "title": "title",
    "headline": "title",
    "incident_title": "title",
    "summary": "summary",
    "description": "summary",
    "details": "summary",
    "incident_summary": "summary",

    # Dates
    "incident_date": "occurred_at",
    "date_of_incident": "occurred_at",
    "occurred_at": "occurred_at",
    "occurred_on": "occurred_at",
    "event_date": "occurred_at",
    "date": "occurred_at",
    "published_at": "published_at",
    "published": "published_at",
    "published_date": "published_at",
    "publication_date": "published_at",
    "date_published": "published_at",
    "pub_date": "published_at",

    # Place
    "location": "location_summary",
    "location_summary": "location_summary",
    "place": "location_summary",
    "address": "location_summary",
    "district": "district",
    "district_name": "district",
    "state": "state",
    "state_name": "state",
    "state_ut": "state",

    # Coordinates
    "lat": "latitude",
    "latitude": "latitude",
    "lon": "longitude",
    "lng": "longitude",
    "long": "longitude",
    "longitude": "longitude",

    # Classification
    "victim_group": "victim_group",
    "victim_community": "victim_group",
    "victim_category": "victim_group",
    "community": "victim_group",
    "incident_type": "incident_type",
    "type_of_incident": "incident_type",
    "incident_category": "incident_type",
    "category": "incident_type",
    "type": "incident_type",

    # Accountability
    "alleged_perp": "alleged_perpetrator",
    "alleged_perpetrator": "alleged_perpetrator",
    "perpetrator": "alleged_perpetrator",
    "accused": "alleged_perpetrator",
    "police_action": "police_action",
    "action_taken": "police_action",
    "police_response": "police_action",

    # Citation
    "source_url": "source_url",
    "url": "source_url",
    "link": "source_url",
    "source_link": "source_url",
    "article_url": "source_url",
    "source_name": "source_name",
    "source": "source_name",
    "publisher": "source_name",
    "outlet": "source_name",

    # Provenance
    "confidence_score": "confidence_score",
    "confidence": "confidence_score",
    "verified_manually": "verified_manually",
    "manually_verified": "verified_manually",
    "verified": "verified_manually",
}

CANONICAL_FIELDS = frozenset(FIELD_ALIASES.values())

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def normalize_header(header: Optional[str]) -> str:
    """Reduce a raw header to snake_case: 'Date of Incident' / 'incidentDate' -> 'date_of_incident' / 'incident_date'."""
    if header is None:
        return ""
    text = str(header).strip().strip('"').strip()
    text = _CAMEL_BOUNDARY.sub("_", text).lower()
    return _NON_ALNUM.sub("_", text).strip("_")


def canonical_field(header: Optional[str]) -> Optional[str]:
    """Return the canonical attribute for a raw header, or None when the header is unknown."""
    return FIELD_ALIASES.get(normalize_header(header))


def map_headers(headers: Iterable[str]) -> Dict[str, Optional[str]]:
    """Resolve every raw header at once. The first header claiming a canonical field keeps it."""
    resolved: Dict[str, Optional[str]] = {}
    claimed: set = set()
    for header in headers:
        field = canonical_field(header)
        if field is not None and field in claimed:
            field = None
        if field is not None:
            claimed.add(field)
        resolved[header] = field
    return resolved


__all__ = ["FIELD_ALIASES", "CANONICAL_FIELDS", "normalize_header", "canonical_field", "map_headers"]
