"""
Row -> IncidentRecord normalization.

Operations:
  - Resolve heterogeneous headers through the alias table; unknown headers ride along as extras
  - Parse incident dates (YYYY-MM-DD, MM/DD/YYYY, MM-DD-YYYY) and publication timestamps
  - Validate coordinate pairs; invalid pairs become (None, None), never a fallback centroid
  - Discard rows that have neither a title nor a classification
  - Keep ids unique: duplicate feed ids are dropped, generated ids get a numeric suffix
"""

import hashlib
import math
from dataclasses import replace
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

import pandas as pd

from violence_tracker.config import NO_LOCATION, UNKNOWN_CATEGORY, UNTITLED
from violence_tracker.data.models import IncidentRecord, NormalizationReport
from violence_tracker.utils.field_aliases import map_headers
from violence_tracker.utils.logger_config import setup_logger

logger = setup_logger(__name__)

DATE_FORMATS: Tuple[str, ...] = ('%Y-%m-%d', '%m/%d/%Y', '%m-%d-%Y')

# pandas resolves these against the clock
RELATIVE_DATE_WORDS = frozenset({'now', 'today', 'tomorrow', 'yesterday'})

TEXT_FIELDS = (
    'summary', 'district', 'state', 'alleged_perpetrator',
    'police_action', 'source_url', 'source_name',
)


def _text(value: Any) -> Optional[str]:
    """Blank-aware string conversion. None, NaN and whitespace-only cells become None."""
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    text = str(value).strip()
    return text or None


def _passthrough(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, float) and math.isnan(value):
        return None
    return value


def parse_date(value: Any) -> Optional[date]:
    """
    Parse an incident date. Formats are tried in order and the first match wins.

    A trailing ISO time part ('2024-03-01T10:00:00Z') is ignored. Anything that
    does not parse returns None; the caller never substitutes today's date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = _text(value)
    if text is None:
        return None
    if text[10:11] in ('T', ' '):
        text = text[:10]
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def to_naive_utc(value: Any) -> Optional[datetime]:
    """Convert a string or datetime to naive UTC via pandas; anything pandas rejects becomes None."""
    try:
        ts = pd.to_datetime(value, errors='coerce', utc=True)
    except (ValueError, TypeError, OverflowError):
        return None
    if not isinstance(ts, pd.Timestamp) or pd.isna(ts):
        return None
    return ts.tz_convert(None).to_pydatetime()


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-ish publication timestamp into a naive UTC datetime.

    Only strings, dates and datetimes are considered. Relative words such as
    'now' or 'today' are rejected so they never turn into the clock time.
    """
    if isinstance(value, datetime):
        return to_naive_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text or text.lower() in RELATIVE_DATE_WORDS:
        return None
    return to_naive_utc(text)


def _coerce_float(value: Any) -> Tuple[Optional[float], Optional[str]]:
    if isinstance(value, bool):
        return None, 'non_numeric'
    if isinstance(value, (int, float)):
        try:
            return float(value), None
        except OverflowError:
            return None, 'non_finite'
    text = _text(value)
    if text is None:
        return None, 'missing'
    try:
        return float(text), None
    except ValueError:
        return None, 'non_numeric'


def parse_coordinates(lat: Any, lon: Any) -> Tuple[Optional[float], Optional[float], Optional[str]]:
    """
    Validate a latitude/longitude pair.

    Returns:
        (latitude, longitude, issue): both floats and issue None for a usable pair,
        otherwise (None, None, reason) where reason is one of 'missing', 'unpaired',
        'non_numeric', 'non_finite', 'out_of_range' or 'zero_sentinel'.
    """
    lat_value, lat_issue = _coerce_float(lat)
    lon_value, lon_issue = _coerce_float(lon)

    if lat_issue == 'missing' and lon_issue == 'missing':
        return None, None, 'missing'
    if 'non_numeric' in (lat_issue, lon_issue):
        return None, None, 'non_numeric'
    if 'non_finite' in (lat_issue, lon_issue):
        return None, None, 'non_finite'
    if lat_issue or lon_issue:
        return None, None, 'unpaired'
    if not (math.isfinite(lat_value) and math.isfinite(lon_value)):
        return None, None, 'non_finite'
    if not (-90.0 <= lat_value <= 90.0 and -180.0 <= lon_value <= 180.0):
        return None, None, 'out_of_range'
    # (0, 0) is the sheet's placeholder for "not geocoded"
    if lat_value == 0.0 and lon_value == 0.0:
        return None, None, 'zero_sentinel'
    return lat_value, lon_value, None


def compose_location(*parts: Any) -> str:
    """
    Join location/district/state into one human readable line, skipping blanks and repeats.

    A part is a repeat only when it equals (case-insensitively) a whole
    comma-separated piece already present, so 'Goa' survives after 'Goa Velha'.
    """
    pieces: List[str] = []
    seen = set()
    for part in parts:
        text = _text(part)
        if text is None or text.lower() in seen:
            continue
        pieces.append(text)
        seen.add(text.lower())
        seen.update(piece.strip().lower() for piece in text.split(','))
    return ', '.join(pieces) if pieces else NO_LOCATION


def generate_id(*parts: Any) -> str:
    """Content hash id for rows published without one. Stable across reloads of the same row."""
    payload = '|'.join(_text(p) or '' for p in parts)
    return 'inc-' + hashlib.sha256(payload.encode('utf-8')).hexdigest()[:12]


def map_row(row: Dict[str, Any]) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Split a raw row into canonical fields and pass-through extras."""
    canonical: Dict[str, Any] = {}
    extras: Dict[str, Any] = {}
    for header, field in map_headers(row.keys()).items():
        value = row[header]
        if field is None:
            extras[str(header).strip()] = _passthrough(value)
        else:
            canonical[field] = value
    return canonical, extras


def _normalize(row: Dict[str, Any], report: Optional[NormalizationReport]) -> Tuple[Optional[IncidentRecord], bool]:
    canonical, extras = map_row(row)

    title = _text(canonical.get('title'))
    victim_group = _text(canonical.get('victim_group'))
    incident_type = _text(canonical.get('incident_type'))
    if title is None and victim_group is None and incident_type is None:
        if report is not None:
            report.discarded_unclassified += 1
        logger.debug(f'Discarding row without title or classification: {row}')
        return None, False

    occurred_raw = canonical.get('occurred_at')
    occurred_at = parse_date(occurred_raw)
    published_raw = canonical.get('published_at')
    published_at = parse_timestamp(published_raw)
    for raw, parsed in ((occurred_raw, occurred_at), (published_raw, published_at)):
        if _text(raw) is not None and parsed is None:
            if report is not None:
                report.unparsed_dates += 1
            logger.debug(f'Unparsable date {raw!r} for {title or UNTITLED!r}; leaving it empty')

    latitude, longitude, issue = parse_coordinates(canonical.get('latitude'), canonical.get('longitude'))
    if issue is not None:
        if report is not None:
            report.coordinate_issues[issue] += 1
        if issue != 'missing':
            logger.debug(f'Rejected coordinates ({issue}) lat={canonical.get("latitude")!r} lon={canonical.get("longitude")!r}')

    text = {field: _text(canonical.get(field)) for field in TEXT_FIELDS}
    location_summary = compose_location(canonical.get('location_summary'), text['district'], text['state'])

    incident_id = _text(canonical.get('id'))
    generated = incident_id is None
    if generated:
        incident_id = generate_id(title, _text(occurred_raw), location_summary, text['source_url'], text['summary'])

    record = IncidentRecord(
        id=incident_id,
        title=title or UNTITLED,
        summary=text['summary'],
        occurred_at=occurred_at,
        published_at=published_at,
        location_summary=location_summary,
        district=text['district'],
        state=text['state'],
        latitude=latitude,
        longitude=longitude,
        victim_group=victim_group or UNKNOWN_CATEGORY,
        incident_type=incident_type or UNKNOWN_CATEGORY,
        alleged_perpetrator=text['alleged_perpetrator'],
        police_action=text['police_action'],
        source_url=text['source_url'],
        source_name=text['source_name'],
        confidence_score=_passthrough(canonical.get('confidence_score')),
        verified_manually=_passthrough(canonical.get('verified_manually')),
        extras=extras,
    )
    return record, generated


def normalize_row(row: Dict[str, Any], report: Optional[NormalizationReport] = None) -> Optional[IncidentRecord]:
    """
    Convert one raw feed row into an IncidentRecord.

    Args:
        row (dict): Raw row keyed by the feed's own header spellings
        report (NormalizationReport): Optional counters to update

    Returns:
        IncidentRecord, or None when the row has neither a title nor a classification
    """
    record, _ = _normalize(row, report)
    return record


def normalize_rows(rows: Iterable[Dict[str, Any]]) -> Tuple[Tuple[IncidentRecord, ...], NormalizationReport]:
    """
    Normalize a whole feed into a canonical collection.

    Args:
        rows (Iterable[dict]): Parsed feed rows

    Returns:
        (records, report): records in feed order with unique ids, plus data-quality counters
    """
    report = NormalizationReport()
    records: List[IncidentRecord] = []
    seen: Dict[str, int] = {}

    for row in rows:
        report.rows_read += 1
        record, generated = _normalize(row, report)
        if record is None:
            continue

        if record.id in seen:
            if not generated:
                report.duplicate_ids += 1
                logger.warning(f'Dropping duplicate incident id {record.id!r}')
                continue
            suffix = seen[record.id] + 1
            while f'{record.id}-{suffix}' in seen:
                suffix += 1
            seen[record.id] = suffix
            record = replace(record, id=f'{record.id}-{suffix}')

        seen[record.id] = 1
        records.append(record)
        if record.has_valid_coordinates:
            report.rows_with_coordinates += 1

    report.rows_kept = len(records)

    # Data Quality Reporting
    logger.info(f'Data Quality Check - Rows read: {report.rows_read:,}')
    logger.info(f'Data Quality Check - Kept: {report.rows_kept:,} (discarded {report.discarded_unclassified:,} unclassified, {report.duplicate_ids:,} duplicate ids)')
    logger.info(f'Data Quality Check - With coordinates: {report.rows_with_coordinates:,}; unparsable dates: {report.unparsed_dates:,}')
    if report.coordinate_issues:
        logger.debug(f'Coordinate issues by reason: {dict(report.coordinate_issues)}')

    return tuple(records), report
