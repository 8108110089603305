"""
Feed parsers.

Turns the raw body of the published sheet into a tuple of untyped rows. Two
document shapes are accepted:

- CSV with a header row, comma delimited, double-quote quoting (quoted cells may
  hold commas and newlines).
- JSON, either a bare array of row objects or ``{"data": [...], "lastUpdated": ...}``.
"""

import json
from datetime import datetime
from io import StringIO
from typing import Any, Dict, List, Optional

import pandas as pd

from violence_tracker.data.models import ParsedFeed
from violence_tracker.data.normalize import parse_timestamp
from violence_tracker.utils.exceptions import EmptyFeedError, ParseError
from violence_tracker.utils.logger_config import setup_logger

logger = setup_logger(__name__)


def detect_format(text: str, content_type: Optional[str] = None) -> str:
    """
    Guess the feed format from the Content-Type header, then from the body.

    Args:
        text (str): Response body
        content_type (str): Optional Content-Type header value

    Returns:
        str: 'json' or 'csv'
    """
    if content_type and 'json' in content_type.lower():
        return 'json'
    head = text.lstrip('\ufeff \t\r\n')[:1]
    if head in ('{', '['):
        return 'json'
    return 'csv'


def _header_names(cells: List[Any]) -> List[str]:
    """Trim header tokens and suffix repeats ('title', 'title.1') the way pandas mangles them."""
    names: List[str] = []
    counts: Dict[str, int] = {}
    for cell in cells:
        name = str(cell).strip().strip('"').strip()
        if name in counts:
            counts[name] += 1
            name = f'{name}.{counts[name]}'
        else:
            counts[name] = 0
        names.append(name)
    return names


def parse_csv(text: str) -> ParsedFeed:
    """
    Parse a CSV document into rows keyed by the trimmed header tokens.

    Every cell is kept as a string; blanks stay blank instead of becoming NaN so
    the normalizer sees exactly what the sheet published. Ragged rows are kept:
    cells past the header width are dropped and missing trailing cells become ''.

    Raises:
        EmptyFeedError: No header or no data rows
        ParseError: pandas could not tokenize the document
    """
    if not text or not text.strip():
        raise EmptyFeedError('Feed body is empty')

    body = text.lstrip('\ufeff')
    ragged_rows: List[int] = []

    try:
        width = pd.read_csv(StringIO(body), header=None, nrows=1, dtype=str, engine='python').shape[1]

        def keep_header_width(fields: List[str]) -> List[str]:
            ragged_rows.append(len(fields))
            return fields[:width]

        df = pd.read_csv(
            StringIO(body),
            header=None,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            engine='python',
            on_bad_lines=keep_header_width,
        )
    except pd.errors.EmptyDataError as e:
        raise EmptyFeedError(f'Feed has no header row: {e}') from e
    except pd.errors.ParserError as e:
        logger.error(f'CSV tokenizer failed : {str(e)}')
        raise ParseError(str(e)) from e

    if ragged_rows:
        logger.warning(f'Data Quality Check - {len(ragged_rows)} CSV rows had more than {width} cells; extra cells dropped')

    df = df.fillna('')
    columns = _header_names(list(df.iloc[0]))
    df = df.iloc[1:]
    df.columns = columns
    if df.empty:
        raise EmptyFeedError('Feed has a header row but no data rows')

    rows = tuple(
        {col: (value.strip() if isinstance(value, str) else value) for col, value in zip(columns, values)}
        for values in df.itertuples(index=False, name=None)
    )
    logger.info(f'Parsed {len(rows)} CSV rows with {len(columns)} columns')
    logger.debug(f'CSV headers: {columns}')
    return ParsedFeed(rows=rows, feed_format='csv')


def _parse_last_updated(value: Any) -> Optional[datetime]:
    if value in (None, ''):
        return None
    ts = parse_timestamp(value)
    if ts is None:
        logger.warning(f'Ignoring unparsable lastUpdated value {value!r}')
    return ts


def parse_json(text: str) -> ParsedFeed:
    """
    Parse a JSON feed: a bare array of row objects, or an object with a ``data`` array.

    Raises:
        EmptyFeedError: Empty body or zero rows
        ParseError: Invalid JSON or an unexpected top-level shape
    """
    if not text or not text.strip():
        raise EmptyFeedError('Feed body is empty')

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        logger.error(f'JSON decode failed : {str(e)}')
        raise ParseError(f'invalid JSON at line {e.lineno} column {e.colno}: {e.msg}') from e

    last_updated = None
    if isinstance(payload, dict):
        data = payload.get('data')
        if not isinstance(data, list):
            raise ParseError('JSON object does not contain a "data" array')
        last_updated = _parse_last_updated(payload.get('lastUpdated'))
    elif isinstance(payload, list):
        data = payload
    else:
        raise ParseError(f'unexpected JSON top-level type {type(payload).__name__}')

    rows: List[Dict[str, Any]] = []
    skipped = 0
    for item in data:
        if isinstance(item, dict):
            rows.append({str(k).strip(): (v.strip() if isinstance(v, str) else v) for k, v in item.items()})
        else:
            skipped += 1
    if skipped:
        logger.warning(f'Skipped {skipped} JSON rows that were not objects')
    if not rows:
        raise EmptyFeedError('JSON feed contains no rows')

    logger.info(f'Parsed {len(rows)} JSON rows')
    return ParsedFeed(rows=tuple(rows), feed_format='json', last_updated=last_updated)


def parse_feed(text: str, feed_format: str = 'auto', content_type: Optional[str] = None) -> ParsedFeed:
    """Dispatch to the CSV or JSON parser; 'auto' sniffs the body."""
    if feed_format == 'auto':
        feed_format = detect_format(text or '', content_type)
        logger.debug(f'Detected feed format: {feed_format}')
    if feed_format == 'json':
        return parse_json(text)
    if feed_format == 'csv':
        return parse_csv(text)
    raise ParseError(f'unsupported feed format {feed_format!r}')
