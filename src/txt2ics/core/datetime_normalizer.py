"""Date/time normalization for model-supplied timestamps."""

import logging
import re
from datetime import date, datetime
from typing import Optional, Union

import pytz
from dateutil import parser
from dateutil.parser import isoparse

from txt2ics.exceptions.errors import InvalidDateTimeError

logger = logging.getLogger(__name__)

CivilTime = Union[datetime, date]

# A numeric UTC offset (or "Z") trailing a "T"-delimited time component
_INLINE_OFFSET = re.compile(r"(T[^+\-]*?)\s*(?:Z|[+-]\d{1,2}(?::?\d{2})?)$")


def normalize_time_string(time_str: str) -> str:
    """Handle common human formats like '20:00h' or '20h15' before parsing.

    Args:
        time_str: The time string to normalize.

    Returns:
        A normalized time string that dateutil can parse.
    """
    if not isinstance(time_str, str):
        return str(time_str)

    s = time_str.strip()

    # Convert European "20.00" to "20:00" for dateutil
    if re.match(r"^\d{1,2}\.\d{2}$", s):
        s = s.replace(".", ":")

    # Handle "20:00h", "20h", "20h15", "20h15m" styles
    match = re.match(r"^\s*(\d{1,2})(?:[:\.]?(\d{2}))?\s*h(?:rs?)?\.?\s*$", s, re.IGNORECASE)
    if match:
        hour = int(match.group(1))
        minute = match.group(2) or "00"
        return f"{hour:02d}:{minute}"

    match = re.match(r"^\s*(\d{1,2})h(\d{2})\s*$", s, re.IGNORECASE)
    if match:
        hour = int(match.group(1))
        minute = match.group(2)
        return f"{hour:02d}:{minute}"

    return s


def has_inline_offset(value: str) -> bool:
    """Return True if the value ends in a numeric UTC offset after its time part."""
    return bool(_INLINE_OFFSET.search(value.strip()))


def strip_inline_offset(value: str) -> str:
    """Remove a trailing UTC offset from a "T"-delimited datetime string.

    ``2024-03-01T10:00:00-05:00`` becomes ``2024-03-01T10:00:00``. Values
    without a "T" time component are returned unchanged.
    """
    return _INLINE_OFFSET.sub(r"\1", value.strip())


def _parse(value: str) -> datetime:
    try:
        return isoparse(value)
    except (ValueError, OverflowError):
        pass
    return parser.parse(normalize_time_string(value))


def normalize_datetime(
    value: str,
    all_day: bool,
    strip_offset: bool = True,
    field: str = "timeStart",
    event_title: Optional[str] = None,
) -> CivilTime:
    """Turn a model-supplied datetime string into a civil timestamp.

    Args:
        value: The datetime string from the extraction.
        all_day: Keep only the date portion.
        strip_offset: Drop an inline UTC offset before parsing.
        field: Field name used in error messages.
        event_title: Event title used in error messages.

    Returns:
        A ``date`` for all-day events, otherwise a naive ``datetime``
        truncated to whole seconds. Values that still carry an offset
        after parsing are converted to UTC first.

    Raises:
        InvalidDateTimeError: If the value cannot be parsed.
    """
    if not isinstance(value, str) or not value.strip():
        raise InvalidDateTimeError(value, field=field, event_title=event_title)

    cleaned = strip_inline_offset(value) if strip_offset else value.strip()

    try:
        parsed = _parse(cleaned)
    except (ValueError, OverflowError, TypeError) as e:
        logger.debug("Failed to parse %s %r: %s", field, value, e)
        raise InvalidDateTimeError(value, field=field, event_title=event_title) from e

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(pytz.utc).replace(tzinfo=None)

    if all_day:
        return parsed.date()
    return parsed.replace(microsecond=0)


def format_ics_date(value: CivilTime, all_day: bool) -> str:
    """Format a civil timestamp as ``YYYYMMDD`` or ``YYYYMMDDTHHMMSS``."""
    if all_day or not isinstance(value, datetime):
        return f"{value.year:04d}{value.month:02d}{value.day:02d}"
    return (
        f"{value.year:04d}{value.month:02d}{value.day:02d}"
        f"T{value.hour:02d}{value.minute:02d}{value.second:02d}"
    )
