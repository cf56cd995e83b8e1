"""Timezone resolution and VTIMEZONE generation."""

import logging
from dataclasses import dataclass
from typing import Dict, Optional

import pytz
import tzlocal
from icalendar import Timezone

from txt2ics.config.constants import ABBR_TO_TZ, LOCAL_TIMEZONE_KEYWORD

logger = logging.getLogger(__name__)

# Registry of valid zone identifiers, built once at import and never mutated.
KNOWN_TIMEZONES = frozenset(pytz.all_timezones)
_KNOWN_BY_LOWER: Dict[str, str] = {name.lower(): name for name in KNOWN_TIMEZONES}


@dataclass(frozen=True)
class TimezoneResolution:
    """Which zone, if any, governs an event's local time."""

    tzid: Optional[str]
    known: bool = False

    @property
    def floating(self) -> bool:
        return self.tzid is None


FLOATING = TimezoneResolution(tzid=None)


def local_timezone_name() -> str:
    """Return the IANA name of the system timezone, or UTC if it is not configured."""
    try:
        local_tz_obj = tzlocal.get_localzone()
    except (KeyError, ValueError, OSError) as e:
        logger.warning("Could not determine the system timezone, using UTC: %s", e)
        return "UTC"
    return getattr(local_tz_obj, "key", None) or getattr(local_tz_obj, "zone", str(local_tz_obj))


def canonical_timezone(tz_str: Optional[str]) -> Optional[str]:
    """Map a timezone string onto a registry name.

    Tries an exact match, then a case-insensitive one, then the abbreviation
    table. ``"local"`` selects the system zone.

    Args:
        tz_str: The timezone string (e.g., "EST", "america/new_york", "local").

    Returns:
        The registry name, or None if the string is not a known zone.
    """
    if not tz_str:
        return None
    name = tz_str.strip()
    if not name:
        return None
    if name in KNOWN_TIMEZONES:
        return name
    if name.lower() == LOCAL_TIMEZONE_KEYWORD:
        name = local_timezone_name()
        return name if name in KNOWN_TIMEZONES else None

    lowered = _KNOWN_BY_LOWER.get(name.lower())
    if lowered:
        return lowered
    return ABBR_TO_TZ.get(name.upper())


def resolve_timezone(
    event_tz: Optional[str],
    default_tz: Optional[str] = None,
    pass_through_unknown: bool = True,
    event_title: Optional[str] = None,
) -> TimezoneResolution:
    """Decide which timezone identifier governs an event.

    Order: the event's own identifier, then the default identifier, then
    none (floating time).

    Args:
        event_tz: Timezone named by the extraction, if any.
        default_tz: Caller-supplied default timezone, if any.
        pass_through_unknown: Attach unknown identifiers as-is instead of
            falling back to the default.
        event_title: Optional event title for log messages.

    Returns:
        The resolution. ``known`` is False for identifiers that have no
        embeddable definition.
    """
    for candidate in (event_tz, default_tz):
        if not candidate or not candidate.strip():
            continue
        canonical = canonical_timezone(candidate)
        if canonical:
            return TimezoneResolution(tzid=canonical, known=True)

        event_desc = f"'{event_title}'" if event_title else "event"
        if pass_through_unknown:
            logger.warning(
                "Unknown timezone '%s' for %s - attaching it without a definition",
                candidate, event_desc,
            )
            return TimezoneResolution(tzid=candidate.strip(), known=False)
        logger.warning("Ignoring unknown timezone '%s' for %s", candidate, event_desc)

    return FLOATING


def build_vtimezone(tzid: Optional[str]) -> Optional[Timezone]:
    """Return an embeddable VTIMEZONE component for a known zone.

    Args:
        tzid: A timezone identifier.

    Returns:
        The VTIMEZONE component, or None if the zone is unknown.
    """
    canonical = canonical_timezone(tzid)
    if canonical is None:
        return None
    return Timezone.from_tzinfo(pytz.timezone(canonical), tzid=canonical)
