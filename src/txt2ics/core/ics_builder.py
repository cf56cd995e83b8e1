"""ICS file building utilities."""

import logging
import os
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

import pytz
from icalendar import Calendar, Event, Parameters, vText

from txt2ics.config.constants import (
    ALL_DAY_PROPERTIES,
    DETERMINISTIC_ENV_VAR,
    ICS_CALSCALE,
    ICS_METHOD,
    ICS_PRODID,
    ICS_VERSION,
    TRUTHY_VALUES,
)
from txt2ics.core.event_model import NormalizedEvent
from txt2ics.core.identity import EventIdentity, IdentityAssigner
from txt2ics.core.timezone_utils import (
    TimezoneResolution,
    build_vtimezone,
    canonical_timezone,
    resolve_timezone,
)

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=pytz.utc)


class vVerbatim:
    """Property value written out exactly as given, without escaping."""

    def __init__(self, value: str):
        self.value = value
        self.params = Parameters()

    def to_ical(self) -> bytes:
        return self.value.encode("utf-8")

    def __str__(self) -> str:
        return self.value


@dataclass
class EncodedEvent:
    """An event together with the identity and zone it was encoded with."""

    event: NormalizedEvent
    identity: EventIdentity
    timezone: TimezoneResolution
    component: Event


def is_deterministic() -> bool:
    """Return True when DTSTAMP should be pinned to the Unix epoch."""
    return os.environ.get(DETERMINISTIC_ENV_VAR, "").strip().lower() in TRUTHY_VALUES


def default_stamp() -> datetime:
    """Return the DTSTAMP for events encoded now."""
    if is_deterministic():
        return EPOCH
    return datetime.now(pytz.utc)


def first_line(text: Optional[str]) -> Optional[str]:
    """Keep only the first line of a field value."""
    if text is None:
        return None
    lines = text.splitlines()
    return lines[0] if lines else ""


def build_calendar(
    events: Sequence[NormalizedEvent],
    default_timezone: Optional[str] = None,
    *,
    stamp: Optional[datetime] = None,
    publish: bool = True,
    prodid: str = ICS_PRODID,
    pass_through_unknown: bool = True,
) -> Calendar:
    """Assemble normalized events into a calendar document.

    Events keep their order. UIDs are assigned here, once per call.

    Args:
        events: Normalized events, in extraction order.
        default_timezone: Zone for events that name none; also declared in
            the header.
        stamp: DTSTAMP for every event (defaults to now, or the epoch in
            deterministic mode).
        publish: Add METHOD:PUBLISH to the header.
        prodid: Product identifier.
        pass_through_unknown: Attach unknown event zones as-is.

    Returns:
        The calendar, with every used known zone embedded as VTIMEZONE.
    """
    encoded, _ = encode_events(
        events,
        default_timezone,
        stamp=stamp,
        pass_through_unknown=pass_through_unknown,
    )

    default_tzid = None
    if default_timezone and default_timezone.strip():
        default_tzid = canonical_timezone(default_timezone) or default_timezone.strip()

    cal = _create_ics_calendar(prodid, publish, default_tzid)

    tzids = [default_tzid] if default_tzid else []
    tzids.extend(item.timezone.tzid for item in encoded if item.timezone.known)
    _add_timezones(cal, tzids)

    for item in encoded:
        cal.add_component(item.component)
    return cal


def encode_events(
    events: Sequence[NormalizedEvent],
    default_timezone: Optional[str] = None,
    *,
    stamp: Optional[datetime] = None,
    pass_through_unknown: bool = True,
) -> Tuple[List[EncodedEvent], IdentityAssigner]:
    """Build VEVENT components, assigning each event its identity.

    Args:
        events: Normalized events, in extraction order.
        default_timezone: Zone for events that name none.
        stamp: DTSTAMP for every event.
        pass_through_unknown: Attach unknown event zones as-is.

    Returns:
        Tuple of (encoded events, the run's identity assigner).
    """
    assigner = IdentityAssigner()
    stamp = stamp or default_stamp()
    encoded = []
    for event in events:
        identity = assigner.assign(event)
        resolution = resolve_timezone(
            event.time_zone,
            default_timezone,
            pass_through_unknown=pass_through_unknown,
            event_title=event.title,
        )
        component = _create_ics_event(event, identity, resolution, stamp)
        encoded.append(EncodedEvent(event, identity, resolution, component))
    logger.debug("Encoded %d event(s).", len(encoded))
    return encoded, assigner


def _create_ics_calendar(prodid: str, publish: bool, default_tzid: Optional[str]) -> Calendar:
    """Create a new ICS calendar with standard headers.

    Returns:
        A new Calendar object with required headers.
    """
    cal = Calendar()
    cal.add("PRODID", prodid)
    cal.add("VERSION", ICS_VERSION)
    cal.add("CALSCALE", ICS_CALSCALE)
    if publish:
        cal.add("METHOD", ICS_METHOD)
    if default_tzid:
        cal.add("X-WR-TIMEZONE", default_tzid)
    return cal


def _add_timezones(cal: Calendar, tzids: Sequence[str]) -> None:
    seen = set()
    for tzid in tzids:
        if tzid in seen:
            continue
        seen.add(tzid)
        vtimezone = build_vtimezone(tzid)
        if vtimezone is None:
            logger.debug("No VTIMEZONE definition available for %s", tzid)
            continue
        cal.add_component(vtimezone)


def _add_time(ve: Event, name: str, value, all_day: bool, resolution: TimezoneResolution) -> None:
    if all_day or resolution.floating:
        ve.add(name, value)
    else:
        ve.add(name, value, parameters={"TZID": resolution.tzid})


def _create_ics_event(
    event: NormalizedEvent,
    identity: EventIdentity,
    resolution: TimezoneResolution,
    stamp: datetime,
) -> Event:
    """Create an ICS event component.

    Args:
        event: The normalized event.
        identity: The event's UID.
        resolution: The zone governing the event's local time.
        stamp: The DTSTAMP value.

    Returns:
        An Event component ready to add to a calendar.
    """
    ve = Event()
    ve.add("UID", identity.uid)
    ve.add("DTSTAMP", stamp)

    _add_time(ve, "DTSTART", event.start, event.all_day, resolution)
    if event.end is not None:
        _add_time(ve, "DTEND", event.end, event.all_day, resolution)

    summary = first_line(event.title)
    if event.emoji:
        summary = f"{summary} {first_line(event.emoji)}"
    ve.add("SUMMARY", vText(summary))

    if event.location:
        ve.add("LOCATION", vText(first_line(event.location)))

    if event.description and event.description != event.title:
        ve.add("DESCRIPTION", vText(first_line(event.description)))

    if event.recurrence_rule:
        # Passed through without re-validating the RRULE grammar
        ve["RRULE"] = vVerbatim(event.recurrence_rule)

    if event.all_day:
        for prop in ALL_DAY_PROPERTIES:
            ve.add(prop, "TRUE")

    return ve


def _format_ics_output(cal: Calendar) -> str:
    """Format calendar to ICS string with proper line endings.

    Args:
        cal: The Calendar object to format.

    Returns:
        ICS content string with CRLF line endings.
    """
    raw_ical = cal.to_ical(sorted=False)
    decoded_ical = raw_ical.decode("utf-8", errors="replace")
    # Ensure CRLF line endings per RFC5545
    crlf_ical = decoded_ical.replace("\r\n", "\n").replace("\n", "\r\n")
    return crlf_ical


def calendar_to_ics(cal: Calendar) -> str:
    """Serialize a calendar to .ics text."""
    return _format_ics_output(cal)

