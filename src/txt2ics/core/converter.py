"""Text to calendar conversion pipeline."""

import json
import logging
import os
import sys
from dataclasses import dataclass, field
from datetime import datetime
from typing import IO, List, Optional

from dateutil import tz as du_tz
from dateutil.rrule import rrulestr
from icalendar import Calendar

from txt2ics.config.constants import DEBUG_ENV_VAR, TRUTHY_VALUES
from txt2ics.config.settings import CALENDAR_CONFIG
from txt2ics.core.api_client import CompletionService
from txt2ics.core.datetime_normalizer import (
    has_inline_offset,
    normalize_datetime,
)
from txt2ics.core.event_model import ExtractedEvent, NormalizedEvent
from txt2ics.core.ics_builder import build_calendar, calendar_to_ics
from txt2ics.core.schema import (
    EXTRACTION_SCHEMA,
    SYSTEM_PROMPT,
    build_user_prompt,
    decode_events,
    parse_payload,
)
from txt2ics.core.timezone_utils import canonical_timezone, local_timezone_name
from txt2ics.exceptions.errors import InvalidRecurrenceRuleError, MalformedResponseError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConversionOptions:
    """Behaviour switches for a conversion.

    Attributes:
        strip_inline_offsets: Always drop inline UTC offsets. When False,
            an offset is still dropped if the event names a timezone;
            otherwise it is applied and the event is pinned to UTC.
        validate_rrule: Check recurrence rules before passing them through.
        pass_through_unknown_timezones: Attach unknown zone names as-is
            instead of falling back to the default zone.
        publish: Add METHOD:PUBLISH to the calendar header.
    """

    strip_inline_offsets: bool = True
    validate_rrule: bool = False
    pass_through_unknown_timezones: bool = True
    publish: bool = CALENDAR_CONFIG.publish


@dataclass
class ConversionResult:
    """The calendar produced by one conversion, plus its events."""

    calendar: Calendar
    events: List[NormalizedEvent] = field(default_factory=list)

    @property
    def ics(self) -> str:
        return calendar_to_ics(self.calendar)


def debug_enabled() -> bool:
    return os.environ.get(DEBUG_ENV_VAR, "").strip().lower() in TRUTHY_VALUES


def _clean_rrule(rule: str) -> str:
    # A content line cannot hold a line break, so wrapped rules are rejoined
    rule = "".join(part.strip() for part in rule.splitlines())
    if rule[:6].upper() == "RRULE:":
        rule = rule[6:]
    return rule.strip()


def _validate_rrule(rule: str, event: ExtractedEvent) -> None:
    until_is_utc = False
    for part in rule.split(";"):
        key, _, value = part.partition("=")
        if key.strip().upper() == "UNTIL":
            normalize_datetime(value, all_day=False, field="recurrenceRule.UNTIL",
                               event_title=event.title)
            until_is_utc = value.strip().upper().endswith("Z")

    # dateutil insists UNTIL and DTSTART agree on being zone-aware
    dtstart = datetime(2000, 1, 1, tzinfo=du_tz.UTC if until_is_utc else None)
    try:
        rrulestr(f"RRULE:{rule}", dtstart=dtstart)
    except (ValueError, TypeError) as e:
        raise InvalidRecurrenceRuleError(rule, str(e)) from e


def normalize_event(event: ExtractedEvent, options: Optional[ConversionOptions] = None) -> NormalizedEvent:
    """Convert an extracted event into calendar-ready fields.

    Args:
        event: The decoded event.
        options: Conversion switches.

    Returns:
        The normalized event.

    Raises:
        InvalidDateTimeError: If a datetime cannot be parsed.
        InvalidRecurrenceRuleError: If rule validation is on and fails.
    """
    options = options or ConversionOptions()
    time_zone = event.time_zone
    strip = options.strip_inline_offsets or bool(time_zone)

    start = normalize_datetime(event.time_start, event.all_day, strip_offset=strip,
                               field="timeStart", event_title=event.title)
    end = None
    if event.time_end:
        end = normalize_datetime(event.time_end, event.all_day, strip_offset=strip,
                                 field="timeEnd", event_title=event.title)

    if not strip and not event.all_day and has_inline_offset(event.time_start):
        # The offset was applied, so the civil time is now UTC
        time_zone = "UTC"

    rule = _clean_rrule(event.recurrence_rule) if event.recurrence_rule else None
    if rule and options.validate_rrule:
        _validate_rrule(rule, event)

    return NormalizedEvent(
        title=event.title,
        start=start,
        end=end,
        time_zone=time_zone,
        all_day=event.all_day,
        recurrence_rule=rule or None,
        description=event.description,
        location=event.location,
        emoji=event.emoji,
    )


def _emit_debug(payload, stream: Optional[IO[str]]) -> None:
    stream = stream or sys.stderr
    stream.write(json.dumps(payload, indent=2, ensure_ascii=False, default=str))
    stream.write("\n")


async def text_to_calendar(
    text: str,
    *,
    service: CompletionService,
    model: Optional[str] = None,
    default_timezone: Optional[str] = None,
    options: Optional[ConversionOptions] = None,
    debug: Optional[bool] = None,
    debug_stream: Optional[IO[str]] = None,
    now: Optional[datetime] = None,
) -> ConversionResult:
    """Convert text to a calendar of events.

    Args:
        text: The source text.
        service: The completion service performing the extraction.
        model: Model identifier passed to the service.
        default_timezone: Zone for events that name none.
        options: Conversion switches.
        debug: Write the decoded payload to ``debug_stream``. Defaults to
            the TXT2ICS_DEBUG environment toggle.
        debug_stream: Diagnostic stream (stderr by default).
        now: Reference time given to the model for relative dates.

    Returns:
        The conversion result.

    Raises:
        MalformedResponseError: If the service refuses or returns data that
            does not match the schema.
        InvalidDateTimeError: If any event carries an unparseable datetime.
    """
    options = options or ConversionOptions()
    if default_timezone is None:
        default_timezone = CALENDAR_CONFIG.default_timezone

    prompt_zone = canonical_timezone(default_timezone) if default_timezone else None
    prompt = build_user_prompt(
        text,
        now or datetime.now(),
        prompt_zone or local_timezone_name(),
    )

    result = await service.complete(SYSTEM_PROMPT, prompt, EXTRACTION_SCHEMA, model=model)
    if result is None or result.refusal or result.payload is None:
        reason = result.refusal if result is not None else None
        raise MalformedResponseError(reason)

    payload = parse_payload(result.payload)
    if debug is None:
        debug = debug_enabled()
    if debug:
        _emit_debug(payload, debug_stream)

    decoded = decode_events(payload)
    if not decoded.ok:
        logger.debug("Payload failed schema validation: %s", decoded.violations)
        raise MalformedResponseError("payload does not match the extraction schema", decoded.violations)

    events = [normalize_event(event, options) for event in decoded.events]
    logger.debug("Normalized %d event(s).", len(events))

    calendar = build_calendar(
        events,
        default_timezone,
        publish=options.publish,
        prodid=CALENDAR_CONFIG.prodid,
        pass_through_unknown=options.pass_through_unknown_timezones,
    )
    return ConversionResult(calendar=calendar, events=events)


async def text_to_ics(text: str, **kwargs) -> str:
    """Convert text to serialized .ics content.

    Takes the same keyword arguments as ``text_to_calendar``.
    """
    result = await text_to_calendar(text, **kwargs)
    return result.ics

