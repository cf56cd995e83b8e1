"""Extraction schema, prompts and response decoding."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from string import Formatter
from typing import Any, List, Optional

import json5

from txt2ics.core.event_model import OPTIONAL_TEXT_FIELDS, ExtractedEvent
from txt2ics.exceptions.errors import MalformedResponseError

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "Extract calendar events from the given text"

# Template for user prompts (with dynamic placeholders)
USER_PROMPT_TEMPLATE = """{text}

Today's date is {day_name}, {formatted_date}.
Current timezone: {user_timezone}
"""


def _nullable_string(description: str) -> dict:
    return {"type": "STRING", "nullable": True, "description": description}


# Structured-output schema handed to the completion service
EVENT_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "title": {"type": "STRING", "description": "The title of the event"},
        "timeStart": {
            "type": "STRING",
            "description": "The starting datetime of the event",
        },
        "timeEnd": _nullable_string("If provided, the ending datetime of the event"),
        "timeZone": _nullable_string("If provided, the timezone ID for this event"),
        "allDay": {
            "type": "BOOLEAN",
            "description": (
                "True if the event has no specific time of day, and can occur "
                "all day or at any time of day"
            ),
        },
        "recurrenceRule": _nullable_string(
            "If this is a recurring event, the repeating rule string in iCalendar RRULE format"
        ),
        "description": _nullable_string("Any extra information about the event"),
        "location": _nullable_string("The event location"),
        "emoji": _nullable_string("A single emoji that best describes this event"),
    },
    "required": ["title", "timeStart", "allDay"],
}

EXTRACTION_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "events": {"type": "ARRAY", "items": EVENT_SCHEMA},
    },
    "required": ["events"],
}


@dataclass(frozen=True)
class SchemaViolation:
    """One constraint the payload failed."""

    message: str
    index: Optional[int] = None
    field: Optional[str] = None

    def __str__(self) -> str:
        location = []
        if self.index is not None:
            location.append(f"events[{self.index}]")
        if self.field:
            location.append(self.field)
        prefix = ".".join(location)
        return f"{prefix}: {self.message}" if prefix else self.message


@dataclass
class DecodeResult:
    """Outcome of decoding a payload: events, or the violated constraints."""

    events: List[ExtractedEvent] = field(default_factory=list)
    violations: List[SchemaViolation] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.violations


def build_user_prompt(text: str, now: datetime, timezone_name: str) -> str:
    """Build the user prompt with current date context.

    Args:
        text: The source text.
        now: The current date and time.
        timezone_name: The user's timezone name.

    Returns:
        The formatted prompt string.
    """
    return USER_PROMPT_TEMPLATE.format(
        text=text,
        day_name=now.strftime("%A"),
        formatted_date=now.strftime("%B %d, %Y"),
        user_timezone=timezone_name,
    )


def _validate_prompt_template() -> None:
    """Validate that the prompt template has the required keys."""
    template_keys = {fn for _, fn, _, _ in Formatter().parse(USER_PROMPT_TEMPLATE) if fn}
    required_keys = {"text", "day_name", "formatted_date", "user_timezone"}
    if template_keys != required_keys:
        raise ValueError(
            f"Template mismatch! Expected keys {required_keys} but got {template_keys}"
        )


_validate_prompt_template()


def _strip_code_fences(text: str) -> str:
    cleaned = text.strip()
    if cleaned.startswith("```"):
        first_newline = cleaned.find("\n")
        cleaned = cleaned[first_newline + 1:] if first_newline != -1 else cleaned[3:]
        if cleaned.endswith("```"):
            cleaned = cleaned[:-3]
        cleaned = cleaned.strip()
    return cleaned


def parse_payload(raw: Any) -> Any:
    """Decode a completion-service payload into Python data.

    Text payloads may be wrapped in Markdown code fences and may be
    near-JSON: comments, trailing commas and unquoted keys are accepted.

    Args:
        raw: Already-decoded data, or the response text.

    Returns:
        The decoded data.

    Raises:
        MalformedResponseError: If the payload is empty or undecodable.
    """
    if raw is None:
        raise MalformedResponseError("empty response")
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    if not isinstance(raw, str):
        return raw

    cleaned = _strip_code_fences(raw)
    if not cleaned:
        raise MalformedResponseError("empty response")
    try:
        return json5.loads(cleaned)
    except ValueError as e:
        logger.debug("Failed to decode payload: %s", e)
        logger.debug("Received text was: %s", cleaned)
        raise MalformedResponseError(f"could not decode payload: {e}") from e


def _check_event(item: Any, index: int) -> List[SchemaViolation]:
    if not isinstance(item, dict):
        return [SchemaViolation("expected an object", index=index)]

    violations = []
    for name in ("title", "timeStart"):
        value = item.get(name)
        if not isinstance(value, str):
            violations.append(SchemaViolation("required string", index=index, field=name))
        elif not value.strip():
            violations.append(SchemaViolation("must not be empty", index=index, field=name))

    for name in OPTIONAL_TEXT_FIELDS:
        value = item.get(name)
        if value is not None and not isinstance(value, str):
            violations.append(SchemaViolation("expected a string or null", index=index, field=name))

    all_day = item.get("allDay")
    if all_day is not None and not isinstance(all_day, bool):
        violations.append(SchemaViolation("expected a boolean", index=index, field="allDay"))
    return violations


def decode_events(payload: Any) -> DecodeResult:
    """Validate decoded data against the extraction schema.

    A bare list is accepted as the events array.

    Args:
        payload: Data returned by ``parse_payload``.

    Returns:
        A DecodeResult holding either the events or every violation found.
    """
    if isinstance(payload, dict):
        if "events" not in payload:
            return DecodeResult(violations=[SchemaViolation("missing required field", field="events")])
        items = payload["events"]
    elif isinstance(payload, list):
        items = payload
    else:
        return DecodeResult(violations=[SchemaViolation("expected an object with an events array")])

    if not isinstance(items, list):
        return DecodeResult(violations=[SchemaViolation("expected an array", field="events")])

    violations: List[SchemaViolation] = []
    for index, item in enumerate(items):
        violations.extend(_check_event(item, index))
    if violations:
        return DecodeResult(violations=violations)

    return DecodeResult(events=[ExtractedEvent.from_dict(item) for item in items])
