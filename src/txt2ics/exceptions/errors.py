"""Exception types raised by txt2ics conversions."""

from typing import Iterable, List, Optional, Sequence


class Txt2IcsError(Exception):
    """Base class for all txt2ics errors."""


class CalendarAPIError(Txt2IcsError):
    """Permanent failure talking to the completion service (e.g. bad API key)."""


class MalformedResponseError(Txt2IcsError):
    """The completion service returned nothing usable.

    Raised for refusals, empty results, undecodable payloads and payloads
    that violate the extraction schema.
    """

    def __init__(self, reason: Optional[str] = None, violations: Optional[Sequence] = None):
        self.reason = reason or "unknown reason"
        self.violations: List = list(violations or [])
        message = f"Invalid response: {self.reason}"
        if self.violations:
            details = "; ".join(str(v) for v in self.violations)
            message = f"{message} ({details})"
        super().__init__(message)


class EventValidationError(MalformedResponseError):
    """An extracted event is missing required fields."""

    def __init__(self, missing_fields: Iterable[str], event_title: Optional[str] = None):
        self.missing_fields = set(missing_fields)
        self.event_title = event_title or "Unknown"
        fields = ", ".join(sorted(self.missing_fields))
        super().__init__(
            f"event '{self.event_title}' is missing required fields: {fields}"
        )


class InvalidRecurrenceRuleError(MalformedResponseError):
    """A recurrence rule failed RRULE validation."""

    def __init__(self, rule: str, detail: Optional[str] = None):
        self.rule = rule
        reason = f"invalid recurrence rule '{rule}'"
        if detail:
            reason = f"{reason}: {detail}"
        super().__init__(reason)


class InvalidDateTimeError(Txt2IcsError):
    """A date/time value from the extraction could not be parsed."""

    def __init__(self, value, field: str = "timeStart", event_title: Optional[str] = None):
        self.value = value
        self.field = field
        self.event_title = event_title
        message = f"Invalid date in {field}: {value!r}"
        if event_title:
            message = f"{message} (event '{event_title}')"
        super().__init__(message)


class CompletionTimeoutError(Txt2IcsError):
    """The completion service did not answer before the caller's deadline."""

    def __init__(self, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"Completion service did not respond within {timeout_seconds:g} seconds"
        )
