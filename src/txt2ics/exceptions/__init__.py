"""Custom exceptions for txt2ics."""

from txt2ics.exceptions.errors import (
    Txt2IcsError,
    CalendarAPIError,
    MalformedResponseError,
    EventValidationError,
    InvalidRecurrenceRuleError,
    InvalidDateTimeError,
    CompletionTimeoutError,
)

__all__ = [
    "Txt2IcsError",
    "CalendarAPIError",
    "MalformedResponseError",
    "EventValidationError",
    "InvalidRecurrenceRuleError",
    "InvalidDateTimeError",
    "CompletionTimeoutError",
]
