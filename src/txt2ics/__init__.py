"""
txt2ics - Natural Language to iCalendar

Converts plain text describing one or more events into an .ics calendar
using a language model for the extraction.
"""

__version__ = "1.0.0"

# Public API - import commonly used components
from txt2ics.config.settings import API_CONFIG, CALENDAR_CONFIG
from txt2ics.exceptions.errors import (
    CalendarAPIError,
    CompletionTimeoutError,
    EventValidationError,
    InvalidDateTimeError,
    InvalidRecurrenceRuleError,
    MalformedResponseError,
    Txt2IcsError,
)
from txt2ics.core.api_client import CompletionResult, CompletionService, GeminiCompletionService
from txt2ics.core.converter import (
    ConversionOptions,
    ConversionResult,
    text_to_calendar,
    text_to_ics,
)
from txt2ics.core.event_model import ExtractedEvent, NormalizedEvent
from txt2ics.core.ics_builder import build_calendar, calendar_to_ics

__all__ = [
    # Version
    "__version__",
    # Config
    "API_CONFIG",
    "CALENDAR_CONFIG",
    # Exceptions
    "Txt2IcsError",
    "CalendarAPIError",
    "CompletionTimeoutError",
    "EventValidationError",
    "InvalidDateTimeError",
    "InvalidRecurrenceRuleError",
    "MalformedResponseError",
    # Core
    "CompletionResult",
    "CompletionService",
    "GeminiCompletionService",
    "ConversionOptions",
    "ConversionResult",
    "text_to_calendar",
    "text_to_ics",
    "ExtractedEvent",
    "NormalizedEvent",
    "build_calendar",
    "calendar_to_ics",
]
