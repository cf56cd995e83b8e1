"""Core business logic for txt2ics."""

from txt2ics.core.api_client import CompletionResult, CompletionService, GeminiCompletionService
from txt2ics.core.converter import (
    ConversionOptions,
    ConversionResult,
    normalize_event,
    text_to_calendar,
    text_to_ics,
)
from txt2ics.core.event_model import ExtractedEvent, NormalizedEvent
from txt2ics.core.ics_builder import build_calendar, calendar_to_ics
from txt2ics.core.identity import EventIdentity, IdentityAssigner

__all__ = [
    "CompletionResult",
    "CompletionService",
    "GeminiCompletionService",
    "ConversionOptions",
    "ConversionResult",
    "normalize_event",
    "text_to_calendar",
    "text_to_ics",
    "ExtractedEvent",
    "NormalizedEvent",
    "build_calendar",
    "calendar_to_ics",
    "EventIdentity",
    "IdentityAssigner",
]
