"""Event data models for extracted and normalized calendar events."""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Optional, Union

from txt2ics.exceptions.errors import EventValidationError

CivilTime = Union[datetime, date]

# Wire (camelCase) name -> attribute name
WIRE_FIELDS = {
    "title": "title",
    "timeStart": "time_start",
    "timeEnd": "time_end",
    "timeZone": "time_zone",
    "allDay": "all_day",
    "recurrenceRule": "recurrence_rule",
    "description": "description",
    "location": "location",
    "emoji": "emoji",
}

REQUIRED_WIRE_FIELDS = frozenset({"title", "timeStart"})
OPTIONAL_TEXT_FIELDS = ("timeEnd", "timeZone", "recurrenceRule", "description", "location", "emoji")


def _clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class ExtractedEvent:
    """An event as returned by the completion service, after schema checks."""

    title: str
    time_start: str
    time_end: Optional[str] = None
    time_zone: Optional[str] = None
    all_day: bool = False
    recurrence_rule: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    emoji: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict) -> "ExtractedEvent":
        """Create an ExtractedEvent from a wire dictionary.

        Args:
            data: Dictionary using the camelCase wire names.

        Returns:
            An ExtractedEvent with trimmed strings and empty optionals as None.

        Raises:
            EventValidationError: If title or timeStart is missing or blank.
        """
        missing = {
            name for name in REQUIRED_WIRE_FIELDS
            if not _clean_text(data.get(name))
        }
        if missing:
            raise EventValidationError(
                missing_fields=missing,
                event_title=_clean_text(data.get("title")) or "Unknown",
            )
        return cls(
            title=_clean_text(data["title"]),
            time_start=_clean_text(data["timeStart"]),
            time_end=_clean_text(data.get("timeEnd")),
            time_zone=_clean_text(data.get("timeZone")),
            all_day=bool(data.get("allDay") or False),
            recurrence_rule=_clean_text(data.get("recurrenceRule")),
            description=_clean_text(data.get("description")),
            location=_clean_text(data.get("location")),
            emoji=_clean_text(data.get("emoji")),
        )

    def to_dict(self) -> Dict:
        """Convert back to a wire dictionary.

        Returns:
            Dictionary using the camelCase wire names.
        """
        return {wire: getattr(self, attr) for wire, attr in WIRE_FIELDS.items()}


@dataclass(frozen=True)
class NormalizedEvent:
    """An event ready for encoding.

    ``start`` and ``end`` are civil timestamps: ``date`` values for all-day
    events and naive ``datetime`` values otherwise. ``time_zone`` is the
    only source of zone attribution.
    """

    title: str
    start: CivilTime
    end: Optional[CivilTime] = None
    time_zone: Optional[str] = None
    all_day: bool = False
    recurrence_rule: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    emoji: Optional[str] = None

    def __post_init__(self):
        # Extractions often echo the title into the description
        if self.description is not None and self.description == self.title:
            object.__setattr__(self, "description", None)

    def to_record(self) -> Dict:
        """Return every field as JSON-friendly values, keyed by wire name."""
        return {
            "title": self.title,
            "timeStart": self.start.isoformat(),
            "timeEnd": self.end.isoformat() if self.end is not None else None,
            "timeZone": self.time_zone,
            "allDay": self.all_day,
            "recurrenceRule": self.recurrence_rule,
            "description": self.description,
            "location": self.location,
            "emoji": self.emoji,
        }
