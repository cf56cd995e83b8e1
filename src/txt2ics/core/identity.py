"""Content-derived UIDs for generated events."""

import hashlib
import json
from dataclasses import dataclass, field
from typing import Dict

from txt2ics.core.event_model import NormalizedEvent

HASH_LENGTH = 16


@dataclass(frozen=True)
class EventIdentity:
    """A content hash plus its occurrence counter within one run."""

    digest: str
    counter: int

    @property
    def uid(self) -> str:
        return f"{self.digest}-{self.counter}"

    def __str__(self) -> str:
        return self.uid


def event_hash(event: NormalizedEvent) -> str:
    """Hash every field of a normalized event, independent of field order."""
    canonical = json.dumps(
        event.to_record(), sort_keys=True, ensure_ascii=False, separators=(",", ":")
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:HASH_LENGTH]


@dataclass
class IdentityAssigner:
    """Assigns UIDs for a single conversion run.

    Identical events get the same hash and increasing counters (0, 1, 2...).
    Create a new assigner per run; never share one between conversions.
    """

    _counts: Dict[str, int] = field(default_factory=dict)

    def assign(self, event: NormalizedEvent) -> EventIdentity:
        digest = event_hash(event)
        count = self._counts.get(digest, 0)
        self._counts[digest] = count + 1
        return EventIdentity(digest=digest, counter=count)
