"""Runtime settings for txt2ics.

Defaults can be overridden through environment variables so the CLI and
library callers pick up the same values.
"""

import os
from dataclasses import dataclass
from typing import Optional

from txt2ics.config.constants import (
    ICS_PRODID,
    MODEL_ENV_VAR,
    TIMEOUT_ENV_VAR,
    TIMEZONE_ENV_VAR,
)


def _get_float_env(name: str, default: Optional[float]) -> Optional[float]:
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        return default


@dataclass(frozen=True)
class APIConfig:
    """Settings for the completion service."""

    model_name: str = "gemini-2.0-flash"
    temperature: float = 0.0
    top_p: float = 0.95
    top_k: int = 40
    max_output_tokens: int = 8192
    # None disables the deadline
    timeout_seconds: Optional[float] = None

    @classmethod
    def from_env(cls) -> "APIConfig":
        defaults = cls()
        return cls(
            model_name=os.environ.get(MODEL_ENV_VAR) or defaults.model_name,
            timeout_seconds=_get_float_env(TIMEOUT_ENV_VAR, defaults.timeout_seconds),
        )


@dataclass(frozen=True)
class CalendarConfig:
    """Settings for the generated calendar document."""

    prodid: str = ICS_PRODID
    publish: bool = True
    default_timezone: Optional[str] = None

    @classmethod
    def from_env(cls) -> "CalendarConfig":
        return cls(default_timezone=os.environ.get(TIMEZONE_ENV_VAR) or None)


API_CONFIG = APIConfig.from_env()
CALENDAR_CONFIG = CalendarConfig.from_env()
