"""Configuration module for txt2ics."""

from txt2ics.config.settings import API_CONFIG, CALENDAR_CONFIG, APIConfig, CalendarConfig
from txt2ics.config.constants import (
    KEYRING_SERVICE_NAME,
    KEYRING_ACCOUNT_NAME,
    PREFERRED_ENV_VAR,
    PRIMARY_ENV_VAR,
    DEBUG_ENV_VAR,
    DETERMINISTIC_ENV_VAR,
    ICS_PRODID,
)

__all__ = [
    "API_CONFIG",
    "CALENDAR_CONFIG",
    "APIConfig",
    "CalendarConfig",
    "KEYRING_SERVICE_NAME",
    "KEYRING_ACCOUNT_NAME",
    "PREFERRED_ENV_VAR",
    "PRIMARY_ENV_VAR",
    "DEBUG_ENV_VAR",
    "DETERMINISTIC_ENV_VAR",
    "ICS_PRODID",
]
