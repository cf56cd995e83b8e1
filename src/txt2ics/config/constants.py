"""Centralized constants for txt2ics."""

# Key storage constants
KEYRING_SERVICE_NAME = "txt2ics"
KEYRING_ACCOUNT_NAME = "gemini_api_key"

# Environment variable names (prefer free tier if provided)
PREFERRED_ENV_VAR = "GEMINI_API_KEY_FREE"
PRIMARY_ENV_VAR = "GEMINI_API_KEY"

# Behaviour toggles
DEBUG_ENV_VAR = "TXT2ICS_DEBUG"
DETERMINISTIC_ENV_VAR = "TXT2ICS_DETERMINISTIC"
MODEL_ENV_VAR = "TXT2ICS_MODEL"
TIMEZONE_ENV_VAR = "TXT2ICS_TIMEZONE"
TIMEOUT_ENV_VAR = "TXT2ICS_TIMEOUT"

TRUTHY_VALUES = {"1", "true", "yes", "on"}

# ICS calendar constants
ICS_PRODID = "-//txt2ics//EN"
ICS_VERSION = "2.0"
ICS_CALSCALE = "GREGORIAN"
ICS_METHOD = "PUBLISH"

# Properties understood by Outlook and friends for all-day events
ALL_DAY_PROPERTIES = (
    "X-MICROSOFT-CDO-ALLDAYEVENT",
    "X-MICROSOFT-MSNCALENDAR-ALLDAYEVENT",
)

# Keyword that selects the system timezone
LOCAL_TIMEZONE_KEYWORD = "local"

# API key error patterns for centralized detection
API_KEY_ERROR_PATTERNS = [
    "api key expired",
    "api_key_invalid",
    "invalid api key",
    "api key not valid",
]

# Timezone abbreviation to IANA zone mapping
# Maps common (and DST) abbreviations to canonical IANA zones that understand DST
ABBR_TO_TZ = {
    # North America
    "EST": "America/New_York",
    "EDT": "America/New_York",
    "CST": "America/Chicago",
    "CDT": "America/Chicago",
    "MST": "America/Denver",
    "MDT": "America/Denver",
    "PST": "America/Los_Angeles",
    "PDT": "America/Los_Angeles",
    # United Kingdom / Europe
    "GMT": "Europe/London",
    "BST": "Europe/London",
    "CET": "Europe/Paris",
    "CEST": "Europe/Paris",
    "EET": "Europe/Athens",
    "EEST": "Europe/Athens",
    # Australia
    "AEST": "Australia/Sydney",
    "AEDT": "Australia/Sydney",
    # Asia
    "IST": "Asia/Kolkata",  # India (UTC+5:30 – no DST)
    "JST": "Asia/Tokyo",
}
