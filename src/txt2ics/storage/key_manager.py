"""High-level API key management."""

import logging
import os
from typing import Optional, Tuple

from txt2ics.config.constants import PREFERRED_ENV_VAR, PRIMARY_ENV_VAR
from txt2ics.storage.keyring_storage import load_from_keyring, save_to_keyring
from txt2ics.storage.env_storage import (
    get_env_file_path,
    load_from_env_file,
    store_in_env_file,
)

logger = logging.getLogger(__name__)


def mask_key(key: Optional[str]) -> str:
    """Mask an API key for logging, keeping the first and last 4 characters."""
    if not key:
        return "<empty>"
    if len(key) <= 8:
        return "***"
    return f"{key[:4]}...{key[-4:]}"


def get_api_key_source() -> Tuple[Optional[str], str]:
    """Determine which storage location provides the API key.

    Returns:
        Tuple of (api_key, source_description).
    """
    for name in (PREFERRED_ENV_VAR, PRIMARY_ENV_VAR):
        env_key = os.environ.get(name)
        if env_key:
            return env_key, f"Environment Variable ({name})"

    keyring_key = load_from_keyring()
    if keyring_key:
        return keyring_key, "OS Keyring"

    env_file_key = load_from_env_file(get_env_file_path())
    if env_file_key:
        return env_file_key, f"User Config: {get_env_file_path()}"

    return None, "No API Key Found"


def load_api_key() -> Optional[str]:
    """Load the Gemini API key.

    Priority:
        1. GEMINI_API_KEY_FREE environment variable
        2. GEMINI_API_KEY environment variable
        3. OS keyring
        4. User config .env

    Returns:
        The API key if found, None otherwise.
    """
    api_key, source = get_api_key_source()
    if api_key:
        logger.debug("Using API key %s from %s", mask_key(api_key), source)
    return api_key


def save_api_key(api_key: str) -> bool:
    """Save the API key securely.

    Primary: OS keyring. Fallback: .env in the per-user config dir.

    Args:
        api_key: The API key to save.

    Returns:
        True if saved successfully, False otherwise.
    """
    # Sanitize input: remove quotes and whitespace
    api_key = api_key.strip().strip("'\"").strip()
    if not api_key:
        return False

    if save_to_keyring(api_key):
        logger.info("API key saved to keyring successfully")
        return True

    logger.warning("Keyring unavailable, using file storage instead")
    try:
        path = store_in_env_file(api_key)
    except OSError as e:
        logger.error("Failed to save API key: %s", e)
        return False
    logger.info("API key saved to %s", path)
    return True
