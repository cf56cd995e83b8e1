"""Environment file storage for API keys."""

import logging
import os
import sys
from pathlib import Path
from typing import Optional

from dotenv import dotenv_values, set_key

from txt2ics.config.constants import PREFERRED_ENV_VAR, PRIMARY_ENV_VAR

logger = logging.getLogger(__name__)

APP_DIR_NAME = "txt2ics"


def get_user_config_dir() -> Path:
    """Return a per-user config directory that works across platforms.

    Returns:
        Path to the user's config directory for this application.
    """
    if sys.platform.startswith("win"):
        base_str = os.environ.get("APPDATA") or os.environ.get("LOCALAPPDATA")
        base = Path(base_str) if base_str else (Path.home() / "AppData" / "Roaming")
        return base / APP_DIR_NAME

    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / APP_DIR_NAME

    # Linux and other Unix-like systems
    base_str = os.environ.get("XDG_CONFIG_HOME")
    base = Path(base_str) if base_str else (Path.home() / ".config")
    return base / APP_DIR_NAME


def get_env_file_path() -> Path:
    """Get managed .env path under the user config directory."""
    return get_user_config_dir() / ".env"


def harden_file_permissions(path: Path, mode: int = 0o600) -> None:
    """Best-effort: restrict permissions to the current user on POSIX.

    Args:
        path: Path to the file or directory to secure.
        mode: Permission bits to apply.
    """
    if os.name != "posix":
        return
    try:
        path.chmod(mode)
    except OSError as e:
        logger.warning("Could not tighten permissions on %s: %s", path, e)


def load_from_env_file(path: Path) -> Optional[str]:
    """Load the API key from an environment file.

    Args:
        path: Path to the .env file.

    Returns:
        The API key if found, None otherwise.
    """
    if not path.exists():
        return None

    # Parse without mutating os.environ (avoids leaking secrets to child processes).
    values = dotenv_values(path)
    key = values.get(PREFERRED_ENV_VAR) or values.get(PRIMARY_ENV_VAR)
    if not key:
        return None
    return str(key).strip().strip("'\"").strip()


def store_in_env_file(api_key: str, env_path: Optional[Path] = None) -> Path:
    """Write the API key to the per-user config .env with secure permissions.

    Args:
        api_key: The API key to store.
        env_path: Override for the file location.

    Returns:
        The path written to.
    """
    env_path = env_path or get_env_file_path()

    env_path.parent.mkdir(parents=True, exist_ok=True, mode=0o700)
    harden_file_permissions(env_path.parent, 0o700)

    # Create file with secure permissions atomically
    if not env_path.exists():
        try:
            fd = os.open(str(env_path), os.O_CREAT | os.O_WRONLY | os.O_EXCL, 0o600)
            os.close(fd)
        except FileExistsError:
            pass

    harden_file_permissions(env_path)
    set_key(str(env_path), PRIMARY_ENV_VAR, api_key)
    return env_path
