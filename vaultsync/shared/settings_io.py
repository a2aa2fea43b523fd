"""Settings I/O utilities for reading and writing TOML settings files.

This module handles serialization/deserialization of SyncSettings to/from TOML
and the clamping of invalid user-supplied values before they reach the core.
"""

import logging
import os
import platform
import tomllib  # Built-in Python 3.11+
from pathlib import Path
from typing import Any

import tomli_w

from vaultsync.domain.settings import (
    AUTH_METHODS,
    DEFAULT_COMMIT_INTERVAL,
    DEFAULT_COMMIT_MESSAGE,
    DEFAULT_LOG_MAX_ENTRIES,
    NEVER_SYNCED,
    SyncSettings,
)

logger = logging.getLogger(__name__)

# Maps flat setting names (as used by `vaultsync settings set`) to
# their (section, key) location in the TOML file.
SETTING_LOCATIONS: dict[str, tuple[str, str]] = {
    "commit_interval": ("sync", "commit_interval"),
    "auto_sync": ("sync", "auto_sync"),
    "last_sync": ("sync", "last_sync"),
    "repo_url": ("repository", "repo_url"),
    "auth_method": ("repository", "auth_method"),
    "commit_message": ("repository", "commit_message"),
    "log_max_entries": ("log", "max_entries"),
}

_TRUE_STRINGS = ("true", "yes", "on", "1")
_FALSE_STRINGS = ("false", "no", "off", "0")


def get_settings_path() -> Path:
    """Get the path to the settings file.

    The location is platform-dependent:
    - Linux/macOS: $XDG_CONFIG_HOME/vaultsync/settings.toml or ~/.config/vaultsync/settings.toml
    - Windows: %APPDATA%/vaultsync/settings.toml

    Settings live outside the vault so that saving last_sync never creates
    a change to commit.

    Returns:
        Path to the settings file (may not exist)
    """
    if platform.system() == "Windows":
        appdata = os.environ.get("APPDATA", "")
        if appdata:
            return Path(appdata) / "vaultsync" / "settings.toml"
        return Path.home() / ".config" / "vaultsync" / "settings.toml"
    else:
        xdg_config = os.environ.get("XDG_CONFIG_HOME", "")
        if xdg_config:
            return Path(xdg_config) / "vaultsync" / "settings.toml"
        return Path.home() / ".config" / "vaultsync" / "settings.toml"


def load_settings_data(path: Path) -> dict[str, Any]:
    """Load raw TOML data from a settings file.

    Args:
        path: Path to settings.toml file

    Returns:
        Dictionary with parsed TOML data

    Raises:
        FileNotFoundError: If settings file doesn't exist
        ValueError: If settings file is malformed
    """
    if not path.exists():
        raise FileNotFoundError(f"Settings file not found: {path}")

    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid TOML in settings file: {e}") from e


def _clamp_positive_int(name: str, value: Any, default: int) -> int:
    """Coerce a value to an int >= 1.

    Non-numeric values fall back to the default; numbers below 1 are raised
    to 1.
    """
    if isinstance(value, bool):
        logger.warning(f"Invalid {name} {value!r}; using default {default}.")
        return default
    try:
        number = int(float(value)) if isinstance(value, str) else int(value)
    except (TypeError, ValueError, OverflowError):
        logger.warning(f"Invalid {name} {value!r}; using default {default}.")
        return default
    if number < 1:
        logger.warning(f"{name} must be at least 1, got {number}; using 1.")
        return 1
    return number


def _clamp_bool(name: str, value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    logger.warning(f"Invalid {name} {value!r}; using default {default}.")
    return default


def _clamp_str(name: str, value: Any, default: str, allow_empty: bool = True) -> str:
    if not isinstance(value, str):
        logger.warning(f"Invalid {name} {value!r}; using default {default!r}.")
        return default
    if not allow_empty and not value.strip():
        logger.warning(f"{name} cannot be empty; using default {default!r}.")
        return default
    return value


def clamp_setting(name: str, value: Any) -> Any:
    """Clamp a single user-supplied setting to a valid value.

    Args:
        name: Flat setting name (a key of SETTING_LOCATIONS).
        value: Raw value, typically a string from the CLI or TOML data.

    Returns:
        A value valid for the corresponding SyncSettings field.

    Raises:
        KeyError: If name is not a known setting.
    """
    if name not in SETTING_LOCATIONS:
        raise KeyError(name)

    if name == "commit_interval":
        return _clamp_positive_int(name, value, DEFAULT_COMMIT_INTERVAL)
    if name == "log_max_entries":
        return _clamp_positive_int(name, value, DEFAULT_LOG_MAX_ENTRIES)
    if name == "auto_sync":
        return _clamp_bool(name, value, True)
    if name == "auth_method":
        method = _clamp_str(name, value, "ssh").strip().lower()
        if method not in AUTH_METHODS:
            logger.warning(f"Unknown auth_method {value!r}; using 'ssh'.")
            return "ssh"
        return method
    if name == "repo_url":
        return _clamp_str(name, value, "").strip()
    if name == "commit_message":
        return _clamp_str(name, value, DEFAULT_COMMIT_MESSAGE, allow_empty=False)
    return _clamp_str(name, value, NEVER_SYNCED, allow_empty=False)


def settings_data_to_sync_settings(data: dict[str, Any]) -> SyncSettings:
    """Convert raw settings data dictionary to SyncSettings.

    Missing values use defaults; invalid values are clamped.

    Args:
        data: Dictionary with settings sections

    Returns:
        SyncSettings instance
    """
    values: dict[str, Any] = {}
    for name, (section, key) in SETTING_LOCATIONS.items():
        section_data = data.get(section, {})
        if not isinstance(section_data, dict):
            logger.warning(f"Settings section [{section}] is not a table; ignoring it.")
            continue
        if key in section_data:
            values[name] = clamp_setting(name, section_data[key])
    return SyncSettings(**values)


def sync_settings_to_data(settings: SyncSettings) -> dict[str, Any]:
    """Convert SyncSettings to a TOML-serializable dictionary."""
    data: dict[str, Any] = {}
    for name, (section, key) in SETTING_LOCATIONS.items():
        data.setdefault(section, {})[key] = getattr(settings, name)
    return data


def load_settings(path: Path) -> SyncSettings:
    """Load settings from a TOML file.

    Args:
        path: Path to settings.toml file

    Returns:
        Parsed SyncSettings instance

    Raises:
        FileNotFoundError: If settings file doesn't exist
        ValueError: If settings file is malformed
    """
    data = load_settings_data(path)
    return settings_data_to_sync_settings(data)


def save_settings(settings: SyncSettings, path: Path) -> None:
    """Save settings to a TOML file.

    The file is written to a temporary sibling and renamed into place so a
    crash never leaves a half-written settings file.

    Args:
        settings: SyncSettings to save
        path: Destination path for settings.toml
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    tmp_path = path.with_suffix(path.suffix + ".tmp")
    with tmp_path.open("wb") as f:
        tomli_w.dump(sync_settings_to_data(settings), f)
    os.replace(tmp_path, path)


def create_default_settings_file(path: Path, repo_url: str = "") -> None:
    """Create a default settings.toml file with sensible defaults and comments.

    Args:
        path: Destination path for settings.toml
        repo_url: Remote repository URL to pre-fill
    """
    # Escape for a TOML basic string
    escaped_url = repo_url.replace("\\", "\\\\").replace('"', '\\"')

    # We use a template string to preserve comments and formatting
    template = f"""\
# Vault Sync Settings
# Created by: vaultsync settings init

[sync]
# Minutes between automatic syncs (minimum 1)
commit_interval = {DEFAULT_COMMIT_INTERVAL}

# Sync automatically at the interval above
auto_sync = true

# Time of the last successful sync (managed by vaultsync)
last_sync = "{NEVER_SYNCED}"

[repository]
# HTTPS or SSH URL of the remote repository, e.g.
# https://github.com/user/repo.git or git@github.com:user/repo.git
repo_url = "{escaped_url}"

# "ssh" or "https". Git picks the method from the URL; this is informational.
auth_method = "ssh"

# Commit message template. {{{{date}}}} is replaced with the commit time.
commit_message = "{DEFAULT_COMMIT_MESSAGE}"

[log]
# Number of commits shown by `vaultsync log`
max_entries = {DEFAULT_LOG_MAX_ENTRIES}
"""

    path.parent.mkdir(parents=True, exist_ok=True)

    with path.open("w", encoding="utf-8") as f:
        f.write(template)
