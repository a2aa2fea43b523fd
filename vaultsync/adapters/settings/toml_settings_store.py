"""TOML-based settings store.

Loads the single settings record from a TOML file, keeps it in memory, and
writes replacements back. Observers registered with subscribe() are called
after every successful save, and after a reload that found the file changed.
"""

import logging
import threading
from dataclasses import replace
from pathlib import Path

from vaultsync.domain.settings import SyncSettings
from vaultsync.ports.settings import SettingsObserver
from vaultsync.shared.settings_io import (
    get_settings_path,
    load_settings,
    save_settings,
)

logger = logging.getLogger(__name__)


class TomlSettingsStore:
    """Settings store backed by a settings.toml file.

    Loading is lenient: a missing file yields defaults, and an unreadable or
    malformed file is logged and also yields defaults.

    Args:
        path: Settings file location (default: platform settings path).
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path = path or get_settings_path()
        self._lock = threading.Lock()
        self._observers: list[SettingsObserver] = []
        self._settings = self._load()

    def _load(self) -> SyncSettings:
        if not self.path.exists():
            logger.debug(f"No settings file at {self.path}, using defaults")
            return SyncSettings.default()
        try:
            settings = load_settings(self.path)
            logger.debug(f"Loaded settings from {self.path}")
            return settings
        except (OSError, ValueError) as e:
            logger.warning(
                f"Failed to parse settings at {self.path}: {e}. Using default settings."
            )
            return SyncSettings.default()

    def reload(self) -> SyncSettings:
        """Re-read the settings file, discarding the in-memory copy.

        Observers are notified when the file changed since the last read,
        for example after `vaultsync settings set` ran in another process.
        """
        with self._lock:
            old = self._settings
            self._settings = self._load()
            new = self._settings
            observers = list(self._observers)

        if new != old:
            logger.info(f"Settings changed on disk at {self.path}")
            self._notify(observers, old, new)
        return new

    def get(self) -> SyncSettings:
        with self._lock:
            return self._settings

    def save(self, settings: SyncSettings) -> None:
        """Write settings to disk, then notify observers.

        Raises:
            OSError: If the settings file cannot be written.
        """
        with self._lock:
            old = self._settings
            save_settings(settings, self.path)
            self._settings = settings
            observers = list(self._observers)

        self._notify(observers, old, settings)

    def update(self, **changes: object) -> SyncSettings:
        """Re-read the file, apply changes and write the result back.

        Edits made on disk since the last read survive the write. Observers
        see the in-memory copy as the old value, so external edits are
        reported along with the requested changes.

        Raises:
            OSError: If the settings file cannot be written.
            TypeError: If a change names an unknown field.
        """
        with self._lock:
            old = self._settings
            new = replace(self._load(), **changes)
            save_settings(new, self.path)
            self._settings = new
            observers = list(self._observers)

        self._notify(observers, old, new)
        return new

    def subscribe(self, observer: SettingsObserver) -> None:
        with self._lock:
            self._observers.append(observer)

    @staticmethod
    def _notify(
        observers: list[SettingsObserver], old: SyncSettings, new: SyncSettings
    ) -> None:
        for observer in observers:
            try:
                observer(old, new)
            except Exception:
                # The write already succeeded
                logger.exception("Settings observer failed")
