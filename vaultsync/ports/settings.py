"""Settings store port.

Defines the interface for loading, persisting and observing the single
process-wide settings record.
"""

from collections.abc import Callable
from typing import Protocol

from vaultsync.domain.settings import SyncSettings

SettingsObserver = Callable[[SyncSettings, SyncSettings], None]


class SettingsStore(Protocol):
    """Protocol for the persisted settings record."""

    def get(self) -> SyncSettings:
        """Return the current settings.

        Returns:
            SyncSettings with loaded or default values.
        """
        ...

    def save(self, settings: SyncSettings) -> None:
        """Persist settings and notify observers.

        Observers are called with (old, new) after the write succeeded.

        Args:
            settings: The replacement settings record.
        """
        ...

    def subscribe(self, observer: SettingsObserver) -> None:
        """Register a callback invoked after every successful save.

        Args:
            observer: Callable receiving the previous and new settings.
        """
        ...

    def update(self, **changes: object) -> SyncSettings:
        """Apply field changes to the latest persisted settings.

        The persisted record is re-read first, so changes written by another
        process since the last read are kept. Observers are notified.

        Args:
            **changes: SyncSettings fields to replace.

        Returns:
            The settings after the update.
        """
        ...

    def reload(self) -> SyncSettings:
        """Re-read the persisted settings, notifying observers if they changed.

        Returns:
            The current settings.
        """
        ...
