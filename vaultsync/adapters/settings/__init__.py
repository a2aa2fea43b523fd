"""Settings store adapters."""

from vaultsync.adapters.settings.toml_settings_store import TomlSettingsStore

__all__ = ["TomlSettingsStore"]
