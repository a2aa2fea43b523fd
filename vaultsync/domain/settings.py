"""Settings domain model for vault-sync.

Settings are stored in a TOML file (see vaultsync.shared.settings_io) and
represent the user's synchronization preferences. This module defines the
validated, immutable settings record consumed by the orchestrator and the
scheduler.
"""

from dataclasses import dataclass
from typing import Literal

DATE_PLACEHOLDER = "{{date}}"
NEVER_SYNCED = "Never"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

DEFAULT_COMMIT_INTERVAL = 15
DEFAULT_COMMIT_MESSAGE = f"Vault auto-sync: {DATE_PLACEHOLDER}"
DEFAULT_LOG_MAX_ENTRIES = 50

AuthMethod = Literal["ssh", "https"]
AUTH_METHODS: tuple[str, ...] = ("ssh", "https")


@dataclass(frozen=True)
class SyncSettings:
    """Complete vault-sync configuration.

    There is a single settings record per process. It is never mutated in
    place: callers build a replacement with dataclasses.replace() and persist
    it through a SettingsStore, which notifies observers.

    Attributes:
        commit_interval: Minutes between automatic syncs (>= 1).
        repo_url: URL of the remote repository. Empty means "not configured".
        auth_method: "ssh" or "https". Advisory only, git decides from the URL.
        auto_sync: Whether the periodic scheduler runs.
        last_sync: Local timestamp of the last successful sync, or "Never".
        commit_message: Commit message template. The first "{{date}}" is
            replaced with the commit time.
        log_max_entries: Number of commits shown by the log view (> 0).

    Raises:
        ValueError: If commit_interval or log_max_entries is out of range,
            or auth_method is unknown.
    """

    commit_interval: int = DEFAULT_COMMIT_INTERVAL
    repo_url: str = ""
    auth_method: AuthMethod = "ssh"
    auto_sync: bool = True
    last_sync: str = NEVER_SYNCED
    commit_message: str = DEFAULT_COMMIT_MESSAGE
    log_max_entries: int = DEFAULT_LOG_MAX_ENTRIES

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        if self.commit_interval < 1:
            raise ValueError(
                f"commit_interval must be at least 1 minute, got {self.commit_interval}"
            )
        if self.log_max_entries <= 0:
            raise ValueError(
                f"log_max_entries must be positive, got {self.log_max_entries}"
            )
        if self.auth_method not in AUTH_METHODS:
            raise ValueError(
                f"auth_method must be one of {', '.join(AUTH_METHODS)}, "
                f"got {self.auth_method!r}"
            )

    @property
    def has_repo_url(self) -> bool:
        """True if a remote repository URL is configured."""
        return bool(self.repo_url.strip())

    @property
    def never_synced(self) -> bool:
        return self.last_sync == NEVER_SYNCED

    @staticmethod
    def default() -> "SyncSettings":
        """Create settings with all default values."""
        return SyncSettings()


def render_commit_message(template: str, timestamp: str) -> str:
    """Substitute the date placeholder in a commit message template.

    Only the first occurrence is replaced; a template without the
    placeholder is returned unchanged.

    Args:
        template: Commit message template, e.g. "Vault auto-sync: {{date}}".
        timestamp: Formatted timestamp to insert.

    Returns:
        The rendered commit message.
    """
    return template.replace(DATE_PLACEHOLDER, timestamp, 1)
