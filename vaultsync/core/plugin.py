"""Host-facing lifecycle and command surface.

SyncPlugin is the object a host (the CLI `watch` command, an editor
integration) creates once per process. init() wires the components in a fixed
order:

1. Load settings
2. Negotiate the version control client (once)
3. Build the orchestrator
4. Build the scheduler and start it if auto-sync is enabled
5. Optionally run an initial sync

shutdown() cancels the scheduler unconditionally and waits for a scheduled
run that is already in progress to finish.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from vaultsync.core.sync.orchestrator import SyncOrchestrator
from vaultsync.core.sync.scheduler import RepeatingTimer, SyncScheduler, TimerFactory
from vaultsync.domain.entities import CommitInfo, SyncOutcome
from vaultsync.domain.exceptions import SyncConfigurationError
from vaultsync.domain.settings import SyncSettings
from vaultsync.ports.notifier import Notifier
from vaultsync.ports.settings import SettingsStore
from vaultsync.ports.vcs import VcsCapability

logger = logging.getLogger(__name__)


@dataclass
class SyncContext:
    """Everything the plugin needs from its host.

    Attributes:
        vault_path: Directory to keep in sync.
        settings_store: Persisted settings.
        notifier: Receives status text and notifications.
        negotiate: Capability negotiation for vault_path, run once in init().
        initial_sync: Run a sync during init() when auto-sync is enabled.
        timer_factory: Timer used by the scheduler.
        clock: Current local time.
    """

    vault_path: Path
    settings_store: SettingsStore
    notifier: Notifier
    negotiate: Callable[[Path], VcsCapability]
    initial_sync: bool = True
    timer_factory: TimerFactory = RepeatingTimer
    clock: Callable[[], datetime] = field(default=datetime.now)


class SyncPlugin:
    """Lifecycle owner for the sync engine."""

    def __init__(self) -> None:
        self._context: SyncContext | None = None
        self.capability: VcsCapability | None = None
        self.orchestrator: SyncOrchestrator | None = None
        self.scheduler: SyncScheduler | None = None

    @property
    def initialized(self) -> bool:
        return self._context is not None

    def init(self, context: SyncContext) -> None:
        """Wire components and start automation.

        Raises:
            RuntimeError: If the plugin is already initialized.
        """
        if self._context is not None:
            raise RuntimeError("SyncPlugin is already initialized")

        logger.info("Loading Git Sync plugin")
        self._context = context
        notifier = context.notifier
        notifier.status("Idle")

        settings = context.settings_store.get()

        self.capability = context.negotiate(context.vault_path)
        if not self.capability.ready:
            notifier.notify(self.capability.reason or "Git is unavailable.", level="error")
            notifier.status("Error: Git init failed")

        self.orchestrator = SyncOrchestrator(
            client=self.capability.client,
            settings_store=context.settings_store,
            notifier=notifier,
            clock=context.clock,
        )
        # Created only after the client decision is final
        orchestrator = self.orchestrator
        self.scheduler = SyncScheduler(
            run_sync=self._scheduled_sync,
            client_ready=lambda: orchestrator.client_ready,
            timer_factory=context.timer_factory,
        )
        context.settings_store.subscribe(self.settings_changed)

        if settings.auto_sync:
            self.scheduler.start(settings.commit_interval)

        if (
            context.initial_sync
            and settings.auto_sync
            and settings.has_repo_url
            and self.capability.ready
        ):
            logger.info("Attempting initial sync on load.")
            self.orchestrator.run()

    def shutdown(self) -> None:
        """Stop automation. Safe to call more than once.

        Blocks until a scheduled run that is already in progress finishes,
        so a stash taken by that run is restored or reported.
        """
        logger.info("Unloading Git Sync plugin")
        if self.scheduler is not None:
            self.scheduler.stop()

    def _require_init(self) -> SyncContext:
        if self._context is None:
            raise RuntimeError("SyncPlugin is not initialized; call init() first")
        return self._context

    def _scheduled_sync(self) -> SyncOutcome | None:
        """Timer tick: pick up settings edited elsewhere, then run a sync."""
        context = self._require_init()
        assert self.orchestrator is not None
        settings = context.settings_store.reload()
        if not settings.auto_sync:
            logger.info("Auto-sync was disabled; skipping scheduled sync.")
            return None
        return self.orchestrator.run()

    def trigger_sync_now(self) -> SyncOutcome:
        """Run a sync immediately (ignored with a notice if one is running)."""
        self._require_init()
        assert self.orchestrator is not None
        return self.orchestrator.run()

    def view_log(self) -> list[CommitInfo]:
        """Return recent history, limited by the log_max_entries setting.

        Raises:
            SyncConfigurationError: If no version control client is available.
            VcsOperationError: If reading the history fails.
        """
        context = self._require_init()
        if self.capability is None or self.capability.client is None:
            raise SyncConfigurationError(
                "Git is not initialized. Check plugin settings and logs.",
                status_text="Error: Git not ready",
            )
        max_entries = context.settings_store.get().log_max_entries
        return self.capability.client.log(max_entries)

    def settings_changed(self, old: SyncSettings, new: SyncSettings) -> None:
        """Restart the scheduler when auto_sync or commit_interval changed."""
        if self.scheduler is None:
            return
        if old.auto_sync == new.auto_sync and old.commit_interval == new.commit_interval:
            return

        logger.info(
            f"Auto-sync settings changed (enabled={new.auto_sync}, "
            f"interval={new.commit_interval} min)."
        )
        self.scheduler.stop()
        if new.auto_sync:
            self.scheduler.start(new.commit_interval)

    def on_file_activity(self, path: str) -> None:
        """Record a file change in the vault.

        Only updates the status indicator; never starts a sync.
        """
        context = self._require_init()
        if self.orchestrator is not None and not self.orchestrator.in_progress:
            context.notifier.status("Changes detected")
        logger.debug(f"File activity detected - {path}")
