"""Sync orchestrator: one reconciliation attempt between vault and remote.

The protocol is strictly sequential. Each step finishes before the next one
starts, and every decision about divergence is taken on a fresh snapshot:

1. Check for local changes
2. Stash them (including untracked files)
3. Fetch the tracked remote
4. Compare divergence and rebase onto the tracking branch if behind
5. Restore the stash
6. Stage everything
7. Commit if anything is staged
8. Push if a tracking branch exists
9. Release the single-flight guard (always)

Steps with a defined recovery (stash, rebase, stash restore) handle their own
failures and end the run. Every other failure falls through to a single
top-level handler that classifies it. A failure is never handled in both
places.
"""

import logging
import threading
from collections.abc import Callable
from datetime import datetime

from vaultsync.core.sync.error_classifier import classify_sync_error
from vaultsync.domain.entities import (
    SyncOutcome,
    SyncSession,
    SyncStatus,
    SyncStep,
)
from vaultsync.domain.exceptions import SyncConfigurationError
from vaultsync.domain.settings import (
    TIMESTAMP_FORMAT,
    SyncSettings,
    render_commit_message,
)
from vaultsync.ports.notifier import Notifier
from vaultsync.ports.settings import SettingsStore
from vaultsync.ports.vcs import VersionControlClient

logger = logging.getLogger(__name__)

STASH_LABEL_PREFIX = "vault-sync autostash"
STASH_PENDING_WARNING = (
    "Your local changes were stashed and could not be restored automatically. "
    "Recover them manually with 'git stash pop'."
)


class SyncOrchestrator:
    """Run the sync protocol with single-flight protection.

    At most one run executes at a time across all callers (scheduler ticks and
    manual triggers). A call made while a run is active returns immediately
    with SyncStatus.ALREADY_RUNNING.

    Args:
        client: Version control client, or None if no client could be set up.
        settings_store: Source of settings; receives the updated last_sync.
        notifier: Receives status text and notifications.
        clock: Returns the current local time (injectable for tests).
    """

    def __init__(
        self,
        client: VersionControlClient | None,
        settings_store: SettingsStore,
        notifier: Notifier,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._client = client
        self._settings_store = settings_store
        self._notifier = notifier
        self._clock = clock
        self._guard = threading.Lock()

    @property
    def in_progress(self) -> bool:
        """True while a run holds the single-flight guard."""
        return self._guard.locked()

    @property
    def client_ready(self) -> bool:
        return self._client is not None

    def run(self) -> SyncOutcome:
        """Execute one sync attempt.

        Returns:
            SyncOutcome describing how the run ended. Failures are reported
            through the outcome and the notifier, never raised.
        """
        if not self._guard.acquire(blocking=False):
            logger.info("Sync already in progress, skipping.")
            self._notifier.notify("Sync already in progress.", level="info")
            return SyncOutcome(status=SyncStatus.ALREADY_RUNNING)

        session = SyncSession()
        try:
            outcome = self._run_session(session)
            session.outcome = outcome.status
            return outcome
        finally:
            session.in_progress = False
            self._guard.release()
            logger.info("Synchronization attempt finished.")

    def _run_session(self, session: SyncSession) -> SyncOutcome:
        """Check preconditions, then run the protocol under the top-level handler."""
        if self._client is None:
            return self._fail(
                session,
                SyncConfigurationError(
                    "Git is not initialized. Check plugin settings and logs.",
                    status_text="Error: Git not ready",
                ),
            )

        settings = self._settings_store.get()
        if not settings.has_repo_url:
            return self._fail(
                session,
                SyncConfigurationError(
                    "Repository URL is not configured in settings.",
                    status_text="Error: Repo URL not set",
                    hint="Set it with 'vaultsync settings set repo_url <url>'",
                ),
            )

        self._notifier.status("Syncing...")
        logger.info("Starting vault synchronization.")

        try:
            return self._execute(session, self._client, settings)
        except (KeyboardInterrupt, SystemExit):
            raise
        except Exception as e:
            logger.error(f"Synchronization error during {session.step.value}: {e}")
            if session.stash_outstanding:
                self._warn(session, STASH_PENDING_WARNING)
            return self._fail(session, e)

    def _execute(
        self,
        session: SyncSession,
        client: VersionControlClient,
        settings: SyncSettings,
    ) -> SyncOutcome:
        """Run protocol steps 1-8."""
        session.step = SyncStep.CHECK_LOCAL_CHANGES
        snapshot = client.status()

        if snapshot.has_local_changes:
            outcome = self._stash_local_changes(session, client)
            if outcome is not None:
                return outcome
        else:
            logger.debug("No local changes to stash.")

        session.step = SyncStep.FETCH
        logger.info("Fetching from remote...")
        client.fetch()

        session.step = SyncStep.COMPARE_DIVERGENCE
        snapshot = client.status()
        session.current_branch = snapshot.current_branch
        session.tracking_branch = snapshot.tracking_branch
        session.ahead = snapshot.ahead
        session.behind = snapshot.behind
        logger.debug(
            f"Branch {snapshot.current_branch} tracking {snapshot.tracking_branch}: "
            f"ahead {snapshot.ahead}, behind {snapshot.behind}"
        )

        if not snapshot.current_branch:
            raise SyncConfigurationError(
                "No branch is checked out. Check out a branch to enable syncing.",
                status_text="Error: No branch",
            )

        if snapshot.behind > 0:
            if snapshot.tracking_branch:
                outcome = self._rebase(session, client, snapshot.tracking_branch)
                if outcome is not None:
                    return outcome
            else:
                self._warn(
                    session,
                    f"Branch '{snapshot.current_branch}' has no tracking branch; "
                    f"skipping rebase of {snapshot.behind} remote commit(s).",
                )
        if snapshot.ahead > 0 and not snapshot.tracking_branch:
            self._warn(
                session,
                f"Branch '{snapshot.current_branch}' has no tracking branch; "
                "new commits will stay local.",
            )

        if session.stashed:
            outcome = self._restore_stash(session, client)
            if outcome is not None:
                return outcome

        session.step = SyncStep.STAGE
        logger.info("Adding files to staging...")
        client.stage_all()

        snapshot = client.status()
        files_to_commit = len(snapshot.staged_files)
        if files_to_commit == 0:
            self._record_sync()
            logger.info("No local changes to commit.")
            return self._succeed(
                session,
                SyncStatus.UP_TO_DATE,
                status_text="No local changes",
                message="No local changes to commit. Vault is up-to-date with remote.",
            )

        session.step = SyncStep.COMMIT
        commit_message = render_commit_message(settings.commit_message, self._timestamp())
        logger.info(f"Committing {files_to_commit} changes.")
        client.commit(commit_message)

        if snapshot.tracking_branch:
            session.step = SyncStep.PUSH
            logger.info("Pushing to remote...")
            client.push()
            self._record_sync()
            return self._succeed(
                session,
                SyncStatus.SYNCED,
                status_text="Synced",
                message="Vault successfully synced with remote.",
                files_committed=files_to_commit,
            )

        self._warn(
            session,
            f"Committed {files_to_commit} change(s) locally, but branch "
            f"'{snapshot.current_branch}' has no tracking branch. Nothing was pushed.",
        )
        self._record_sync()
        return self._succeed(
            session,
            SyncStatus.COMMITTED_NOT_PUSHED,
            status_text="Committed (not pushed)",
            message="Changes committed locally but not pushed.",
            files_committed=files_to_commit,
        )

    def _stash_local_changes(
        self, session: SyncSession, client: VersionControlClient
    ) -> SyncOutcome | None:
        """Shelve local edits. Returns an outcome only if the run must end."""
        session.step = SyncStep.STASH
        label = f"{STASH_LABEL_PREFIX} {self._timestamp()}"
        try:
            session.stashed = client.stash_push(label)
        except Exception as e:
            logger.error(f"Stashing local changes failed: {e}")
            session.stashed = False
            return self._fail(session, e, prefix="Sync aborted to avoid data loss")

        if session.stashed:
            logger.info(f"Stashed local changes as '{label}'.")
        else:
            logger.info("Stash reported nothing to save; continuing without stash.")
        return None

    def _rebase(
        self, session: SyncSession, client: VersionControlClient, ref: str
    ) -> SyncOutcome | None:
        """Rebase onto ref. Returns an outcome only if the run must end."""
        session.step = SyncStep.REBASE
        logger.info(f"Rebasing {session.behind} remote commit(s) from {ref}...")
        try:
            client.rebase_onto(ref)
        except Exception as e:
            if not getattr(e, "conflict", False):
                raise
            logger.warning("Merge conflict during rebase. Attempting to abort rebase.")
            session.step = SyncStep.REBASE_ABORT
            try:
                client.rebase_abort()
            except Exception as abort_error:
                logger.error(f"Could not abort rebase: {abort_error}")
                if session.stash_outstanding:
                    self._warn(session, STASH_PENDING_WARNING)
                return self._fail(session, abort_error)

            logger.info("Rebase aborted; working tree left clean for manual resolution.")
            if session.stash_outstanding:
                self._warn(session, STASH_PENDING_WARNING)
            session.step = SyncStep.REBASE
            return self._fail(session, e)

        logger.info(f"Rebase onto {ref} successful.")
        return None

    def _restore_stash(
        self, session: SyncSession, client: VersionControlClient
    ) -> SyncOutcome | None:
        """Pop the stash. Returns an outcome only if the run must end."""
        session.step = SyncStep.STASH_POP
        try:
            client.stash_pop()
        except Exception as e:
            if getattr(e, "conflict", False):
                logger.warning("Restoring stashed changes conflicted; stash preserved.")
            else:
                logger.error(f"Restoring stashed changes failed: {e}")
                self._warn(session, STASH_PENDING_WARNING)
            return self._fail(session, e)

        session.stash_restored = True
        logger.info("Restored stashed local changes.")
        return None

    def _record_sync(self) -> None:
        """Persist the time of the last successful sync."""
        self._settings_store.update(last_sync=self._timestamp())

    def _timestamp(self) -> str:
        return self._clock().strftime(TIMESTAMP_FORMAT)

    def _warn(self, session: SyncSession, message: str) -> None:
        logger.warning(message)
        session.warnings.append(message)
        self._notifier.notify(message, level="warning")

    def _succeed(
        self,
        session: SyncSession,
        status: SyncStatus,
        status_text: str,
        message: str,
        files_committed: int = 0,
    ) -> SyncOutcome:
        self._notifier.status(status_text)
        self._notifier.notify(message, level="info")
        return SyncOutcome(
            status=status,
            stashed=session.stashed,
            files_committed=files_committed,
            warnings=list(session.warnings),
        )

    def _fail(
        self,
        session: SyncSession,
        failure: BaseException,
        prefix: str | None = None,
    ) -> SyncOutcome:
        """Classify a failure and report it as the run's terminal outcome."""
        error = classify_sync_error(failure, session.step)
        logger.error(
            f"Sync failed ({error.kind.value}) at step {session.step.value}: "
            f"{error.raw_message}"
        )
        message = f"{prefix}: {error.message}" if prefix else error.message
        self._notifier.status(error.status_text)
        self._notifier.notify(message, level="error")
        return SyncOutcome(
            status=SyncStatus.FAILED,
            error=error,
            stash_pending=session.stash_outstanding,
            stashed=session.stashed,
            warnings=list(session.warnings),
        )
