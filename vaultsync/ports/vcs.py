"""Version Control System (VCS) port interface.

Defines the capability boundary the sync engine drives. The orchestrator only
depends on this protocol, never on how the operations are carried out.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from vaultsync.domain.entities import CommitInfo, RepositorySnapshot


class VersionControlClient(Protocol):
    """Protocol for operations on one local repository bound to one remote.

    Every failing operation raises VcsOperationError. Operations that can
    stop on a merge conflict (rebase_onto, stash_pop) set its conflict flag.
    """

    def is_repository(self) -> bool:
        """Check whether the bound directory is inside a repository."""
        ...

    def status(self) -> RepositorySnapshot:
        """Query branch, tracking and per-path state.

        Returns:
            A fresh, immutable RepositorySnapshot.

        Raises:
            VcsOperationError: If the status query fails.
        """
        ...

    def fetch(self) -> None:
        """Retrieve remote refs for the tracked remote.

        Raises:
            VcsOperationError: If the remote cannot be reached.
        """
        ...

    def stash_push(self, label: str) -> bool:
        """Shelve all local edits, including untracked paths.

        Args:
            label: Message identifying the stash entry.

        Returns:
            True if a stash entry was created, False if nothing was shelved.

        Raises:
            VcsOperationError: If stashing fails.
        """
        ...

    def stash_pop(self) -> None:
        """Restore the most recent stash entry.

        Raises:
            VcsOperationError: With conflict=True if restoring conflicted
                (the stash entry is kept), otherwise for other failures.
        """
        ...

    def rebase_onto(self, ref: str) -> None:
        """Replay local commits on top of ref.

        Args:
            ref: Upstream ref to rebase onto (e.g. "origin/main").

        Raises:
            VcsOperationError: With conflict=True if the rebase stopped on a
                conflict, otherwise for other failures.
        """
        ...

    def rebase_abort(self) -> None:
        """Abort an in-progress rebase.

        Raises:
            VcsOperationError: If the abort fails.
        """
        ...

    def stage_all(self) -> None:
        """Stage all new, modified and deleted paths.

        Raises:
            VcsOperationError: If staging fails.
        """
        ...

    def commit(self, message: str) -> None:
        """Record staged changes.

        Args:
            message: Commit message.

        Raises:
            VcsOperationError: If the commit fails.
        """
        ...

    def push(self) -> None:
        """Publish local commits to the tracking branch.

        Raises:
            VcsOperationError: If the push is rejected or the remote is
                unreachable.
        """
        ...

    def log(self, max_entries: int) -> list[CommitInfo]:
        """Get recent history, newest first.

        Args:
            max_entries: Maximum number of commits to return.

        Returns:
            List of CommitInfo entries (empty for a repository without commits).
        """
        ...


@dataclass(frozen=True)
class VcsCapability:
    """Result of version control capability negotiation.

    Either holds a ready client, or no client and the reason syncing is
    permanently disabled for this process.

    Attributes:
        client: Ready version control client, or None.
        reason: Why no client is available (None when ready).
        version: Reported version of the underlying tool when ready.
    """

    client: VersionControlClient | None = None
    reason: str | None = None
    version: str | None = None

    @property
    def ready(self) -> bool:
        return self.client is not None

    @staticmethod
    def disabled(reason: str) -> VcsCapability:
        return VcsCapability(client=None, reason=reason)
