"""Core domain entities for vault-sync.

These entities describe repository state as seen by the sync engine, the
outcome of a sync run, and the classified errors a run can end with.
"""

from dataclasses import dataclass, field
from enum import Enum


class WorkingTreeState(str, Enum):
    """State of a single path in the index or the working tree."""

    CLEAN = "clean"
    MODIFIED = "modified"
    ADDED = "added"
    DELETED = "deleted"
    RENAMED = "renamed"
    UNTRACKED = "untracked"


@dataclass(frozen=True)
class FileChange:
    """Status of one path in a repository snapshot.

    Attributes:
        path: Path relative to the repository root.
        index_state: Staged state (what the next commit would record).
        worktree_state: Unstaged state of the file on disk.
        original_path: Previous path for renames and copies, else None.
        unmerged: True if the path has unresolved merge conflicts.
    """

    path: str
    index_state: WorkingTreeState = WorkingTreeState.CLEAN
    worktree_state: WorkingTreeState = WorkingTreeState.CLEAN
    original_path: str | None = None
    unmerged: bool = False

    @property
    def is_staged(self) -> bool:
        """True if the path has a non-clean staged state."""
        return self.index_state is not WorkingTreeState.CLEAN

    @property
    def is_untracked(self) -> bool:
        return self.worktree_state is WorkingTreeState.UNTRACKED

    @property
    def is_clean(self) -> bool:
        return (
            self.index_state is WorkingTreeState.CLEAN
            and self.worktree_state is WorkingTreeState.CLEAN
            and not self.unmerged
        )


@dataclass(frozen=True)
class RepositorySnapshot:
    """Point-in-time result of a status query.

    Snapshots are immutable. Two snapshots taken at different protocol steps
    are independent observations; neither is updated by later operations.

    Attributes:
        current_branch: Checked-out branch name, or None when detached/unborn.
        tracking_branch: Upstream ref (e.g. "origin/main"), or None.
        ahead: Commits on the local branch missing from the tracking branch.
        behind: Commits on the tracking branch missing from the local branch.
        files: Per-path states, in the order reported by the VCS.
    """

    current_branch: str | None = None
    tracking_branch: str | None = None
    ahead: int = 0
    behind: int = 0
    files: tuple[FileChange, ...] = ()

    def __post_init__(self) -> None:
        """Validate ahead/behind counts."""
        if self.ahead < 0 or self.behind < 0:
            raise ValueError(
                f"ahead/behind must be non-negative, got +{self.ahead} -{self.behind}"
            )

    @property
    def has_local_changes(self) -> bool:
        """True if any path is modified, staged, or untracked."""
        return any(not change.is_clean for change in self.files)

    @property
    def staged_files(self) -> list[FileChange]:
        """Paths with a non-clean staged state."""
        return [change for change in self.files if change.is_staged]

    @property
    def has_tracking_branch(self) -> bool:
        return bool(self.tracking_branch)


@dataclass(frozen=True)
class CommitInfo:
    """A single entry of the repository history.

    Attributes:
        hash: Full commit SHA.
        author_name: Author display name.
        author_email: Author email address.
        date: Author date in ISO 8601 format.
        message: Commit subject line.
    """

    hash: str
    author_name: str
    author_email: str
    date: str
    message: str

    @property
    def short_hash(self) -> str:
        return self.hash[:7]


class SyncStep(str, Enum):
    """Protocol steps of a sync run, used to disambiguate failures."""

    PREFLIGHT = "preflight"
    CHECK_LOCAL_CHANGES = "check_local_changes"
    STASH = "stash"
    FETCH = "fetch"
    COMPARE_DIVERGENCE = "compare_divergence"
    REBASE = "rebase"
    REBASE_ABORT = "rebase_abort"
    STASH_POP = "stash_pop"
    STAGE = "stage"
    COMMIT = "commit"
    PUSH = "push"


class SyncErrorKind(str, Enum):
    """Classification of sync failures."""

    CONFLICT_DURING_PULL_OR_REBASE = "conflict_during_pull_or_rebase"
    STASH_APPLY_CONFLICT = "stash_apply_conflict"
    AUTHENTICATION_FAILURE = "authentication_failure"
    REPOSITORY_MISSING = "repository_missing"
    REMOTE_UNREACHABLE = "remote_unreachable"
    CONFIGURATION_ERROR = "configuration_error"
    GENERIC_FAILURE = "generic_failure"


# Kinds that only a user can fix; the others may clear up on the next run.
USER_ACTION_KINDS: frozenset[SyncErrorKind] = frozenset({
    SyncErrorKind.CONFLICT_DURING_PULL_OR_REBASE,
    SyncErrorKind.STASH_APPLY_CONFLICT,
    SyncErrorKind.AUTHENTICATION_FAILURE,
    SyncErrorKind.REPOSITORY_MISSING,
    SyncErrorKind.CONFIGURATION_ERROR,
})


@dataclass(frozen=True)
class SyncError:
    """A classified sync failure.

    Only vaultsync.core.sync.error_classifier creates these.

    Attributes:
        kind: Error classification.
        raw_message: Unmodified message of the underlying failure.
        recoverable: False when the repository may be left mid-operation
            and automation must not continue (e.g. a failed rebase abort).
        message: User-facing description.
        status_text: Short text for the status indicator.
    """

    kind: SyncErrorKind
    raw_message: str
    recoverable: bool
    message: str
    status_text: str

    @property
    def requires_user_action(self) -> bool:
        return self.kind in USER_ACTION_KINDS


class SyncStatus(str, Enum):
    """Terminal status of a sync run."""

    SYNCED = "synced"
    COMMITTED_NOT_PUSHED = "committed_not_pushed"
    UP_TO_DATE = "up_to_date"
    ALREADY_RUNNING = "already_running"
    FAILED = "failed"


@dataclass
class SyncOutcome:
    """Result of one SyncOrchestrator.run() call.

    Attributes:
        status: Terminal status of the run.
        error: Classified error when status is FAILED, else None.
        stash_pending: True if local changes remain shelved in the stash.
        stashed: True if the run shelved local changes at any point.
        files_committed: Number of paths recorded in the new commit.
        warnings: Warning messages emitted during the run.
    """

    status: SyncStatus
    error: SyncError | None = None
    stash_pending: bool = False
    stashed: bool = False
    files_committed: int = 0
    warnings: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.status in (
            SyncStatus.SYNCED,
            SyncStatus.COMMITTED_NOT_PUSHED,
            SyncStatus.UP_TO_DATE,
        )


@dataclass
class SyncSession:
    """Ephemeral state of a single sync run.

    Created at the start of SyncOrchestrator.run() and discarded at its end.
    Never shared between runs.
    """

    in_progress: bool = True
    step: SyncStep = SyncStep.PREFLIGHT
    stashed: bool = False
    stash_restored: bool = False
    current_branch: str | None = None
    tracking_branch: str | None = None
    ahead: int = 0
    behind: int = 0
    outcome: SyncStatus | None = None
    warnings: list[str] = field(default_factory=list)

    @property
    def stash_outstanding(self) -> bool:
        """True if changes were shelved and not yet restored."""
        return self.stashed and not self.stash_restored
