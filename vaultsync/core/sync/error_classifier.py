"""Classification of sync failures.

Maps a raw failure (an exception or a message) to one of the fixed
SyncErrorKind values, together with the user-facing message and status text
shown for it. Classification is pure: the same input always produces the
same SyncError and nothing is logged or mutated.
"""

from vaultsync.domain.entities import SyncError, SyncErrorKind, SyncStep
from vaultsync.domain.exceptions import SyncConfigurationError

GENERIC_MESSAGE_LIMIT = 100

# Matched case-sensitively: vault paths and note names may contain "conflict"
CONFLICT_MARKERS = ("CONFLICT (", "Merge conflict in")

AUTHENTICATION_PHRASES = (
    "host key verification failed",
    "permission denied",
    "authentication failed",
)
REPOSITORY_MISSING_PHRASES = ("not a git repository",)
REMOTE_UNREACHABLE_PHRASES = (
    "could not read from remote repository",
    "could not resolve host",
)

_MESSAGES: dict[SyncErrorKind, tuple[str, str]] = {
    SyncErrorKind.CONFLICT_DURING_PULL_OR_REBASE: (
        "Merge conflict detected. Please resolve it manually in your Git client.",
        "Conflict!",
    ),
    SyncErrorKind.STASH_APPLY_CONFLICT: (
        "Restoring your local changes conflicted with remote updates. "
        "The stash was kept; resolve the conflict and run 'git stash drop'.",
        "Conflict!",
    ),
    SyncErrorKind.AUTHENTICATION_FAILURE: (
        "Authentication failed. Check SSH keys or HTTPS credentials.",
        "Auth Error",
    ),
    SyncErrorKind.REPOSITORY_MISSING: (
        "Vault is not a Git repository or .git folder is missing.",
        "Not a repo",
    ),
    SyncErrorKind.REMOTE_UNREACHABLE: (
        "Cannot connect to remote. Check repository URL and network.",
        "Remote Error",
    ),
}


def _failure_text(failure: BaseException | str) -> str:
    """Collect all text carried by a failure.

    VcsOperationError keeps the raw git output separately from its summary
    message, so both are searched.
    """
    if isinstance(failure, str):
        return failure
    parts = [str(failure)]
    output = getattr(failure, "output", "")
    if output and output not in parts[0]:
        parts.append(output)
    return "\n".join(parts)


def _contains_any(text: str, phrases: tuple[str, ...]) -> bool:
    return any(phrase in text for phrase in phrases)


def _truncate(message: str, limit: int = GENERIC_MESSAGE_LIMIT) -> str:
    return f"{message[:limit]}..."


def classify_sync_error(
    failure: BaseException | str,
    step: SyncStep | None = None,
) -> SyncError:
    """Classify a failure into a SyncError.

    Rules are checked in priority order and the first match wins:

    1. SyncConfigurationError -> CONFIGURATION_ERROR
    2. Failure of the rebase-abort step -> CONFLICT_DURING_PULL_OR_REBASE,
       not recoverable (a rebase is only aborted after a conflict)
    3. Conflict flag or one of git's conflict markers in the text ->
       STASH_APPLY_CONFLICT when raised by the stash-pop step, else
       CONFLICT_DURING_PULL_OR_REBASE
    4. Host key / permission / authentication phrases -> AUTHENTICATION_FAILURE
    5. "not a git repository" -> REPOSITORY_MISSING
    6. "could not read from remote repository" -> REMOTE_UNREACHABLE
    7. Anything else -> GENERIC_FAILURE with a truncated message

    Args:
        failure: The exception (or raw message) to classify.
        step: Protocol step that raised the failure, if known.

    Returns:
        SyncError describing the failure.
    """
    raw_message = str(failure)
    full_text = _failure_text(failure)
    text = full_text.lower()

    if isinstance(failure, SyncConfigurationError):
        return SyncError(
            kind=SyncErrorKind.CONFIGURATION_ERROR,
            raw_message=raw_message,
            recoverable=True,
            message=failure.message,
            status_text=failure.status_text,
        )

    if step is SyncStep.REBASE_ABORT:
        return SyncError(
            kind=SyncErrorKind.CONFLICT_DURING_PULL_OR_REBASE,
            raw_message=raw_message,
            recoverable=False,
            message=(
                "Critical! Could not abort rebase after a merge conflict. "
                "Manual Git intervention required."
            ),
            status_text="Conflict!",
        )

    conflict = getattr(failure, "conflict", False)
    if conflict or _contains_any(full_text, CONFLICT_MARKERS):
        if step is SyncStep.STASH_POP:
            kind = SyncErrorKind.STASH_APPLY_CONFLICT
        else:
            kind = SyncErrorKind.CONFLICT_DURING_PULL_OR_REBASE
    elif _contains_any(text, AUTHENTICATION_PHRASES):
        kind = SyncErrorKind.AUTHENTICATION_FAILURE
    elif _contains_any(text, REPOSITORY_MISSING_PHRASES):
        kind = SyncErrorKind.REPOSITORY_MISSING
    elif _contains_any(text, REMOTE_UNREACHABLE_PHRASES):
        kind = SyncErrorKind.REMOTE_UNREACHABLE
    else:
        return SyncError(
            kind=SyncErrorKind.GENERIC_FAILURE,
            raw_message=raw_message,
            recoverable=True,
            message=f"Error - {_truncate(raw_message)}",
            status_text="Sync Error",
        )

    message, status_text = _MESSAGES[kind]
    return SyncError(
        kind=kind,
        raw_message=raw_message,
        recoverable=True,
        message=message,
        status_text=status_text,
    )
