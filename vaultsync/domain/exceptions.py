"""Domain exceptions for vault-sync.

These exceptions describe failures of the synchronization domain. They are
raised by adapters and the orchestrator, classified by the error classifier,
and converted to user-facing messages at the application boundary (CLI).
"""


class VaultSyncError(Exception):
    """Base exception for all domain errors.

    Attributes:
        message: User-facing error message.
        hint: Optional actionable suggestion.
    """

    def __init__(self, message: str, hint: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint


class VcsOperationError(VaultSyncError):
    """Raised when a version control operation fails.

    Attributes:
        operation: Short name of the failed operation (e.g. "rebase").
        conflict: True if the failure was caused by a merge conflict.
        output: Raw combined output of the underlying command.
    """

    def __init__(
        self,
        message: str,
        operation: str = "",
        conflict: bool = False,
        output: str = "",
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.operation = operation
        self.conflict = conflict
        self.output = output


class SyncConfigurationError(VaultSyncError):
    """Raised when the environment cannot support a sync run.

    Covers a missing version control client, a missing repository URL and a
    repository without a checked-out branch.

    Attributes:
        status_text: Short text for the status indicator.
    """

    def __init__(
        self,
        message: str,
        status_text: str = "Config Error",
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.status_text = status_text
