"""CLI error handling with actionable hints.

Provides consistent error formatting and common error factory functions
for all vaultsync CLI commands.
"""

from typing import NoReturn

import click


class VaultSyncCliError(click.ClickException):
    """CLI error with actionable hint for users.

    Attributes:
        message: The primary error message.
        hint: Optional actionable suggestion for the user.

    Example:
        raise VaultSyncCliError(
            "Not a git repository: /home/me/notes",
            hint="Run 'git init' in your vault or pass --repo",
        )
    """

    def __init__(self, message: str, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint

    def format_message(self) -> str:
        """Format the error message with hint if present.

        Returns:
            Formatted error message, with hint on a new line if provided.
        """
        msg = self.message
        if self.hint:
            msg += f"\nHint: {self.hint}"
        return msg


def git_unavailable_error(reason: str) -> NoReturn:
    """Raise error when no git client could be negotiated for the vault.

    Args:
        reason: Why git sync is disabled.

    Raises:
        VaultSyncCliError: Always.
    """
    raise VaultSyncCliError(
        reason,
        hint="Install git and make sure --repo points to a local directory",
    )


def not_a_repository_error(path: str) -> NoReturn:
    """Raise error when the vault directory is not a git repository.

    Raises:
        VaultSyncCliError: Always.
    """
    raise VaultSyncCliError(
        f"Not a git repository: {path}",
        hint="Clone your remote into the vault or run 'git init' there",
    )


def unknown_setting_error(name: str, known: list[str]) -> NoReturn:
    """Raise error when `settings set` is given an unknown key.

    Args:
        name: The key the user passed.
        known: Valid setting names.

    Raises:
        VaultSyncCliError: Always.
    """
    raise VaultSyncCliError(
        f"Unknown setting '{name}'",
        hint=f"Valid settings: {', '.join(known)}",
    )
