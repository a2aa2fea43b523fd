"""Notifier port.

Defines the presentation boundary for user-visible feedback. The sync engine
reports status text and notifications here without depending on how they are
rendered (status bar, toast, terminal).
"""

from typing import Literal, Protocol

NoticeLevel = Literal["info", "warning", "error"]


class Notifier(Protocol):
    """Protocol for delivering user-visible sync feedback."""

    def status(self, text: str) -> None:
        """Replace the one-line status indicator.

        Args:
            text: Short status text, e.g. "Syncing..." or "Conflict!".
        """
        ...

    def notify(self, message: str, level: NoticeLevel = "info") -> None:
        """Deliver a notification to the user.

        Args:
            message: Human-readable message.
            level: Severity of the notification.
        """
        ...
