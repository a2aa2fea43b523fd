"""Console notifier that renders sync feedback in the terminal."""

import click

from vaultsync.ports.notifier import NoticeLevel

STATUS_PREFIX = "Vault Sync"

_LEVEL_STYLES: dict[str, tuple[str, str]] = {
    "info": ("✓", "green"),
    "warning": ("⚠", "yellow"),
    "error": ("✗", "red"),
}


class ConsoleNotifier:
    """Notifier writing to stderr with click.

    Status updates are only echoed when show_status is set (they are noisy
    for one-shot commands). Info notifications are dropped in quiet mode;
    warnings and errors are always shown.

    Args:
        quiet: Suppress info-level notifications.
        show_status: Echo status indicator changes.
    """

    def __init__(self, quiet: bool = False, show_status: bool = False) -> None:
        self.quiet = quiet
        self.show_status = show_status
        self.current_status = "Idle"

    def status(self, text: str) -> None:
        self.current_status = text
        if self.show_status:
            click.echo(click.style(f"{STATUS_PREFIX}: {text}", dim=True), err=True)

    def notify(self, message: str, level: NoticeLevel = "info") -> None:
        if level == "info" and self.quiet:
            return
        symbol, color = _LEVEL_STYLES.get(level, _LEVEL_STYLES["info"])
        click.echo(f"{click.style(symbol, fg=color)} {message}", err=True)
