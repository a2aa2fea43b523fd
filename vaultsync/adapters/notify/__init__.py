"""Notifier adapters."""

from vaultsync.adapters.notify.console import ConsoleNotifier

__all__ = ["ConsoleNotifier"]
