"""Sync module for reconciling a vault with its remote repository.

Contains the SyncOrchestrator running the sync protocol, the SyncScheduler
triggering it periodically, and error classification.
"""

from vaultsync.core.sync.error_classifier import classify_sync_error
from vaultsync.core.sync.orchestrator import SyncOrchestrator
from vaultsync.core.sync.scheduler import RepeatingTimer, SyncScheduler

__all__ = ["RepeatingTimer", "SyncOrchestrator", "SyncScheduler", "classify_sync_error"]
