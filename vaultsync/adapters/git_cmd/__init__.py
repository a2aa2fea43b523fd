"""Git command-line adapter."""

from vaultsync.adapters.git_cmd.git_adapter import GitAdapter

__all__ = ["GitAdapter"]
