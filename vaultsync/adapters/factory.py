"""Factory functions for adapter instantiation.

This module centralizes the creation of adapters, keeping the CLI and the
plugin lifecycle free from direct infrastructure imports. Adapters are
imported lazily so that commands only load what they use.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from vaultsync.domain.exceptions import VcsOperationError
from vaultsync.ports.vcs import VcsCapability

if TYPE_CHECKING:
    from vaultsync.adapters.git_cmd import GitAdapter
    from vaultsync.adapters.settings import TomlSettingsStore

logger = logging.getLogger(__name__)


def negotiate_vcs_client(
    repo_root: Path,
    network_timeout: float | None = None,
) -> VcsCapability:
    """Decide once whether syncing is possible for a vault directory.

    The vault must be a directory on the local filesystem and the git
    executable must respond. Whether the directory is a repository is left
    to the sync run, which reports it as RepositoryMissing.

    Args:
        repo_root: Vault directory.
        network_timeout: Seconds before fetch/push give up.

    Returns:
        VcsCapability with a GitAdapter, or a disabled capability.
    """
    if not repo_root.is_dir():
        logger.error(f"Vault at {repo_root} is not a local directory. Git Sync disabled.")
        return VcsCapability.disabled(
            "Vault must be on a local filesystem for Git Sync to work."
        )

    adapter = create_git_adapter(repo_root, network_timeout=network_timeout)
    try:
        version = adapter.version()
    except VcsOperationError as e:
        logger.error(f"Failed to initialize Git. Is Git installed and in PATH? {e}")
        return VcsCapability.disabled(
            "Failed to initialize Git. Ensure Git is installed and in your system's PATH."
        )

    logger.info(f"Initialized {version} in {adapter.repo_root}")
    return VcsCapability(client=adapter, version=version)


def create_git_adapter(
    repo_root: Path,
    network_timeout: float | None = None,
) -> GitAdapter:
    """Create a git adapter for a vault directory.

    Args:
        repo_root: Vault directory.
        network_timeout: Seconds before fetch/push give up.

    Returns:
        GitAdapter bound to repo_root.
    """
    from vaultsync.adapters.git_cmd import GitAdapter

    return GitAdapter(repo_root, network_timeout=network_timeout)


def create_settings_store(path: Path | None = None) -> TomlSettingsStore:
    """Create the settings store.

    Args:
        path: Settings file (default: platform settings path).

    Returns:
        TomlSettingsStore loaded from path.
    """
    from vaultsync.adapters.settings import TomlSettingsStore

    return TomlSettingsStore(path)
