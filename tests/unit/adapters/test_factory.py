"""Tests for adapter factory functions."""

from pathlib import Path
from unittest.mock import patch

from vaultsync.adapters.factory import (
    create_git_adapter,
    create_settings_store,
    negotiate_vcs_client,
)
from vaultsync.adapters.git_cmd import GitAdapter
from vaultsync.adapters.settings import TomlSettingsStore
from vaultsync.domain.exceptions import VcsOperationError


class TestNegotiateVcsClient:
    def test_ready_for_local_directory(self, tmp_path: Path) -> None:
        with patch.object(GitAdapter, "version", return_value="git version 2.43.0"):
            capability = negotiate_vcs_client(tmp_path, network_timeout=30)

        assert capability.ready
        assert isinstance(capability.client, GitAdapter)
        assert capability.client.network_timeout == 30
        assert capability.version == "git version 2.43.0"
        assert capability.reason is None

    def test_disabled_for_missing_directory(self, tmp_path: Path) -> None:
        capability = negotiate_vcs_client(tmp_path / "nowhere")

        assert not capability.ready
        assert "local filesystem" in capability.reason

    def test_disabled_for_file_path(self, tmp_path: Path) -> None:
        path = tmp_path / "vault.md"
        path.write_text("not a directory")

        assert not negotiate_vcs_client(path).ready

    def test_disabled_when_git_missing(self, tmp_path: Path) -> None:
        with patch.object(
            GitAdapter, "version", side_effect=VcsOperationError("git executable not found")
        ):
            capability = negotiate_vcs_client(tmp_path)

        assert not capability.ready
        assert capability.client is None
        assert "Failed to initialize Git" in capability.reason


class TestCreateFunctions:
    def test_create_git_adapter(self, tmp_path: Path) -> None:
        adapter = create_git_adapter(tmp_path)

        assert adapter.repo_root == tmp_path.resolve()
        assert adapter.network_timeout is None

    def test_create_settings_store(self, settings_file: Path) -> None:
        store = create_settings_store(settings_file)

        assert isinstance(store, TomlSettingsStore)
        assert store.path == settings_file
