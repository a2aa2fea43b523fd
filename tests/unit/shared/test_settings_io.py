"""Tests for settings I/O utilities."""

import logging
from pathlib import Path

import pytest

from vaultsync.domain.settings import SyncSettings
from vaultsync.shared.settings_io import (
    clamp_setting,
    create_default_settings_file,
    get_settings_path,
    load_settings,
    load_settings_data,
    save_settings,
    settings_data_to_sync_settings,
    sync_settings_to_data,
)


class TestGetSettingsPath:
    def test_uses_xdg_config_home(self, monkeypatch, tmp_path: Path) -> None:
        monkeypatch.setattr("platform.system", lambda: "Linux")
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))

        assert get_settings_path() == tmp_path / "vaultsync" / "settings.toml"

    def test_falls_back_to_home_config(self, monkeypatch, tmp_path: Path) -> None:
        monkeypatch.setattr("platform.system", lambda: "Linux")
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        monkeypatch.setattr(Path, "home", lambda: tmp_path)

        assert get_settings_path() == tmp_path / ".config" / "vaultsync" / "settings.toml"

    def test_windows_uses_appdata(self, monkeypatch, tmp_path: Path) -> None:
        monkeypatch.setattr("platform.system", lambda: "Windows")
        monkeypatch.setenv("APPDATA", str(tmp_path))

        assert get_settings_path() == tmp_path / "vaultsync" / "settings.toml"


class TestClampSetting:
    """Invalid user values are clamped before they reach the core."""

    def test_interval_below_one_clamped_to_one(self, caplog) -> None:
        with caplog.at_level(logging.WARNING):
            assert clamp_setting("commit_interval", "0") == 1
        assert "commit_interval" in caplog.text

    def test_negative_interval_clamped(self) -> None:
        assert clamp_setting("commit_interval", -5) == 1

    def test_non_numeric_interval_uses_default(self) -> None:
        assert clamp_setting("commit_interval", "soon") == 15

    def test_bool_interval_uses_default(self) -> None:
        assert clamp_setting("commit_interval", True) == 15

    def test_numeric_string_interval(self) -> None:
        assert clamp_setting("commit_interval", "30") == 30

    def test_log_entries_clamped(self) -> None:
        assert clamp_setting("log_max_entries", 0) == 1
        assert clamp_setting("log_max_entries", "many") == 50

    @pytest.mark.parametrize("value", ["true", "YES", "on", "1", True])
    def test_truthy_auto_sync(self, value) -> None:
        assert clamp_setting("auto_sync", value) is True

    @pytest.mark.parametrize("value", ["false", "No", "off", "0", False])
    def test_falsy_auto_sync(self, value) -> None:
        assert clamp_setting("auto_sync", value) is False

    def test_invalid_auto_sync_uses_default(self) -> None:
        assert clamp_setting("auto_sync", "maybe") is True

    def test_auth_method_normalized(self) -> None:
        assert clamp_setting("auth_method", " HTTPS ") == "https"

    def test_unknown_auth_method_falls_back_to_ssh(self) -> None:
        assert clamp_setting("auth_method", "kerberos") == "ssh"

    def test_empty_commit_message_uses_default(self) -> None:
        assert clamp_setting("commit_message", "  ") == "Vault auto-sync: {{date}}"

    def test_repo_url_stripped(self) -> None:
        assert clamp_setting("repo_url", " git@github.com:me/notes.git\n") == (
            "git@github.com:me/notes.git"
        )

    def test_wrong_type_string_uses_default(self) -> None:
        assert clamp_setting("repo_url", 42) == ""

    def test_unknown_setting_raises(self) -> None:
        with pytest.raises(KeyError):
            clamp_setting("theme", "dark")


class TestConversion:
    def test_data_to_settings_uses_sections(self) -> None:
        data = {
            "sync": {"commit_interval": 5, "auto_sync": False, "last_sync": "2024-01-01 00:00:00"},
            "repository": {"repo_url": "https://example.com/v.git", "auth_method": "https"},
            "log": {"max_entries": 10},
        }

        settings = settings_data_to_sync_settings(data)

        assert settings == SyncSettings(
            commit_interval=5,
            auto_sync=False,
            last_sync="2024-01-01 00:00:00",
            repo_url="https://example.com/v.git",
            auth_method="https",
            log_max_entries=10,
        )

    def test_missing_sections_use_defaults(self) -> None:
        assert settings_data_to_sync_settings({}) == SyncSettings()

    def test_invalid_values_clamped(self) -> None:
        data = {"sync": {"commit_interval": 0}, "log": {"max_entries": "x"}}

        settings = settings_data_to_sync_settings(data)

        assert settings.commit_interval == 1
        assert settings.log_max_entries == 50

    def test_non_table_section_ignored(self) -> None:
        assert settings_data_to_sync_settings({"sync": "fast"}) == SyncSettings()

    def test_settings_to_data_layout(self) -> None:
        data = sync_settings_to_data(SyncSettings(repo_url="u"))

        assert data["sync"] == {"commit_interval": 15, "auto_sync": True, "last_sync": "Never"}
        assert data["repository"]["repo_url"] == "u"
        assert data["log"] == {"max_entries": 50}


class TestFileIO:
    def test_save_then_load(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "settings.toml"
        settings = SyncSettings(repo_url="git@example.com:me/v.git", commit_interval=7)

        save_settings(settings, path)

        assert load_settings(path) == settings
        assert not path.with_suffix(".toml.tmp").exists()

    def test_load_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_settings_data(tmp_path / "missing.toml")

    def test_load_malformed_file_raises_value_error(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.toml"
        path.write_text("[sync\ncommit_interval = ")

        with pytest.raises(ValueError, match="Invalid TOML"):
            load_settings_data(path)

    def test_default_file_loads_as_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "settings.toml"

        create_default_settings_file(path, repo_url='https://example.com/"quoted".git')

        settings = load_settings(path)
        assert settings.repo_url == 'https://example.com/"quoted".git'
        assert settings.commit_message == "Vault auto-sync: {{date}}"
        assert settings.commit_interval == 15
        assert "# Minutes between automatic syncs" in path.read_text()
