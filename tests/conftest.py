"""Pytest configuration and shared fixtures."""

import subprocess
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from vaultsync.adapters.settings import TomlSettingsStore
from vaultsync.domain.entities import (
    FileChange,
    RepositorySnapshot,
    WorkingTreeState,
)
from vaultsync.domain.settings import SyncSettings

# ============================================================================
# Git Repository Helpers
# ============================================================================
# These helpers consolidate git setup code to avoid duplication across tests.
# Use these functions in fixtures to create consistent test repositories.


def run_git(path: Path, *args: str) -> str:
    """Run a git command in path and return its stdout.

    Raises:
        subprocess.CalledProcessError: If the git command fails.
    """
    result = subprocess.run(
        ["git", *args],
        cwd=path,
        check=True,
        capture_output=True,
        text=True,
        timeout=10,
    )
    return result.stdout


def init_git_repo(
    path: Path,
    user_name: str = "Test User",
    user_email: str = "test@example.com",
) -> None:
    """Initialize a git repository with user configuration.

    Args:
        path: Directory to initialize as a git repository.
        user_name: Git user.name configuration value.
        user_email: Git user.email configuration value.

    Raises:
        subprocess.CalledProcessError: If git commands fail.
    """
    run_git(path, "init")
    configure_git_user(path, user_name=user_name, user_email=user_email)


def configure_git_user(
    path: Path,
    user_name: str = "Test User",
    user_email: str = "test@example.com",
) -> None:
    run_git(path, "config", "user.name", user_name)
    run_git(path, "config", "user.email", user_email)
    run_git(path, "config", "commit.gpgsign", "false")


def git_add_and_commit(
    path: Path,
    message: str = "Initial commit",
    add_all: bool = True,
) -> None:
    """Stage files and create a git commit.

    Args:
        path: Git repository root directory.
        message: Commit message.
        add_all: If True, stages all files with 'git add -A'.

    Raises:
        subprocess.CalledProcessError: If git commands fail.
    """
    if add_all:
        run_git(path, "add", "-A")
    run_git(path, "commit", "-m", message)


def create_test_files(path: Path, files: dict[str, str]) -> None:
    """Create multiple files in a directory.

    Args:
        path: Base directory for file creation.
        files: Mapping of relative file paths to file contents.
               Parent directories are created automatically.

    Example:
        create_test_files(vault, {
            "daily/2024-01-01.md": "# New year",
            "ideas.md": "- sync notes",
        })
    """
    for file_path, content in files.items():
        full_path = path / file_path
        full_path.parent.mkdir(parents=True, exist_ok=True)
        full_path.write_text(content)


def create_git_repo(
    path: Path,
    files: dict[str, str] | None = None,
    commit_message: str = "Initial commit",
) -> Path:
    """Create a git repository on branch main with optional files.

    Args:
        path: Directory for the repository (created if doesn't exist).
        files: Optional mapping of file paths to contents.
        commit_message: Message for the initial commit.

    Returns:
        Path to the repository root.
    """
    path.mkdir(parents=True, exist_ok=True)
    init_git_repo(path)
    run_git(path, "symbolic-ref", "HEAD", "refs/heads/main")

    if files:
        create_test_files(path, files)
        git_add_and_commit(path, message=commit_message)

    return path


def clone_repo(remote: Path, path: Path) -> Path:
    """Clone remote into path and configure the commit identity."""
    run_git(remote.parent, "clone", str(remote), str(path))
    configure_git_user(path)
    return path


def head_sha(path: Path, ref: str = "HEAD") -> str:
    return run_git(path, "rev-parse", ref).strip()


def stash_count(path: Path) -> int:
    return len(run_git(path, "stash", "list").splitlines())


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """Create a standalone git repository with a few notes.

    Returns:
        Path to the git repository root.
    """
    return create_git_repo(
        tmp_path / "notes",
        files={
            "welcome.md": "# Welcome\n\nFirst note.\n",
            "daily/2024-01-01.md": "- wrote a sync tool\n",
        },
    )


@pytest.fixture
def remote_setup(tmp_path: Path) -> tuple[Path, Path, Path]:
    """Create a bare remote with two clones tracking origin/main.

    Creates:
    - seed: scratch repository holding the initial commit
    - remote.git: bare repository cloned from seed
    - vault: the clone under test
    - other: a second clone used to push competing changes

    Returns:
        Tuple of (remote, vault, other) paths.
    """
    seed = create_git_repo(
        tmp_path / "seed",
        files={
            "welcome.md": "# Welcome\n\nFirst note.\n",
            "shared.md": "line one\nline two\nline three\n",
        },
    )
    remote = tmp_path / "remote.git"
    run_git(tmp_path, "clone", "--bare", str(seed), str(remote))

    vault = clone_repo(remote, tmp_path / "vault")
    other = clone_repo(remote, tmp_path / "other")
    return remote, vault, other


# ============================================================================
# Port Doubles
# ============================================================================


def make_snapshot(
    branch: str | None = "main",
    tracking: str | None = "origin/main",
    ahead: int = 0,
    behind: int = 0,
    files: tuple[FileChange, ...] = (),
) -> RepositorySnapshot:
    """Build a RepositorySnapshot for mocked status() calls."""
    return RepositorySnapshot(
        current_branch=branch,
        tracking_branch=tracking,
        ahead=ahead,
        behind=behind,
        files=files,
    )


MODIFIED_NOTE = FileChange(path="note.md", worktree_state=WorkingTreeState.MODIFIED)
STAGED_NOTE = FileChange(path="note.md", index_state=WorkingTreeState.MODIFIED)
UNTRACKED_NOTE = FileChange(path="new.md", worktree_state=WorkingTreeState.UNTRACKED)


@pytest.fixture
def mock_client() -> MagicMock:
    """Create a mock VersionControlClient for a clean, up-to-date vault.

    status() returns a clean snapshot on main tracking origin/main and
    stash_push() reports that a stash was created. Tests override
    status.side_effect to script the snapshots of a run.
    """
    client = MagicMock()
    client.status.return_value = make_snapshot()
    client.stash_push.return_value = True
    client.log.return_value = []
    return client


class InMemorySettingsStore:
    """SettingsStore double that records every save."""

    def __init__(self, settings: SyncSettings | None = None) -> None:
        self.settings = settings or SyncSettings(repo_url="git@example.com:me/vault.git")
        self.saved: list[SyncSettings] = []
        self.observers = []
        self.reloads = 0

    def get(self) -> SyncSettings:
        return self.settings

    def save(self, settings: SyncSettings) -> None:
        old = self.settings
        self.settings = settings
        self.saved.append(settings)
        for observer in self.observers:
            observer(old, settings)

    def update(self, **changes) -> SyncSettings:
        self.save(replace(self.settings, **changes))
        return self.settings

    def reload(self) -> SyncSettings:
        self.reloads += 1
        return self.settings

    def subscribe(self, observer) -> None:
        self.observers.append(observer)


@pytest.fixture
def settings_store() -> InMemorySettingsStore:
    """In-memory settings store with a repository URL configured."""
    return InMemorySettingsStore()


@pytest.fixture
def notifier() -> MagicMock:
    """Mock Notifier recording status() and notify() calls."""
    return MagicMock()


@pytest.fixture
def fixed_clock():
    """Clock returning 2024-03-05 14:07:09."""
    return lambda: datetime(2024, 3, 5, 14, 7, 9)


@pytest.fixture
def settings_file(tmp_path: Path) -> Path:
    """Path for a settings.toml that does not exist yet."""
    return tmp_path / "config" / "vaultsync" / "settings.toml"


@pytest.fixture
def toml_store(settings_file: Path) -> TomlSettingsStore:
    return TomlSettingsStore(settings_file)
