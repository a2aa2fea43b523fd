"""End-to-end sync runs against a bare remote and two clones."""

from pathlib import Path

import pytest

from tests.conftest import (
    InMemorySettingsStore,
    create_test_files,
    git_add_and_commit,
    head_sha,
    run_git,
    stash_count,
)
from vaultsync.adapters.git_cmd import GitAdapter
from vaultsync.adapters.notify import ConsoleNotifier
from vaultsync.core.sync import SyncOrchestrator
from vaultsync.domain.entities import SyncErrorKind, SyncStatus
from vaultsync.domain.settings import SyncSettings


@pytest.fixture
def store() -> InMemorySettingsStore:
    return InMemorySettingsStore(
        SyncSettings(repo_url="file:///remote.git", commit_message="sync {{date}}")
    )


def make_orchestrator(vault: Path, store, fixed_clock) -> SyncOrchestrator:
    return SyncOrchestrator(
        client=GitAdapter(vault),
        settings_store=store,
        notifier=ConsoleNotifier(quiet=True),
        clock=fixed_clock,
    )


def push_change(repo: Path, files: dict[str, str], message: str = "remote change") -> None:
    create_test_files(repo, files)
    git_add_and_commit(repo, message)
    run_git(repo, "push")


class TestSyncWorkflow:
    def test_clean_vault_is_up_to_date(self, remote_setup, store, fixed_clock) -> None:
        _, vault, _ = remote_setup

        outcome = make_orchestrator(vault, store, fixed_clock).run()

        assert outcome.status == SyncStatus.UP_TO_DATE
        assert store.get().last_sync == "2024-03-05 14:07:09"

    def test_local_edits_are_committed_and_pushed(self, remote_setup, store, fixed_clock) -> None:
        remote, vault, _ = remote_setup
        (vault / "welcome.md").write_text("# Welcome\n\nEdited.\n")
        create_test_files(vault, {"daily/today.md": "new note"})

        outcome = make_orchestrator(vault, store, fixed_clock).run()

        assert outcome.status == SyncStatus.SYNCED
        assert outcome.files_committed == 2
        assert head_sha(remote, "main") == head_sha(vault)
        assert run_git(vault, "log", "-1", "--format=%s").strip() == "sync 2024-03-05 14:07:09"
        assert stash_count(vault) == 0

    def test_remote_changes_rebased_under_local_edits(
        self, remote_setup, store, fixed_clock
    ) -> None:
        """Local edits survive a rebase onto new remote commits."""
        remote, vault, other = remote_setup
        push_change(other, {"from-other.md": "hello"})
        create_test_files(vault, {"from-vault.md": "mine"})

        outcome = make_orchestrator(vault, store, fixed_clock).run()

        assert outcome.status == SyncStatus.SYNCED
        assert (vault / "from-other.md").read_text() == "hello"
        assert (vault / "from-vault.md").read_text() == "mine"
        assert head_sha(remote, "main") == head_sha(vault)

    def test_only_remote_changes(self, remote_setup, store, fixed_clock) -> None:
        _, vault, other = remote_setup
        push_change(other, {"from-other.md": "hello"})

        outcome = make_orchestrator(vault, store, fixed_clock).run()

        assert outcome.status == SyncStatus.UP_TO_DATE
        assert (vault / "from-other.md").exists()

    def test_local_commits_are_pushed(self, remote_setup, store, fixed_clock) -> None:
        """Commits made outside vaultsync are rebased and published with the next sync."""
        remote, vault, other = remote_setup
        create_test_files(vault, {"manual.md": "committed by hand"})
        git_add_and_commit(vault, "manual commit")
        push_change(other, {"from-other.md": "hello"})
        create_test_files(vault, {"pending.md": "not committed"})

        outcome = make_orchestrator(vault, store, fixed_clock).run()

        assert outcome.status == SyncStatus.SYNCED
        messages = run_git(remote, "log", "--format=%s", "main").splitlines()
        assert messages[:3] == ["sync 2024-03-05 14:07:09", "manual commit", "remote change"]

    def test_rebase_conflict_is_aborted_and_stash_kept(
        self, remote_setup, store, fixed_clock
    ) -> None:
        remote, vault, other = remote_setup
        push_change(other, {"shared.md": "line one\nOTHER\nline three\n"})
        (vault / "shared.md").write_text("line one\nVAULT\nline three\n")
        git_add_and_commit(vault, "vault edit")
        create_test_files(vault, {"unsaved.md": "work in progress"})
        before = head_sha(vault)
        remote_before = head_sha(remote, "main")

        outcome = make_orchestrator(vault, store, fixed_clock).run()

        assert outcome.status == SyncStatus.FAILED
        assert outcome.error.kind == SyncErrorKind.CONFLICT_DURING_PULL_OR_REBASE
        assert outcome.error.recoverable
        assert outcome.stash_pending
        assert head_sha(vault) == before
        assert head_sha(remote, "main") == remote_before
        assert not (vault / ".git" / "rebase-merge").exists()
        assert stash_count(vault) == 1
        assert store.get().never_synced

    def test_stash_conflict_keeps_stash(self, remote_setup, store, fixed_clock) -> None:
        _, vault, other = remote_setup
        push_change(other, {"shared.md": "line one\nOTHER\nline three\n"})
        (vault / "shared.md").write_text("line one\nVAULT\nline three\n")

        outcome = make_orchestrator(vault, store, fixed_clock).run()

        assert outcome.error.kind == SyncErrorKind.STASH_APPLY_CONFLICT
        assert outcome.stash_pending
        assert stash_count(vault) == 1

    def test_branch_without_upstream_commits_locally(
        self, remote_setup, store, fixed_clock
    ) -> None:
        remote, vault, _ = remote_setup
        run_git(vault, "checkout", "-b", "offline")
        create_test_files(vault, {"offline.md": "x"})

        outcome = make_orchestrator(vault, store, fixed_clock).run()

        assert outcome.status == SyncStatus.COMMITTED_NOT_PUSHED
        assert outcome.warnings
        assert head_sha(remote, "main") != head_sha(vault)
        assert store.get().last_sync == "2024-03-05 14:07:09"

    def test_unreachable_remote_restores_nothing_and_reports(
        self, remote_setup, store, fixed_clock, tmp_path: Path
    ) -> None:
        _, vault, _ = remote_setup
        run_git(vault, "remote", "set-url", "origin", str(tmp_path / "missing.git"))
        create_test_files(vault, {"draft.md": "x"})

        outcome = make_orchestrator(vault, store, fixed_clock).run()

        assert outcome.status == SyncStatus.FAILED
        assert outcome.stash_pending
        assert stash_count(vault) == 1

    def test_vault_that_is_not_a_repository(self, tmp_path: Path, store, fixed_clock) -> None:
        plain = tmp_path / "plain"
        plain.mkdir()

        outcome = make_orchestrator(plain, store, fixed_clock).run()

        assert outcome.error.kind == SyncErrorKind.REPOSITORY_MISSING
