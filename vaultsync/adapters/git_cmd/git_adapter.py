"""Git adapter implementing the VersionControlClient protocol with the git CLI."""

import logging
import os
import subprocess
from pathlib import Path

from vaultsync.domain.entities import (
    CommitInfo,
    FileChange,
    RepositorySnapshot,
    WorkingTreeState,
)
from vaultsync.domain.exceptions import VcsOperationError

logger = logging.getLogger(__name__)

# Field and record separators for `git log --format` (unit/record separator).
_LOG_FIELD_SEP = "\x1f"
_LOG_RECORD_SEP = "\x1e"
_LOG_FORMAT = "%H%x1f%an%x1f%ae%x1f%aI%x1f%s%x1e"

# Maps porcelain v2 XY status characters to WorkingTreeState.
# Unmerged entries ("U") are reported as modified and flagged separately.
_STATE_CODES: dict[str, WorkingTreeState] = {
    ".": WorkingTreeState.CLEAN,
    "M": WorkingTreeState.MODIFIED,
    "T": WorkingTreeState.MODIFIED,  # Type change (e.g., file -> symlink)
    "A": WorkingTreeState.ADDED,
    "D": WorkingTreeState.DELETED,
    "R": WorkingTreeState.RENAMED,
    "C": WorkingTreeState.ADDED,  # Copy: treat as added
    "U": WorkingTreeState.MODIFIED,
}

# Number of space-separated fields before the path, per entry type.
_FIELDS_BEFORE_PATH = {"1": 8, "2": 9, "u": 10}

_CONFLICT_MARKERS = ("CONFLICT", "could not apply", "Merge conflict")


def _state_for(code: str) -> WorkingTreeState:
    state = _STATE_CODES.get(code)
    if state is None:
        logger.warning(f"Unknown git status code '{code}'. Treating as modified.")
        return WorkingTreeState.MODIFIED
    return state


def _parse_branch_header(line: str, headers: dict[str, str]) -> None:
    """Collect a '# branch.<key> <value>' header line."""
    key, _, value = line[2:].partition(" ")
    headers[key] = value


def _parse_ahead_behind(value: str) -> tuple[int, int]:
    """Parse the '+<ahead> -<behind>' value of the branch.ab header."""
    try:
        ahead_str, behind_str = value.split()
        return int(ahead_str.lstrip("+")), int(behind_str.lstrip("-"))
    except ValueError:
        logger.warning(f"Unexpected branch.ab header '{value}'. Assuming 0/0.")
        return 0, 0


def _parse_porcelain_v2(output: str) -> RepositorySnapshot:
    """Parse `git status --porcelain=v2 --branch -z` output.

    Args:
        output: NUL-separated status output.

    Returns:
        RepositorySnapshot with branch information and per-path states.
    """
    records = output.split("\0")
    headers: dict[str, str] = {}
    files: list[FileChange] = []

    i = 0
    while i < len(records):
        record = records[i]
        i += 1
        if not record:
            continue

        kind = record[0]
        if kind == "#":
            _parse_branch_header(record, headers)
        elif kind == "?":
            files.append(
                FileChange(
                    path=record[2:],
                    worktree_state=WorkingTreeState.UNTRACKED,
                )
            )
        elif kind == "!":
            # Ignored files are never part of a sync
            continue
        elif kind in _FIELDS_BEFORE_PATH:
            parts = record.split(" ", _FIELDS_BEFORE_PATH[kind])
            if len(parts) <= _FIELDS_BEFORE_PATH[kind]:
                logger.warning(f"Malformed git status entry '{record}'. Skipping.")
                continue
            xy = parts[1]
            original_path = None
            if kind == "2" and i < len(records):
                # Renames/copies carry the original path as the next record
                original_path = records[i]
                i += 1
            files.append(
                FileChange(
                    path=parts[-1],
                    index_state=_state_for(xy[0]),
                    worktree_state=_state_for(xy[1]),
                    original_path=original_path,
                    unmerged=kind == "u",
                )
            )
        else:
            logger.warning(f"Unknown git status entry '{record}'. Skipping.")

    head = headers.get("branch.head")
    current_branch = None if head in (None, "(detached)") else head
    ahead, behind = _parse_ahead_behind(headers["branch.ab"]) if "branch.ab" in headers else (0, 0)

    return RepositorySnapshot(
        current_branch=current_branch,
        tracking_branch=headers.get("branch.upstream") or None,
        ahead=ahead,
        behind=behind,
        files=tuple(files),
    )


def _parse_log(output: str) -> list[CommitInfo]:
    """Parse `git log` output produced with _LOG_FORMAT."""
    commits: list[CommitInfo] = []
    for record in output.split(_LOG_RECORD_SEP):
        record = record.strip("\n")
        if not record:
            continue
        fields = record.split(_LOG_FIELD_SEP)
        if len(fields) != 5:
            logger.warning(f"Malformed git log record '{record[:60]}'. Skipping.")
            continue
        commit_hash, author_name, author_email, date, message = fields
        commits.append(
            CommitInfo(
                hash=commit_hash,
                author_name=author_name,
                author_email=author_email,
                date=date,
                message=message,
            )
        )
    return commits


class GitAdapter:
    """Git VCS adapter using subprocess calls to the git CLI.

    Args:
        repo_root: Path to the repository (the vault directory).
        network_timeout: Seconds before fetch/push give up (None = wait forever).
    """

    def __init__(self, repo_root: Path, network_timeout: float | None = None) -> None:
        self.repo_root = repo_root.resolve()
        self.network_timeout = network_timeout

    def _run_git(
        self,
        args: list[str],
        check: bool = True,
        timeout: float | None = None,
    ) -> subprocess.CompletedProcess[bytes]:
        """Run a git command in the repository.

        Args:
            args: Git command arguments (without 'git' prefix).
            check: Whether to raise CalledProcessError on non-zero exit.
            timeout: Seconds before the command is killed.

        Returns:
            CompletedProcess with command results.

        Raises:
            subprocess.CalledProcessError: If check=True and command fails.
            subprocess.TimeoutExpired: If the command exceeds timeout.
        """
        cmd = ["git", "-C", str(self.repo_root)] + args
        # Never block on an interactive credential prompt
        env = {**os.environ, "GIT_TERMINAL_PROMPT": "0"}
        logger.debug(f"Running {' '.join(cmd)}")
        return subprocess.run(
            cmd,
            capture_output=True,
            check=check,
            timeout=timeout,
            env=env,
        )

    @staticmethod
    def _decode(data: bytes | None) -> str:
        return data.decode("utf-8", errors="replace") if data else ""

    def _format_git_error(
        self,
        error: subprocess.CalledProcessError,
        context: str,
    ) -> str:
        """Format git error with full context.

        Args:
            error: The CalledProcessError from git command.
            context: Human-readable description of what was being done.

        Returns:
            Formatted error message with exit code and stderr.
        """
        stderr = self._decode(error.stderr).strip()

        msg = f"{context} (git exit code {error.returncode})"
        if stderr:
            msg += f": {stderr}"
        else:
            msg += " (no error output from git)"

        return msg

    def _git(
        self,
        args: list[str],
        operation: str,
        context: str,
        detect_conflict: bool = False,
        timeout: float | None = None,
    ) -> str:
        """Run a git command, converting failures into VcsOperationError.

        Returns:
            Decoded stdout of the command.
        """
        try:
            result = self._run_git(args, timeout=timeout)
        except subprocess.CalledProcessError as e:
            output = "\n".join(
                part for part in (self._decode(e.stdout), self._decode(e.stderr)) if part
            ).strip()
            conflict = detect_conflict and any(marker in output for marker in _CONFLICT_MARKERS)
            raise VcsOperationError(
                self._format_git_error(e, context),
                operation=operation,
                conflict=conflict,
                output=output,
            ) from e
        except subprocess.TimeoutExpired as e:
            raise VcsOperationError(
                f"{context}: git {operation} timed out after {timeout} seconds",
                operation=operation,
            ) from e
        except FileNotFoundError as e:
            raise VcsOperationError(
                "git executable not found. Ensure Git is installed and in your PATH.",
                operation=operation,
            ) from e
        return self._decode(result.stdout)

    def version(self) -> str:
        """Get the installed git version string (e.g. "git version 2.43.0")."""
        return self._git(["--version"], "version", "Failed to query git version").strip()

    def is_repository(self) -> bool:
        """Check if repo_root is inside a git repository."""
        try:
            self._run_git(["rev-parse", "--git-dir"], check=True)
            return True
        except (subprocess.CalledProcessError, FileNotFoundError):
            return False

    def status(self) -> RepositorySnapshot:
        output = self._git(
            ["status", "--porcelain=v2", "--branch", "-z", "--untracked-files=all"],
            "status",
            "Failed to get repository status",
        )
        return _parse_porcelain_v2(output)

    def fetch(self) -> None:
        self._git(
            ["fetch"],
            "fetch",
            "Failed to fetch from remote",
            timeout=self.network_timeout,
        )

    def _stash_ref(self) -> str | None:
        try:
            result = self._run_git(["rev-parse", "-q", "--verify", "refs/stash"])
        except subprocess.CalledProcessError:
            return None
        return self._decode(result.stdout).strip() or None

    def stash_push(self, label: str) -> bool:
        """Stash all local edits including untracked files.

        A stash counts as created only if refs/stash moved; `git stash push`
        exits 0 with "No local changes to save" when there is nothing to do.
        """
        before = self._stash_ref()
        self._git(
            ["stash", "push", "--include-untracked", "-m", label],
            "stash",
            "Failed to stash local changes",
        )
        after = self._stash_ref()
        return after is not None and after != before

    def stash_pop(self) -> None:
        self._git(
            ["stash", "pop"],
            "stash pop",
            "Failed to restore stashed changes",
            detect_conflict=True,
        )

    def rebase_onto(self, ref: str) -> None:
        self._git(
            ["rebase", ref],
            "rebase",
            f"Failed to rebase onto '{ref}'",
            detect_conflict=True,
        )

    def rebase_abort(self) -> None:
        self._git(["rebase", "--abort"], "rebase abort", "Failed to abort rebase")

    def stage_all(self) -> None:
        # -A stages new, modified and deleted paths; .gitignore is respected
        self._git(["add", "-A"], "add", "Failed to stage changes")

    def commit(self, message: str) -> None:
        self._git(["commit", "-m", message], "commit", "Failed to commit changes")

    def push(self) -> None:
        self._git(
            ["push"],
            "push",
            "Failed to push to remote",
            timeout=self.network_timeout,
        )

    def log(self, max_entries: int) -> list[CommitInfo]:
        try:
            result = self._run_git(["log", f"-n{max_entries}", f"--format={_LOG_FORMAT}"])
        except subprocess.CalledProcessError as e:
            stderr = self._decode(e.stderr)
            # Empty repository (no commits yet) has no history to show
            if "does not have any commits" in stderr or "bad default revision" in stderr:
                return []
            raise VcsOperationError(
                self._format_git_error(e, "Failed to read history"),
                operation="log",
                output=stderr,
            ) from e
        return _parse_log(self._decode(result.stdout))
