"""vaultsync CLI entrypoint.

Command-line interface for keeping a notes vault in sync with a remote git
repository.
"""

from __future__ import annotations

import functools
import logging
import sys
import threading
from pathlib import Path
from typing import TYPE_CHECKING

import click

if TYPE_CHECKING:
    from vaultsync.adapters.notify import ConsoleNotifier
    from vaultsync.ports.settings import SettingsStore
    from vaultsync.ports.vcs import VcsCapability, VersionControlClient

from vaultsync.core.errors import (
    VaultSyncCliError,
    git_unavailable_error,
    not_a_repository_error,
    unknown_setting_error,
)
from vaultsync.domain.entities import SyncStatus
from vaultsync.domain.exceptions import VaultSyncError
from vaultsync.version import __version__

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def handle_cli_errors(command_name: str):
    """Decorator to handle common CLI errors.

    VaultSyncCliError and click's own exit signals propagate unchanged.
    Domain errors are converted using their message and hint. Anything else
    becomes a generic error, with a traceback in verbose mode.

    Args:
        command_name: Name of the command for error messages.

    Returns:
        Decorated function with error handling.
    """

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except (VaultSyncCliError, click.exceptions.Exit, click.Abort):
                raise
            except VaultSyncError as e:
                raise VaultSyncCliError(e.message, hint=e.hint) from e
            except RuntimeError as e:
                raise VaultSyncCliError(
                    str(e),
                    hint="Run with --verbose for more details",
                ) from e
            except Exception as e:
                ctx = click.get_current_context()
                if ctx.obj.get("verbose", False):
                    import traceback

                    traceback.print_exc()
                raise VaultSyncCliError(
                    f"Unexpected error in {command_name}: {e}",
                    hint="Run with --verbose for more details",
                ) from e

        return wrapper

    return decorator


def _configure_logging(verbose: bool, default_level: int = logging.WARNING) -> None:
    """Configure root logging for a command.

    Args:
        verbose: Select DEBUG regardless of default_level.
        default_level: Level used without --verbose.
    """
    level = logging.DEBUG if verbose else default_level
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)
    logging.getLogger().setLevel(level)


def _settings_store(ctx: click.Context) -> SettingsStore:
    from vaultsync.adapters.factory import create_settings_store

    return create_settings_store(ctx.obj.get("settings_path"))


def _notifier(ctx: click.Context, show_status: bool = False) -> ConsoleNotifier:
    from vaultsync.adapters.notify import ConsoleNotifier

    return ConsoleNotifier(quiet=ctx.obj.get("quiet", False), show_status=show_status)


def _negotiate(ctx: click.Context, repo_root: Path) -> VcsCapability:
    from vaultsync.adapters.factory import negotiate_vcs_client

    return negotiate_vcs_client(repo_root, network_timeout=ctx.obj.get("timeout"))


def _require_client(ctx: click.Context) -> VersionControlClient:
    """Negotiate a git client for --repo, raising a CLI error if unavailable."""
    repo_root: Path = ctx.obj["repo_root"]
    capability = _negotiate(ctx, repo_root)
    if not capability.ready:
        git_unavailable_error(capability.reason or "Git is unavailable.")
    assert capability.client is not None
    return capability.client


@click.group()
@click.version_option(version=__version__, prog_name="vaultsync")
@click.option(
    "--repo",
    "repo",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Vault directory (default: current directory).",
)
@click.option(
    "--settings",
    "settings_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Settings file (default: ~/.config/vaultsync/settings.toml).",
)
@click.option(
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Seconds before a fetch or push gives up.",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose output.",
)
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    help="Suppress non-essential output.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    repo: Path | None,
    settings_path: Path | None,
    timeout: float | None,
    verbose: bool,
    quiet: bool,
) -> None:
    """vaultsync - Keep a notes vault in sync with a git remote.

    Stashes local edits, rebases onto the remote, commits and pushes.
    """
    ctx.ensure_object(dict)
    ctx.obj["repo_root"] = (repo or Path.cwd()).resolve()
    ctx.obj["settings_path"] = settings_path
    ctx.obj["timeout"] = timeout
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    _configure_logging(verbose)


@cli.command()
@click.pass_context
@handle_cli_errors("sync")
def sync(ctx: click.Context) -> None:
    """Sync the vault with its remote now.

    Exits with status 1 if the sync failed.
    """
    from rich.console import Console

    from vaultsync.core.sync import SyncOrchestrator

    client = _require_client(ctx)
    orchestrator = SyncOrchestrator(
        client=client,
        settings_store=_settings_store(ctx),
        notifier=_notifier(ctx),
    )

    if ctx.obj.get("quiet", False):
        outcome = orchestrator.run()
    else:
        console = Console(stderr=True)
        with console.status("Syncing vault...", spinner="dots"):
            outcome = orchestrator.run()

    if outcome.status == SyncStatus.FAILED:
        if outcome.stash_pending:
            click.echo("  Your changes are in 'git stash list'.", err=True)
        ctx.exit(1)

    if outcome.files_committed and not ctx.obj.get("quiet", False):
        click.echo(f"  Committed {outcome.files_committed} file(s)")


@cli.command()
@click.option(
    "-n",
    "--max-entries",
    "max_entries",
    type=click.IntRange(min=1),
    default=None,
    help="Number of commits to show (default: log max_entries setting).",
)
@click.pass_context
@handle_cli_errors("log")
def log(ctx: click.Context, max_entries: int | None) -> None:
    """Show recent commits of the vault repository."""
    client = _require_client(ctx)
    if not client.is_repository():
        not_a_repository_error(str(ctx.obj["repo_root"]))

    limit = max_entries or _settings_store(ctx).get().log_max_entries
    commits = client.log(limit)

    if not commits:
        click.echo("No commits yet.")
        return

    for commit in commits:
        click.echo(
            f"{click.style(commit.short_hash, fg='yellow')} "
            f"{commit.date}  {click.style(commit.author_name, fg='cyan')}  "
            f"{commit.message}"
        )


@cli.command()
@click.pass_context
@handle_cli_errors("status")
def status(ctx: click.Context) -> None:
    """Show repository state and sync settings.

    Does not contact the remote; ahead/behind counts reflect the last fetch.
    """
    repo_root: Path = ctx.obj["repo_root"]
    client = _require_client(ctx)
    if not client.is_repository():
        not_a_repository_error(str(repo_root))

    snapshot = client.status()
    settings = _settings_store(ctx).get()

    click.echo(f"✓ Vault at {repo_root}\n")

    click.echo("Repository:")
    click.echo(f"  Branch: {snapshot.current_branch or '(none)'}")
    if snapshot.tracking_branch:
        click.echo(f"  Tracking: {snapshot.tracking_branch}")
        click.echo(f"  Ahead: {snapshot.ahead}, behind: {snapshot.behind}")
    else:
        click.echo(f"  Tracking: {click.style('⚠ none', fg='yellow')}")

    changed = [change for change in snapshot.files if not change.is_clean]
    if changed:
        click.echo(
            f"  Local changes: {click.style(f'{len(changed)} path(s)', fg='yellow')}"
        )
    else:
        click.echo(f"  Local changes: {click.style('none', fg='green')}")

    click.echo("\nSync:")
    click.echo(f"  Remote: {settings.repo_url or click.style('(not set)', fg='yellow')}")
    click.echo(f"  Last sync: {settings.last_sync}")
    if settings.auto_sync:
        click.echo(f"  Auto-sync: every {settings.commit_interval} minute(s)")
    else:
        click.echo("  Auto-sync: disabled")


def _wait_for_interrupt() -> None:
    """Block the main thread until Ctrl+C."""
    stop = threading.Event()
    while not stop.wait(1.0):
        pass


@cli.command()
@click.option(
    "--no-initial-sync",
    is_flag=True,
    help="Do not sync immediately on start.",
)
@click.pass_context
@handle_cli_errors("watch")
def watch(ctx: click.Context, no_initial_sync: bool) -> None:
    """Sync automatically in the foreground until interrupted.

    Runs a sync every commit_interval minutes while auto_sync is enabled.
    Press Ctrl+C to stop.
    """
    from vaultsync.core.plugin import SyncContext, SyncPlugin

    _configure_logging(ctx.obj.get("verbose", False), default_level=logging.INFO)

    store = _settings_store(ctx)
    plugin = SyncPlugin()
    plugin.init(
        SyncContext(
            vault_path=ctx.obj["repo_root"],
            settings_store=store,
            notifier=_notifier(ctx, show_status=True),
            negotiate=lambda path: _negotiate(ctx, path),
            initial_sync=not no_initial_sync,
        )
    )

    try:
        assert plugin.capability is not None
        if not plugin.capability.ready:
            git_unavailable_error(plugin.capability.reason or "Git is unavailable.")

        assert plugin.scheduler is not None
        if not plugin.scheduler.is_running:
            raise VaultSyncCliError(
                "Auto-sync is disabled",
                hint="Enable it with 'vaultsync settings set auto_sync true'",
            )

        click.echo(
            f"Watching {ctx.obj['repo_root']} "
            f"(every {plugin.scheduler.interval_minutes} minute(s)). Press Ctrl+C to stop."
        )
        try:
            _wait_for_interrupt()
        except KeyboardInterrupt:
            click.echo("\nStopping...")
    finally:
        plugin.shutdown()


# Settings management commands
@cli.group()
def settings() -> None:
    """Manage vaultsync settings.

    Settings are stored in a TOML file outside the vault.
    """
    pass


def _settings_file(ctx: click.Context) -> Path:
    from vaultsync.shared.settings_io import get_settings_path

    return ctx.obj.get("settings_path") or get_settings_path()


@settings.command(name="show")
@click.pass_context
@handle_cli_errors("settings show")
def settings_show(ctx: click.Context) -> None:
    """Show the settings file location and effective settings."""
    import tomli_w

    from vaultsync.shared.settings_io import sync_settings_to_data

    path = _settings_file(ctx)
    if path.exists():
        click.echo(f"Settings file: {path}\n")
    else:
        click.echo(f"Settings file: {path} (not created, showing defaults)\n")

    current = _settings_store(ctx).get()
    click.echo(tomli_w.dumps(sync_settings_to_data(current)).rstrip())


@settings.command(name="path")
@click.pass_context
def settings_path(ctx: click.Context) -> None:
    """Print the settings file path."""
    click.echo(_settings_file(ctx))


@settings.command(name="init")
@click.option("--repo-url", default="", help="Remote repository URL to pre-fill.")
@click.option("--force", "-f", is_flag=True, help="Overwrite an existing settings file.")
@click.pass_context
@handle_cli_errors("settings init")
def settings_init(ctx: click.Context, repo_url: str, force: bool) -> None:
    """Create a settings file with defaults and comments."""
    from vaultsync.shared.settings_io import create_default_settings_file

    path = _settings_file(ctx)
    if path.exists() and not force:
        raise VaultSyncCliError(
            f"Settings file already exists: {path}",
            hint="Use --force to overwrite it",
        )

    create_default_settings_file(path, repo_url=repo_url.strip())
    click.echo(f"✓ Created settings at {path}")


@settings.command(name="set")
@click.argument("key")
@click.argument("value")
@click.pass_context
@handle_cli_errors("settings set")
def settings_set(ctx: click.Context, key: str, value: str) -> None:
    """Change one setting.

    Invalid values are clamped to the nearest valid value (for example, an
    interval below 1 becomes 1).
    """
    from vaultsync.shared.settings_io import SETTING_LOCATIONS, clamp_setting

    if key not in SETTING_LOCATIONS:
        unknown_setting_error(key, list(SETTING_LOCATIONS))

    store = _settings_store(ctx)
    clamped = clamp_setting(key, value)
    store.update(**{key: clamped})

    shown = str(clamped).lower() if isinstance(clamped, bool) else clamped
    click.echo(f"✓ Set {key} = {shown}")


def main() -> int:
    """Main entrypoint for the CLI."""
    try:
        cli(obj={})
        return 0
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
