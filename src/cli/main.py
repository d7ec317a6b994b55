"""Main CLI entry point for the content-sync command.

This module provides the Typer application that serves as the entry point
for the content-sync command-line tool. Each command works either on a local
working copy (``--root``) against the hosted Git API, or, with ``--server``,
through a running content server's sync endpoints.
"""

import logging
import os
import sys
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import List, NoReturn, Optional

import typer

from src.cli.errors import WorkingCopyNotFoundError
from src.cli.models import ExitCode
from src.cli.output import OutputHandler
from src.content_client.api_client import ContentAPIClient
from src.content_client.errors import APIUnreachableError, InvalidCredentialsError, SyncError
from src.git_integration import GitRepository
from src.git_integration.git_repository import NO_CHANGES_ERROR
from src.github_client import GitHubContentsClient, RemoteCommitResult
from src.sync import (
    ChangeSource,
    SyncMonitor,
    SyncRelation,
    SyncStateManager,
    SyncStatusService,
    attributed_author,
)
from src.sync.status_service import BEHIND_REMOTE_ERROR

__version__ = "0.1.0"

app = typer.Typer(
    name="content-sync",
    help="""Keep edited page content in sync with the shared content repository.

QUICK START:
  content-sync status              # Compare local copy with the remote branch
  content-sync conflicts           # List remote commits not yet synced
  content-sync changes             # List local, incoming and conflicting files
  content-sync sync                # Pull remote changes and record the sync
  content-sync commit -m "msg"     # Commit content changes to the local repository
  content-sync push                # Push pending content files to the remote branch

Add --server to status, conflicts and sync to go through the content server
(CONTENT_API_URL) instead of the local working copy.""",
    add_completion=False,
    rich_markup_mode=None,
    no_args_is_help=True,
)

# Module logger
logger = logging.getLogger(__name__)

ROOT_OPTION = typer.Option(".", "--root", help="Root of the content working copy")
SERVER_OPTION = typer.Option(False, "--server", help="Use the content server's sync endpoints")
LOGDIR_OPTION = typer.Option(None, "--logdir", help="Directory for log files (creates timestamped log file)")
VERBOSITY_OPTION = typer.Option(0, "--verbosity", "-v", help="Verbosity level: 0=summary, 1=info, 2=debug")
NO_COLOR_OPTION = typer.Option(False, "--no-color", help="Disable colored output")


def _configure_logging(verbosity: int, logdir: Optional[str] = None) -> None:
    """Configure logging based on verbosity level.

    Configures only the 'src' namespace logger to avoid affecting third-party
    libraries. The root logger is left unchanged.

    Args:
        verbosity: Verbosity level (0=WARNING, 1=INFO, 2=DEBUG)
        logdir: Optional directory for log files (creates timestamped log file)
    """
    if verbosity == 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:  # verbosity >= 2
        level = logging.DEBUG

    app_logger = logging.getLogger("src")
    app_logger.setLevel(level)
    for handler in list(app_logger.handlers):
        app_logger.removeHandler(handler)
        handler.close()

    date_format = "%Y-%m-%d %H:%M:%S"
    formatter = logging.Formatter("%(asctime)s [%(levelname)8s] %(message)s", datefmt=date_format)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    app_logger.addHandler(console_handler)

    if logdir:
        log_path = Path(logdir)
        log_path.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = log_path / f"content-sync_{timestamp}.log"

        file_formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt=date_format
        )
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(file_formatter)
        app_logger.addHandler(file_handler)

        logger.info(f"Logging to file: {log_file}")


def _setup(verbosity: int, logdir: Optional[str], no_color: bool) -> OutputHandler:
    _configure_logging(verbosity, logdir)
    return OutputHandler(verbosity=verbosity, no_color=no_color)


def _resolve_root(root: str) -> str:
    root_dir = os.path.abspath(root)
    if not os.path.isdir(root_dir):
        raise WorkingCopyNotFoundError(root_dir)
    return root_dir


def _local_service(root: str) -> SyncStatusService:
    return SyncStatusService(SyncStateManager(_resolve_root(root)), GitHubContentsClient())


def _exit_code_for(error: Exception) -> ExitCode:
    if isinstance(error, InvalidCredentialsError):
        return ExitCode.AUTH_ERROR
    if isinstance(error, APIUnreachableError):
        return ExitCode.NETWORK_ERROR
    return ExitCode.GENERAL_ERROR


def _fail(output: OutputHandler, error: Exception) -> NoReturn:
    """Report an error and exit with the matching code."""
    if isinstance(error, SyncError):
        logger.error(f"{type(error).__name__}: {error}")
        output.error(str(error))
    else:
        logger.exception("Unexpected error")
        output.error(f"Unexpected error: {error}")
    raise typer.Exit(_exit_code_for(error))


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"content-sync version {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Keep edited page content in sync with the shared content repository."""


@app.command()
def status(
    root: str = ROOT_OPTION,
    server: bool = SERVER_OPTION,
    logdir: Optional[str] = LOGDIR_OPTION,
    verbosity: int = VERBOSITY_OPTION,
    no_color: bool = NO_COLOR_OPTION,
) -> None:
    """Show how the local copy relates to the remote branch.

    Exits with code 2 when the local copy is behind the remote.
    """
    output = _setup(verbosity, logdir, no_color)

    try:
        with output.spinner("Checking sync status..."):
            if server:
                sync_status = ContentAPIClient().get_sync_status()
            else:
                sync_status = _local_service(root).get_sync_status()
    except Exception as e:
        _fail(output, e)

    output.print_status(sync_status)

    if sync_status.relation == SyncRelation.INVALID_CREDENTIALS:
        raise typer.Exit(ExitCode.AUTH_ERROR)
    if sync_status.is_behind:
        raise typer.Exit(ExitCode.CONFLICTS)
    raise typer.Exit(ExitCode.SUCCESS)


@app.command()
def conflicts(
    root: str = ROOT_OPTION,
    server: bool = SERVER_OPTION,
    logdir: Optional[str] = LOGDIR_OPTION,
    verbosity: int = VERBOSITY_OPTION,
    no_color: bool = NO_COLOR_OPTION,
) -> None:
    """List the remote commits the local copy has not synced yet.

    Exits with code 2 when there are any.
    """
    output = _setup(verbosity, logdir, no_color)

    try:
        with output.spinner("Fetching remote commits..."):
            if server:
                info = ContentAPIClient().get_conflict_info()
            else:
                info = _local_service(root).get_conflict_info()
    except Exception as e:
        _fail(output, e)

    commits = [replace(commit, author=attributed_author(commit)) for commit in info.commits]
    output.print_conflicts(info, commits)
    raise typer.Exit(ExitCode.CONFLICTS if info.has_conflict else ExitCode.SUCCESS)


@app.command()
def changes(
    root: str = ROOT_OPTION,
    logdir: Optional[str] = LOGDIR_OPTION,
    verbosity: int = VERBOSITY_OPTION,
    no_color: bool = NO_COLOR_OPTION,
) -> None:
    """List local changes to push and remote changes to pull.

    Exits with code 2 when a file changed on both sides.
    """
    output = _setup(verbosity, logdir, no_color)

    try:
        service = _local_service(root)
        with output.spinner("Collecting changes..."):
            all_changes = service.get_all_sync_changes()
    except Exception as e:
        _fail(output, e)

    output.print_changes(all_changes)
    if any(change.source == ChangeSource.CONFLICT for change in all_changes):
        raise typer.Exit(ExitCode.CONFLICTS)
    raise typer.Exit(ExitCode.SUCCESS)


@app.command()
def sync(
    root: str = ROOT_OPTION,
    server: bool = SERVER_OPTION,
    force: bool = typer.Option(
        False,
        "--force",
        help="Overwrite local changes to files that also changed remotely",
    ),
    logdir: Optional[str] = LOGDIR_OPTION,
    verbosity: int = VERBOSITY_OPTION,
    no_color: bool = NO_COLOR_OPTION,
) -> None:
    """Bring the local copy up to date with the remote branch.

    Every remotely changed file is fetched first; if any fetch fails nothing
    is written and the copy stays behind. Otherwise the files are written
    and the sync is recorded at the remote head, leaving local edits to
    other files pending. Files changed both locally and remotely stop the
    sync (exit code 2) unless --force is given.
    """
    output = _setup(verbosity, logdir, no_color)

    if server:
        try:
            monitor = SyncMonitor(ContentAPIClient())
        except Exception as e:
            _fail(output, e)
        with output.spinner("Syncing with remote..."):
            ok = monitor.sync_with_remote()
        if not ok:
            output.error("Content server failed to sync with the remote")
            raise typer.Exit(ExitCode.GENERAL_ERROR)
        output.success("Content server synced with the remote")
        raise typer.Exit(ExitCode.SUCCESS)

    try:
        service = _local_service(root)
        with output.spinner("Checking for conflicting changes..."):
            check = service.check_pull_conflicts()

        if check.error:
            output.error(f"Could not read remote changes: {check.error}")
            raise typer.Exit(ExitCode.GENERAL_ERROR)

        if check.has_conflicts and not force:
            output.error("Local changes conflict with remote changes:")
            for path in check.conflicting_files:
                output.print(f"  • {path}")
            output.print("Commit or discard the local changes, or re-run with --force.")
            raise typer.Exit(ExitCode.CONFLICTS)

        with output.spinner("Pulling remote changes..."):
            result = service.pull_remote_changes(check)
    except typer.Exit:
        raise
    except Exception as e:
        _fail(output, e)

    if not result.success:
        output.error(f"Sync failed: {result.error}")
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    for path in result.files:
        output.debug(f"Pulled {path}")
    output.success(f"Synced to {(result.commit_id or '')[:7]} ({len(result.files)} file(s) pulled)")
    raise typer.Exit(ExitCode.SUCCESS)


@app.command()
def commit(
    message: str = typer.Option(..., "--message", "-m", help="Commit message"),
    author_name: Optional[str] = typer.Option(None, "--author-name", help="Commit author name"),
    author_email: Optional[str] = typer.Option(None, "--author-email", help="Commit author email"),
    root: str = ROOT_OPTION,
    logdir: Optional[str] = LOGDIR_OPTION,
    verbosity: int = VERBOSITY_OPTION,
    no_color: bool = NO_COLOR_OPTION,
) -> None:
    """Commit content changes to the local git repository.

    The author is set only when both --author-name and --author-email are given.
    """
    output = _setup(verbosity, logdir, no_color)

    try:
        repo = GitRepository(_resolve_root(root))
        result = repo.commit(message, author_name, author_email)
    except Exception as e:
        _fail(output, e)

    if result.success:
        output.success(f"Committed {result.commit_id or ''}".rstrip())
        raise typer.Exit(ExitCode.SUCCESS)
    if result.error == NO_CHANGES_ERROR:
        output.warning("No content changes to commit")
        raise typer.Exit(ExitCode.SUCCESS)
    output.error(f"Commit failed: {result.error}")
    raise typer.Exit(ExitCode.GENERAL_ERROR)


@app.command()
def push(
    file: Optional[str] = typer.Argument(
        None,
        help="Content file to push (pushes every pending file when omitted)",
    ),
    message: str = typer.Option("Update content", "--message", "-m", help="Commit message"),
    author: Optional[str] = typer.Option(
        None,
        "--author",
        envvar="CONTENT_AUTHOR",
        help="Author name recorded as [Author: name] in the commit message",
    ),
    force: bool = typer.Option(False, "--force", help="Push even when the remote has new commits"),
    root: str = ROOT_OPTION,
    logdir: Optional[str] = LOGDIR_OPTION,
    verbosity: int = VERBOSITY_OPTION,
    no_color: bool = NO_COLOR_OPTION,
) -> None:
    """Commit local content files to the remote branch, one commit per file.

    Exits with code 2 when the remote moved on since the last sync.
    """
    output = _setup(verbosity, logdir, no_color)

    try:
        service = _local_service(root)
        with output.spinner("Pushing content..."):
            if file:
                results = [service.commit_file(file, message, author=author, force=force)]
            else:
                results = service.commit_pending(message, author=author, force=force)
    except Exception as e:
        _fail(output, e)

    for result in results:
        if result.success and result.commit_url:
            output.info(f"  {result.commit_url}")
        elif not result.success:
            output.error(result.error or "Push failed")

    output.print_push_summary(results)
    raise typer.Exit(_push_exit_code(results))


def _push_exit_code(results: List[RemoteCommitResult]) -> ExitCode:
    failed = [r for r in results if not r.success]
    if not failed:
        return ExitCode.SUCCESS
    if any(r.stale or r.error == BEHIND_REMOTE_ERROR for r in failed):
        return ExitCode.CONFLICTS
    return ExitCode.GENERAL_ERROR


def main() -> None:
    """Main entry point for the CLI application."""
    app()


# Allow running as: python -m src.cli.main
if __name__ == "__main__":
    main()
