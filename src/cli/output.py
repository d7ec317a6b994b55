"""Terminal output handling using Rich library.

This module provides the OutputHandler class for all CLI terminal output:
colored status lines, spinners around network calls, and the status,
conflict and push reports. Supports verbosity levels and the --no-color flag.
"""

from contextlib import contextmanager
from typing import Iterator, List

from rich.console import Console
from rich.live import Live
from rich.spinner import Spinner

from src.github_client.contents_api import RemoteCommitResult
from src.sync.models import ChangeSource, ConflictInfo, RemoteCommitSummary, SyncChange, SyncRelation, SyncStatus

_RELATION_STYLES = {
    SyncRelation.IN_SYNC: "green",
    SyncRelation.AHEAD: "blue",
    SyncRelation.BEHIND: "red",
    SyncRelation.DIVERGED: "red",
    SyncRelation.UNKNOWN: "yellow",
    SyncRelation.UNCONFIGURED: "yellow",
    SyncRelation.INVALID_CREDENTIALS: "red",
}


_SOURCE_MARKERS = {
    ChangeSource.LOCAL: ("blue", "↑ local   "),
    ChangeSource.INCOMING: ("yellow", "↓ incoming"),
    ChangeSource.CONFLICT: ("red", "✗ conflict"),
}


def _short(ref) -> str:
    return ref[:7] if ref else "-"


class OutputHandler:
    """Handles all terminal output using Rich library.

    Attributes:
        verbosity: Verbosity level (0=summary, 1=info, 2=debug)
        console: Rich Console instance for output

    Example:
        >>> handler = OutputHandler(verbosity=1, no_color=False)
        >>> handler.success("Operation completed")
        >>> with handler.spinner("Checking remote..."):
        ...     pass
    """

    def __init__(self, verbosity: int = 0, no_color: bool = False):
        """Initialize output handler.

        Args:
            verbosity: Verbosity level (0=summary, 1=info, 2=debug)
            no_color: Disable color output if True
        """
        self.verbosity = verbosity
        self.console = Console(
            force_terminal=not no_color,
            no_color=no_color,
            highlight=False,
        )

    def success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {message}")

    def error(self, message: str) -> None:
        self.console.print(f"[red]✗[/red] {message}", style="red")

    def warning(self, message: str) -> None:
        self.console.print(f"[yellow]⚠[/yellow] {message}", style="yellow")

    def info(self, message: str) -> None:
        """Display info message (only if verbosity >= 1)."""
        if self.verbosity >= 1:
            self.console.print(message)

    def debug(self, message: str) -> None:
        """Display debug message (only if verbosity >= 2)."""
        if self.verbosity >= 2:
            self.console.print(f"[dim]{message}[/dim]")

    def print(self, message: str) -> None:
        self.console.print(message)

    @contextmanager
    def spinner(self, message: str) -> Iterator[None]:
        """Display spinner for single operations.

        Example:
            >>> with handler.spinner("Fetching sync status..."):
            ...     status = service.get_sync_status()
        """
        spinner = Spinner("dots", text=message)
        with Live(spinner, console=self.console, refresh_per_second=10, transient=True):
            yield

    def print_status(self, status: SyncStatus) -> None:
        """Display a sync status report."""
        style = _RELATION_STYLES.get(status.relation, "white")
        self.console.print(f"\n[bold]Sync Status:[/bold] [{style}]{status.relation.value}[/{style}]")

        if not status.configured:
            self.console.print("  Remote sync is not configured (set GITHUB_TOKEN and GITHUB_REPO_URL)")
            return

        if status.repo_url:
            self.console.print(f"  Repository: {status.repo_url} ({status.branch})")
        self.console.print(f"  Local commit:  {_short(status.local_ref)}")
        self.console.print(f"  Remote commit: {_short(status.remote_ref)}")
        if status.behind_by:
            self.console.print(f"  [red]↓[/red] Behind by {status.behind_by} commit(s)")
        if status.ahead_by:
            self.console.print(f"  [blue]↑[/blue] {status.ahead_by} local change(s) not pushed")
        if not status.sync_enabled:
            self.console.print("  [dim]Sync disabled (GITHUB_SYNC_ENABLED is not 'true')[/dim]")

    def print_conflicts(self, info: ConflictInfo, commits: List[RemoteCommitSummary]) -> None:
        """Display the remote commits the local copy is missing.

        Args:
            info: Conflict info as computed by the server
            commits: The commits to list, with authors already attributed
        """
        if not info.has_conflict:
            self.console.print("\n[green]No remote changes. Local copy is up to date.[/green]")
            return

        self.console.print(
            f"\n[bold]Remote has {info.behind_by} new commit(s)[/bold] "
            f"({_short(info.last_synced_ref)} → {_short(info.remote_ref)})"
        )
        for commit in commits:
            first_line = commit.message.splitlines()[0] if commit.message else ""
            self.console.print(f"  [yellow]{_short(commit.id)}[/yellow] {first_line}")
            self.console.print(f"    [dim]{commit.author} {commit.date}[/dim]")
            for path in commit.changed_files:
                self.console.print(f"      • {path}")

        if not commits and info.changed_files:
            self.console.print("  Changed files:")
            for path in info.changed_files:
                self.console.print(f"    • {path}")

    def print_changes(self, changes: List[SyncChange]) -> None:
        """Display local, incoming and conflicting file changes."""
        if not changes:
            self.console.print("\n[green]No local or remote changes.[/green]")
            return

        self.console.print(f"\n[bold]{len(changes)} changed file(s):[/bold]")
        for change in changes:
            style, marker = _SOURCE_MARKERS[change.source]
            self.console.print(f"  [{style}]{marker}[/{style}] {change.file} ({change.status})")
            if change.source != ChangeSource.LOCAL:
                commit = change.commit_id[:7] if change.commit_id else None
                details = " ".join(filter(None, [change.author, change.date, commit]))
                self.console.print(f"    [dim]{details}[/dim]")

    def print_push_summary(self, results: List[RemoteCommitResult]) -> None:
        """Display push results with color coding."""
        pushed = [r for r in results if r.success and not r.skipped]
        skipped = [r for r in results if r.skipped]
        failed = [r for r in results if not r.success]

        self.console.print("\n[bold]Push Summary:[/bold]")
        if pushed:
            self.console.print(f"  [green]↑[/green] Pushed: {len(pushed)} file(s)")
        if skipped:
            self.console.print(f"  [dim]─[/dim] Skipped: {len(skipped)} file(s) (sync disabled or not configured)")
        if failed:
            self.console.print(f"  [red]✗[/red] Failed: {len(failed)} file(s)")

        if not results:
            self.console.print("\n[green]Nothing to push. No local changes detected.[/green]")
        elif any(r.stale for r in failed):
            self.console.print("\n[red]Remote changed since the last sync. Run 'content-sync sync' first.[/red]")
        elif failed:
            self.console.print("\n[red]Push completed with errors[/red]")
        else:
            self.console.print("\n[green]Push completed successfully[/green]")
