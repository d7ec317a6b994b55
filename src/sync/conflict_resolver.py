"""User-facing resolution of "local copy is behind the remote".

When the sync monitor reports that the remote moved on, ConflictResolver
fetches the missing commits and holds them as a pending decision. The
decision cannot be dismissed; it ends only when the user either syncs
(and the editing surface reloads) or forces an override.
"""

import logging
import re
from dataclasses import replace
from typing import Callable, List, Optional

from .models import ConflictInfo, RemoteCommitSummary, SyncStatus
from .monitor import SyncMonitor

logger = logging.getLogger(__name__)

_AUTHOR_TAG = re.compile(r"\[Author:\s*([^\]]+)\]")

ConflictListener = Callable[[ConflictInfo], None]


def attributed_author(commit: RemoteCommitSummary) -> str:
    """Author named by an ``[Author: Name]`` tag in the message, else the commit author."""
    match = _AUTHOR_TAG.search(commit.message)
    return match.group(1).strip() if match else commit.author


class ConflictResolver:
    """Holds the pending sync decision and carries out the user's choice.

    Args:
        monitor: The sync monitor whose gate this resolver controls
        reload: Called after a successful sync to reload the editing surface
        confirm_force: Asked before a force override; returning False cancels it

    Example:
        >>> resolver = ConflictResolver(monitor, reload=page.reload)
        >>> resolver.attach()
        >>> if resolver.has_unresolved_conflict:
        ...     resolver.sync_and_reload()
    """

    def __init__(
        self,
        monitor: SyncMonitor,
        reload: Callable[[], None],
        confirm_force: Optional[Callable[[], bool]] = None,
    ):
        self._monitor = monitor
        self._reload = reload
        self._confirm_force = confirm_force
        self._pending: Optional[ConflictInfo] = None
        self._listeners: List[ConflictListener] = []

    def attach(self) -> None:
        """Fetch conflicts whenever the monitor newly reports the copy is behind."""
        self._monitor.add_behind_listener(self._on_behind)

    def _on_behind(self, status: SyncStatus) -> None:
        logger.info(f"Local copy is {status.relation.value}; checking remote commits")
        self.check_for_conflicts()

    def add_listener(self, listener: ConflictListener) -> None:
        """Call ``listener(conflict_info)`` when a conflict needs a decision."""
        self._listeners.append(listener)

    @property
    def pending(self) -> Optional[ConflictInfo]:
        return self._pending

    @property
    def has_unresolved_conflict(self) -> bool:
        return self._pending is not None

    def check_for_conflicts(self) -> Optional[ConflictInfo]:
        """Fetch conflict info and surface it if the remote has new commits.

        Returns:
            The conflict awaiting a decision, or None
        """
        info = self._monitor.fetch_conflict_info()
        if info is None or not info.has_conflict:
            return None

        self._pending = info
        logger.warning(f"Remote is {info.behind_by} commit(s) ahead of the local copy")
        for listener in self._listeners:
            listener(info)
        return info

    def describe_commits(self, info: Optional[ConflictInfo] = None) -> List[RemoteCommitSummary]:
        """Missing commits as presented to the user, in the order received.

        Authors are taken from ``[Author: Name]`` tags where present.
        """
        info = info or self._pending
        if info is None:
            return []
        return [replace(commit, author=attributed_author(commit)) for commit in info.commits]

    def sync_and_reload(self) -> bool:
        """Sync with the remote and reload the editing surface.

        Returns:
            True if the sync succeeded; the decision stays pending otherwise
        """
        if not self._monitor.sync_with_remote():
            logger.error("Sync failed; conflict remains unresolved")
            return False
        self._pending = None
        self._reload()
        return True

    def force_override(self) -> bool:
        """Allow edits while behind, after confirmation.

        The override only lifts the client-side gate; the next successful
        sync clears it.

        Returns:
            False if the user declined the confirmation
        """
        if self._confirm_force is not None and not self._confirm_force():
            return False
        self._monitor.enable_force_override()
        self._pending = None
        return True

    def dismiss(self) -> bool:
        """Close the decision without choosing.

        Refused while a conflict is unresolved.
        """
        if self._pending is not None:
            logger.debug("Dismiss refused: conflict requires sync or force override")
            return False
        return True
