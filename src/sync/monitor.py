"""Client-side sync status polling and the editing gate.

SyncMonitor keeps the most recent SyncStatus reported by the content server,
refreshing it on a fixed interval from a background thread and whenever the
editor window regains focus. From that status it derives the process-wide
"editing disabled" gate the edit session consults before saving.
"""

import logging
import threading
from typing import Callable, List, Optional

from src.content_client.errors import SyncError

from .models import ConflictInfo, SyncStatus

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 60.0

BehindListener = Callable[[SyncStatus], None]


class SyncMonitor:
    """Polls sync status and owns the editing gate.

    The client must provide ``get_sync_status()``, ``get_conflict_info()``
    and ``trigger_sync()`` (ContentAPIClient does).

    Editing is disabled while the local copy is behind the remote, sync is
    enabled, and the user has not forced an override. When that condition
    becomes true, registered behind-listeners are called once (the conflict
    resolver registers itself to fetch conflict details).

    Example:
        >>> monitor = SyncMonitor(ContentAPIClient())
        >>> monitor.add_behind_listener(lambda status: resolver.check_for_conflicts())
        >>> monitor.start()
        >>> monitor.editing_disabled
        False
        >>> monitor.stop()
    """

    def __init__(self, client, poll_interval: float = DEFAULT_POLL_INTERVAL):
        self._client = client
        self.poll_interval = poll_interval
        self._status: Optional[SyncStatus] = None
        self._conflict_info: Optional[ConflictInfo] = None
        self._force_override = False
        self._needs_conflict_check = False
        self._lock = threading.Lock()
        self._behind_listeners: List[BehindListener] = []
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def status(self) -> Optional[SyncStatus]:
        with self._lock:
            return self._status

    @property
    def conflict_info(self) -> Optional[ConflictInfo]:
        with self._lock:
            return self._conflict_info

    @property
    def is_behind(self) -> bool:
        status = self.status
        return status is not None and status.is_behind

    @property
    def sync_enabled(self) -> bool:
        status = self.status
        return status is not None and status.sync_enabled

    @property
    def force_override(self) -> bool:
        return self._force_override

    @property
    def editing_disabled(self) -> bool:
        if self._force_override:
            return False
        return self.is_behind and self.sync_enabled

    def enable_force_override(self) -> None:
        """Let edits through while behind, until the next successful sync."""
        logger.warning("Force override enabled: saves allowed while behind the remote")
        self._force_override = True

    def add_behind_listener(self, listener: BehindListener) -> None:
        self._behind_listeners.append(listener)

    def refresh(self) -> Optional[SyncStatus]:
        """Poll the server once.

        On failure the previous status is kept and returned.
        """
        try:
            status = self._client.get_sync_status()
        except SyncError as e:
            logger.warning(f"Sync status poll failed, keeping previous status: {e}")
            return self.status

        needs_check = status.is_behind and status.sync_enabled
        with self._lock:
            previous = self._status
            became_behind = needs_check and not self._needs_conflict_check
            self._status = status
            self._needs_conflict_check = needs_check

        if previous is None or previous.relation != status.relation:
            logger.info(f"Sync status: {status.relation.value}")

        if became_behind:
            for listener in self._behind_listeners:
                listener(status)
        return status

    def on_focus_regained(self) -> Optional[SyncStatus]:
        return self.refresh()

    def notify_content_updated(self) -> Optional[SyncStatus]:
        """Refresh after a local edit changed the pending-change count."""
        return self.refresh()

    def fetch_conflict_info(self) -> Optional[ConflictInfo]:
        """Fetch and cache the remote commits the local copy is missing.

        Returns:
            The conflict info, or None if it could not be fetched
        """
        try:
            info = self._client.get_conflict_info()
        except SyncError as e:
            logger.error(f"Error checking for conflicts: {e}")
            return None
        with self._lock:
            self._conflict_info = info
        return info

    def sync_with_remote(self) -> bool:
        """Ask the server to sync, then reset conflict state and re-poll.

        Returns:
            True if the server reported success
        """
        try:
            ok = self._client.trigger_sync()
        except SyncError as e:
            logger.error(f"Error syncing with remote: {e}")
            return False
        if not ok:
            return False

        with self._lock:
            self._conflict_info = None
        self._force_override = False
        logger.info("Synced with remote")
        self.refresh()
        return True

    def start(self) -> None:
        """Poll once, then keep polling from a daemon thread."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._poll_loop, name="sync-monitor", daemon=True)
        self._thread.start()
        logger.debug(f"Sync monitor started (interval={self.poll_interval}s)")

    def stop(self, timeout: float = 5.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
        logger.debug("Sync monitor stopped")

    def _poll_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                self.refresh()
            except Exception as e:
                logger.error(f"Sync monitor poll error: {e}")
            self._stop_event.wait(timeout=self.poll_interval)
