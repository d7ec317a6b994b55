"""Edit mode and the pending-change buffer.

While edit mode is on, every edit the user makes is appended to a per-page
log of EditOperations. A save sends the whole log for one page in a single
persistence call; the log is cleared only when that call succeeds, so a
failed save can simply be retried.
"""

import logging
import threading
from typing import Dict, List, Optional

from src.content_client.errors import SyncError

from .models import EditOperation, EditResult, PageKey

logger = logging.getLogger(__name__)


class EditSession:
    """Edit-mode state and pending edits for every open page.

    The optional ``gate`` is consulted before each save; when its
    ``editing_disabled`` is true (the local copy is behind the remote and
    the user has not forced an override) saves are refused. SyncMonitor
    provides this property.

    Example:
        >>> session = EditSession(ContentAPIClient(), gate=monitor, author="Jane Doe")
        >>> session.enable_edit_mode()
        >>> session.add_pending_change(key, EditOperation.update_field("hero.title", "Hi"))
        >>> session.save_changes(key)
        True
    """

    def __init__(self, persistence, gate=None, author: Optional[str] = None):
        self._persistence = persistence
        self._gate = gate
        self._author = author
        self._pending: Dict[PageKey, List[EditOperation]] = {}
        self._lock = threading.Lock()
        self._saving = 0
        self.is_edit_mode = False
        self.selected_section_index: Optional[int] = None

    def enable_edit_mode(self) -> None:
        self.is_edit_mode = True

    def disable_edit_mode(self) -> None:
        self.is_edit_mode = False
        self.selected_section_index = None

    def toggle_edit_mode(self) -> None:
        if self.is_edit_mode:
            self.disable_edit_mode()
        else:
            self.enable_edit_mode()

    def register_page(self, page_key: PageKey) -> None:
        with self._lock:
            self._pending.setdefault(page_key, [])

    def unregister_page(self, page_key: PageKey) -> None:
        """Forget a page and drop any unsaved edits for it."""
        with self._lock:
            dropped = self._pending.pop(page_key, [])
        if dropped:
            logger.warning(f"Dropped {len(dropped)} unsaved edit(s) for {page_key}")

    def add_pending_change(self, page_key: PageKey, operation: EditOperation) -> None:
        with self._lock:
            self._pending.setdefault(page_key, []).append(operation)

    def clear_pending_changes(self, page_key: PageKey) -> None:
        with self._lock:
            self._pending.pop(page_key, None)

    def pending_changes(self, page_key: PageKey) -> List[EditOperation]:
        with self._lock:
            return list(self._pending.get(page_key, []))

    @property
    def has_pending_changes(self) -> bool:
        with self._lock:
            return any(self._pending.values())

    @property
    def is_saving(self) -> bool:
        return self._saving > 0

    @property
    def editing_disabled(self) -> bool:
        return self._gate is not None and bool(self._gate.editing_disabled)

    def save_changes(
        self,
        page_key: PageKey,
        variant: Optional[str] = None,
        version: Optional[int] = None,
    ) -> bool:
        """Flush the pending log for one page.

        An empty log succeeds without a network call. Otherwise all
        operations go out in one call with the author identity. On success
        exactly the operations that were sent are removed; edits appended
        while the call was in flight stay queued.

        Returns:
            True if nothing was pending or the save succeeded
        """
        with self._lock:
            operations = list(self._pending.get(page_key, []))
        if not operations:
            return True

        if self.editing_disabled:
            logger.warning(f"Save refused for {page_key}: local copy is behind the remote")
            return False

        with self._lock:
            self._saving += 1
        try:
            try:
                result = self._persistence.edit_content(
                    page_key.content_type,
                    page_key.slug,
                    page_key.locale,
                    operations,
                    author=self._author,
                    variant=variant,
                    version=version,
                )
            except SyncError as e:
                logger.error(f"Error saving changes for {page_key}: {e}")
                result = EditResult(success=False, error=str(e))

            if not result.success:
                logger.error(f"Failed to save changes for {page_key}: {result.error}")
                return False

            with self._lock:
                current = self._pending.get(page_key, [])
                flushed = 0
                while (flushed < len(operations) and flushed < len(current)
                       and current[flushed] is operations[flushed]):
                    flushed += 1
                remaining = current[flushed:]
                if remaining:
                    self._pending[page_key] = remaining
                else:
                    self._pending.pop(page_key, None)
            logger.info(f"Saved {len(operations)} change(s) for {page_key}")
            return True
        finally:
            with self._lock:
                self._saving -= 1
