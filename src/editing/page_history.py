"""Undo/redo coordination for the page currently open in the editor.

PageHistory binds the per-page history stacks to the registered PageContext
(the live document) and to the persistence client. Undo and redo never touch
the live document directly: the popped snapshot is written through the
persistence contract as a single ``replace_all_sections`` operation, and the
page is updated only once that write succeeds.
"""

import copy
import logging
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional

from src.content_client.errors import SyncError

from .history import DEFAULT_MAX_HISTORY, HistoryManager, HistoryStacks
from .models import EditOperation, EditResult, PageKey, RestoreDirection, RestoreRequest, Section

logger = logging.getLogger(__name__)

RestoreListener = Callable[[PageKey, List[Section]], None]
ErrorListener = Callable[[PageKey, str], None]


@dataclass
class PageContext:
    """The live document the history applies to.

    Attributes:
        page_key: Identity of the page
        get_current_sections: Returns the page's live section list
        on_sections_restore: Applies restored sections to the live page
        variant: Optional content variant forwarded to persistence
        version: Optional content version forwarded to persistence
    """

    page_key: PageKey
    get_current_sections: Callable[[], List[Section]]
    on_sections_restore: Callable[[List[Section]], None]
    variant: Optional[str] = None
    version: Optional[int] = None


class PageHistory:
    """Undo/redo for the registered page, persisted through the content API.

    The persistence object must provide ``edit_content(content_type, slug,
    locale, operations, author=None, variant=None, version=None)`` returning
    an EditResult (ContentAPIClient does).

    By default a failed restore leaves the stacks as they are after the pop,
    so the popped state is lost from history. With ``transactional=True``
    both stacks are rolled back to their state before the undo/redo.

    Example:
        >>> history = PageHistory(HistoryManager(), ContentAPIClient())
        >>> history.register_page(PageContext(key, page.get_sections, page.set_sections))
        >>> history.save_current_snapshot("Before removing section")
        >>> history.undo()
        True
    """

    def __init__(
        self,
        manager: Optional[HistoryManager],
        persistence,
        author: Optional[str] = None,
        enabled: bool = True,
        transactional: bool = False,
    ):
        self._manager = manager or HistoryManager(max_history=DEFAULT_MAX_HISTORY)
        self._persistence = persistence
        self._author = author
        self.enabled = enabled
        self.transactional = transactional
        self._context: Optional[PageContext] = None
        self._restoring = threading.Event()
        self._restore_listeners: List[RestoreListener] = []
        self._error_listeners: List[ErrorListener] = []

    def register_page(self, context: Optional[PageContext]) -> None:
        """Set (or clear, with None) the page the history applies to."""
        self._context = context
        if context is not None:
            logger.debug(f"History bound to page {context.page_key}")

    def unregister_page(self) -> None:
        self._context = None

    @property
    def page_context(self) -> Optional[PageContext]:
        return self._context

    @property
    def is_restoring(self) -> bool:
        return self._restoring.is_set()

    def add_restore_listener(self, listener: RestoreListener) -> None:
        """Call ``listener(page_key, sections)`` after every successful restore."""
        self._restore_listeners.append(listener)

    def add_error_listener(self, listener: ErrorListener) -> None:
        """Call ``listener(page_key, error)`` when a restore fails."""
        self._error_listeners.append(listener)

    def _stacks(self) -> Optional[HistoryStacks]:
        if self._context is None:
            return None
        stacks = self._manager.stacks_for(self._context.page_key)
        stacks.enabled = self.enabled
        return stacks

    def push_snapshot(self, sections: List[Section], description: str) -> None:
        stacks = self._stacks()
        if stacks is None:
            logger.warning("No page registered, cannot push snapshot")
            return
        stacks.push_snapshot(sections, description)

    def save_current_snapshot(self, description: str) -> None:
        """Snapshot the live page before a destructive edit.

        Ignored when no page is registered or the page has no sections.
        """
        context = self._context
        if context is None:
            logger.warning("No page registered, cannot save snapshot")
            return
        sections = context.get_current_sections()
        if not sections:
            return
        self.push_snapshot(sections, description)

    def clear_history(self) -> None:
        stacks = self._stacks()
        if stacks is not None:
            stacks.clear_history()

    @property
    def can_undo(self) -> bool:
        stacks = self._stacks()
        return stacks is not None and stacks.can_undo

    @property
    def can_redo(self) -> bool:
        stacks = self._stacks()
        return stacks is not None and stacks.can_redo

    @property
    def undo_count(self) -> int:
        stacks = self._stacks()
        return stacks.undo_count if stacks is not None else 0

    @property
    def redo_count(self) -> int:
        stacks = self._stacks()
        return stacks.redo_count if stacks is not None else 0

    def undo(self) -> bool:
        """Restore the previous page state.

        Returns:
            True if a state was restored; False when there is nothing to
            undo, no page is registered, or persistence failed
        """
        return self._step(RestoreDirection.UNDO)

    def redo(self) -> bool:
        """Restore the state most recently undone. See undo()."""
        return self._step(RestoreDirection.REDO)

    def _step(self, direction: RestoreDirection) -> bool:
        stacks = self._stacks()
        if stacks is None:
            logger.warning(f"No page registered, cannot {direction.value}")
            return False

        checkpoint = stacks.checkpoint() if self.transactional else None
        if direction == RestoreDirection.UNDO:
            sections = stacks.undo()
        else:
            sections = stacks.redo()
        if sections is None:
            return False

        restored = self.restore(RestoreRequest(sections=sections, direction=direction))
        if not restored and checkpoint is not None:
            stacks.rollback(checkpoint)
            logger.debug(f"History rolled back after failed {direction.value}")
        return restored

    def restore(self, request: RestoreRequest) -> bool:
        """Persist and apply a restore request for the registered page.

        The live state is first saved on the opposite stack (the redo stack
        when undoing, the undo stack without clearing redo when redoing).
        The sections are then written as one ``replace_all_sections``
        operation and applied to the page only if the write succeeds.
        """
        context = self._context
        if context is None:
            logger.warning("No page registered, cannot restore")
            return False
        if not request.sections:
            return False

        stacks = self._manager.stacks_for(context.page_key)
        self._restoring.set()
        try:
            current = context.get_current_sections()
            if request.direction == RestoreDirection.UNDO:
                stacks.push_to_redo_stack(current, "State before undo")
            else:
                stacks.push_to_undo_stack_no_redo_clear(current, "State before redo")

            key = context.page_key
            try:
                result = self._persistence.edit_content(
                    key.content_type,
                    key.slug,
                    key.locale,
                    [EditOperation.replace_all_sections(copy.deepcopy(request.sections))],
                    author=self._author,
                    variant=context.variant,
                    version=context.version,
                )
            except SyncError as e:
                logger.error(f"Error restoring {key}: {e}")
                result = EditResult(success=False, error=str(e))

            if not result.success:
                error = result.error or "Could not restore page state"
                logger.error(f"{request.direction.value.capitalize()} failed for {key}: {error}")
                for listener in self._error_listeners:
                    listener(key, error)
                return False

            context.on_sections_restore(copy.deepcopy(request.sections))
            logger.info(f"{request.direction.value.capitalize()} applied to {key}")
            for listener in self._restore_listeners:
                listener(key, copy.deepcopy(request.sections))
            return True
        finally:
            self._restoring.clear()
