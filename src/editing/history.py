"""Bounded undo/redo stacks of whole-page snapshots.

Each editable page gets its own pair of stacks. Snapshots are deep-copied on
the way in and on the way out, so nothing the caller does to a section list
after pushing it (or after receiving it from undo/redo) can alter history.
"""

import logging
import threading
from collections import deque
from typing import Deque, Dict, List, Optional, Tuple

from .models import PageKey, PageSnapshot, Section

logger = logging.getLogger(__name__)

DEFAULT_MAX_HISTORY = 30

Checkpoint = Tuple[Tuple[PageSnapshot, ...], Tuple[PageSnapshot, ...]]


class HistoryStacks:
    """Undo and redo stacks for one page.

    Both stacks are bounded; pushing past the bound evicts the oldest entry.
    While ``enabled`` is False, pushes to the undo stack are ignored.

    Example:
        >>> stacks = HistoryStacks(max_history=30)
        >>> stacks.push_snapshot([{"type": "hero"}], "Before adding section")
        >>> stacks.undo()
        [{'type': 'hero'}]
        >>> stacks.undo() is None
        True
    """

    def __init__(self, max_history: int = DEFAULT_MAX_HISTORY, enabled: bool = True):
        if max_history < 1:
            raise ValueError("max_history must be at least 1")
        self.max_history = max_history
        self.enabled = enabled
        self._undo: Deque[PageSnapshot] = deque(maxlen=max_history)
        self._redo: Deque[PageSnapshot] = deque(maxlen=max_history)
        self._lock = threading.Lock()

    def push_snapshot(self, sections: List[Section], description: str) -> None:
        """Record a state on the undo stack and clear the redo stack."""
        if not self.enabled:
            return
        snapshot = PageSnapshot.capture(sections, description)
        with self._lock:
            self._undo.append(snapshot)
            self._redo.clear()
        logger.debug(f"Snapshot pushed: {description} (undo={len(self._undo)})")

    def push_to_undo_stack_no_redo_clear(self, sections: List[Section], description: str) -> None:
        """Record a state on the undo stack, keeping the redo stack.

        Used to save the state being replaced by a redo.
        """
        if not self.enabled:
            return
        snapshot = PageSnapshot.capture(sections, description)
        with self._lock:
            self._undo.append(snapshot)

    def push_to_redo_stack(self, sections: List[Section], description: str) -> None:
        """Record the state being replaced by an undo."""
        snapshot = PageSnapshot.capture(sections, description)
        with self._lock:
            self._redo.append(snapshot)

    def undo(self) -> Optional[List[Section]]:
        """Pop the most recent undo entry.

        Returns:
            A deep copy of its sections, or None when there is nothing to undo
        """
        with self._lock:
            if not self._undo:
                return None
            snapshot = self._undo.pop()
        logger.debug(f"Undo: {snapshot.description}")
        return snapshot.copy_sections()

    def redo(self) -> Optional[List[Section]]:
        """Pop the most recent redo entry.

        Returns:
            A deep copy of its sections, or None when there is nothing to redo
        """
        with self._lock:
            if not self._redo:
                return None
            snapshot = self._redo.pop()
        logger.debug(f"Redo: {snapshot.description}")
        return snapshot.copy_sections()

    def clear_history(self) -> None:
        with self._lock:
            self._undo.clear()
            self._redo.clear()

    def checkpoint(self) -> Checkpoint:
        """Capture both stacks so a later rollback can restore them."""
        with self._lock:
            return tuple(self._undo), tuple(self._redo)

    def rollback(self, checkpoint: Checkpoint) -> None:
        undo, redo = checkpoint
        with self._lock:
            self._undo.clear()
            self._undo.extend(undo)
            self._redo.clear()
            self._redo.extend(redo)

    @property
    def can_undo(self) -> bool:
        return len(self._undo) > 0

    @property
    def can_redo(self) -> bool:
        return len(self._redo) > 0

    @property
    def undo_count(self) -> int:
        return len(self._undo)

    @property
    def redo_count(self) -> int:
        return len(self._redo)


class HistoryManager:
    """Owns one HistoryStacks per page, created on first use."""

    def __init__(self, max_history: int = DEFAULT_MAX_HISTORY):
        self.max_history = max_history
        self._stacks: Dict[PageKey, HistoryStacks] = {}
        self._lock = threading.Lock()

    def stacks_for(self, page_key: PageKey) -> HistoryStacks:
        with self._lock:
            stacks = self._stacks.get(page_key)
            if stacks is None:
                stacks = HistoryStacks(max_history=self.max_history)
                self._stacks[page_key] = stacks
            return stacks

    def has_history(self, page_key: PageKey) -> bool:
        with self._lock:
            return page_key in self._stacks

    def discard(self, page_key: PageKey) -> None:
        with self._lock:
            self._stacks.pop(page_key, None)
