"""In-place page editing: pending-change buffer and undo/redo history."""

from .edit_session import EditSession
from .history import DEFAULT_MAX_HISTORY, HistoryManager, HistoryStacks
from .models import (
    EditAction,
    EditOperation,
    EditResult,
    PageKey,
    PageSnapshot,
    RestoreDirection,
    RestoreRequest,
)
from .page_history import PageContext, PageHistory
from .shortcuts import FocusState, KeyEvent, UndoRedoShortcuts

__all__ = [
    "EditSession",
    "DEFAULT_MAX_HISTORY",
    "HistoryManager",
    "HistoryStacks",
    "EditAction",
    "EditOperation",
    "EditResult",
    "PageKey",
    "PageSnapshot",
    "RestoreDirection",
    "RestoreRequest",
    "PageContext",
    "PageHistory",
    "FocusState",
    "KeyEvent",
    "UndoRedoShortcuts",
]
