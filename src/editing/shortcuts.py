"""Keyboard shortcuts for page-level undo and redo.

The host UI forwards key presses together with a description of the focused
element. Undo (mod+Z) and redo (mod+Shift+Z) are handled only when focus is
not inside something that has its own text undo: form fields, contenteditable
regions, code editors and composite pickers.
"""

import logging
import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Optional

from .page_history import PageHistory

logger = logging.getLogger(__name__)

TEXT_INPUT_TAGS = frozenset({"input", "textarea", "select"})
CODE_EDITOR_CLASSES = frozenset({"cm-content", "cm-editor"})
PICKER_ROLES = frozenset({"combobox", "listbox", "menu", "menuitem", "option"})


@dataclass(frozen=True)
class FocusState:
    """Description of the element that currently has keyboard focus.

    Attributes:
        tag_name: Element tag, e.g. ``input``
        content_editable: Whether the element is contenteditable
        class_names: CSS classes of the element and its ancestors
        role: ARIA role of the element
    """

    tag_name: str = ""
    content_editable: bool = False
    class_names: FrozenSet[str] = field(default_factory=frozenset)
    role: Optional[str] = None


@dataclass(frozen=True)
class KeyEvent:
    """A key press as reported by the host UI."""

    key: str
    ctrl: bool = False
    meta: bool = False
    shift: bool = False
    alt: bool = False


class ShortcutAction(Enum):
    UNDO = "undo"
    REDO = "redo"


def is_editable_element_focused(focus: Optional[FocusState]) -> bool:
    """True when focus is inside an element with its own text editing."""
    if focus is None:
        return False
    if focus.tag_name.lower() in TEXT_INPUT_TAGS:
        return True
    if focus.content_editable:
        return True
    if CODE_EDITOR_CLASSES & set(focus.class_names):
        return True
    return focus.role is not None and focus.role in PICKER_ROLES


def is_mac(platform: Optional[str] = None) -> bool:
    return (platform or sys.platform).lower().startswith(("darwin", "mac"))


def match_shortcut(event: KeyEvent, mac: bool) -> Optional[ShortcutAction]:
    """Map a key press to an undo/redo action.

    ``mod`` is Cmd on macOS and Ctrl elsewhere.
    """
    modifier = event.meta if mac else event.ctrl
    if not modifier or event.key.lower() != "z":
        return None
    return ShortcutAction.REDO if event.shift else ShortcutAction.UNDO


class UndoRedoShortcuts:
    """Routes undo/redo chords to a PageHistory.

    Example:
        >>> shortcuts = UndoRedoShortcuts(history)
        >>> consumed = shortcuts.handle_key(KeyEvent("z", ctrl=True), FocusState(tag_name="div"))
    """

    def __init__(self, history: PageHistory, platform: Optional[str] = None):
        self._history = history
        self._mac = is_mac(platform)

    def handle_key(self, event: KeyEvent, focus: Optional[FocusState] = None) -> bool:
        """Handle a key press.

        Returns:
            True when the chord was consumed and the host should stop its
            propagation; False to let it through
        """
        if not self._history.enabled:
            return False
        if is_editable_element_focused(focus):
            return False

        action = match_shortcut(event, self._mac)
        if action is None:
            return False

        logger.debug(f"Shortcut: {action.value}")
        if action == ShortcutAction.UNDO:
            self._history.undo()
        else:
            self._history.redo()
        return True
