"""Data models for in-place page editing.

Pages are identified by a PageKey. Edits are expressed as EditOperation
values which this package treats as opaque beyond their action tag; they are
forwarded verbatim to the content server. Snapshots capture a whole page's
section list for undo/redo.
"""

import copy
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional

Section = Dict[str, Any]


class PageKey(NamedTuple):
    """Identity of one editable document."""

    content_type: str
    slug: str
    locale: str

    def __str__(self) -> str:
        return f"{self.content_type}:{self.slug}:{self.locale}"


class EditAction(str, Enum):
    """Known edit operation tags."""

    UPDATE_FIELD = "update_field"
    ADD_SECTION = "add_section"
    REMOVE_SECTION = "remove_section"
    REORDER_SECTIONS = "reorder_sections"
    REPLACE_ALL_SECTIONS = "replace_all_sections"
    UPDATE_SECTION = "update_section"
    ADD_ITEM = "add_item"
    REMOVE_ITEM = "remove_item"


@dataclass(frozen=True)
class EditOperation:
    """A tagged edit carrying the minimal payload to reproduce it.

    Attributes:
        action: Operation tag (one of EditAction values, or any string)
        payload: Action-specific fields, sent alongside the tag
    """

    action: str
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = {"action": str(self.action.value if isinstance(self.action, EditAction) else self.action)}
        data.update(self.payload)
        return data

    @classmethod
    def update_field(cls, path: str, value: Any) -> "EditOperation":
        return cls(EditAction.UPDATE_FIELD.value, {"path": path, "value": value})

    @classmethod
    def add_section(cls, section: Section, index: Optional[int] = None) -> "EditOperation":
        payload: Dict[str, Any] = {"section": section}
        if index is not None:
            payload["index"] = index
        return cls(EditAction.ADD_SECTION.value, payload)

    @classmethod
    def remove_section(cls, index: int) -> "EditOperation":
        return cls(EditAction.REMOVE_SECTION.value, {"index": index})

    @classmethod
    def reorder_sections(cls, from_index: int, to_index: int) -> "EditOperation":
        return cls(EditAction.REORDER_SECTIONS.value, {"from": from_index, "to": to_index})

    @classmethod
    def replace_all_sections(cls, sections: List[Section]) -> "EditOperation":
        return cls(EditAction.REPLACE_ALL_SECTIONS.value, {"sections": sections})

    @classmethod
    def update_section(cls, index: int, section: Section) -> "EditOperation":
        return cls(EditAction.UPDATE_SECTION.value, {"index": index, "section": section})


class RestoreDirection(str, Enum):
    """Which history stack a restore request came from."""

    UNDO = "undo"
    REDO = "redo"


@dataclass(frozen=True)
class PageSnapshot:
    """Immutable full-page state captured for undo/redo.

    Sections are deep-copied when the snapshot is created and again when
    read through ``copy_sections`` so later edits to the live document can
    never reach a stored snapshot.
    """

    sections: List[Section]
    timestamp: float
    description: str

    @classmethod
    def capture(cls, sections: List[Section], description: str) -> "PageSnapshot":
        return cls(
            sections=copy.deepcopy(sections),
            timestamp=time.time(),
            description=description,
        )

    def copy_sections(self) -> List[Section]:
        return copy.deepcopy(self.sections)


@dataclass(frozen=True)
class RestoreRequest:
    """Sections to restore plus the stack they were taken from."""

    sections: List[Section]
    direction: RestoreDirection


@dataclass
class EditResult:
    """Outcome of a persistence call."""

    success: bool
    error: Optional[str] = None
