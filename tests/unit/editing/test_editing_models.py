"""Unit tests for editing.models module."""

import pytest

from src.editing.models import EditAction, EditOperation, PageKey, PageSnapshot


class TestPageKey:
    """Test cases for PageKey."""

    def test_string_form(self):
        assert str(PageKey("pages", "home", "en")) == "pages:home:en"

    def test_usable_as_dict_key(self):
        buffers = {PageKey("pages", "home", "en"): 1}
        assert buffers[PageKey("pages", "home", "en")] == 1


class TestEditOperation:
    """Test cases for EditOperation serialization."""

    def test_update_field_to_dict(self):
        op = EditOperation.update_field("hero.title", "Hello")
        assert op.to_dict() == {"action": "update_field", "path": "hero.title", "value": "Hello"}

    def test_add_section_without_index(self):
        op = EditOperation.add_section({"type": "cta"})
        assert op.to_dict() == {"action": "add_section", "section": {"type": "cta"}}

    def test_reorder_sections(self):
        op = EditOperation.reorder_sections(0, 3)
        assert op.to_dict() == {"action": "reorder_sections", "from": 0, "to": 3}

    def test_enum_action_serializes_to_tag(self):
        op = EditOperation(EditAction.ADD_ITEM, {"path": "features.items", "item": {"title": "x"}})
        assert op.to_dict()["action"] == "add_item"

    def test_unknown_action_forwarded_verbatim(self):
        """Actions are opaque beyond their tag."""
        op = EditOperation("custom_action", {"foo": 1})
        assert op.to_dict() == {"action": "custom_action", "foo": 1}

    def test_operations_are_immutable(self):
        op = EditOperation.remove_section(1)
        with pytest.raises(AttributeError):
            op.action = "other"


class TestPageSnapshot:
    """Test cases for PageSnapshot deep copies."""

    def test_capture_copies_nested_content(self):
        live = [{"type": "features", "items": [{"title": "A"}]}]
        snapshot = PageSnapshot.capture(live, "before edit")

        live[0]["items"][0]["title"] = "B"

        assert snapshot.sections[0]["items"][0]["title"] == "A"
        assert snapshot.description == "before edit"
        assert snapshot.timestamp > 0

    def test_copy_sections_returns_fresh_copy(self):
        snapshot = PageSnapshot.capture([{"type": "hero"}], "edit")

        first = snapshot.copy_sections()
        first[0]["type"] = "changed"

        assert snapshot.copy_sections() == [{"type": "hero"}]
