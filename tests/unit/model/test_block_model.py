"""Tests for Block, the type handlers and the registry."""

from __future__ import annotations

import pytest
from builders import make_raw

from notionbuf.model import check_editability, deserialize, deserialize_tree, format_blocks
from notionbuf.model.registry import get_handler, is_supported, supported_types

# =========================================================================
# Tree links
# =========================================================================


class TestBlockTree:
    def test_add_child_sets_parent_and_depth(self):
        parent = deserialize(make_raw("toggle", "T"))
        child = deserialize(make_raw("paragraph", "c"))
        parent.add_child(child)
        assert child.parent is parent
        assert child.depth == 1
        assert parent.children == [child]

    def test_depth_follows_subtree(self):
        root = deserialize(make_raw("toggle", "root"))
        mid = deserialize(make_raw("bulleted_list_item", "mid"))
        leaf = deserialize(make_raw("paragraph", "leaf"))
        mid.add_child(leaf)
        root.add_child(mid)
        assert leaf.depth == 2

        root.remove_child(mid)
        assert mid.parent is None
        assert mid.depth == 0
        assert leaf.depth == 1

    def test_add_child_moves_between_parents(self):
        first = deserialize(make_raw("toggle", "a"))
        second = deserialize(make_raw("toggle", "b"))
        child = deserialize(make_raw("paragraph", "c"))
        first.add_child(child)
        second.add_child(child, 0)
        assert first.children == []
        assert second.children == [child]
        assert child.parent is second

    def test_iter_tree_is_document_order(self):
        raws = [make_raw("toggle", "T", children=[
            make_raw("paragraph", "a"),
            make_raw("bulleted_list_item", "b", children=[make_raw("paragraph", "c")]),
        ])]
        [root] = deserialize_tree(raws)
        assert [b.text for b in root.iter_tree()] == ["T", "a", "b", "c"]
        deepest = root.children[1].children[0]
        assert [a.text for a in deepest.ancestors()] == ["b", "T"]


# =========================================================================
# Registry
# =========================================================================


class TestRegistry:
    def test_unknown_type_is_passthrough(self):
        raw = make_raw("image")
        raw["image"] = {"type": "external", "external": {"url": "https://example.com/a.png"}}
        block = deserialize(raw)
        assert not block.editable
        assert block.format() == ["[image - read only]"]
        assert block.serialize() is raw

    def test_supported_types(self):
        assert is_supported("paragraph")
        assert not is_supported("image")
        assert not is_supported("divider")
        assert "to_do" in supported_types()

    def test_handler_lookup_fallback(self):
        assert get_handler("no_such_type").editable is False

    def test_deserialize_tree_reads_top_level_children(self):
        raw = make_raw("toggle", "T", children=[make_raw("paragraph", "inner")])
        [block] = deserialize_tree([raw])
        assert [c.text for c in block.children] == ["inner"]
        assert "children" not in block.raw

    def test_deserialize_tree_reads_type_data_children(self):
        raw = make_raw("bulleted_list_item", "b")
        raw["bulleted_list_item"]["children"] = [make_raw("paragraph", "nested")]
        [block] = deserialize_tree([raw])
        assert block.children[0].text == "nested"
        assert "children" not in block.raw["bulleted_list_item"]

    def test_check_editability(self):
        blocks = deserialize_tree([make_raw("paragraph", "p"), make_raw("image"), make_raw("image")])
        assert check_editability(blocks) == (False, ["image"])
        assert check_editability(deserialize_tree([make_raw("paragraph", "p")])) == (True, [])


# =========================================================================
# Formatting
# =========================================================================


class TestFormat:
    def test_heading_prefix(self):
        assert deserialize(make_raw("heading_2", "Title")).format() == ["## Title"]

    def test_numbering_restarts_after_other_block(self):
        blocks = deserialize_tree([
            make_raw("numbered_list_item", "a"),
            make_raw("numbered_list_item", "b"),
            make_raw("paragraph", "p"),
            make_raw("numbered_list_item", "c"),
        ])
        assert format_blocks(blocks) == ["1. a", "2. b", "p", "1. c"]

    def test_todo_checkbox(self):
        assert deserialize(make_raw("to_do", "done", checked=True)).format() == ["- [x] done"]
        assert deserialize(make_raw("to_do", "open")).format() == ["- [ ] open"]

    def test_code_fence(self):
        code = deserialize(make_raw("code", "print(1)", language="python"))
        assert code.format() == ["```python", "print(1)", "```"]
        plain = deserialize(make_raw("code", "x", language="plain text"))
        assert plain.format() == ["```", "x", "```"]

    def test_read_only_shapes(self):
        assert deserialize(make_raw("divider")).format() == ["---"]
        assert deserialize(make_raw("child_page", "Sub")).format() == ["📄 Sub"]
        assert deserialize(make_raw("child_database", "DB")).format() == ["🗃️ DB"]
        assert deserialize(make_raw("child_page", "")).format() == ["📄 Untitled"]

    def test_children_indented_by_depth(self):
        blocks = deserialize_tree([
            make_raw("toggle", "T", children=[
                make_raw("bulleted_list_item", "b", children=[make_raw("paragraph", "c")]),
            ]),
        ])
        assert format_blocks(blocks) == ["> T", "  - b", "    c"]
        assert format_blocks(blocks, indent_size=4) == ["> T", "    - b", "        c"]

    def test_multiline_paragraph(self):
        block = deserialize(make_raw("paragraph", "first\nsecond"))
        assert block.format() == ["first", "second"]

    def test_markup_is_escaped(self):
        assert deserialize(make_raw("paragraph", "2*3")).format() == ["2\\*3"]

    @pytest.mark.parametrize("text", ["1. one", "- dash", "> quoted", "# hash", "---"])
    def test_prefix_like_paragraph_is_escaped(self, text):
        block = deserialize(make_raw("paragraph", text))
        [line] = block.format()
        assert line == "\\" + text
        block.update_from_lines([line])
        assert block.text == text
        assert not block.dirty
        assert not block.type_changed()

    def test_only_first_line_is_escaped(self):
        block = deserialize(make_raw("paragraph", "# a\n# b"))
        assert block.format() == ["\\# a", "# b"]


# =========================================================================
# Reading edits back
# =========================================================================


class TestUpdateFromLines:
    def test_text_edit_is_update(self):
        block = deserialize(make_raw("paragraph", "Hello"))
        block.update_from_lines(["Hello world"])
        assert block.text == "Hello world"
        assert block.dirty
        assert block.has_changes()
        assert not block.type_changed()

    def test_unchanged_lines_stay_clean(self):
        block = deserialize(make_raw("bulleted_list_item", "x"))
        block.update_from_lines(["- x"])
        assert not block.dirty
        assert not block.has_changes()

    def test_alternate_bullet_marker_is_same_type(self):
        block = deserialize(make_raw("bulleted_list_item", "x"))
        block.update_from_lines(["* x"])
        assert not block.type_changed()
        assert not block.has_changes()

    def test_paragraph_to_bullet_is_type_change(self):
        block = deserialize(make_raw("paragraph", "Hello"))
        block.update_from_lines(["- item"])
        assert block.type_changed()
        assert block.target_type == "bulleted_list_item"
        assert block.converted_content() == "item"

    def test_heading_level_change(self):
        block = deserialize(make_raw("heading_1", "T"))
        block.update_from_lines(["## T"])
        assert block.type_changed()
        assert block.target_type == "heading_2"

    def test_removing_heading_prefix(self):
        block = deserialize(make_raw("heading_1", "T"))
        block.update_from_lines(["T"])
        assert block.target_type == "paragraph"

    def test_quote_reads_toggle_prefix_as_quote(self):
        block = deserialize(make_raw("quote", "q"))
        block.update_from_lines(["> q"])
        assert not block.type_changed()

    def test_toggle_to_quote(self):
        block = deserialize(make_raw("toggle", "t"))
        block.update_from_lines(["| t"])
        assert block.target_type == "quote"

    def test_empty_line_never_converts(self):
        block = deserialize(make_raw("bulleted_list_item", "x"))
        block.update_from_lines([""])
        assert not block.type_changed()
        assert block.text == ""
        assert block.has_changes()

    def test_todo_checkbox_toggle_is_update(self):
        block = deserialize(make_raw("to_do", "task"))
        block.update_from_lines(["- [x] task"])
        assert block.has_changes()
        assert not block.type_changed()
        assert block.serialize()["to_do"]["checked"] is True

    def test_indented_child_lines(self):
        [root] = deserialize_tree([make_raw("toggle", "T", children=[make_raw("bulleted_list_item", "c")])])
        child = root.children[0]
        child.update_from_lines(["  - c2"])
        assert child.text == "c2"
        assert not child.type_changed()

    def test_code_body_and_language(self):
        block = deserialize(make_raw("code", "a", language="python"))
        block.update_from_lines(["```python", "b", "```"])
        assert block.text == "b"
        assert block.has_changes()

        other = deserialize(make_raw("code", "a", language="python"))
        other.update_from_lines(["```javascript", "a", "```"])
        assert other.text == "a"
        assert other.has_changes()

    def test_read_only_ignores_lines(self):
        block = deserialize(make_raw("divider"))
        block.update_from_lines(["changed"])
        assert not block.dirty


# =========================================================================
# Payloads and snapshots
# =========================================================================


class TestPayloads:
    def test_update_payload_reparses_changed_text(self):
        block = deserialize(make_raw("paragraph", "Hello"))
        block.update_from_lines(["Hello **world**"])
        payload = block.update_payload()
        assert list(payload) == ["paragraph"]
        segments = payload["paragraph"]["rich_text"]
        assert segments[0]["text"]["content"] == "Hello "
        assert segments[1]["text"]["content"] == "world"
        assert segments[1]["annotations"]["bold"] is True
        assert payload["paragraph"]["color"] == "default"

    def test_update_payload_drops_children(self):
        raw = make_raw("toggle", "T")
        raw["toggle"]["children"] = []
        block = deserialize(raw)
        assert "children" not in block.update_payload()["toggle"]

    def test_create_payload_shape(self):
        payload = deserialize(make_raw("heading_1", "Hi")).create_payload()
        assert set(payload) == {"object", "type", "heading_1"}
        assert payload["type"] == "heading_1"

    def test_mark_synced_adopts_text(self):
        block = deserialize(make_raw("paragraph", "Hello"))
        block.update_from_lines(["Hello world"])
        block.mark_synced()
        assert block.original_text == "Hello world"
        assert not block.dirty
        assert not block.has_changes()
        assert block.raw["paragraph"]["rich_text"][0]["text"]["content"] == "Hello world"

    def test_passthrough_round_trips(self):
        raw = make_raw("table_of_contents")
        raw["table_of_contents"] = {"color": "gray"}
        block = deserialize(raw)
        assert block.serialize() == raw
