"""Tests for orphan line detection."""

from __future__ import annotations

from builders import bind_buffer, make_raw
from hypothesis import given
from hypothesis import strategies as st

from notionbuf.model import detect_orphans
from notionbuf.model.orphans import indent_level


def _orphans(tracker, header_lines=2):
    tracker.refresh()
    return detect_orphans(tracker, header_lines, tracker.indent_size)


def test_indent_level():
    assert indent_level("x", 2) == 0
    assert indent_level("  x", 2) == 1
    assert indent_level("     x", 2) == 2
    assert indent_level("    x", 4) == 1


def test_bound_buffer_has_no_orphans():
    _, tracker = bind_buffer([make_raw("paragraph", "a"), make_raw("heading_1", "H")])
    assert _orphans(tracker) == []


def test_header_lines_are_skipped():
    _, tracker = bind_buffer([], header=["# Page", "", "📍 Workspace", "", "---", ""])
    assert _orphans(tracker, header_lines=6) == []


def test_unindented_lines_coalesce():
    buffer, tracker = bind_buffer([make_raw("paragraph", "A")])
    block = tracker.roots[0]
    buffer.set_lines(3, 3, ["x", "y"])

    [orphan] = _orphans(tracker)
    assert (orphan.start_line, orphan.end_line) == (4, 5)
    assert orphan.content == ["x", "y"]
    assert orphan.indent_level == 0
    assert orphan.after_block_id == block.id
    assert orphan.parent_block_id is None


def test_lines_before_first_block_have_no_anchor():
    buffer, tracker = bind_buffer([make_raw("paragraph", "A")])
    buffer.set_lines(2, 2, ["top"])
    [orphan] = _orphans(tracker)
    assert orphan.start_line == 3
    assert orphan.after_block_id is None


def test_indented_lines_attach_to_container():
    buffer, tracker = bind_buffer([make_raw("toggle", "T")])
    toggle = tracker.roots[0]
    buffer.set_lines(3, 3, ["  a", "  b"])

    orphans = _orphans(tracker)
    assert [o.content for o in orphans] == [["a"], ["b"]]
    assert all(o.indent_level == 1 for o in orphans)
    assert all(o.parent_block_id == toggle.id for o in orphans)
    assert all(o.after_block_id is None for o in orphans)


def test_block_between_closes_candidate():
    buffer, tracker = bind_buffer([make_raw("toggle", "T"), make_raw("paragraph", "P")])
    paragraph = tracker.roots[1]
    buffer.set_lines(4, 4, ["  x"])

    [orphan] = _orphans(tracker)
    assert orphan.parent_block_id is None
    assert orphan.after_block_id == paragraph.id
    assert orphan.content == ["x"]


def test_nested_container_is_preferred():
    buffer, tracker = bind_buffer([
        make_raw("toggle", "T", children=[make_raw("bulleted_list_item", "b")]),
    ])
    bullet = tracker.roots[0].children[0]
    buffer.set_lines(4, 4, ["    deep"])

    [orphan] = _orphans(tracker)
    assert orphan.indent_level == 2
    assert orphan.parent_block_id == bullet.id


def test_blank_ranges_are_reported():
    buffer, tracker = bind_buffer([make_raw("paragraph", "A"), make_raw("paragraph", "B")])
    buffer.set_lines(3, 3, [""])

    [orphan] = _orphans(tracker)
    assert orphan.is_blank
    assert orphan.start_line == 4


def test_owned_line_splits_ranges():
    buffer, tracker = bind_buffer([make_raw("paragraph", "A"), make_raw("paragraph", "B")])
    first, second = tracker.roots
    buffer.set_lines(4, 4, ["after b"])
    buffer.set_lines(3, 3, ["after a"])

    orphans = _orphans(tracker)
    assert [(o.start_line, o.after_block_id) for o in orphans] == [(4, first.id), (6, second.id)]


_line = st.text(
    alphabet=st.characters(blacklist_categories=("Cs", "Cc", "Zl", "Zp")),
    min_size=1,
    max_size=20,
).filter(lambda s: s.strip() and not s.startswith(" "))


@given(st.lists(_line, min_size=1, max_size=8))
def test_unindented_run_is_one_range(lines):
    buffer, tracker = bind_buffer([make_raw("paragraph", "A")])
    buffer.set_lines(3, 3, lines)

    orphans = _orphans(tracker)
    assert len(orphans) == 1
    assert orphans[0].content == lines
    assert orphans[0].end_line - orphans[0].start_line + 1 == len(lines)
