"""Tests for notionbuf.model.detection: prefix detection and stripping."""

from __future__ import annotations

import pytest

from notionbuf.model.detection import (
    Detected,
    detect_type,
    escape_prefix,
    prefix_for_type,
    should_convert,
    strip_prefix,
    unescape_prefix,
)


class TestDetectType:
    @pytest.mark.parametrize(
        ("line", "expected"),
        [
            ("# Title", Detected("heading_1", "# ")),
            ("## Title", Detected("heading_2", "## ")),
            ("### Title", Detected("heading_3", "### ")),
            ("- item", Detected("bulleted_list_item", "- ")),
            ("* item", Detected("bulleted_list_item", "* ")),
            ("+ item", Detected("bulleted_list_item", "+ ")),
            ("- [ ] task", Detected("to_do", "- [ ] ")),
            ("- [x] done", Detected("to_do", "- [x] ")),
            ("12. twelfth", Detected("numbered_list_item", "12. ")),
            ("> toggle", Detected("toggle", "> ")),
            ("| quote", Detected("quote", "| ")),
            ("---", Detected("divider", "---")),
            ("-----  ", Detected("divider", "-----  ")),
        ],
    )
    def test_known_prefixes(self, line, expected):
        assert detect_type(line) == expected

    @pytest.mark.parametrize("line", ["plain text", "#hashtag", "-dash", "1.5 litres", ""])
    def test_no_prefix(self, line):
        assert detect_type(line) is None

    def test_todo_wins_over_bullet(self):
        assert detect_type("* [X] shout").block_type == "to_do"

    def test_bare_marker_counts(self):
        assert detect_type("-") == Detected("bulleted_list_item", "-")


class TestStripPrefix:
    def test_strips_list_prefix(self):
        assert strip_prefix("- item") == ("bulleted_list_item", "item")

    def test_plain_line_is_paragraph(self):
        assert strip_prefix("just words") == ("paragraph", "just words")

    def test_divider_has_no_content(self):
        assert strip_prefix("---") == ("divider", "")

    def test_keeps_inner_markup(self):
        assert strip_prefix("## **bold** head") == ("heading_2", "**bold** head")


class TestPrefixForType:
    def test_known(self):
        assert prefix_for_type("to_do") == "- [ ] "
        assert prefix_for_type("heading_3") == "### "

    def test_unknown_is_empty(self):
        assert prefix_for_type("image") == ""


class TestShouldConvert:
    def test_paragraph_to_list(self):
        assert should_convert("paragraph", "- item") == "bulleted_list_item"

    def test_same_type_is_none(self):
        assert should_convert("bulleted_list_item", "- item") is None

    def test_blank_content_never_converts(self):
        assert should_convert("bulleted_list_item", "   ") is None

    def test_list_to_paragraph(self):
        assert should_convert("numbered_list_item", "no prefix") == "paragraph"

    def test_escaped_prefix_stays_paragraph(self):
        assert should_convert("paragraph", "\\- item") is None


class TestEscapePrefix:
    @pytest.mark.parametrize("line", ["- dash", "1. one", "> quoted", "# hash", "---", "| pipe"])
    def test_escape_roundtrip(self, line):
        escaped = escape_prefix(line)
        assert escaped == "\\" + line
        assert detect_type(escaped) is None
        assert unescape_prefix(escaped) == line

    def test_plain_line_untouched(self):
        assert escape_prefix("plain") == "plain"
        assert unescape_prefix("\\plain") == "\\plain"

    def test_strip_prefix_unescapes(self):
        assert strip_prefix("\\# not a heading") == ("paragraph", "# not a heading")

    def test_typed_backslash_survives(self):
        line = "\\- already escaped"
        escaped = escape_prefix(line)
        assert escaped == "\\\\- already escaped"
        assert unescape_prefix(escaped) == line
        assert strip_prefix(escaped) == ("paragraph", line)
