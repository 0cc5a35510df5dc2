"""Tests for the rich text codec."""

from __future__ import annotations

from notionbuf import richtext
from notionbuf.richtext import default_annotations, parse, plain_text, render, text_segment
from notionbuf.richtext.parse import MAX_SEGMENT_LENGTH


def _contents(segments):
    return [s["text"]["content"] for s in segments]


def _annotated(**flags):
    annotations = default_annotations()
    annotations.update(flags)
    return annotations


class TestParse:
    def test_empty(self):
        assert parse("") == []

    def test_plain(self):
        [segment] = parse("just words")
        assert segment == text_segment("just words")

    def test_bold_and_plain(self):
        segments = parse("Hello **world**")
        assert _contents(segments) == ["Hello ", "world"]
        assert segments[0]["annotations"]["bold"] is False
        assert segments[1]["annotations"]["bold"] is True

    def test_italic_and_code(self):
        segments = parse("_soft_ and `x = 1`")
        assert segments[0]["annotations"]["italic"] is True
        assert segments[-1]["annotations"]["code"] is True
        assert segments[-1]["text"]["content"] == "x = 1"

    def test_link(self):
        [segment] = parse("[docs](https://example.com/docs)")
        assert segment["text"]["content"] == "docs"
        assert segment["text"]["link"] == {"url": "https://example.com/docs"}

    def test_underline_html(self):
        segments = parse("<u>under</u>")
        assert _contents(segments) == ["under"]
        assert segments[0]["annotations"]["underline"] is True

    def test_block_markup_stays_literal(self):
        assert _contents(parse("- not a list")) == ["- not a list"]
        assert _contents(parse("# not a heading")) == ["# not a heading"]
        assert _contents(parse("1. not numbered")) == ["1. not numbered"]

    def test_newlines_kept(self):
        assert _contents(parse("first\nsecond")) == ["first\nsecond"]

    def test_escaped_markup_is_literal(self):
        assert _contents(parse("2\\*3")) == ["2*3"]

    def test_long_text_is_split(self):
        segments = parse("a" * (MAX_SEGMENT_LENGTH + 10))
        assert [len(c) for c in _contents(segments)] == [MAX_SEGMENT_LENGTH, 10]


class TestRender:
    def test_plain_is_escaped(self):
        assert render([text_segment("a_b [c]")]) == "a\\_b \\[c\\]"

    def test_ordinary_punctuation_untouched(self):
        assert render([text_segment("v1.2 (draft) - ok!")]) == "v1.2 (draft) - ok!"

    def test_annotations(self):
        segments = [
            text_segment("b", _annotated(bold=True)),
            text_segment("i", _annotated(italic=True)),
            text_segment("s", _annotated(strikethrough=True)),
            text_segment("u", _annotated(underline=True)),
            text_segment("c", _annotated(code=True)),
        ]
        assert render(segments) == "**b**_i_~~s~~<u>u</u>`c`"

    def test_link_escapes_parentheses(self):
        segment = text_segment("wiki", href="https://en.wikipedia.org/wiki/A_(b)")
        assert render([segment]) == "[wiki](https://en.wikipedia.org/wiki/A_%28b%29)"

    def test_equation(self):
        segment = {"type": "equation", "equation": {"expression": "x^2"}, "annotations": default_annotations()}
        assert render([segment]) == "$x^2$"

    def test_api_plain_text_field(self):
        segment = {"type": "text", "plain_text": "from api", "text": {"content": "from api"}}
        assert render([segment]) == "from api"
        assert plain_text([segment, text_segment("!")]) == "from api!"


def test_render_then_parse_keeps_annotations():
    original = [
        text_segment("Hello "),
        text_segment("bold", _annotated(bold=True)),
        text_segment(" and "),
        text_segment("code", _annotated(code=True)),
    ]
    assert richtext.parse(richtext.render(original)) == original
