"""Parse marked-up buffer text into Notion rich_text segments.

The text is parsed with mistune's AST renderer and the inline tokens are
folded into segments, carrying annotations down from wrapper nodes
(``strong``, ``emphasis``, ``strikethrough``, ``<u>...</u>``, links).

Buffer text is always *inline* content: block prefixes were already
stripped by the block handlers.  Line starts that the Markdown block
grammar would claim (``# ``, ``> ``, ``- ``, ``1. ``, setext underlines,
HTML) are backslash-escaped before parsing so they stay literal text.
"""

from __future__ import annotations

import re

import mistune

# Notion rejects text objects longer than this.
MAX_SEGMENT_LENGTH = 2000

_markdown = mistune.create_markdown(
    renderer="ast",
    plugins=["strikethrough", "url", "math"],
)

_INLINE_TYPES: frozenset[str] = frozenset({
    "text",
    "strong",
    "emphasis",
    "codespan",
    "strikethrough",
    "link",
    "image",
    "inline_math",
    "softbreak",
    "linebreak",
    "inline_html",
})

_BLOCK_START_RE = re.compile(
    r"^(\s*)("
    r"#{1,6}(?=\s|$)"
    r"|[>|]"
    r"|[+\-*](?=\s|$)"
    r"|`{3,}|~{3,}"
    r"|<(?!/?u>)"
    r")"
)
_ORDERED_START_RE = re.compile(r"^(\s*\d{1,9})([.)])(?=\s|$)")
_SETEXT_RE = re.compile(r"^\s*(=+|-+|\*+|_+)\s*$")


# ---------------------------------------------------------------------------
# Annotation helpers
# ---------------------------------------------------------------------------

def default_annotations() -> dict:
    """Return a fresh default Notion annotations dict."""
    return {
        "bold": False,
        "italic": False,
        "strikethrough": False,
        "underline": False,
        "code": False,
        "color": "default",
    }


def _with(base: dict, **overrides: bool) -> dict:
    merged = dict(base)
    for key, value in overrides.items():
        merged[key] = merged.get(key, False) or value
    return merged


def text_segment(content: str, annotations: dict | None = None, href: str | None = None) -> dict:
    """Build one Notion rich_text ``text`` object."""
    return {
        "type": "text",
        "text": {"content": content, "link": {"url": href} if href else None},
        "annotations": dict(annotations) if annotations else default_annotations(),
    }


def _equation_segment(expression: str, annotations: dict) -> dict:
    return {
        "type": "equation",
        "equation": {"expression": expression},
        "annotations": dict(annotations),
    }


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def parse(text: str) -> list[dict]:
    """Convert marked-up *text* into a Notion rich_text array.

    Parameters
    ----------
    text:
        Buffer text, possibly spanning several lines.  Newlines are kept as
        literal ``"\\n"`` characters in the segments.

    Returns
    -------
    list[dict]
        Rich text segments ready for a create or update payload.  Empty
        text yields an empty list.
    """
    if not text:
        return []

    tokens = _markdown(_escape_block_starts(text))
    if isinstance(tokens, str):
        return [text_segment(text)]

    segments: list[dict] = []
    for token in tokens:
        if token.get("type") == "blank_line":
            continue
        if segments:
            segments.append(text_segment("\n\n"))
        segments.extend(
            _build(_collect_inline(token), default_annotations(), None)
        )

    return _split_long(_merge_adjacent(segments))


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _escape_block_starts(text: str) -> str:
    out: list[str] = []
    for line in text.split("\n"):
        if _SETEXT_RE.match(line):
            stripped = line.lstrip()
            line = line[: len(line) - len(stripped)] + "\\" + stripped
        else:
            line = _BLOCK_START_RE.sub(lambda m: f"{m.group(1)}\\{m.group(2)}", line, count=1)
            line = _ORDERED_START_RE.sub(lambda m: f"{m.group(1)}\\{m.group(2)}", line, count=1)
        out.append(line)
    return "\n".join(out)


def _collect_inline(token: dict) -> list[dict]:
    """Flatten a block token into the inline tokens it contains."""
    token_type = token.get("type", "")
    if token_type in _INLINE_TYPES:
        return [token]
    children = token.get("children")
    if children:
        collected: list[dict] = []
        for child in children:
            collected.extend(_collect_inline(child))
        return collected
    raw = token.get("raw") or token.get("text")
    if raw:
        return [{"type": "text", "raw": raw.rstrip("\n")}]
    return []


def _build(children: list[dict], annotations: dict, href: str | None) -> list[dict]:
    segments: list[dict] = []
    underline = False

    for token in children:
        token_type = token.get("type", "")
        annots = _with(annotations, underline=True) if underline else annotations

        if token_type == "inline_html":
            raw = token.get("raw", "")
            if raw.lower() == "<u>":
                underline = True
            elif raw.lower() == "</u>":
                underline = False
            elif raw:
                segments.append(text_segment(raw, annots, href))

        elif token_type == "text":
            raw = token.get("raw", "")
            if raw:
                segments.append(text_segment(raw, annots, href))

        elif token_type == "strong":
            segments.extend(_build(token.get("children", []), _with(annots, bold=True), href))

        elif token_type == "emphasis":
            segments.extend(_build(token.get("children", []), _with(annots, italic=True), href))

        elif token_type == "strikethrough":
            segments.extend(
                _build(token.get("children", []), _with(annots, strikethrough=True), href)
            )

        elif token_type == "codespan":
            segments.append(text_segment(token.get("raw", ""), _with(annots, code=True), href))

        elif token_type == "link":
            url = token.get("attrs", {}).get("url", "")
            segments.extend(_build(token.get("children", []), annots, url or href))

        elif token_type == "image":
            url = token.get("attrs", {}).get("url", "")
            alt = "".join(c.get("raw", "") for c in token.get("children", []))
            segments.append(text_segment(f"![{alt}]({url})", annots, href))

        elif token_type == "inline_math":
            segments.append(_equation_segment(token.get("raw", ""), annots))

        elif token_type in ("softbreak", "linebreak"):
            segments.append(text_segment("\n", annots, href))

    return segments


def _link_of(segment: dict) -> str | None:
    link = segment.get("text", {}).get("link")
    return link.get("url") if link else None


def _merge_adjacent(segments: list[dict]) -> list[dict]:
    merged: list[dict] = []
    for seg in segments:
        prev = merged[-1] if merged else None
        if (
            prev is not None
            and prev["type"] == "text"
            and seg["type"] == "text"
            and prev["annotations"] == seg["annotations"]
            and _link_of(prev) == _link_of(seg)
        ):
            prev["text"]["content"] += seg["text"]["content"]
        else:
            merged.append(seg)
    return merged


def _split_long(segments: list[dict]) -> list[dict]:
    out: list[dict] = []
    for seg in segments:
        content = seg.get("text", {}).get("content", "")
        if seg["type"] != "text" or len(content) <= MAX_SEGMENT_LENGTH:
            out.append(seg)
            continue
        for i in range(0, len(content), MAX_SEGMENT_LENGTH):
            out.append(
                text_segment(content[i : i + MAX_SEGMENT_LENGTH], seg["annotations"], _link_of(seg))
            )
    return out
