"""Render Notion rich_text segments as marked-up buffer text.

Annotations map onto the Markdown inline grammar::

    code -> `x`    bold -> **x**    italic -> _x_
    strikethrough -> ~~x~~    underline -> <u>x</u>    link -> [x](url)

Equations render as ``$expression$``.  Only the characters the inline
grammar would otherwise consume are escaped, so ordinary prose (dots,
dashes, parentheses) reads exactly as typed.
"""

from __future__ import annotations

import re

_ESCAPE_RE = re.compile(r"([\\`*_\[\]~$<])")


def escape_text(text: str) -> str:
    """Backslash-escape inline markup characters in plain *text*."""
    return _ESCAPE_RE.sub(r"\\\1", text)


def _escape_url(url: str) -> str:
    return url.replace("(", "%28").replace(")", "%29")


def segment_text(segment: dict) -> str:
    """Return the unformatted text carried by one segment."""
    if segment.get("type") == "equation":
        return segment.get("equation", {}).get("expression", "")
    # API responses use "plain_text"; locally-built segments use "text.content".
    return segment.get("plain_text", "") or segment.get("text", {}).get("content", "")


def plain_text(segments: list[dict]) -> str:
    """Concatenate the unformatted text of *segments*."""
    return "".join(segment_text(seg) for seg in segments)


def render(segments: list[dict]) -> str:
    """Render a rich_text array to marked-up text.

    Parameters
    ----------
    segments:
        Notion rich_text objects (``text`` or ``equation``).

    Returns
    -------
    str
        The text as it appears in the buffer.
    """
    parts: list[str] = []

    for seg in segments:
        annotations = seg.get("annotations", {})
        href = seg.get("href")
        if not href:
            link = seg.get("text", {}).get("link")
            href = link.get("url") if isinstance(link, dict) else None

        if seg.get("type") == "equation":
            text = f"${segment_text(seg)}$"
        elif annotations.get("code", False):
            text = f"`{segment_text(seg)}`"
        else:
            text = escape_text(segment_text(seg))

            if annotations.get("bold", False):
                text = f"**{text}**"
            if annotations.get("italic", False):
                text = f"_{text}_"
            if annotations.get("strikethrough", False):
                text = f"~~{text}~~"
            if annotations.get("underline", False):
                text = f"<u>{text}</u>"

        if href:
            text = f"[{text}]({_escape_url(href)})"

        parts.append(text)

    return "".join(parts)
