"""Line-prefix detection.

Maps the markup prefix at the start of a line to the block type it stands
for.  Patterns are tried in order, so the more specific ones come first
(``- [ ] `` before ``- ``, ``### `` before ``# ``).
"""

from __future__ import annotations

import re
from typing import NamedTuple


class Detected(NamedTuple):
    block_type: str
    prefix: str


_PREFIX_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"^---+\s*$"), "divider"),
    (re.compile(r"^###(?: |$)"), "heading_3"),
    (re.compile(r"^##(?: |$)"), "heading_2"),
    (re.compile(r"^#(?: |$)"), "heading_1"),
    (re.compile(r"^[-*+] \[[ xX]\](?: |$)"), "to_do"),
    (re.compile(r"^[-*+](?: |$)"), "bulleted_list_item"),
    (re.compile(r"^\d+\.(?: |$)"), "numbered_list_item"),
    (re.compile(r"^>(?: |$)"), "toggle"),
    (re.compile(r"^\|(?: |$)"), "quote"),
]

TYPE_TO_PREFIX: dict[str, str] = {
    "paragraph": "",
    "heading_1": "# ",
    "heading_2": "## ",
    "heading_3": "### ",
    "bulleted_list_item": "- ",
    "numbered_list_item": "1. ",
    "to_do": "- [ ] ",
    "toggle": "> ",
    "quote": "| ",
    "divider": "---",
}


def detect_type(line: str) -> Detected | None:
    """Return the block type and matched prefix of *line*, or ``None``.

    A backslash in front of a prefix makes it literal text.

    >>> detect_type("## Title")
    Detected(block_type='heading_2', prefix='## ')
    >>> detect_type("plain") is None
    True
    >>> detect_type("\\\\- not a list") is None
    True
    """
    for pattern, block_type in _PREFIX_PATTERNS:
        match = pattern.match(line)
        if match:
            return Detected(block_type, match.group(0))
    return None


def _needs_escape(line: str) -> bool:
    return detect_type(line.lstrip("\\")) is not None


def escape_prefix(line: str) -> str:
    """Backslash-escape *line* when its start would read back as a prefix.

    Used for the first line of prefix-less blocks, so a paragraph reading
    ``- x`` or ``# x`` stays a paragraph.  A line that already starts with
    backslashes in front of a prefix gets one more, so the backslashes the
    user typed survive.
    """
    if _needs_escape(line):
        return f"\\{line}"
    return line


def unescape_prefix(line: str) -> str:
    """Inverse of :func:`escape_prefix`."""
    if line.startswith("\\") and _needs_escape(line[1:]):
        return line[1:]
    return line


def strip_prefix(line: str) -> tuple[str, str]:
    """Split *line* into ``(block_type, content)``.

    Lines without a known prefix are paragraphs; an escaped prefix is
    unescaped into their content.
    """
    detected = detect_type(line)
    if detected is None:
        return "paragraph", unescape_prefix(line)
    if detected.block_type == "divider":
        return "divider", ""
    return detected.block_type, line[len(detected.prefix):]


def prefix_for_type(block_type: str) -> str:
    """Return the canonical prefix for *block_type* (``""`` if none)."""
    return TYPE_TO_PREFIX.get(block_type, "")


def should_convert(current_type: str, content: str) -> str | None:
    """Return the type *content* implies if it differs from *current_type*.

    Empty content never converts, so clearing a line's text does not turn
    a list item into a paragraph by itself.
    """
    if not content.strip():
        return None
    detected_type, _ = strip_prefix(content)
    if detected_type != current_type:
        return detected_type
    return None
