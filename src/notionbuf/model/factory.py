"""Creation of new blocks from orphan lines."""

from __future__ import annotations

import uuid
from typing import Any

from notionbuf import richtext
from notionbuf.model import detection, registry
from notionbuf.model.block import Block

TEMP_ID_PREFIX = "temp_"


def generate_temp_id() -> str:
    return f"{TEMP_ID_PREFIX}{uuid.uuid4().hex[:12]}"


def is_temp_id(block_id: str | None) -> bool:
    return bool(block_id) and block_id.startswith(TEMP_ID_PREFIX)


def create_raw_block(block_type: str, content: str) -> dict[str, Any]:
    """Build a Notion block object of *block_type* holding *content*.

    >>> create_raw_block("divider", "")
    {'object': 'block', 'type': 'divider', 'divider': {}}
    """
    if block_type == "divider":
        return {"object": "block", "type": "divider", "divider": {}}

    if block_type == "code":
        rich_text = [richtext.text_segment(content)] if content else []
        data: dict[str, Any] = {"rich_text": rich_text, "language": "plain text"}
    else:
        data = {"rich_text": richtext.parse(content), "color": "default"}

    if block_type.startswith("heading_"):
        data["is_toggleable"] = False
    elif block_type == "to_do":
        data["checked"] = False

    return {"object": "block", "type": block_type, block_type: data}


def create_from_lines(lines: list[str]) -> Block | None:
    """Build a provisional block from the (indent-stripped) lines of an orphan.

    The type is detected from the first line's prefix and the prefix is
    removed; a leading code fence makes a code block.  Leading and trailing
    blank lines are dropped.  Returns ``None`` when every line is blank.
    """
    content_lines = list(lines)
    while content_lines and not content_lines[0].strip():
        content_lines.pop(0)
    while content_lines and not content_lines[-1].strip():
        content_lines.pop()
    if not content_lines:
        return None

    if content_lines[0].strip().startswith("```"):
        return _create_code(content_lines)

    detected = detection.detect_type(content_lines[0])
    block_type, first = detection.strip_prefix(content_lines[0])
    content = "\n".join([first] + content_lines[1:])

    raw = create_raw_block(block_type, content)
    raw["id"] = generate_temp_id()
    if block_type == "to_do" and detected is not None:
        raw["to_do"]["checked"] = "[ ]" not in detected.prefix

    block = registry.deserialize(raw)
    if block.editable:
        block.text = block.original_text = content
    block.is_new = True
    block.dirty = True
    return block


def _create_code(lines: list[str]) -> Block:
    """Build a code block from fenced lines (closing fence optional)."""
    language = lines[0].strip()[3:].strip() or "plain text"
    body = lines[1:]
    if body and body[-1].strip() == "```":
        body = body[:-1]
    content = "\n".join(body)

    raw = create_raw_block("code", content)
    raw["code"]["language"] = language
    raw["id"] = generate_temp_id()
    block = registry.deserialize(raw)
    block.text = block.original_text = content
    block.is_new = True
    block.dirty = True
    return block
