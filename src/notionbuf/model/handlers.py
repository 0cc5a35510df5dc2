"""Per-type block behaviour.

Each :class:`BlockHandler` subclass knows how one family of block types is
rendered into buffer lines, read back from edited lines, and serialized
into a Notion payload.  Handlers are stateless singletons: all state lives
on the :class:`~notionbuf.model.block.Block`.

Text blocks share :class:`TextHandler`: their first line carries the type's
markup prefix (``- ``, ``## ``, ``> ``...), continuation lines carry only the
indentation.  When the prefix on the first line stops matching the block's
type, the block reports a pending type change instead of an update.
"""

from __future__ import annotations

import copy
from typing import Any

from notionbuf import richtext
from notionbuf.model import detection
from notionbuf.model.block import Block

PLAIN_TEXT_LANGUAGE = "plain text"
CHILD_PAGE_ICON = "📄"
CHILD_DATABASE_ICON = "🗃️"


def _dedent(lines: list[str]) -> list[str]:
    """Remove the first line's indentation from every line."""
    if not lines:
        return []
    first = lines[0]
    width = len(first) - len(first.lstrip(" "))
    if width == 0:
        return list(lines)
    return [line[width:] if line[:width].isspace() else line.lstrip(" ") for line in lines]


# ---------------------------------------------------------------------------
# Base and read-only handlers
# ---------------------------------------------------------------------------

class BlockHandler:
    """Behaviour of read-only block types; base class for all handlers.

    Capability flags
    ----------------
    types:
        Type tags served by this handler.
    editable:
        Whether buffer edits are read back into the block.
    supports_children:
        Whether new indented lines may attach under this block.
    fixed_shape:
        The literal line this block always renders as, if any.
    """

    types: tuple[str, ...] = ()
    editable: bool = False
    supports_children: bool = False
    fixed_shape: str | None = None

    def load(self, block: Block) -> None:
        """Populate ``text`` and ``attrs`` from ``block.raw``."""
        block.text = self.get_text(block)
        block.original_text = block.text

    def format(self, block: Block, indent: str) -> list[str]:
        return [f"{indent}[{block.type} - read only]"]

    def serialize(self, block: Block) -> dict[str, Any]:
        return block.raw

    def update_from_lines(self, block: Block, lines: list[str]) -> None:
        pass

    def type_changed(self, block: Block) -> bool:
        return False

    def converted_content(self, block: Block) -> str:
        return block.text

    def has_changes(self, block: Block) -> bool:
        return block.text != block.original_text

    def get_text(self, block: Block) -> str:
        return block.text

    def snapshot(self, block: Block) -> None:
        block.original_text = block.text


class PassthroughHandler(BlockHandler):
    """Fallback for every type without a dedicated handler."""


class DividerHandler(BlockHandler):
    types = ("divider",)
    fixed_shape = "---"

    def format(self, block: Block, indent: str) -> list[str]:
        return [f"{indent}---"]


class ChildPageHandler(BlockHandler):
    """Sub-page link, shown as ``<icon> <title>``."""

    types = ("child_page",)
    icon = CHILD_PAGE_ICON

    def get_text(self, block: Block) -> str:
        title = (block.raw.get(block.type) or {}).get("title", "").strip()
        return title or "Untitled"

    def format(self, block: Block, indent: str) -> list[str]:
        icon = block.attrs.get("icon") or self.icon
        return [f"{indent}{icon} {block.text}"]


class ChildDatabaseHandler(ChildPageHandler):
    types = ("child_database",)
    icon = CHILD_DATABASE_ICON


# ---------------------------------------------------------------------------
# Text handlers
# ---------------------------------------------------------------------------

class TextHandler(BlockHandler):
    """Rich-text block whose first line carries a type prefix.

    Subclasses set :attr:`types`; :meth:`prefix` defaults to the canonical
    prefix of the type.  A prefix-less first line that would read back as a
    prefix is rendered backslash-escaped.  Detected prefixes listed in
    :attr:`aliases` are accepted as this type instead of triggering a
    conversion.
    """

    editable = True
    aliases: dict[str, str] = {}

    def load(self, block: Block) -> None:
        data = block.raw.get(block.type) or {}
        block.attrs["color"] = data.get("color", "default")
        block.attrs["target_type"] = None
        block.text = richtext.render(data.get("rich_text", []))
        block.original_text = block.text

    def prefix(self, block: Block) -> str:
        return detection.prefix_for_type(block.type)

    def format(self, block: Block, indent: str) -> list[str]:
        first, *rest = block.text.split("\n")
        prefix = self.prefix(block)
        if not prefix:
            first = detection.escape_prefix(first)
        lines = [f"{indent}{prefix}{first}"]
        lines.extend(f"{indent}{line}" for line in rest)
        return lines

    def update_from_lines(self, block: Block, lines: list[str]) -> None:
        lines = _dedent(lines)
        first = lines[0] if lines else ""
        detected = detection.detect_type(first)
        if detected is not None:
            self.apply_prefix(block, detected)

        target = detection.should_convert(block.type, first)
        target = self.aliases.get(target, target)
        _, content = detection.strip_prefix(first)

        block.attrs["target_type"] = target if target != block.type else None
        block.text = "\n".join([content] + lines[1:])
        block.dirty = self.has_changes(block) or self.type_changed(block)

    def apply_prefix(self, block: Block, detected: detection.Detected) -> None:
        """Record state carried by the prefix (the to-do checkbox)."""
        if detected.block_type == "to_do":
            block.attrs["checked"] = "[ ]" not in detected.prefix

    def type_changed(self, block: Block) -> bool:
        target = block.attrs.get("target_type")
        return target is not None and target != block.type

    def converted_content(self, block: Block) -> str:
        return block.text

    def serialize(self, block: Block) -> dict[str, Any]:
        result = copy.deepcopy(block.raw)
        result["type"] = block.type
        data = result.setdefault(block.type, {})
        data.pop("children", None)
        if block.text != block.original_text or "rich_text" not in data:
            data["rich_text"] = richtext.parse(block.text)
        self.serialize_extra(block, data)
        return result

    def serialize_extra(self, block: Block, data: dict[str, Any]) -> None:
        pass

    def snapshot(self, block: Block) -> None:
        if block.text != block.original_text:
            data = block.raw.setdefault(block.type, {})
            data["rich_text"] = richtext.parse(block.text)
        block.original_text = block.text
        block.attrs["target_type"] = None


class ParagraphHandler(TextHandler):
    types = ("paragraph",)


class HeadingHandler(TextHandler):
    """``#``/``##``/``###`` headings; a level change is a type change."""

    types = ("heading_1", "heading_2", "heading_3")

    def load(self, block: Block) -> None:
        super().load(block)
        block.attrs["level"] = int(block.type[-1])

    def prefix(self, block: Block) -> str:
        return "#" * block.attrs.get("level", 1) + " "


class BulletedListHandler(TextHandler):
    types = ("bulleted_list_item",)
    supports_children = True


class NumberedListHandler(TextHandler):
    """``N. `` items.  ``number`` is assigned from the item's position."""

    types = ("numbered_list_item",)
    supports_children = True

    def prefix(self, block: Block) -> str:
        return f"{block.attrs.get('number', 1)}. "


class ToDoHandler(TextHandler):
    """``- [ ] `` / ``- [x] `` items; toggling the box is an update."""

    types = ("to_do",)
    supports_children = True

    def load(self, block: Block) -> None:
        super().load(block)
        checked = bool((block.raw.get(block.type) or {}).get("checked", False))
        block.attrs["checked"] = checked
        block.attrs["original_checked"] = checked

    def prefix(self, block: Block) -> str:
        return "- [x] " if block.attrs.get("checked") else "- [ ] "

    def has_changes(self, block: Block) -> bool:
        return (
            block.text != block.original_text
            or block.attrs.get("checked") != block.attrs.get("original_checked")
        )

    def serialize_extra(self, block: Block, data: dict[str, Any]) -> None:
        data["checked"] = bool(block.attrs.get("checked"))

    def snapshot(self, block: Block) -> None:
        super().snapshot(block)
        block.attrs["original_checked"] = block.attrs.get("checked")
        block.raw.setdefault(block.type, {})["checked"] = bool(block.attrs.get("checked"))


class ToggleHandler(TextHandler):
    types = ("toggle",)
    supports_children = True


class QuoteHandler(TextHandler):
    """``| `` quotes.  A ``> `` prefix is read back as a quote too."""

    types = ("quote",)
    supports_children = True
    aliases = {"toggle": "quote"}


# ---------------------------------------------------------------------------
# Code
# ---------------------------------------------------------------------------

class CodeHandler(BlockHandler):
    """Fenced code block.  Content is literal; only the language is parsed."""

    types = ("code",)
    editable = True

    def load(self, block: Block) -> None:
        data = block.raw.get(block.type) or {}
        block.text = richtext.plain_text(data.get("rich_text", []))
        block.original_text = block.text
        language = data.get("language") or PLAIN_TEXT_LANGUAGE
        block.attrs["language"] = language
        block.attrs["original_language"] = language

    def format(self, block: Block, indent: str) -> list[str]:
        language = block.attrs.get("language", PLAIN_TEXT_LANGUAGE)
        tag = "" if language == PLAIN_TEXT_LANGUAGE else language
        lines = [f"{indent}```{tag}"]
        lines.extend(f"{indent}{line}" for line in block.text.split("\n"))
        lines.append(f"{indent}```")
        return lines

    def update_from_lines(self, block: Block, lines: list[str]) -> None:
        lines = _dedent(lines)
        body = list(lines)
        language = block.attrs.get("language", PLAIN_TEXT_LANGUAGE)
        if body and body[0].strip().startswith("```"):
            language = body[0].strip()[3:].strip() or PLAIN_TEXT_LANGUAGE
            body = body[1:]
        if body and body[-1].strip() == "```":
            body = body[:-1]

        block.attrs["language"] = language
        block.text = "\n".join(body)
        block.dirty = self.has_changes(block)

    def has_changes(self, block: Block) -> bool:
        return (
            block.text != block.original_text
            or block.attrs.get("language") != block.attrs.get("original_language")
        )

    def serialize(self, block: Block) -> dict[str, Any]:
        result = copy.deepcopy(block.raw)
        result["type"] = block.type
        data = result.setdefault(block.type, {})
        if block.text != block.original_text or "rich_text" not in data:
            data["rich_text"] = [richtext.text_segment(block.text)] if block.text else []
        data["language"] = block.attrs.get("language", PLAIN_TEXT_LANGUAGE)
        return result

    def snapshot(self, block: Block) -> None:
        data = block.raw.setdefault(block.type, {})
        if block.text != block.original_text:
            data["rich_text"] = [richtext.text_segment(block.text)] if block.text else []
        data["language"] = block.attrs.get("language", PLAIN_TEXT_LANGUAGE)
        block.original_text = block.text
        block.attrs["original_language"] = block.attrs.get("language")


DEFAULT_HANDLERS: tuple[BlockHandler, ...] = (
    ParagraphHandler(),
    HeadingHandler(),
    BulletedListHandler(),
    NumberedListHandler(),
    ToDoHandler(),
    ToggleHandler(),
    QuoteHandler(),
    CodeHandler(),
    DividerHandler(),
    ChildPageHandler(),
    ChildDatabaseHandler(),
)
