"""Block type registry.

Maps a type tag to its :class:`~notionbuf.model.handlers.BlockHandler`.
Types without a handler fall back to a read-only pass-through that keeps
the remote payload untouched.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from notionbuf.model.block import Block
from notionbuf.model.handlers import DEFAULT_HANDLERS, BlockHandler, PassthroughHandler

_HANDLERS: dict[str, BlockHandler] = {}
_FALLBACK = PassthroughHandler()


def register(handler: BlockHandler) -> None:
    """Serve every type in ``handler.types`` with *handler*."""
    for block_type in handler.types:
        _HANDLERS[block_type] = handler


for _handler in DEFAULT_HANDLERS:
    register(_handler)


def get_handler(block_type: str) -> BlockHandler:
    return _HANDLERS.get(block_type, _FALLBACK)


def is_supported(block_type: str) -> bool:
    """True when *block_type* has an editable handler."""
    handler = _HANDLERS.get(block_type)
    return handler is not None and handler.editable


def supported_types() -> list[str]:
    return sorted(t for t, h in _HANDLERS.items() if h.editable)


def deserialize(raw: dict[str, Any]) -> Block:
    """Build a block (without children) from a remote block object."""
    return Block(raw, get_handler(raw.get("type", "")))


def deserialize_tree(raws: Iterable[dict[str, Any]]) -> list[Block]:
    """Build blocks from remote objects, attaching any ``children`` lists.

    Child lists are looked up under the top-level ``"children"`` key or the
    type-specific data key, where :class:`~notionbuf.notion_api.NotionStore`
    places them after a recursive fetch.  They are removed from the stored
    payload so pass-through blocks round-trip exactly as the API sent them.
    """
    blocks: list[Block] = []
    for raw in raws:
        children = raw.pop("children", None)
        data = raw.get(raw.get("type", ""))
        if children is None and isinstance(data, dict):
            children = data.pop("children", None)
        block = deserialize(raw)
        for child in deserialize_tree(children or []):
            block.add_child(child)
        blocks.append(block)
    return blocks


def check_editability(blocks: Iterable[Block]) -> tuple[bool, list[str]]:
    """Return whether every block is editable, plus the read-only types seen."""
    unsupported: list[str] = []
    for root in blocks:
        for block in root.iter_tree():
            if not block.editable and block.type not in unsupported:
                unsupported.append(block.type)
    return not unsupported, unsupported
