"""The block entity.

A :class:`Block` is one node of a page's block tree.  Type-specific
behaviour (rendering, parsing edits, serializing) lives in a
:class:`~notionbuf.model.handlers.BlockHandler` chosen by the registry from
the block's type tag; the block itself only holds state and the tree links.

Parents are referenced weakly and children are owned, so dropping a
subtree from its parent is enough to release it.
"""

from __future__ import annotations

import weakref
from collections.abc import Iterator
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from notionbuf.model.handlers import BlockHandler


class Block:
    """One typed block with its remote payload and editing state.

    Parameters
    ----------
    raw:
        The remote block object.  Kept verbatim for read-only types so they
        round-trip without loss.
    handler:
        The behaviour for this block's type.

    Attributes
    ----------
    id:
        Remote id, or a ``temp_...`` provisional id while creation is
        pending.
    type:
        The remote type tag.
    text:
        Current editable text, with inline markup.
    original_text:
        Snapshot of ``text`` at the last successful sync.
    attrs:
        Per-type state: heading level, code language, to-do state, list
        number, pending target type.
    span:
        ``(start, end)`` 1-indexed buffer lines, or ``None`` when the block
        is no longer present in the buffer.
    """

    def __init__(self, raw: dict[str, Any], handler: BlockHandler) -> None:
        self.raw: dict[str, Any] = raw
        self.handler = handler
        self.id: str = raw.get("id") or ""
        self.type: str = raw.get("type") or "unsupported"
        self.text: str = ""
        self.original_text: str = ""
        self.attrs: dict[str, Any] = {}
        self.editable: bool = handler.editable
        self.dirty: bool = False
        self.is_new: bool = False
        self.span: tuple[int, int] | None = None
        self.depth: int = 0
        self.children: list[Block] = []
        self._parent: weakref.ref[Block] | None = None
        handler.load(self)

    def __repr__(self) -> str:
        return (
            f"Block(id={self.id!r}, type={self.type!r}, span={self.span!r}, "
            f"dirty={self.dirty!r})"
        )

    # ── Tree ────────────────────────────────────────────────────────────

    @property
    def parent(self) -> Block | None:
        return self._parent() if self._parent is not None else None

    def add_child(self, child: Block, index: int | None = None) -> None:
        """Attach *child* (moving it from its current parent if needed)."""
        current = child.parent
        if current is not None:
            current.remove_child(child)
        if index is None:
            self.children.append(child)
        else:
            self.children.insert(index, child)
        child._parent = weakref.ref(self)
        child._refresh_depth()

    def remove_child(self, child: Block) -> None:
        self.children.remove(child)
        child._parent = None
        child._refresh_depth()

    def _refresh_depth(self) -> None:
        parent = self.parent
        self.depth = parent.depth + 1 if parent is not None else 0
        for child in self.children:
            child._refresh_depth()

    def iter_tree(self) -> Iterator[Block]:
        """Yield this block and its descendants in document order."""
        yield self
        for child in self.children:
            yield from child.iter_tree()

    def ancestors(self) -> Iterator[Block]:
        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    # ── Capabilities ────────────────────────────────────────────────────

    @property
    def supports_children(self) -> bool:
        return self.handler.supports_children

    @property
    def fixed_shape(self) -> str | None:
        return self.handler.fixed_shape

    @property
    def has_remote_children(self) -> bool:
        return bool(self.raw.get("has_children", False))

    @property
    def target_type(self) -> str | None:
        """The type a pending edit converts this block to, if any."""
        return self.attrs.get("target_type")

    def contains_line(self, line: int) -> bool:
        return self.span is not None and self.span[0] <= line <= self.span[1]

    # ── Behaviour (delegated to the handler) ────────────────────────────

    def format(self, indent_size: int = 2) -> list[str]:
        """Render this block's own lines, indented by its depth."""
        return self.handler.format(self, " " * (self.depth * indent_size))

    def serialize(self) -> dict[str, Any]:
        return self.handler.serialize(self)

    def update_from_lines(self, lines: list[str]) -> None:
        self.handler.update_from_lines(self, lines)

    def type_changed(self) -> bool:
        return self.handler.type_changed(self)

    def converted_content(self) -> str:
        return self.handler.converted_content(self)

    def has_changes(self) -> bool:
        """True when the block differs from its last synced state."""
        return self.dirty and self.handler.has_changes(self)

    def get_text(self) -> str:
        return self.handler.get_text(self)

    def update_payload(self) -> dict[str, Any]:
        """Body for ``PATCH /blocks/{id}``."""
        payload = self.serialize()
        return {self.type: payload.get(self.type, {})}

    def create_payload(self) -> dict[str, Any]:
        """Block object for ``PATCH /blocks/{parent}/children``."""
        payload = self.serialize()
        return {"object": "block", "type": self.type, self.type: payload.get(self.type, {})}

    def mark_synced(self) -> None:
        """Adopt the current content as the new sync baseline."""
        self.handler.snapshot(self)
        self.dirty = False
