"""Buffer line tracking for blocks.

:class:`PositionTracker` binds every block of a page to the buffer lines it
renders to, through one movable marker per block.  Markers follow the text
while the user edits; :meth:`PositionTracker.refresh` turns their current
positions back into 1-indexed ``Block.span`` values and decides which
blocks have been deleted from the buffer.

Markers use start gravity right and end gravity left, so text typed
exactly at a block's boundaries is not absorbed into the block.  Such text
shows up as orphan lines (see :mod:`notionbuf.model.orphans`).
"""

from __future__ import annotations

from collections.abc import Iterable

from notionbuf.errors import NotionbufMappingError
from notionbuf.model.block import Block
from notionbuf.observability import get_logger
from notionbuf.ports import EditorBuffer, MarkerPosition

log = get_logger("notionbuf.mapping")


def number_lists(siblings: Iterable[Block]) -> None:
    """Assign ``attrs["number"]`` to runs of numbered list items."""
    counter = 0
    for block in siblings:
        if block.type == "numbered_list_item":
            counter += 1
            block.attrs["number"] = counter
        else:
            counter = 0
        number_lists(block.children)


def format_blocks(blocks: list[Block], indent_size: int = 2) -> list[str]:
    """Render *blocks* and their descendants into buffer lines."""
    number_lists(blocks)
    lines: list[str] = []
    for root in blocks:
        for block in root.iter_tree():
            lines.extend(block.format(indent_size))
    return lines


class PositionTracker:
    """Owns the block tree of one buffer and the markers tracking it.

    Parameters
    ----------
    buffer:
        The editor buffer holding the rendered page.
    indent_size:
        Spaces per nesting level used when the blocks were rendered.
    """

    def __init__(self, buffer: EditorBuffer, *, indent_size: int = 2) -> None:
        self.buffer = buffer
        self.indent_size = indent_size
        self._roots: list[Block] = []
        self._markers: dict[Block, int] = {}

    def __repr__(self) -> str:
        return f"PositionTracker(blocks={self.block_count()}, markers={len(self._markers)})"

    # ── Setup ───────────────────────────────────────────────────────────

    @property
    def roots(self) -> list[Block]:
        return list(self._roots)

    def bind(self, blocks: list[Block], header_lines: int = 0) -> None:
        """Assign spans to *blocks* as rendered after *header_lines* and mark them.

        The buffer must already hold the header followed by
        :func:`format_blocks` output for the same blocks.
        """
        self._roots = list(blocks)
        number_lists(self._roots)
        current = header_lines + 1
        for block in self.blocks():
            count = len(block.format(self.indent_size))
            block.span = (current, current + count - 1)
            current += count
        self.rebuild()

    def rebuild(self) -> None:
        """Recreate every marker from the blocks' current spans."""
        self.buffer.clear_markers()
        self._markers = {}
        total = self.buffer.line_count()

        for block in self.blocks():
            if block.span is None:
                continue
            start, end = block.span
            if start > total:
                log.warning(
                    "Block span outside buffer",
                    extra={"extra_fields": {"block_id": block.id, "span": block.span, "lines": total}},
                )
                block.span = None
                continue
            end = min(max(end, start), total)
            end_line = self.buffer.get_lines(end - 1, end)[0]
            self._markers[block] = self.buffer.create_marker(
                start - 1,
                0,
                end - 1,
                len(end_line),
                right_gravity=True,
                end_right_gravity=False,
            )

    # ── Span recomputation ─────────────────────────────────────────────

    def refresh(self) -> list[Block]:
        """Re-derive every block's span from its marker.

        Returns
        -------
        list[Block]
            Blocks that were present before this call and are now deleted.
        """
        total = self.buffer.line_count()
        positions: dict[Block, MarkerPosition] = {}
        removed: list[Block] = []

        for block in self.blocks():
            marker_id = self._markers.get(block)
            pos = self.buffer.get_marker(marker_id) if marker_id is not None else None
            if pos is None or (pos.end_row, pos.end_col) < (pos.start_row, pos.start_col):
                if block.span is not None:
                    err = NotionbufMappingError(
                        message=f"Marker of block {block.id} is missing or inverted",
                        context={"block_id": block.id, "marker_id": marker_id},
                    )
                    log.warning(
                        "Mapping inconsistency, treating block as deleted",
                        extra={"extra_fields": {"code": err.code.value, **err.context}},
                    )
                    removed.append(block)
                block.span = None
                continue
            positions[block] = pos

        occupied = {
            (pos.start_row, pos.start_col)
            for pos in positions.values()
            if not pos.is_zero_width
        }

        # Empty blocks whose markers collapsed onto one point: the last one
        # keeps it.
        owner: dict[tuple[int, int], Block] = {}
        for block, pos in positions.items():
            if pos.is_zero_width:
                owner[(pos.start_row, pos.start_col)] = block
        shadowed = {
            block
            for block, pos in positions.items()
            if pos.is_zero_width and owner[(pos.start_row, pos.start_col)] is not block
        }

        for block, pos in positions.items():
            if block in shadowed or self._is_deleted(block, pos, occupied, total):
                if block.span is not None:
                    log.debug(
                        "Block deleted from buffer",
                        extra={"extra_fields": {"block_id": block.id, "type": block.type}},
                    )
                    removed.append(block)
                block.span = None
                continue

            end_row = pos.end_row
            # A marker ending at column 0 does not cover that row's text.
            if pos.end_col == 0 and end_row > pos.start_row:
                end_row -= 1
            block.span = (pos.start_row + 1, end_row + 1)

        return removed

    def _is_deleted(
        self,
        block: Block,
        pos: MarkerPosition,
        occupied: set[tuple[int, int]],
        total: int,
    ) -> bool:
        if pos.start_row >= total:
            return True

        line = self.buffer.get_lines(pos.start_row, pos.start_row + 1)[0]
        if block.fixed_shape is not None and line.strip() != block.fixed_shape:
            return True

        if pos.is_zero_width:
            if (pos.start_row, pos.start_col) in occupied:
                return True
            if not line.strip() and block.original_text.strip():
                return True
        return False

    def sync_blocks_from_buffer(self) -> None:
        """Refresh spans, then feed every present editable block its lines."""
        self.refresh()
        for block in self.editable_blocks():
            if block.span is None:
                continue
            start, end = block.span
            block.update_from_lines(self.buffer.get_lines(start - 1, end))

    # ── Tree changes ────────────────────────────────────────────────────

    def add_block(
        self,
        block: Block,
        start: int,
        end: int,
        after_id: str | None = None,
        parent_id: str | None = None,
    ) -> None:
        """Register a newly created block at lines ``start..end``.

        The block becomes a child of *parent_id* (or a top-level block) and
        is placed right after *after_id* when that block is one of its new
        siblings, otherwise by line order.  Markers are rebuilt afterwards.
        """
        self.refresh()
        block.span = (start, end)

        parent = self.get_block_by_id(parent_id) if parent_id else None
        siblings = parent.children if parent is not None else self._roots
        after = self.get_block_by_id(after_id) if after_id else None

        if after is not None and any(s is after for s in siblings):
            index = siblings.index(after) + 1
        else:
            index = next(
                (i for i, s in enumerate(siblings) if s.span is not None and s.span[0] > start),
                len(siblings),
            )

        if parent is not None:
            parent.add_child(block, index)
        else:
            if block.parent is not None:
                block.parent.remove_child(block)
            self._roots.insert(index, block)

        self.rebuild()

    def remove_block(self, block: Block) -> None:
        """Drop *block* and its descendants from the tree."""
        for node in block.iter_tree():
            self._markers.pop(node, None)
        parent = block.parent
        if parent is not None:
            parent.remove_child(block)
        elif any(r is block for r in self._roots):
            self._roots.remove(block)

    def replace_block(self, old: Block, new: Block) -> None:
        """Put *new* in *old*'s place, reusing its marker.

        *old*'s descendants are dropped; their lines become orphans.
        """
        new.span = old.span
        marker_id = self._markers.pop(old, None)
        for node in old.iter_tree():
            self._markers.pop(node, None)
        if marker_id is not None:
            self._markers[new] = marker_id

        parent = old.parent
        siblings = parent.children if parent is not None else self._roots
        index = siblings.index(old)
        if parent is not None:
            parent.remove_child(old)
            parent.add_child(new, index)
        else:
            self._roots[index] = new

    # ── Queries ─────────────────────────────────────────────────────────

    def blocks(self) -> list[Block]:
        """Every tracked block in document order."""
        return [block for root in self._roots for block in root.iter_tree()]

    def get_block_at_line(self, line: int) -> Block | None:
        for block in self.blocks():
            if block.contains_line(line):
                return block
        return None

    def get_block_by_id(self, block_id: str) -> Block | None:
        for block in self.blocks():
            if block.id == block_id:
                return block
        return None

    def dirty_blocks(self) -> list[Block]:
        return [b for b in self.blocks() if b.dirty]

    def editable_blocks(self) -> list[Block]:
        return [b for b in self.blocks() if b.editable]

    def has_blocks(self) -> bool:
        return bool(self._roots)

    def block_count(self) -> int:
        return len(self.blocks())

    def mark_all_clean(self) -> None:
        for block in self.blocks():
            block.mark_synced()

    def clear(self) -> None:
        self._roots = []
        self._markers = {}
        if self.buffer.is_valid():
            self.buffer.clear_markers()
