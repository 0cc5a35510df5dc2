"""Detection of buffer lines owned by no block.

New content typed into the buffer is not covered by any block marker.
:func:`detect_orphans` groups those lines into :class:`OrphanRange` values:
runs of unindented lines become one range (a future multi-line block),
while every indented line is its own range anchored under the closest
block that can hold children.
"""

from __future__ import annotations

from notionbuf.model.block import Block
from notionbuf.model.mapping import PositionTracker
from notionbuf.models import OrphanRange


def indent_level(line: str, indent_size: int) -> int:
    return (len(line) - len(line.lstrip(" "))) // indent_size


def _infer_parent(blocks: list[Block], line_no: int, level: int) -> Block | None:
    """Pick the block an indented orphan line belongs under.

    Candidates end before the line, can hold children and are shallower
    than the line.  The nearest one wins unless a block between it and the
    line sits at its level (or above) without being able to hold children,
    which closes the candidate's child list.
    """
    present = [b for b in blocks if b.span is not None]
    candidates = [
        b for b in present
        if b.span[1] < line_no and b.supports_children and b.depth < level
    ]
    candidates.sort(key=lambda b: line_no - b.span[1])

    for candidate in candidates:
        between = [
            b for b in present
            if candidate.span[1] < b.span[0] and b.span[1] < line_no
        ]
        if any(b.depth <= candidate.depth and not b.supports_children for b in between):
            continue
        return candidate
    return None


def detect_orphans(
    tracker: PositionTracker,
    header_lines: int = 0,
    indent_size: int = 2,
) -> list[OrphanRange]:
    """Find uncovered lines after the header and group them into ranges.

    Spans must be current: call :meth:`PositionTracker.refresh` first.
    Blank ranges are returned too; the planner drops them.

    Parameters
    ----------
    tracker:
        Tracker of the buffer to scan.
    header_lines:
        Number of leading header lines owned by no block.
    indent_size:
        Spaces per indentation level.

    Returns
    -------
    list[OrphanRange]
        Ranges in buffer order.
    """
    blocks = tracker.blocks()
    owner: dict[int, Block] = {}
    for block in blocks:
        if block.span is None:
            continue
        for line_no in range(block.span[0], block.span[1] + 1):
            owner.setdefault(line_no, block)

    lines = tracker.buffer.get_lines(0, -1)
    ranges: list[OrphanRange] = []
    current: OrphanRange | None = None
    last_top_level: str | None = None

    for line_no in range(header_lines + 1, len(lines) + 1):
        block = owner.get(line_no)
        if block is not None:
            current = None
            if block.parent is None:
                last_top_level = block.id
            continue

        text = lines[line_no - 1]
        level = indent_level(text, indent_size) if text.strip() else 0

        if level == 0:
            if current is not None and current.indent_level == 0:
                current.end_line = line_no
                current.content.append(text)
                continue
            current = OrphanRange(
                start_line=line_no,
                end_line=line_no,
                content=[text],
                indent_level=0,
                after_block_id=last_top_level,
            )
            ranges.append(current)
            continue

        parent = _infer_parent(blocks, line_no, level)
        current = OrphanRange(
            start_line=line_no,
            end_line=line_no,
            content=[text[level * indent_size:]],
            indent_level=level,
            after_block_id=None if parent is not None else last_top_level,
            parent_block_id=parent.id if parent is not None else None,
        )
        ranges.append(current)

    return ranges
