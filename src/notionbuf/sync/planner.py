"""Sync planning.

:class:`SyncPlanner` diffs the tracked blocks and the orphan lines of a
buffer into a :class:`~notionbuf.models.SyncPlan`.  Planning touches no
remote state; the only local effects are the ones
:meth:`PositionTracker.sync_blocks_from_buffer` has on block text and
spans, plus clearing ``dirty`` on blocks whose edits were undone.
"""

from __future__ import annotations

import json
import re
import sys
from collections.abc import Iterator

from notionbuf.config import NotionbufConfig
from notionbuf.errors import NotionbufAmbiguousEditError
from notionbuf.model import detect_orphans
from notionbuf.model.block import Block
from notionbuf.model.factory import create_from_lines
from notionbuf.model.handlers import CHILD_DATABASE_ICON, CHILD_PAGE_ICON
from notionbuf.model.mapping import PositionTracker
from notionbuf.models import (
    OrphanRange,
    SyncCreate,
    SyncDelete,
    SyncPlan,
    SyncTypeChange,
    SyncUnmatched,
    SyncUpdate,
)
from notionbuf.observability import get_logger

log = get_logger("notionbuf.planner")

_DIVIDER_RE = re.compile(r"^---+\s*$")
_READ_ONLY_RE = re.compile(r"^\[[a-z_]+ - read only\]$")
_PLACEHOLDER_ICONS = (CHILD_PAGE_ICON, CHILD_DATABASE_ICON)

RESOLVE_CHOICES = ("skip", "create", "match")


# ---------------------------------------------------------------------------
# Orphan helpers
# ---------------------------------------------------------------------------

def _split_dividers(orphan: OrphanRange) -> Iterator[OrphanRange]:
    """Split an unindented range so every divider line is its own range.

    Lines inside a code fence are never split.
    """
    if orphan.indent_level > 0:
        yield orphan
        return

    pending: list[str] = []
    start = orphan.start_line
    in_fence = False

    def piece(first: int, lines: list[str]) -> OrphanRange:
        return OrphanRange(
            start_line=first,
            end_line=first + len(lines) - 1,
            content=lines,
            indent_level=0,
            after_block_id=orphan.after_block_id,
        )

    for offset, line in enumerate(orphan.content):
        line_no = orphan.start_line + offset
        if line.strip().startswith("```"):
            in_fence = not in_fence
        if not in_fence and _DIVIDER_RE.match(line):
            if pending:
                yield piece(start, pending)
            yield piece(line_no, [line])
            pending, start = [], line_no + 1
            continue
        pending.append(line)

    if pending:
        yield piece(start, pending)


def _content_bounds(orphan: OrphanRange) -> tuple[int, int]:
    """Line range of *orphan* without leading and trailing blank lines."""
    lines = orphan.content
    first = next(i for i, line in enumerate(lines) if line.strip())
    last = max(i for i, line in enumerate(lines) if line.strip())
    return orphan.start_line + first, orphan.start_line + last


def _looks_read_only(orphan: OrphanRange) -> bool:
    """True when the lines are a rendering of a type that cannot be created."""
    first = next(line.strip() for line in orphan.content if line.strip())
    if _READ_ONLY_RE.match(first):
        return True
    return any(first.startswith(f"{icon} ") for icon in _PLACEHOLDER_ICONS)


def _stable_anchor(block_id: str | None, tracker: PositionTracker, removed: set[str]) -> str | None:
    """Walk back from *block_id* to the nearest sibling the plan does not delete.

    A block being recreated under a new type is kept as an anchor; the
    executor maps it to the id of its replacement.
    """
    if block_id is None or block_id not in removed:
        return block_id
    block = tracker.get_block_by_id(block_id)
    if block is None:
        return None
    siblings = block.parent.children if block.parent is not None else tracker.roots
    index = next(i for i, s in enumerate(siblings) if s is block)
    for sibling in reversed(siblings[:index]):
        if sibling.id not in removed and sibling.span is not None:
            return sibling.id
    return None


def _last_child_before(parent: Block, line_no: int, removed: set[str]) -> str | None:
    after: str | None = None
    for child in parent.children:
        if child.span is None or child.id in removed:
            continue
        if child.span[1] < line_no:
            after = child.id
    return after


# ---------------------------------------------------------------------------
# Planner
# ---------------------------------------------------------------------------

class SyncPlanner:
    """Builds :class:`SyncPlan` objects for a tracked buffer.

    Parameters
    ----------
    config:
        Supplies ``confirm_sync``, ``indent_size`` and ``debug_dump_plan``.
    """

    def __init__(self, config: NotionbufConfig | None = None) -> None:
        self._config = config or NotionbufConfig()

    def plan(self, tracker: PositionTracker, header_lines: int = 0) -> SyncPlan:
        """Diff the buffer behind *tracker* against its blocks.

        Parameters
        ----------
        tracker:
            Tracker bound to the buffer to sync.
        header_lines:
            Number of leading lines owned by no block.

        Returns
        -------
        SyncPlan
            Fresh plan; empty when nothing changed since the last sync.
        """
        tracker.sync_blocks_from_buffer()
        plan = SyncPlan()
        blocks = tracker.blocks()
        deleted = {b for b in blocks if b.span is None}

        for block in blocks:
            if block not in deleted:
                continue
            if any(a in deleted for a in block.ancestors()):
                continue
            plan.deletes.append(SyncDelete(block, block.id, block.original_text))

        replaced: set[Block] = set()
        for block in blocks:
            if block in deleted or not block.editable:
                continue
            if any(a in deleted or a in replaced for a in block.ancestors()):
                continue
            if block.type_changed():
                replaced.add(block)
                plan.type_changes.append(SyncTypeChange(
                    block=block,
                    block_id=block.id,
                    old_type=block.type,
                    new_type=block.target_type,
                    content=block.converted_content(),
                ))
            elif block.has_changes():
                plan.updates.append(SyncUpdate(block, block.id, block.text))
            elif block.dirty:
                # Edited and then edited back.
                block.dirty = False

        removed = {d.block_id for d in plan.deletes}
        self._plan_orphans(plan, tracker, header_lines, removed)
        plan.needs_confirmation = self._needs_confirmation(plan)

        log.info(
            "Sync plan created",
            extra={"extra_fields": {
                "updates": len(plan.updates),
                "creates": len(plan.creates),
                "deletes": len(plan.deletes),
                "type_changes": len(plan.type_changes),
                "unmatched": len(plan.unmatched),
                "needs_confirmation": plan.needs_confirmation,
            }},
        )
        if self._config.debug_dump_plan:
            print(json.dumps(plan.to_dict(), indent=2, ensure_ascii=False), file=sys.stderr)
        return plan

    # ── Orphans ─────────────────────────────────────────────────────────

    def _plan_orphans(
        self,
        plan: SyncPlan,
        tracker: PositionTracker,
        header_lines: int,
        removed: set[str],
    ) -> None:
        # Most recent create per indent level within a contiguous run.
        previous: dict[int, SyncCreate] = {}
        last_end: int | None = None

        orphans = detect_orphans(tracker, header_lines, tracker.indent_size)
        for orphan in (piece for o in orphans for piece in _split_dividers(o)):
            if orphan.is_blank:
                continue
            if last_end is None or orphan.start_line != last_end + 1:
                previous = {}
            last_end = orphan.end_line

            if _looks_read_only(orphan):
                plan.unmatched.append(self._unmatched(orphan, plan))
                continue

            create = self._create(orphan, tracker, previous, removed)
            if create is None:
                continue
            plan.creates.append(create)
            level = orphan.indent_level
            previous[level] = create
            for deeper in [k for k in previous if k > level]:
                del previous[deeper]

    def _create(
        self,
        orphan: OrphanRange,
        tracker: PositionTracker,
        previous: dict[int, SyncCreate],
        removed: set[str],
    ) -> SyncCreate | None:
        block = create_from_lines(orphan.content)
        if block is None:
            return None
        start, end = _content_bounds(orphan)
        level = orphan.indent_level

        parent_id = orphan.parent_block_id
        after_id = _stable_anchor(orphan.after_block_id, tracker, removed)
        if parent_id is not None:
            parent = tracker.get_block_by_id(parent_id)
            after_id = _last_child_before(parent, start, removed) if parent else None

        host = previous.get(level - 1) if level > 0 else None
        if host is not None and host.block.supports_children:
            parent_id, after_id = host.temp_id, None

        sibling = previous.get(level)
        if sibling is not None and sibling.parent_id == parent_id:
            after_id = sibling.temp_id

        return SyncCreate(
            temp_id=block.id,
            block=block,
            block_type=block.type,
            content=block.text,
            start_line=start,
            end_line=end,
            indent_level=level,
            parent_id=parent_id,
            after_id=after_id,
        )

    def _unmatched(self, orphan: OrphanRange, plan: SyncPlan) -> SyncUnmatched:
        lines = [line.strip() for line in orphan.content if line.strip()]
        matches = [
            d.block for d in plan.deletes
            if [line.strip() for line in d.block.format(self._config.indent_size)] == lines
        ]
        return SyncUnmatched(orphan=orphan, content="\n".join(orphan.content), possible_matches=matches)

    # ── Confirmation ────────────────────────────────────────────────────

    def _needs_confirmation(self, plan: SyncPlan) -> bool:
        policy = self._config.confirm_sync
        if policy == "always":
            return True
        if policy == "never":
            return False
        return bool(plan.deletes or plan.unmatched)

    def resolve_unmatched(
        self,
        plan: SyncPlan,
        entry: SyncUnmatched,
        choice: str,
        tracker: PositionTracker,
        block: Block | None = None,
    ) -> None:
        """Apply a user decision to an unmatched entry of *plan*.

        Parameters
        ----------
        plan:
            The plan holding *entry*.
        entry:
            The unmatched region to resolve.
        choice:
            ``"skip"`` leaves the lines unsynced, ``"create"`` creates them
            as new content and ``"match"`` binds them back to *block*, one
            of ``entry.possible_matches``, cancelling its delete.
        tracker:
            Tracker the plan was built from.
        block:
            Required for ``"match"``.

        Raises
        ------
        NotionbufAmbiguousEditError
            For an unknown choice, or a match against a block that is not a
            possible match.
        """
        context = {"start_line": entry.start_line, "end_line": entry.end_line, "choice": choice}
        if choice not in RESOLVE_CHOICES:
            raise NotionbufAmbiguousEditError(
                message=f"Unknown resolution {choice!r}; expected one of {RESOLVE_CHOICES}",
                context=context,
            )
        if choice == "match" and (block is None or block not in entry.possible_matches):
            raise NotionbufAmbiguousEditError(
                message="Match target is not a possible match for this region",
                context=context,
            )

        plan.unmatched.remove(entry)

        if choice == "create":
            removed = {d.block_id for d in plan.deletes}
            create = self._create(entry.orphan, tracker, {}, removed)
            if create is not None:
                plan.creates.append(create)
        elif choice == "match":
            plan.deletes = [d for d in plan.deletes if d.block is not block]
            block.span = (entry.start_line, entry.end_line)
            for node in list(block.iter_tree())[1:]:
                if node.span is None:
                    plan.deletes.append(SyncDelete(node, node.id, node.original_text))
            tracker.rebuild()

        plan.needs_confirmation = self._needs_confirmation(plan)
        log.info("Unmatched region resolved", extra={"extra_fields": context})
