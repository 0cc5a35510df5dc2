"""Plan and result data models for notionbuf.

A :class:`SyncPlan` is built fresh by the planner for every sync attempt
and never persisted.  The executor consumes it and reports a
:class:`SyncResult`.  All types are plain dataclasses; the only behaviour is
what callers need to present a plan or react to its outcome.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from notionbuf.errors import NotionbufPartialSyncError

if TYPE_CHECKING:
    from notionbuf.model.block import Block


_UPDATE_PREVIEW = 40
_TYPE_CHANGE_PREVIEW = 30


def _preview(text: str, limit: int) -> str:
    if len(text) > limit:
        return text[:limit] + "..."
    return text


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class OpKind(str, Enum):
    """Elementary remote operation kinds."""

    UPDATE = "update"
    """Same block, new content: PATCH the block."""

    CREATE = "create"
    """New block from orphan lines: append it under its anchor."""

    DELETE = "delete"
    """Block removed from the buffer: archive it."""

    TYPE_CHANGE = "type_change"
    """Block type changed: delete the old block, then create the new one."""


# ---------------------------------------------------------------------------
# Orphans
# ---------------------------------------------------------------------------

@dataclass
class OrphanRange:
    """A run of buffer lines owned by no block.

    Attributes
    ----------
    start_line, end_line:
        1-indexed inclusive line range.  Ranges at indent level > 0 are
        always a single line.
    content:
        The lines with their indentation removed.
    indent_level:
        ``leading_spaces // indent_size`` of the first line.
    after_block_id:
        Insert as the next sibling of this top-level block.
    parent_block_id:
        Insert as a child of this block.
    """

    start_line: int
    end_line: int
    content: list[str]
    indent_level: int = 0
    after_block_id: str | None = None
    parent_block_id: str | None = None

    def __post_init__(self) -> None:
        if self.after_block_id is not None and self.parent_block_id is not None:
            raise ValueError("OrphanRange takes after_block_id or parent_block_id, not both")

    @property
    def is_blank(self) -> bool:
        return all(not line.strip() for line in self.content)


# ---------------------------------------------------------------------------
# Plan entries
# ---------------------------------------------------------------------------

@dataclass
class SyncUpdate:
    """Existing block whose content changed in place."""

    block: Block
    block_id: str
    content: str


@dataclass
class SyncCreate:
    """A new block built from orphan lines.

    ``parent_id`` is the remote parent (``None`` means the page itself) and
    ``after_id`` the sibling to insert after.  Either may be a provisional
    id produced earlier in the same plan.
    """

    temp_id: str
    block: Block
    block_type: str
    content: str
    start_line: int
    end_line: int
    indent_level: int = 0
    parent_id: str | None = None
    after_id: str | None = None


@dataclass
class SyncDelete:
    """Block whose lines are gone from the buffer."""

    block: Block
    block_id: str
    original_content: str


@dataclass
class SyncTypeChange:
    """Block whose markup now implies a different remote type."""

    block: Block
    block_id: str
    old_type: str
    new_type: str
    content: str


@dataclass
class SyncUnmatched:
    """Orphan lines that cannot be synced without a user decision.

    ``possible_matches`` lists blocks the lines may belong to (e.g. a
    read-only block that was cut and pasted elsewhere).
    """

    orphan: OrphanRange
    content: str
    possible_matches: list[Block] = field(default_factory=list)

    @property
    def start_line(self) -> int:
        return self.orphan.start_line

    @property
    def end_line(self) -> int:
        return self.orphan.end_line


@dataclass
class SyncPlan:
    """Everything one sync attempt will do.

    Attributes
    ----------
    updates, creates, deletes, type_changes:
        The remote operations, grouped by kind.
    unmatched:
        Ambiguous spans left out of the operations until resolved.
    needs_confirmation:
        Whether the configured confirmation policy asks the user before
        executing this plan.
    """

    updates: list[SyncUpdate] = field(default_factory=list)
    creates: list[SyncCreate] = field(default_factory=list)
    deletes: list[SyncDelete] = field(default_factory=list)
    type_changes: list[SyncTypeChange] = field(default_factory=list)
    unmatched: list[SyncUnmatched] = field(default_factory=list)
    needs_confirmation: bool = False

    @property
    def has_changes(self) -> bool:
        return bool(self.updates or self.creates or self.deletes or self.type_changes)

    def is_empty(self) -> bool:
        """True when there is nothing to sync and nothing to resolve."""
        return not self.has_changes and not self.unmatched

    def operation_count(self) -> int:
        """Number of elementary remote operations; a type change counts twice."""
        return (
            len(self.updates)
            + len(self.creates)
            + len(self.deletes)
            + 2 * len(self.type_changes)
        )

    def summary(self) -> list[str]:
        """Human-readable lines describing the plan, for confirmation prompts."""
        lines: list[str] = []

        if self.updates:
            lines.append(f"Updates: {len(self.updates)} block(s)")
            for update in self.updates:
                lines.append(
                    f"  - [{update.block.type}] {_preview(update.content, _UPDATE_PREVIEW)}"
                )

        if self.type_changes:
            lines.append(f"Type changes: {len(self.type_changes)} block(s) (delete+create)")
            for tc in self.type_changes:
                lines.append(
                    f"  - [{tc.old_type} → {tc.new_type}] "
                    f"{_preview(tc.content, _TYPE_CHANGE_PREVIEW)}"
                )

        if self.creates:
            lines.append(f"Creates: {len(self.creates)} block(s)")

        if self.deletes:
            lines.append(f"Deletes: {len(self.deletes)} block(s)")

        if self.unmatched:
            lines.append(f"Unmatched: {len(self.unmatched)} region(s) - needs review")

        if not lines:
            lines.append("No changes to sync")
        return lines

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly view used by the plan debug dump."""
        return {
            "updates": [{"block_id": u.block_id, "content": u.content} for u in self.updates],
            "creates": [
                {
                    "temp_id": c.temp_id,
                    "type": c.block_type,
                    "content": c.content,
                    "lines": [c.start_line, c.end_line],
                    "parent_id": c.parent_id,
                    "after_id": c.after_id,
                }
                for c in self.creates
            ],
            "deletes": [{"block_id": d.block_id} for d in self.deletes],
            "type_changes": [
                {"block_id": t.block_id, "old_type": t.old_type, "new_type": t.new_type}
                for t in self.type_changes
            ],
            "unmatched": [
                {"lines": [u.start_line, u.end_line], "content": u.content}
                for u in self.unmatched
            ],
            "needs_confirmation": self.needs_confirmation,
        }


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass
class OperationError:
    """One failed elementary operation.

    Attributes
    ----------
    op:
        The operation kind that failed.
    block_id:
        The block id (or provisional id, for creates) the operation targeted.
    message:
        Description of the failure.
    cause:
        The exception raised by the remote store, if any.
    """

    op: OpKind
    block_id: str
    message: str
    cause: Exception | None = None


@dataclass
class SyncResult:
    """Outcome of executing a :class:`SyncPlan`.

    There is no rollback: when ``success`` is false the local model reflects
    exactly the operations that succeeded.

    Attributes
    ----------
    success:
        ``True`` when every operation succeeded and the run was not
        cancelled.
    errors:
        One entry per failed operation.
    updated, created, deleted, type_changed:
        Counts of successful operations.
    cancelled:
        The buffer became invalid mid-flight; local mutations were skipped.
    declined:
        The plan needed confirmation and the user declined it.
    id_map:
        Provisional or replaced id to real id, for every create and type
        change that succeeded.
    pending:
        Operations that never reported completion; ``0`` after a normal
        run.
    completed_at:
        When execution finished.
    """

    success: bool = True
    errors: list[OperationError] = field(default_factory=list)
    updated: int = 0
    created: int = 0
    deleted: int = 0
    type_changed: int = 0
    cancelled: bool = False
    declined: bool = False
    id_map: dict[str, str] = field(default_factory=dict)
    pending: int = 0
    completed_at: datetime | None = None

    def raise_for_errors(self) -> None:
        """Raise :class:`NotionbufPartialSyncError` if any operation failed."""
        if not self.errors:
            return
        raise NotionbufPartialSyncError(
            message=f"{len(self.errors)} sync operation(s) failed",
            context={
                "failed": len(self.errors),
                "errors": [
                    {"op": e.op.value, "block_id": e.block_id, "message": e.message}
                    for e in self.errors
                ],
            },
            cause=self.errors[0].cause,
        )
