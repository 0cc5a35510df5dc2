"""notionbuf -- edit a Notion page as plain text and sync the blocks back.

Public re-exports
-----------------

* **Session:** :class:`SyncSession`, :class:`CancellationToken`
* **Planning / execution:** :class:`SyncPlanner`, :class:`SyncExecutor`
* **Collaborators:** :class:`NotionStore`, :class:`MemoryBuffer`,
  :class:`MemoryPageCache`
* **Configuration:** :class:`NotionbufConfig`
* **Errors:** every :class:`NotionbufError` subclass and :class:`ErrorCode`
* **Models:** plan and result dataclasses

Usage::

    from notionbuf import MemoryBuffer, NotionStore, NotionbufConfig, SyncSession

    config = NotionbufConfig(token="secret_xxx")
    async with NotionStore(config) as store:
        session = SyncSession(store, MemoryBuffer(), config, page_id="<page_id>")
        await session.load()
        session.buffer.insert_text(5, 0, "- a new item\\n")
        result = await session.push(confirm=lambda plan: True)
"""

from __future__ import annotations

# ── Collaborators ───────────────────────────────────────────────────────
from notionbuf.buffer import MemoryBuffer
from notionbuf.cache import MemoryPageCache, page_content_hash

# ── Configuration ───────────────────────────────────────────────────────
from notionbuf.config import NotionbufConfig

# ── Errors ──────────────────────────────────────────────────────────────
from notionbuf.errors import (
    ErrorCode,
    NotionbufAmbiguousEditError,
    NotionbufAuthError,
    NotionbufConflictError,
    NotionbufError,
    NotionbufMappingError,
    NotionbufNetworkError,
    NotionbufNotFoundError,
    NotionbufPartialSyncError,
    NotionbufPermissionError,
    NotionbufPreconditionError,
    NotionbufRateLimitError,
    NotionbufRetryExhaustedError,
    NotionbufValidationError,
)

# ── Block model ─────────────────────────────────────────────────────────
from notionbuf.model import Block, PositionTracker, detect_orphans

# ── Models ──────────────────────────────────────────────────────────────
from notionbuf.models import (
    OperationError,
    OpKind,
    OrphanRange,
    SyncCreate,
    SyncDelete,
    SyncPlan,
    SyncResult,
    SyncTypeChange,
    SyncUnmatched,
    SyncUpdate,
)
from notionbuf.notion_api import NotionStore

# ── Sync ────────────────────────────────────────────────────────────────
from notionbuf.sync import CancellationToken, SyncExecutor, SyncPlanner, SyncSession

# ── Public surface ──────────────────────────────────────────────────────

__all__ = [
    # Session and engine
    "SyncSession",
    "CancellationToken",
    "SyncPlanner",
    "SyncExecutor",
    # Block model
    "Block",
    "PositionTracker",
    "detect_orphans",
    # Collaborators
    "NotionStore",
    "MemoryBuffer",
    "MemoryPageCache",
    "page_content_hash",
    # Configuration
    "NotionbufConfig",
    # Errors
    "NotionbufError",
    "ErrorCode",
    "NotionbufValidationError",
    "NotionbufAuthError",
    "NotionbufPermissionError",
    "NotionbufNotFoundError",
    "NotionbufConflictError",
    "NotionbufRateLimitError",
    "NotionbufRetryExhaustedError",
    "NotionbufNetworkError",
    "NotionbufMappingError",
    "NotionbufAmbiguousEditError",
    "NotionbufPartialSyncError",
    "NotionbufPreconditionError",
    # Models
    "OpKind",
    "OrphanRange",
    "SyncUpdate",
    "SyncCreate",
    "SyncDelete",
    "SyncTypeChange",
    "SyncUnmatched",
    "SyncPlan",
    "OperationError",
    "SyncResult",
]
