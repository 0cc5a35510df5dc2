"""Per-buffer sync session.

A :class:`SyncSession` ties one editor buffer to one remote page.  It owns
the block tree (through its :class:`PositionTracker`), the remote store,
the optional cache and the cancellation token, and exposes the
load / plan / push cycle::

    async with NotionStore(config) as store:
        session = SyncSession(store, MemoryBuffer(), config, page_id=page_id)
        await session.load()
        ...  # user edits session.buffer
        result = await session.push(confirm=ask_user)
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone

from notionbuf.buffer.format import format_header, page_title
from notionbuf.cache import page_content_hash
from notionbuf.config import NotionbufConfig
from notionbuf.errors import NotionbufError
from notionbuf.model import deserialize_tree, format_blocks
from notionbuf.model.mapping import PositionTracker
from notionbuf.models import SyncPlan, SyncResult
from notionbuf.notion_api.store import fetch_tree
from notionbuf.observability import get_logger
from notionbuf.ports import EditorBuffer, PageCache, RemoteStore

from .executor import SyncExecutor
from .planner import SyncPlanner

log = get_logger("notionbuf.session")

ConfirmCallback = Callable[[SyncPlan], "bool | Awaitable[bool]"]


class CancellationToken:
    """Signals that results of in-flight work must not touch local state.

    Parameters
    ----------
    is_valid:
        Optional validity check; the token counts as cancelled once it returns
        ``False`` (typically ``buffer.is_valid``).
    """

    def __init__(self, is_valid: Callable[[], bool] | None = None) -> None:
        self._is_valid = is_valid
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        if self._cancelled:
            return True
        return self._is_valid is not None and not self._is_valid()


class SyncSession:
    """Sync context for one buffer showing one page.

    Parameters
    ----------
    store:
        Remote store holding the page.
    buffer:
        Editor buffer the page is rendered into.
    config:
        Package configuration.  Defaults to :class:`NotionbufConfig`.
    page_id:
        Page to sync.  May also be passed to :meth:`load`.
    cache:
        Optional page cache, updated on every load and successful push.
    planner, executor:
        Override the default planner or executor.
    """

    def __init__(
        self,
        store: RemoteStore,
        buffer: EditorBuffer,
        config: NotionbufConfig | None = None,
        *,
        page_id: str | None = None,
        cache: PageCache | None = None,
        planner: SyncPlanner | None = None,
        executor: SyncExecutor | None = None,
    ) -> None:
        self.config = config or NotionbufConfig()
        self.store = store
        self.buffer = buffer
        self.page_id = page_id
        self.cache = cache
        self.planner = planner or SyncPlanner(self.config)
        self.executor = executor or SyncExecutor(store, self.config)
        self.tracker = PositionTracker(buffer, indent_size=self.config.indent_size)
        self.cancel_token = CancellationToken(buffer.is_valid)
        self.page: dict | None = None
        self.header_lines = 0
        self.content_hash: str | None = None
        self.last_sync: datetime | None = None

    def __repr__(self) -> str:
        return f"SyncSession(page_id={self.page_id!r}, blocks={self.tracker.block_count()})"

    @property
    def title(self) -> str | None:
        return page_title(self.page) if self.page is not None else None

    # ── Pull ────────────────────────────────────────────────────────────

    async def load(self, page_id: str | None = None) -> None:
        """Fetch the page and render it into the buffer, replacing its content.

        Raises
        ------
        ValueError
            When no page id was given here or at construction.
        NotionbufError
            Whatever the store raises while fetching.
        """
        page_id = page_id or self.page_id
        if not page_id:
            raise ValueError("SyncSession.load needs a page_id")
        self.page_id = page_id

        page = await self.store.get_page(page_id)
        raws = await fetch_tree(self.store, page_id)
        if self.cancel_token.cancelled:
            log.info("Buffer closed during load", extra={"extra_fields": {"page_id": page_id}})
            return

        content_hash = page_content_hash(raws)
        if self.cache is not None:
            self.cache.save_page(page_id, page)
            self.cache.save_content(page_id, raws, content_hash)

        blocks = deserialize_tree(raws)
        header = format_header(page)
        lines = header + format_blocks(blocks, self.config.indent_size)

        self.tracker.clear()
        self.buffer.set_lines(0, -1, lines)
        self.tracker.bind(blocks, len(header))

        self.page = page
        self.header_lines = len(header)
        self.content_hash = content_hash
        self.last_sync = datetime.now(timezone.utc)
        log.info(
            "Page loaded",
            extra={"extra_fields": {
                "page_id": page_id,
                "title": page_title(page),
                "blocks": self.tracker.block_count(),
                "lines": len(lines),
            }},
        )

    pull = load

    async def is_remote_changed(self) -> bool:
        """True when the remote page content differs from the last load or push."""
        if self.page_id is None or self.content_hash is None:
            return True
        raws = await fetch_tree(self.store, self.page_id)
        return page_content_hash(raws) != self.content_hash

    # ── Push ────────────────────────────────────────────────────────────

    def plan(self) -> SyncPlan:
        return self.planner.plan(self.tracker, self.header_lines)

    async def execute(self, plan: SyncPlan) -> SyncResult:
        """Run *plan* and, on full success, adopt the buffer as the new baseline."""
        result = await self.executor.execute(plan, self)
        if result.success:
            self.tracker.mark_all_clean()
            self.last_sync = result.completed_at
            await self._refresh_cache()
        return result

    async def push(self, confirm: ConfirmCallback | None = None) -> SyncResult:
        """Plan and execute local edits.

        Parameters
        ----------
        confirm:
            Called with the plan when it needs confirmation; may be a
            coroutine function.  Returning false declines the sync.  A plan
            that needs confirmation is declined when no callback is given.

        Returns
        -------
        SyncResult
            ``declined`` is set when the sync did not run for lack of
            confirmation.
        """
        plan = self.plan()
        if not plan.has_changes:
            log.info("No changes to sync", extra={"extra_fields": {"page_id": self.page_id}})
            return SyncResult(completed_at=datetime.now(timezone.utc))

        if plan.needs_confirmation:
            approved = False
            if confirm is not None:
                answer = confirm(plan)
                approved = bool(await answer) if inspect.isawaitable(answer) else bool(answer)
            if not approved:
                log.info("Sync declined", extra={"extra_fields": {"page_id": self.page_id}})
                return SyncResult(success=False, declined=True)

        return await self.execute(plan)

    async def _refresh_cache(self) -> None:
        if self.cache is None or self.page_id is None:
            self.content_hash = None
            return
        try:
            raws = await fetch_tree(self.store, self.page_id)
        except NotionbufError as exc:
            self.content_hash = None
            log.warning(
                "Could not refresh page cache after sync",
                extra={"extra_fields": {"page_id": self.page_id, "error": str(exc)}},
            )
            return
        self.content_hash = page_content_hash(raws)
        self.cache.save_content(self.page_id, raws, self.content_hash)
