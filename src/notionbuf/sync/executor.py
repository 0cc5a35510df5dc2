"""Sync execution.

:class:`SyncExecutor` applies a :class:`~notionbuf.models.SyncPlan` to a
remote store:

* updates and deletes are independent calls;
* a type change is a delete followed by a create, strictly in that order;
* creates chained by provisional id are grouped into batches, each one
  ordered ``append_children`` call.  Batches run one after another so later
  batches can anchor on ids returned by earlier ones.

Updates, deletes and type changes run concurrently with the batch chain.
A batch anchored on a type-changed block waits for that type change and
anchors on the replacement.
Every failure is recorded per item; nothing is rolled back.
"""

from __future__ import annotations

import asyncio
import time
from collections import Counter
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from notionbuf.config import NotionbufConfig
from notionbuf.errors import NotionbufError, NotionbufPreconditionError
from notionbuf.model import create_raw_block, deserialize, is_temp_id
from notionbuf.model.block import Block
from notionbuf.models import (
    OperationError,
    OpKind,
    SyncCreate,
    SyncDelete,
    SyncPlan,
    SyncResult,
    SyncTypeChange,
    SyncUpdate,
)
from notionbuf.observability import get_logger, resolve_metrics
from notionbuf.ports import RemoteStore

if TYPE_CHECKING:
    from notionbuf.sync.session import SyncSession

log = get_logger("notionbuf.executor")


class _ExecState:
    """Bookkeeping shared by the concurrent operations of one execution."""

    __slots__ = ("id_map", "lost", "ops", "pending", "recreating", "result")

    def __init__(self, pending: int) -> None:
        self.pending = pending
        self.result = SyncResult()
        # Provisional or replaced id to real id.
        self.id_map: dict[str, str] = {}
        # Type changes in flight, by the id of the block they replace.
        self.recreating: dict[str, asyncio.Future[None]] = {}
        # Ids deleted by a type change whose recreate failed.
        self.lost: set[str] = set()
        self.ops: Counter[tuple[str, str]] = Counter()

    def complete(self, count: int = 1) -> None:
        self.pending -= count

    def succeeded(self, op: OpKind) -> None:
        self.ops[(op.value, "success")] += 1

    def failed(self, op: OpKind, block_id: str, exc: Exception) -> None:
        self.ops[(op.value, "error")] += 1
        self.result.errors.append(OperationError(op, block_id, str(exc), exc))
        log.warning(
            "Sync operation failed",
            extra={"extra_fields": {
                "op": op.value,
                "block_id": block_id,
                "error": str(exc),
                "code": exc.code.value if isinstance(exc, NotionbufError) else None,
            }},
        )


def group_batches(creates: list[SyncCreate]) -> list[list[SyncCreate]]:
    """Split *creates* into runs where each entry is anchored after the previous one.

    Entries in a run share a parent and can go out in a single ordered
    append call.
    """
    batches: list[list[SyncCreate]] = []
    for create in creates:
        if batches:
            tail = batches[-1][-1]
            if create.after_id == tail.temp_id and create.parent_id == tail.parent_id:
                batches[-1].append(create)
                continue
        batches.append([create])
    return batches


def _created_payload(result: dict[str, Any] | None, sent: dict[str, Any]) -> dict[str, Any]:
    """Full block object for a created block, filling gaps from what was sent."""
    if result and "type" in result:
        return result
    merged = dict(sent)
    merged.update(result or {})
    return merged


class SyncExecutor:
    """Runs sync plans against a remote store.

    Parameters
    ----------
    store:
        The remote store to mutate.
    config:
        Supplies the metrics hook.
    """

    def __init__(self, store: RemoteStore, config: NotionbufConfig | None = None) -> None:
        self._store = store
        self._config = config or NotionbufConfig()
        self._metrics = resolve_metrics(self._config.metrics)

    async def execute(self, plan: SyncPlan, session: SyncSession) -> SyncResult:
        """Apply *plan* and report what happened.

        Parameters
        ----------
        plan:
            Plan built for ``session.tracker``.
        session:
            Provides the tracker to update, the page id new top-level blocks
            go under and the cancellation token.

        Returns
        -------
        SyncResult
            ``success`` is true only when every operation succeeded and the
            run was not cancelled.
        """
        t0 = time.monotonic()
        state = _ExecState(plan.operation_count())
        unstable = {d.block_id for d in plan.deletes} | {t.block_id for t in plan.type_changes}

        log.info(
            "Executing sync plan",
            extra={"extra_fields": {"page_id": session.page_id, "operations": state.pending}},
        )

        for change in plan.type_changes:
            state.recreating[change.block_id] = asyncio.ensure_future(
                self._type_change(change, session, state, unstable)
            )
        tasks: list[Any] = [self._update(u, session, state) for u in plan.updates]
        tasks += [self._delete(d, session, state) for d in plan.deletes]
        tasks += state.recreating.values()
        tasks.append(self._create_batches(plan.creates, session, state, unstable))
        await asyncio.gather(*tasks)

        result = state.result
        result.cancelled = session.cancel_token.cancelled
        result.success = not result.errors and not result.cancelled
        result.id_map = dict(state.id_map)
        result.pending = state.pending
        result.completed_at = datetime.now(timezone.utc)
        if state.pending != 0:
            log.warning(
                "Sync completion count mismatch",
                extra={"extra_fields": {"pending": state.pending}},
            )

        self._emit_metrics(state, (time.monotonic() - t0) * 1000)
        log.info(
            "Sync plan executed",
            extra={"extra_fields": {
                "page_id": session.page_id,
                "success": result.success,
                "updated": result.updated,
                "created": result.created,
                "deleted": result.deleted,
                "type_changed": result.type_changed,
                "errors": len(result.errors),
                "cancelled": result.cancelled,
            }},
        )
        return result

    # ── Updates and deletes ─────────────────────────────────────────────

    async def _update(self, update: SyncUpdate, session: SyncSession, state: _ExecState) -> None:
        payload = update.block.update_payload()
        try:
            await self._store.update_block(update.block_id, payload)
        except Exception as exc:
            state.failed(OpKind.UPDATE, update.block_id, exc)
        else:
            state.succeeded(OpKind.UPDATE)
            state.result.updated += 1
            if not session.cancel_token.cancelled:
                update.block.mark_synced()
        finally:
            state.complete()

    async def _delete(self, delete: SyncDelete, session: SyncSession, state: _ExecState) -> None:
        try:
            await self._store.delete_block(delete.block_id)
        except Exception as exc:
            state.failed(OpKind.DELETE, delete.block_id, exc)
        else:
            state.succeeded(OpKind.DELETE)
            state.result.deleted += 1
            if not session.cancel_token.cancelled:
                session.tracker.remove_block(delete.block)
        finally:
            state.complete()

    # ── Type changes ────────────────────────────────────────────────────

    async def _type_change(
        self,
        change: SyncTypeChange,
        session: SyncSession,
        state: _ExecState,
        unstable: set[str],
    ) -> None:
        old = change.block
        parent = old.parent
        parent_id = parent.id if parent is not None else session.page_id
        after_id = self._previous_sibling(old, session, unstable)

        raw = create_raw_block(change.new_type, change.content)
        if change.new_type == "to_do":
            raw["to_do"]["checked"] = bool(old.attrs.get("checked", False))

        try:
            await self._store.delete_block(change.block_id)
        except Exception as exc:
            state.failed(OpKind.TYPE_CHANGE, change.block_id, exc)
            state.complete(2)
            return
        state.complete()
        state.lost.add(change.block_id)

        try:
            results = await self._store.append_children(parent_id, [raw], after=after_id)
            if not results or not results[0].get("id"):
                raise NotionbufPreconditionError(
                    message=f"No block returned when recreating {change.block_id}",
                    context={"anchor": parent_id},
                )
        except Exception as exc:
            state.failed(OpKind.TYPE_CHANGE, change.block_id, exc)
        else:
            state.lost.discard(change.block_id)
            state.id_map[change.block_id] = results[0]["id"]
            state.succeeded(OpKind.TYPE_CHANGE)
            state.result.type_changed += 1
            if not session.cancel_token.cancelled:
                new = deserialize(_created_payload(results[0], raw))
                if new.editable:
                    # Keep the text exactly as typed so the next plan sees no edit.
                    new.text = new.original_text = change.content
                session.tracker.replace_block(old, new)
                new.mark_synced()
        finally:
            state.complete()

    @staticmethod
    def _previous_sibling(block: Block, session: SyncSession, unstable: set[str]) -> str | None:
        parent = block.parent
        siblings = parent.children if parent is not None else session.tracker.roots
        index = next(i for i, s in enumerate(siblings) if s is block)
        for sibling in reversed(siblings[:index]):
            if sibling.id not in unstable and sibling.span is not None:
                return sibling.id
        return None

    # ── Creates ─────────────────────────────────────────────────────────

    async def _create_batches(
        self,
        creates: list[SyncCreate],
        session: SyncSession,
        state: _ExecState,
        unstable: set[str],
    ) -> None:
        for batch in group_batches(creates):
            await self._create_batch(batch, session, state, unstable)

    async def _resolve(self, anchor: str | None, state: _ExecState, batch: list[SyncCreate]) -> str | None:
        """Real id for *anchor*, waiting for a type change that replaces it."""
        if anchor is None:
            return None
        change = state.recreating.get(anchor)
        if change is not None:
            await change
        context = {"anchor": anchor, "temp_ids": [c.temp_id for c in batch]}
        if anchor in state.lost:
            raise NotionbufPreconditionError(
                message=f"Anchor {anchor} was deleted and could not be recreated",
                context=context,
            )
        real = state.id_map.get(anchor)
        if real is None and is_temp_id(anchor):
            raise NotionbufPreconditionError(
                message=f"Anchor {anchor} was never created",
                context=context,
            )
        return real or anchor

    async def _create_batch(
        self,
        batch: list[SyncCreate],
        session: SyncSession,
        state: _ExecState,
        unstable: set[str],
    ) -> None:
        head = batch[0]
        payloads = [c.block.create_payload() for c in batch]
        try:
            if head.parent_id in unstable:
                raise NotionbufPreconditionError(
                    message=f"Parent {head.parent_id} is being removed by this sync",
                    context={"anchor": head.parent_id, "temp_ids": [c.temp_id for c in batch]},
                )
            parent_id = await self._resolve(head.parent_id, state, batch)
            after_id = await self._resolve(head.after_id, state, batch)
            results = await self._store.append_children(
                parent_id or session.page_id, payloads, after=after_id,
            )
        except Exception as exc:
            for create in batch:
                state.failed(OpKind.CREATE, create.temp_id, exc)
            state.complete(len(batch))
            return

        live = not session.cancel_token.cancelled
        previous = after_id
        for index, create in enumerate(batch):
            result = results[index] if index < len(results) else None
            if not result or not result.get("id"):
                state.failed(
                    OpKind.CREATE,
                    create.temp_id,
                    NotionbufPreconditionError(
                        message=f"No block returned for {create.temp_id}",
                        context={"temp_ids": [create.temp_id]},
                    ),
                )
                state.complete()
                continue

            block = create.block
            real_id = result["id"]
            state.id_map[create.temp_id] = real_id
            state.succeeded(OpKind.CREATE)
            state.result.created += 1
            if live:
                block.raw = _created_payload(result, payloads[index])
                block.id = real_id
                block.is_new = False
                session.tracker.add_block(
                    block, create.start_line, create.end_line,
                    after_id=previous, parent_id=parent_id,
                )
                block.mark_synced()
            previous = real_id
            state.complete()

        log.debug(
            "Create batch done",
            extra={"extra_fields": {"count": len(batch), "parent_id": parent_id, "after": after_id}},
        )

    # ── Metrics ─────────────────────────────────────────────────────────

    def _emit_metrics(self, state: _ExecState, elapsed_ms: float) -> None:
        for (op_type, status), count in state.ops.items():
            self._metrics.increment(
                "notionbuf.sync_ops_total",
                count,
                tags={"op_type": op_type, "status": status},
            )
        self._metrics.timing("notionbuf.sync_duration_ms", elapsed_ms)
        if state.result.created:
            self._metrics.increment("notionbuf.blocks_created_total", state.result.created)
