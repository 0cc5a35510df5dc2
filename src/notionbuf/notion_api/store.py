"""Notion-backed :class:`~notionbuf.ports.RemoteStore`."""

from __future__ import annotations

from typing import Any

from notionbuf.config import NotionbufConfig
from notionbuf.observability import get_logger
from notionbuf.ports import RemoteStore

from .blocks import MAX_APPEND_CHILDREN, AsyncBlockAPI
from .pages import AsyncPageAPI
from .transport import AsyncNotionTransport

log = get_logger("notionbuf.store")

# Blocks whose children belong to another page and are never inlined.
_OPAQUE_TYPES = frozenset({"child_page", "child_database"})


async def fetch_tree(
    store: RemoteStore,
    block_id: str,
    max_depth: int | None = None,
) -> list[dict[str, Any]]:
    """Fetch the children of *block_id* with their descendants attached.

    Each block with ``has_children`` gets its fetched children under its
    type-specific data key (or a top-level ``"children"`` key when it has
    none), the shape :func:`notionbuf.model.deserialize_tree` reads.

    Parameters
    ----------
    store:
        Any remote store.
    block_id:
        Page or block whose subtree to fetch.
    max_depth:
        Levels below the first to descend into.  ``None`` means unlimited.
    """
    blocks = await store.get_children(block_id)
    await _attach_children(store, blocks, 0, max_depth)
    return blocks


async def _attach_children(
    store: RemoteStore,
    blocks: list[dict[str, Any]],
    depth: int,
    max_depth: int | None,
) -> None:
    if max_depth is not None and depth >= max_depth:
        return
    for block in blocks:
        block_type = block.get("type", "")
        if not block.get("has_children") or not block.get("id") or block_type in _OPAQUE_TYPES:
            continue
        children = await store.get_children(block["id"])
        await _attach_children(store, children, depth + 1, max_depth)
        if isinstance(block.get(block_type), dict):
            block[block_type]["children"] = children
        else:
            block["children"] = children


class NotionStore:
    """Remote store talking to the Notion API over :class:`AsyncNotionTransport`.

    Parameters
    ----------
    config:
        Used to build a transport when *transport* is not given.
    transport:
        A ready transport to share, e.g. in tests.
    """

    def __init__(
        self,
        config: NotionbufConfig | None = None,
        *,
        transport: AsyncNotionTransport | None = None,
    ) -> None:
        if transport is None:
            if config is None:
                raise ValueError("NotionStore needs a config or a transport")
            transport = AsyncNotionTransport(config)
        self._transport = transport
        self._blocks = AsyncBlockAPI(transport)
        self._pages = AsyncPageAPI(transport)

    async def get_page(self, page_id: str) -> dict[str, Any]:
        return await self._pages.retrieve(page_id)

    async def get_block(self, block_id: str) -> dict[str, Any]:
        return await self._blocks.retrieve(block_id)

    async def get_children(self, block_id: str) -> list[dict[str, Any]]:
        return await self._blocks.get_children(block_id)

    async def append_children(
        self,
        parent_id: str,
        blocks: list[dict[str, Any]],
        after: str | None = None,
    ) -> list[dict[str, Any]]:
        """Create *blocks* in order, splitting into API-sized chunks.

        Each chunk after the first is anchored after the last block the
        previous chunk created, so order is kept across calls.
        """
        created: list[dict[str, Any]] = []
        anchor = after
        for offset in range(0, len(blocks), MAX_APPEND_CHILDREN):
            chunk = blocks[offset:offset + MAX_APPEND_CHILDREN]
            response = await self._blocks.append_children(parent_id, chunk, after=anchor)
            results = response.get("results", [])
            created.extend(results)
            if results and results[-1].get("id"):
                anchor = results[-1]["id"]
        log.debug(
            "Appended blocks",
            extra={"extra_fields": {"parent_id": parent_id, "count": len(created), "after": after}},
        )
        return created

    async def update_block(self, block_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._blocks.update(block_id, payload)

    async def delete_block(self, block_id: str) -> dict[str, Any]:
        return await self._blocks.delete(block_id)

    async def close(self) -> None:
        await self._transport.close()

    async def __aenter__(self) -> NotionStore:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
