"""Coroutine wrappers over ``/v1/blocks``."""

from __future__ import annotations

from typing import Any

from .transport import AsyncNotionTransport

# Upper bound Notion enforces on ``children`` in one append request.
MAX_APPEND_CHILDREN = 100


def extract_block_ids(response: dict[str, Any]) -> list[str]:
    """Ids of the created blocks in an append-children response, in order."""
    results = response.get("results") or []
    return [block["id"] for block in results if "id" in block]


class AsyncBlockAPI:
    """One method per block endpoint; all errors come from the transport."""

    def __init__(self, transport: AsyncNotionTransport) -> None:
        self._transport = transport

    def _path(self, block_id: str, *rest: str) -> str:
        return "/".join(("/blocks", block_id, *rest))

    async def retrieve(self, block_id: str) -> dict[str, Any]:
        return await self._transport.request("GET", self._path(block_id))

    async def update(self, block_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        """PATCH *payload* onto a block and return the block as stored.

        *payload* is keyed by block type, e.g.
        ``{"paragraph": {"rich_text": [...]}}``; omitted fields keep their
        remote values.
        """
        return await self._transport.request("PATCH", self._path(block_id), json=payload)

    async def delete(self, block_id: str) -> dict[str, Any]:
        """Archive a block together with everything nested under it."""
        return await self._transport.request("DELETE", self._path(block_id))

    async def get_children(self, block_id: str) -> list[dict[str, Any]]:
        children: list[dict[str, Any]] = []
        async for block in self._transport.paginate(self._path(block_id, "children")):
            children.append(block)
        return children

    async def append_children(
        self,
        block_id: str,
        children: list[dict[str, Any]],
        after: str | None = None,
    ) -> dict[str, Any]:
        """Insert up to :data:`MAX_APPEND_CHILDREN` blocks under *block_id*.

        Parameters
        ----------
        block_id:
            Page or block receiving the children.
        children:
            Block objects, created in list order.
        after:
            Existing child the new blocks follow; ``None`` appends at the end.

        Returns
        -------
        dict
            Raw response, created blocks under ``results``.
        """
        body: dict[str, Any] = {"children": children}
        if after is not None:
            body["after"] = after
        return await self._transport.request("PATCH", self._path(block_id, "children"), json=body)
