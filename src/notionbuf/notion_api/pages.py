"""Async wrapper for the Notion ``/pages`` endpoint."""

from __future__ import annotations

from typing import Any

from .transport import AsyncNotionTransport


class AsyncPageAPI:
    """Read access to page objects.

    Parameters
    ----------
    transport:
        A configured :class:`AsyncNotionTransport`.
    """

    def __init__(self, transport: AsyncNotionTransport) -> None:
        self._transport = transport

    async def retrieve(self, page_id: str) -> dict[str, Any]:
        """Return the page object: properties, icon and parent."""
        return await self._transport.request("GET", f"/pages/{page_id}")
