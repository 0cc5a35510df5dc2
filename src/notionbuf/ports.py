"""Protocols for the collaborators notionbuf depends on.

The sync engine only talks to these interfaces.  Shipped implementations:

* :class:`RemoteStore` -- :class:`notionbuf.notion_api.NotionStore`
* :class:`RichText` -- :mod:`notionbuf.richtext`
* :class:`EditorBuffer` -- :class:`notionbuf.buffer.MemoryBuffer`
* :class:`PageCache` -- :class:`notionbuf.cache.MemoryPageCache`
"""

from __future__ import annotations

from typing import Any, NamedTuple, Protocol, runtime_checkable


class MarkerPosition(NamedTuple):
    """0-indexed position of a buffer marker (rows and byte columns)."""

    start_row: int
    start_col: int
    end_row: int
    end_col: int

    @property
    def is_zero_width(self) -> bool:
        return self.start_row == self.end_row and self.start_col == self.end_col


@runtime_checkable
class RemoteStore(Protocol):
    """Remote document store holding pages made of nested blocks."""

    async def get_page(self, page_id: str) -> dict[str, Any]:
        """Return the page object (title, icon, parent...)."""
        ...

    async def get_children(self, block_id: str) -> list[dict[str, Any]]:
        """Return every direct child of a page or block, in order."""
        ...

    async def append_children(
        self,
        parent_id: str,
        blocks: list[dict[str, Any]],
        after: str | None = None,
    ) -> list[dict[str, Any]]:
        """Insert *blocks* under *parent_id* (after *after* when given).

        Returns the created block objects in input order.
        """
        ...

    async def update_block(self, block_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Patch a block in place."""
        ...

    async def delete_block(self, block_id: str) -> dict[str, Any]:
        """Archive a block and its descendants."""
        ...


@runtime_checkable
class RichText(Protocol):
    """Bidirectional codec between segments and marked-up text."""

    def parse(self, text: str) -> list[dict[str, Any]]:
        ...

    def render(self, segments: list[dict[str, Any]]) -> str:
        ...


@runtime_checkable
class EditorBuffer(Protocol):
    """Line buffer with movable markers.

    Rows are 0-indexed.  ``get_lines`` and ``set_lines`` take an end-exclusive
    row range where ``-1`` means "through the last line".
    """

    def get_lines(self, start: int, end: int) -> list[str]:
        ...

    def set_lines(self, start: int, end: int, lines: list[str]) -> None:
        ...

    def set_text(
        self,
        start_row: int,
        start_col: int,
        end_row: int,
        end_col: int,
        lines: list[str],
    ) -> None:
        ...

    def line_count(self) -> int:
        ...

    def create_marker(
        self,
        start_row: int,
        start_col: int,
        end_row: int,
        end_col: int,
        *,
        right_gravity: bool = True,
        end_right_gravity: bool = False,
    ) -> int:
        ...

    def get_marker(self, marker_id: int) -> MarkerPosition | None:
        ...

    def clear_markers(self) -> None:
        ...

    def is_valid(self) -> bool:
        ...


@runtime_checkable
class PageCache(Protocol):
    """Optional local cache of pulled pages."""

    def save_page(self, page_id: str, page: dict[str, Any]) -> None:
        ...

    def save_content(self, page_id: str, blocks: list[dict[str, Any]], content_hash: str) -> None:
        ...

    def get_content(self, page_id: str) -> list[dict[str, Any]] | None:
        ...

    def get_hash(self, page_id: str) -> str | None:
        ...
