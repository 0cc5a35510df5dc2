"""In-memory page cache.

Keeps the last pulled page object and block list per page id, together
with a content hash so a caller can tell whether the remote page changed
since it was loaded.  Least-recently-saved pages are evicted past
``max_pages``.
"""

from __future__ import annotations

import copy
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any

from notionbuf.utils.hashing import hash_dict

_VOLATILE_KEYS = frozenset({"last_edited_time", "last_edited_by", "request_id"})


def _strip_volatile(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _strip_volatile(v) for k, v in value.items() if k not in _VOLATILE_KEYS}
    if isinstance(value, list):
        return [_strip_volatile(v) for v in value]
    return value


def page_content_hash(blocks: list[dict[str, Any]]) -> str:
    """Hash a page's block list, ignoring edit timestamps."""
    return hash_dict(_strip_volatile(blocks))


def block_content_hash(block: dict[str, Any]) -> str:
    return hash_dict(_strip_volatile(block))


@dataclass
class _Entry:
    page: dict[str, Any] | None = None
    blocks: list[dict[str, Any]] | None = None
    content_hash: str | None = None
    saved_at: float = field(default_factory=time.monotonic)


class MemoryPageCache:
    """Page cache kept in process memory.

    Parameters
    ----------
    max_pages:
        Maximum number of pages retained.
    """

    def __init__(self, max_pages: int = 100) -> None:
        if max_pages < 1:
            raise ValueError(f"max_pages must be >= 1, got {max_pages}")
        self._max_pages = max_pages
        self._entries: OrderedDict[str, _Entry] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def _entry(self, page_id: str) -> _Entry:
        entry = self._entries.get(page_id)
        if entry is None:
            entry = self._entries[page_id] = _Entry()
        self._entries.move_to_end(page_id)
        while len(self._entries) > self._max_pages:
            self._entries.popitem(last=False)
        return entry

    def save_page(self, page_id: str, page: dict[str, Any]) -> None:
        entry = self._entry(page_id)
        entry.page = copy.deepcopy(page)
        entry.saved_at = time.monotonic()

    def save_content(
        self,
        page_id: str,
        blocks: list[dict[str, Any]],
        content_hash: str | None = None,
    ) -> None:
        entry = self._entry(page_id)
        entry.blocks = copy.deepcopy(blocks)
        entry.content_hash = content_hash or page_content_hash(blocks)
        entry.saved_at = time.monotonic()

    def get_page(self, page_id: str) -> dict[str, Any] | None:
        entry = self._entries.get(page_id)
        return copy.deepcopy(entry.page) if entry and entry.page is not None else None

    def get_content(self, page_id: str) -> list[dict[str, Any]] | None:
        entry = self._entries.get(page_id)
        return copy.deepcopy(entry.blocks) if entry and entry.blocks is not None else None

    def get_hash(self, page_id: str) -> str | None:
        entry = self._entries.get(page_id)
        return entry.content_hash if entry else None

    def get_age(self, page_id: str) -> float | None:
        """Seconds since *page_id* was last saved, or ``None``."""
        entry = self._entries.get(page_id)
        return time.monotonic() - entry.saved_at if entry else None

    def is_stale(self, page_id: str, blocks: list[dict[str, Any]]) -> bool:
        """True when *blocks* hash differently from the cached content."""
        return self.get_hash(page_id) != page_content_hash(blocks)

    def delete_page(self, page_id: str) -> None:
        self._entries.pop(page_id, None)

    def clear(self) -> None:
        self._entries.clear()
