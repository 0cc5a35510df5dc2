"""notionbuf.notion_api -- Notion API transport, endpoint wrappers and store.

* :mod:`.rate_limit` -- async token bucket.
* :mod:`.retries` -- retry decisions and exponential backoff.
* :mod:`.transport` -- HTTP transport with auth, retries and pacing.
* :mod:`.blocks` / :mod:`.pages` -- endpoint wrappers.
* :mod:`.store` -- :class:`NotionStore`, the remote store used by sync.
"""

from __future__ import annotations

from .blocks import AsyncBlockAPI, extract_block_ids
from .pages import AsyncPageAPI
from .rate_limit import AsyncTokenBucket
from .retries import compute_backoff, should_retry
from .store import NotionStore, fetch_tree
from .transport import AsyncNotionTransport

__all__ = [
    "AsyncBlockAPI",
    "AsyncNotionTransport",
    "AsyncPageAPI",
    "AsyncTokenBucket",
    "NotionStore",
    "compute_backoff",
    "extract_block_ids",
    "fetch_tree",
    "should_retry",
]
