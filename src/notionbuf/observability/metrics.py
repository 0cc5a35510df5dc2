"""Pluggable metrics.

Set ``NotionbufConfig.metrics`` to any object with ``increment``,
``timing`` and ``gauge`` methods to receive data points; otherwise they go
to :class:`NoopMetricsHook`.

Names emitted by the package:

=================================  =========  ============================
name                               kind       tags
=================================  =========  ============================
``notionbuf.requests_total``       counter    ``method``, ``status``
``notionbuf.retries_total``        counter    ``method``, ``reason``
``notionbuf.request_duration_ms``  timing
``notionbuf.rate_limit_wait_ms``   timing
``notionbuf.sync_ops_total``       counter    ``op_type``, ``status``
``notionbuf.sync_duration_ms``     timing
``notionbuf.blocks_created_total`` counter
=================================  =========  ============================
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

Tags = dict[str, str]


@runtime_checkable
class MetricsHook(Protocol):
    """Shape of a metrics backend.  Tags are flat string pairs."""

    def increment(self, name: str, value: int = 1, tags: Tags | None = None) -> None: ...

    def timing(self, name: str, ms: float, tags: Tags | None = None) -> None: ...

    def gauge(self, name: str, value: float, tags: Tags | None = None) -> None: ...


class NoopMetricsHook:
    """Drops everything."""

    __slots__ = ()

    def increment(self, name: str, value: int = 1, tags: Tags | None = None) -> None:
        return None

    def timing(self, name: str, ms: float, tags: Tags | None = None) -> None:
        return None

    def gauge(self, name: str, value: float, tags: Tags | None = None) -> None:
        return None


def resolve_metrics(hook: Any | None) -> MetricsHook:
    if hook is None:
        return NoopMetricsHook()
    return hook
