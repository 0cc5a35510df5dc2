"""Async HTTP transport for the Notion API.

One :meth:`AsyncNotionTransport.request` call goes through this lifecycle:

1. Take a token-bucket slot (waiting if needed).
2. Send the request with auth and version headers.
3. On ``2xx``, return the parsed JSON body.
4. On ``429``, honour ``Retry-After`` and retry.
5. On ``5xx`` or a network error, back off exponentially and retry.
6. On any other ``4xx``, raise the matching typed error at once.
7. When attempts run out, raise :class:`NotionbufRetryExhaustedError`.
"""

from __future__ import annotations

import asyncio
import json as _json
import sys
import time
from collections.abc import AsyncIterator
from typing import Any

import httpx

from notionbuf.config import NotionbufConfig
from notionbuf.errors import (
    NotionbufAuthError,
    NotionbufConflictError,
    NotionbufNetworkError,
    NotionbufNotFoundError,
    NotionbufPermissionError,
    NotionbufRateLimitError,
    NotionbufRetryExhaustedError,
    NotionbufValidationError,
)
from notionbuf.observability import get_logger, resolve_metrics
from notionbuf.utils.redact import redact

from .rate_limit import AsyncTokenBucket
from .retries import RETRYABLE_EXCEPTIONS, RETRYABLE_STATUSES, compute_backoff, should_retry

log = get_logger("notionbuf.transport")

PAGE_SIZE = 100

# Non-retryable status -> (error class, message verb).
_STATUS_ERRORS: dict[int, tuple[type, str]] = {
    400: (NotionbufValidationError, "Validation error"),
    401: (NotionbufAuthError, "Authentication failed"),
    403: (NotionbufPermissionError, "Permission denied"),
    404: (NotionbufNotFoundError, "Not found"),
    409: (NotionbufConflictError, "Conflict"),
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _parse_retry_after(response: httpx.Response) -> float | None:
    """Return the ``Retry-After`` header as seconds, or ``None``."""
    raw = response.headers.get("retry-after")
    if raw is None:
        return None
    try:
        return float(raw)
    except (ValueError, TypeError):
        return None


def _response_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text[:1000]


def _raise_for_status(response: httpx.Response, method: str, path: str) -> None:
    """Raise the typed error for a non-retryable ``4xx`` response."""
    status = response.status_code
    body = _response_body(response)
    if not isinstance(body, dict):
        body = {}
    notion_message = body.get("message", response.text[:500])
    context = {
        "status_code": status,
        "notion_code": body.get("code", ""),
        "operation": f"{method} {path}",
    }

    error_cls, verb = _STATUS_ERRORS.get(status, (NotionbufValidationError, f"Client error {status}"))
    if error_cls is NotionbufValidationError:
        context["body"] = body
    if error_cls is NotionbufNotFoundError:
        context["path"] = path
    raise error_cls(
        message=f"{verb} on {method} {path}: {notion_message}",
        context=context,
    )


def _dump_exchange(
    method: str,
    url: str,
    payload: Any,
    status: int | None,
    body: Any,
    token: str | None,
) -> None:
    """Write a redacted request/response dump to stderr."""
    dump: dict[str, Any] = {"method": method, "url": url}
    if payload is not None:
        dump["request_body"] = payload
    if status is not None:
        dump["response_status"] = status
    if body is not None:
        dump["response_body"] = body
    print(_json.dumps(redact(dump, token), indent=2, default=str), file=sys.stderr)


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------

class AsyncNotionTransport:
    """Async HTTP transport with auth, retries and rate limiting.

    Parameters
    ----------
    config:
        Controls credentials, endpoints, retry policy and pacing.
    client:
        Optional pre-built ``httpx.AsyncClient``.  The transport owns a
        client it builds itself and closes it in :meth:`close`.
    """

    def __init__(
        self,
        config: NotionbufConfig,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config
        self._bucket = AsyncTokenBucket(rate_rps=config.rate_limit_rps, burst=10)
        self._metrics = resolve_metrics(config.metrics)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=config.base_url,
            headers={
                "Authorization": f"Bearer {config.token}",
                "Notion-Version": config.notion_version,
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(config.timeout_seconds),
            proxy=config.http_proxy,
        )

    # -- public API --------------------------------------------------------

    async def request(self, method: str, path: str, **kwargs: Any) -> dict:
        """Execute one API call, retrying transient failures.

        Parameters
        ----------
        method:
            HTTP method.
        path:
            API path relative to ``base_url`` (e.g. ``/blocks/{id}``).
        **kwargs:
            Forwarded to ``httpx.AsyncClient.request`` (``json=``,
            ``params=``...).

        Returns
        -------
        dict
            Parsed JSON body, or ``{}`` for empty responses.

        Raises
        ------
        NotionbufValidationError
            On 400 and other non-retryable 4xx responses.
        NotionbufAuthError, NotionbufPermissionError, NotionbufNotFoundError
            On 401, 403 and 404.
        NotionbufConflictError
            On 409.
        NotionbufRateLimitError
            When the server asks to wait longer than ``retry_max_delay``.
        NotionbufNetworkError
            On a network failure that is not retried.
        NotionbufRetryExhaustedError
            When every attempt failed with a retryable status.
        """
        config = self._config
        max_attempts = config.retry_max_attempts
        last_status: int | None = None
        last_exception: Exception | None = None

        for attempt in range(max_attempts):
            wait = await self._bucket.acquire()
            if wait > 0:
                self._metrics.timing(
                    "notionbuf.rate_limit_wait_ms", wait * 1000, tags={"method": method},
                )

            t0 = time.monotonic()
            try:
                response = await self._client.request(method, path, **kwargs)
            except RETRYABLE_EXCEPTIONS as exc:
                last_status, last_exception = None, exc
                await asyncio.sleep(self._on_network_error(method, path, exc, attempt))
                continue
            elapsed_ms = (time.monotonic() - t0) * 1000

            status = response.status_code
            last_status, last_exception = status, None
            tags = {"method": method, "status": str(status)}
            self._metrics.increment("notionbuf.requests_total", tags=tags)
            self._metrics.timing("notionbuf.request_duration_ms", elapsed_ms, tags=tags)
            log.debug(
                "Notion request",
                extra={"extra_fields": {
                    "method": method, "path": path, "status_code": status,
                    "attempt": attempt + 1, "duration_ms": round(elapsed_ms, 1),
                }},
            )

            if config.debug_dump_payload:
                _dump_exchange(
                    method, str(response.url), kwargs.get("json"),
                    status, _response_body(response), config.token,
                )

            if 200 <= status < 300:
                if status == 204 or not response.content:
                    return {}
                return response.json()

            if status not in RETRYABLE_STATUSES:
                _raise_for_status(response, method, path)

            if not should_retry(status, None, attempt, max_attempts):
                break

            retry_after = _parse_retry_after(response) if status == 429 else None
            if retry_after is not None and retry_after > config.retry_max_delay:
                raise NotionbufRateLimitError(
                    message=f"Rate limited on {method} {path} for {retry_after:.0f}s",
                    context={"retry_after_seconds": retry_after},
                )
            reason = "rate_limited" if status == 429 else "server_error"
            log.warning(
                "Retrying Notion request",
                extra={"extra_fields": {
                    "method": method, "path": path, "status_code": status,
                    "retry_after": retry_after, "attempt": attempt + 1,
                }},
            )
            self._metrics.increment(
                "notionbuf.retries_total", tags={"method": method, "reason": reason},
            )
            await asyncio.sleep(compute_backoff(
                attempt,
                base=config.retry_base_delay,
                maximum=config.retry_max_delay,
                jitter=config.retry_jitter,
                retry_after=retry_after,
            ))

        context: dict[str, Any] = {"attempts": max_attempts, "last_status_code": last_status}
        detail = f"last error: {last_exception}" if last_exception else f"last status: {last_status}"
        raise NotionbufRetryExhaustedError(
            message=f"All {max_attempts} attempts exhausted for {method} {path} ({detail})",
            context=context,
            cause=last_exception,
        )

    async def paginate(self, path: str, **kwargs: Any) -> AsyncIterator[dict]:
        """Yield every result of a cursor-paginated ``GET`` endpoint."""
        params: dict = dict(kwargs.pop("params", None) or {})
        params["page_size"] = PAGE_SIZE
        while True:
            data = await self.request("GET", path, params=dict(params), **kwargs)
            for item in data.get("results", []):
                yield item
            cursor = data.get("next_cursor")
            if not data.get("has_more", False) or cursor is None:
                break
            params["start_cursor"] = cursor

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> AsyncNotionTransport:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # -- internals ---------------------------------------------------------

    def _on_network_error(self, method: str, path: str, exc: Exception, attempt: int) -> float:
        """Return the backoff before retrying, or raise when out of attempts."""
        config = self._config
        self._metrics.increment(
            "notionbuf.requests_total", tags={"method": method, "status": "error"},
        )
        log.warning(
            "Notion request network error",
            extra={"extra_fields": {
                "method": method, "path": path, "attempt": attempt + 1, "error": str(exc),
            }},
        )
        if not should_retry(None, exc, attempt, config.retry_max_attempts):
            raise NotionbufNetworkError(
                message=f"Network error on {method} {path}: {exc}",
                context={"url": path, "attempt": attempt + 1},
                cause=exc,
            ) from exc
        self._metrics.increment(
            "notionbuf.retries_total", tags={"method": method, "reason": "network_error"},
        )
        return compute_backoff(
            attempt,
            base=config.retry_base_delay,
            maximum=config.retry_max_delay,
            jitter=config.retry_jitter,
        )
