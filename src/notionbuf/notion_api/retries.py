"""When to retry a Notion request, and how long to wait first.

Rate limiting (429) and the 5xx gateway family are transient on Notion's
side; timeouts and dropped connections are transient on ours.  Anything
else is reported to the caller straight away.
"""

from __future__ import annotations

import random

import httpx

RETRYABLE_STATUSES: frozenset[int] = frozenset({429, 500, 502, 503, 504})

RETRYABLE_EXCEPTIONS: tuple[type[Exception], ...] = (
    httpx.TimeoutException,
    httpx.NetworkError,
)


def should_retry(
    status_code: int | None,
    exception: Exception | None,
    attempt: int,
    max_attempts: int,
) -> bool:
    """Whether the request that just ended may be sent again.

    *attempt* counts from zero, so ``attempt == max_attempts - 1`` is the
    final try.  A send exception takes precedence over *status_code*.
    """
    if attempt >= max_attempts - 1:
        return False
    if exception is not None:
        return isinstance(exception, RETRYABLE_EXCEPTIONS)
    return status_code in RETRYABLE_STATUSES


def compute_backoff(
    attempt: int,
    base: float = 1.0,
    maximum: float = 60.0,
    jitter: bool = True,
    retry_after: float | None = None,
) -> float:
    """Seconds to sleep before attempt ``attempt + 1``.

    Parameters
    ----------
    attempt:
        Zero-based number of the attempt that failed.
    base, maximum:
        Exponential schedule ``base * 2**attempt``, never above *maximum*.
    jitter:
        Scale the delay by a random factor in ``[0.5, 1.0]``.
    retry_after:
        Server hint in seconds; replaces the exponential schedule.
    """
    if retry_after is None:
        delay = min(base * 2 ** attempt, maximum)
    else:
        delay = retry_after
    if not jitter:
        return delay
    return delay * (0.5 + 0.5 * random.random())
