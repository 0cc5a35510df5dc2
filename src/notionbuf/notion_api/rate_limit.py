"""Client-side pacing so a sync burst stays under Notion's request quota."""

from __future__ import annotations

import asyncio
import time


class AsyncTokenBucket:
    """Refilling token bucket guarded by an :class:`asyncio.Lock`.

    The bucket starts full with *burst* tokens and regains ``rate_rps``
    tokens per second, never holding more than *burst*.

    Raises
    ------
    ValueError
        When *rate_rps* is not positive or *burst* is below one.
    """

    __slots__ = ("_lock", "burst", "last_refill", "rate", "tokens")

    def __init__(self, rate_rps: float, burst: int = 10) -> None:
        if not rate_rps > 0:
            raise ValueError(f"rate_rps must be > 0, got {rate_rps}")
        if burst < 1:
            raise ValueError(f"burst must be >= 1, got {burst}")
        self.rate = float(rate_rps)
        self.burst = burst
        self.tokens = float(burst)
        self.last_refill = time.monotonic()
        self._lock = asyncio.Lock()

    def _refill(self) -> None:
        now = time.monotonic()
        elapsed = now - self.last_refill
        self.last_refill = now
        self.tokens = min(float(self.burst), self.tokens + elapsed * self.rate)

    async def acquire(self, tokens: int = 1) -> float:
        """Consume *tokens* and return how many seconds the caller slept."""
        async with self._lock:
            self._refill()
            shortfall = tokens - self.tokens
            if shortfall <= 0:
                self.tokens -= tokens
                return 0.0
            # The deficit is paid for by sleeping; the bucket is left empty.
            self.tokens = 0.0
            wait = shortfall / self.rate

        await asyncio.sleep(wait)
        return wait
