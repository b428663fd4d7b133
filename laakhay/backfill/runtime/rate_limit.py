"""Shared request rate limiter."""

from __future__ import annotations

import asyncio
import time

from ..core.exceptions import InvalidInputError


class RequestRateLimiter:
    """Async token bucket shared by every worker of an orchestrator.

    Tokens refill continuously at ``rate`` per second up to ``burst``.
    ``acquire`` waits until a token is available.
    """

    def __init__(self, rate: float, burst: float | None = None) -> None:
        if rate <= 0:
            raise InvalidInputError("rate must be positive")
        self.rate = float(rate)
        self.burst = float(burst if burst is not None else max(1.0, rate))
        if self.burst < 1:
            raise InvalidInputError("burst must be >= 1")
        self._tokens = self.burst
        self._last = time.monotonic()
        self._lock = asyncio.Lock()

    def _refill(self, now: float) -> None:
        elapsed = max(0.0, now - self._last)
        self._tokens = min(self.burst, self._tokens + elapsed * self.rate)
        self._last = now

    async def acquire(self) -> None:
        """Take one token, sleeping until one is available."""
        # Lock serializes waiters so tokens are handed out in FIFO order
        async with self._lock:
            while True:
                self._refill(time.monotonic())
                if self._tokens >= 1:
                    self._tokens -= 1
                    return
                await asyncio.sleep((1 - self._tokens) / self.rate)
