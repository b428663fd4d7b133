"""Cooperative cancellation token."""

from __future__ import annotations

import asyncio

from .exceptions import FetchCancelledError


class CancellationToken:
    """Signal shared between a caller and running fetch workers.

    Workers check the token between page requests and during backoff
    sleeps; nothing is interrupted mid-request.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str | None = None) -> None:
        """Request cancellation. Idempotent."""
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise FetchCancelledError(self.reason or "fetch cancelled")

    async def sleep(self, delay: float) -> bool:
        """Sleep up to ``delay`` seconds, waking early on cancellation.

        Returns:
            True if cancellation was requested before the delay elapsed
        """
        if delay <= 0:
            return self.cancelled
        try:
            await asyncio.wait_for(self._event.wait(), timeout=delay)
        except TimeoutError:
            return False
        return True

    async def wait(self) -> None:
        await self._event.wait()
