"""Unit tests for CancellationToken."""

from __future__ import annotations

import asyncio

import pytest

from laakhay.backfill.core import CancellationToken, FetchCancelledError


class TestCancellationToken:
    """Test CancellationToken."""

    def test_cancel_is_idempotent(self):
        token = CancellationToken()
        assert not token.cancelled

        token.cancel("first")
        token.cancel("second")

        assert token.cancelled
        assert token.reason == "first"

    def test_raise_if_cancelled(self):
        token = CancellationToken()
        token.raise_if_cancelled()

        token.cancel()
        with pytest.raises(FetchCancelledError):
            token.raise_if_cancelled()

    @pytest.mark.asyncio
    async def test_sleep_runs_full_delay_without_cancel(self):
        token = CancellationToken()

        assert await token.sleep(0.01) is False

    @pytest.mark.asyncio
    async def test_sleep_wakes_on_cancel(self):
        token = CancellationToken()
        asyncio.get_running_loop().call_later(0.01, token.cancel)

        woke = await asyncio.wait_for(token.sleep(30), timeout=2)

        assert woke is True

    @pytest.mark.asyncio
    async def test_zero_sleep_reports_state(self):
        token = CancellationToken()
        assert await token.sleep(0) is False

        token.cancel()
        assert await token.sleep(0) is True
