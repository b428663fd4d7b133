"""Cursor pagination past the per-query result cap.

This module provides the CursorPaginator class that fetches every record
of one interval even when the API stops answering after ``per_query_cap``
results for a single predicate.

Architecture:
    Pagination alternates two mechanisms:
    - Offset paging inside one capped window (offset never reaches the cap)
    - Re-anchoring across the cap: the next window's predicate starts just
      past the last record's ``(timestamp, id)`` sort key

    Offsets beyond the API's own cap are undefined, so the cap boundary is
    only ever crossed by re-anchoring.

Design Decisions:
    - Keyset re-anchoring on ``(timestamp, id)`` is the default; it makes
      progress even when many records share a timestamp
    - Timestamp-only re-anchoring is available for APIs that cannot filter
      on the id tie-break; boundary records are dropped by id, and a window
      filled entirely by one timestamp is reported as stuck
    - A stuck cursor stops pagination with a completeness warning instead
      of looping or inventing data
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from time import perf_counter

from ..core.cancellation import CancellationToken
from ..core.client import QueryClient, QueryPage, RangeFilter
from ..core.config import FetchConfig
from ..core.constants import DEFAULT_PAGE_SIZE, DEFAULT_PER_QUERY_CAP, SORT_KEY
from ..core.exceptions import (
    IntervalFetchError,
    InvalidInputError,
    RequestTimeoutError,
    UpstreamError,
)
from ..models.interval import TimeInterval
from ..models.record import Record, SortCursor
from ..models.result import CompletenessWarning, PaginationResult
from .rate_limit import RequestRateLimiter
from .telemetry import log_cursor_stuck, log_interval_completed, log_window_completed

logger = logging.getLogger(__name__)


class CursorMode(str, Enum):
    """How the next window is anchored once a window hits the cap."""

    KEYSET = "keyset"
    TIMESTAMP = "timestamp"


class CursorPaginator:
    """Fetches all records of an interval, exactly once each.

    The paginator is stateless between calls and safe to share between
    concurrent workers; all per-interval state lives in the call.
    """

    def __init__(
        self,
        client: QueryClient,
        *,
        per_query_cap: int = DEFAULT_PER_QUERY_CAP,
        page_size: int = DEFAULT_PAGE_SIZE,
        cursor_mode: CursorMode = CursorMode.KEYSET,
        request_timeout: float | None = None,
        rate_limiter: RequestRateLimiter | None = None,
    ) -> None:
        """Initialize paginator.

        Args:
            client: Query API client
            per_query_cap: Maximum results the API returns for one predicate
            page_size: Records requested per page
            cursor_mode: Re-anchoring strategy
            request_timeout: Timeout of a single page request (seconds)
            rate_limiter: Optional limiter shared with other paginators
        """
        if per_query_cap <= 0:
            raise InvalidInputError("per_query_cap must be positive")
        if page_size <= 0:
            raise InvalidInputError("page_size must be positive")
        self._client = client
        self._cap = per_query_cap
        self._page_size = min(page_size, per_query_cap)
        self._mode = cursor_mode
        self._timeout = request_timeout
        self._rate_limiter = rate_limiter

    @classmethod
    def from_config(
        cls,
        client: QueryClient,
        config: FetchConfig,
        *,
        cursor_mode: CursorMode = CursorMode.KEYSET,
        rate_limiter: RequestRateLimiter | None = None,
    ) -> CursorPaginator:
        """Create a paginator from a FetchConfig.

        A rate limiter is created from ``max_requests_per_second`` unless
        one is passed in.
        """
        if rate_limiter is None and config.max_requests_per_second is not None:
            rate_limiter = RequestRateLimiter(config.max_requests_per_second)
        return cls(
            client,
            per_query_cap=config.per_query_cap,
            page_size=config.page_size,
            cursor_mode=cursor_mode,
            request_timeout=config.request_timeout,
            rate_limiter=rate_limiter,
        )

    @property
    def per_query_cap(self) -> int:
        return self._cap

    async def fetch_interval(
        self,
        interval: TimeInterval,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> PaginationResult:
        """Fetch every record whose timestamp lies in ``interval``.

        Args:
            interval: Interval to paginate
            cancel_token: Checked before every page request

        Returns:
            PaginationResult with records in sort order, plus a warning if
            the cursor got stuck

        Raises:
            IntervalFetchError: If any page request fails (check
                ``is_transient`` to decide whether to retry)
            FetchCancelledError: If cancellation was requested
        """
        started = perf_counter()
        result = PaginationResult(interval=interval)
        seen_ids: set[str] = set()
        window = RangeFilter(start=interval.start, end=interval.end)

        try:
            while True:
                window_started = perf_counter()
                batch, capped = await self._fetch_window(window, result, cancel_token)
                self._accept(batch, seen_ids, result)
                log_window_completed(
                    interval=interval,
                    window_index=result.windows,
                    rows_fetched=len(batch),
                    capped=capped,
                    latency_ms=(perf_counter() - window_started) * 1000.0,
                )
                result.windows += 1

                if not capped:
                    break

                last = batch[-1].sort_key
                next_window = self._advance(window, last)
                if next_window is None:
                    result.warning = CompletenessWarning(
                        interval=interval,
                        cursor=last,
                        message=(
                            f"cursor could not advance past {last}: at least "
                            f"{self._cap} records share the window's lower bound"
                        ),
                    )
                    log_cursor_stuck(interval=interval, cursor=last, cap=self._cap)
                    break
                window = next_window
        except UpstreamError as e:
            raise IntervalFetchError(interval, e, requests=result.requests) from e

        log_interval_completed(
            interval=interval,
            total_records=len(result.records),
            windows=result.windows,
            requests=result.requests,
            latency_ms=(perf_counter() - started) * 1000.0,
        )
        return result

    async def _fetch_window(
        self,
        window: RangeFilter,
        result: PaginationResult,
        cancel_token: CancellationToken | None,
    ) -> tuple[list[Record], bool]:
        """Offset-page through one window.

        Returns:
            (records, capped) where ``capped`` means the window reached the
            per-query cap and more records may follow
        """
        batch: list[Record] = []
        while len(batch) < self._cap:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()

            limit = min(self._page_size, self._cap - len(batch))
            page = await self._query(window, offset=len(batch), limit=limit)
            result.requests += 1
            batch.extend(page.records)

            # Short page: window exhausted
            if len(page.records) < limit:
                return batch, False
            # Reported total consumed below the cap: no need for another request
            if page.total is not None and page.total < self._cap and len(batch) >= page.total:
                return batch, False

        return batch, True

    async def _query(self, window: RangeFilter, *, offset: int, limit: int) -> QueryPage:
        if self._rate_limiter is not None:
            await self._rate_limiter.acquire()

        logger.debug(
            f"Querying {window.start.isoformat()}..{window.end.isoformat()} "
            f"after={window.after} offset={offset} limit={limit}"
        )
        call = self._client.query(window, SORT_KEY, offset, limit)
        if self._timeout is None:
            return await call
        try:
            return await asyncio.wait_for(call, timeout=self._timeout)
        except TimeoutError as e:
            raise RequestTimeoutError(
                f"page request timed out after {self._timeout}s (offset={offset})"
            ) from e

    def _advance(self, window: RangeFilter, last: SortCursor) -> RangeFilter | None:
        """Build the next window's predicate, or None if the cursor is stuck."""
        if self._mode is CursorMode.KEYSET:
            if last.timestamp < window.start:
                return None
            if window.after is not None and last <= window.after:
                return None
            return RangeFilter(start=last.timestamp, end=window.end, after=last)

        # Timestamp-only: include the boundary timestamp again, drop seen ids
        if last.timestamp <= window.start:
            return None
        return RangeFilter(start=last.timestamp, end=window.end)

    @staticmethod
    def _accept(batch: list[Record], seen_ids: set[str], result: PaginationResult) -> None:
        for record in batch:
            if record.id in seen_ids:
                continue
            seen_ids.add(record.id)
            result.records.append(record)
