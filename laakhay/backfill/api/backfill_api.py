"""BackfillAPI facade for complete range fetches.

The BackfillAPI wires the estimator, segmenter, paginator and orchestrator
behind one call: give it a range, get back every record in it together with
an explicit list of anything that could not be fetched.

Architecture:
    This module implements the Facade pattern over the runtime:
    - Range resolution (TimeInterval or RangeRequest)
    - Per-call volume overrides on a private copy of the estimator
    - Segmentation → orchestration → FetchResult
    - Resource lifecycle (close / async context manager)

Design Decisions:
    - Partial results are returned, never raised: ``missing_intervals``
      tells the caller what to re-run (see ``refetch_missing``)
    - Client injection keeps transport concerns outside the core
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import UTC, date, tzinfo
from typing import Any

from ..core.cancellation import CancellationToken
from ..core.client import QueryClient
from ..core.config import FetchConfig
from ..core.exceptions import InvalidInputError, InvalidIntervalError
from ..models.interval import TimeInterval
from ..models.request import RangeRequest
from ..models.result import FetchResult
from ..runtime.estimator import VolumeEstimator
from ..runtime.orchestrator import FetchOrchestrator
from ..runtime.paginator import CursorMode, CursorPaginator
from ..runtime.segmenter import IntervalSegmenter

logger = logging.getLogger(__name__)


class BackfillAPI:
    """High-level facade for fetching every record in a time range.

    Example:
        >>> async with BackfillAPI(client, config=FetchConfig(max_concurrency=8)) as api:
        ...     result = await api.fetch_all_records_in_range(
        ...         RangeRequest(start_date=date(2024, 11, 1), end_date=date(2024, 11, 30)),
        ...         volume_overrides={date(2024, 11, 29): 40_000},
        ...     )
        ...     if not result.is_complete:
        ...         result = await api.refetch_missing(result)
    """

    def __init__(
        self,
        client: QueryClient,
        *,
        config: FetchConfig | None = None,
        estimator: VolumeEstimator | None = None,
        tz: tzinfo = UTC,
        cursor_mode: CursorMode = CursorMode.KEYSET,
    ) -> None:
        """Initialize the BackfillAPI.

        Args:
            client: Query API client
            config: Fetch configuration (defaults to FetchConfig())
            estimator: Volume estimator (defaults to the retail calendar)
            tz: Timezone calendar days are read in
            cursor_mode: Re-anchoring strategy supported by the client
        """
        self._client = client
        self._config = config or FetchConfig()
        self._estimator = estimator or VolumeEstimator.retail_calendar()
        self._tz = tz
        self._segmenter = IntervalSegmenter.from_config(self._config, tz=tz)
        self._paginator = CursorPaginator.from_config(client, self._config, cursor_mode=cursor_mode)
        self._orchestrator = FetchOrchestrator.from_config(self._paginator, self._config)
        self._closed = False

    @property
    def config(self) -> FetchConfig:
        return self._config

    def _resolve_interval(self, interval: TimeInterval | RangeRequest) -> TimeInterval:
        if isinstance(interval, RangeRequest):
            return interval.to_interval(self._tz)
        if isinstance(interval, TimeInterval):
            return interval
        raise InvalidIntervalError(
            f"expected TimeInterval or RangeRequest, got {type(interval).__name__}"
        )

    def _estimator_for(self, volume_overrides: Mapping[date, int] | None) -> VolumeEstimator:
        if not volume_overrides:
            return self._estimator
        estimator = self._estimator.copy()
        for day, count in volume_overrides.items():
            estimator.register_override(day, count)
        return estimator

    def plan(
        self,
        interval: TimeInterval | RangeRequest,
        *,
        volume_overrides: Mapping[date, int] | None = None,
    ) -> list[TimeInterval]:
        """Segment a range without fetching anything."""
        resolved = self._resolve_interval(interval)
        return self._segmenter.segment(resolved, self._estimator_for(volume_overrides))

    async def fetch_all_records_in_range(
        self,
        interval: TimeInterval | RangeRequest,
        *,
        concurrency_budget: int | None = None,
        volume_overrides: Mapping[date, int] | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> FetchResult:
        """Fetch every record in a range.

        Args:
            interval: Range to fetch
            concurrency_budget: Max concurrent intervals for this call
                (capped by ``config.max_concurrency``)
            volume_overrides: Exact-date volume estimates for this call only
            cancel_token: Cooperative cancellation token

        Returns:
            FetchResult; ``records`` holds everything fetched and
            ``missing_intervals`` lists what was not

        Raises:
            InvalidInputError: If the range or budget is malformed
        """
        if self._closed:
            raise RuntimeError("BackfillAPI is closed")
        if concurrency_budget is not None and concurrency_budget <= 0:
            raise InvalidInputError("concurrency_budget must be positive")

        resolved = self._resolve_interval(interval)
        segments = self._segmenter.segment(resolved, self._estimator_for(volume_overrides))
        logger.info(f"Fetching {resolved} in {len(segments)} segment(s)")

        return await self._orchestrator.fetch_all(
            segments,
            cancel_token=cancel_token,
            allow_partial=True,
            max_concurrency=concurrency_budget,
        )

    async def refetch_missing(
        self,
        result: FetchResult,
        *,
        concurrency_budget: int | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> FetchResult:
        """Re-run only the missing intervals of a result and merge."""
        if self._closed:
            raise RuntimeError("BackfillAPI is closed")
        if not result.missing_intervals:
            return result
        rerun = await self._orchestrator.fetch_all(
            [m.interval for m in result.missing_intervals],
            cancel_token=cancel_token,
            allow_partial=True,
            max_concurrency=concurrency_budget,
        )
        return result.merge(rerun)

    async def close(self) -> None:
        """Close the orchestrator and the client (if it can be closed)."""
        if self._closed:
            return
        self._closed = True
        await self._orchestrator.close()
        close = getattr(self._client, "close", None)
        if close is not None:
            await close()

    async def __aenter__(self) -> BackfillAPI:
        """Context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit."""
        await self.close()
