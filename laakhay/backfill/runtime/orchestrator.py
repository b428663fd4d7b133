"""Bounded-concurrency fetch orchestration.

The FetchOrchestrator runs CursorPaginator invocations for many disjoint
intervals in parallel, retries transient failures with exponential backoff
and folds the outcomes into one FetchResult.

Architecture:
    - Worker pool: each call starts ``min(max_concurrency, len(intervals))``
      worker tasks draining a queue of FetchTasks
    - Slots: a semaphore owned by the orchestrator bounds concurrent
      paginations across all calls on the same instance
    - Isolation: each task owns its records; nothing is shared between
      workers except the queue, the slots and the paginator's rate limiter
    - Failure scoping: one interval failing never aborts its siblings

Design Decisions:
    - Retry at interval level: a failed attempt's partial records are
      discarded, so retries cannot duplicate records
    - Cancellation is cooperative (CancellationToken): dispatch stops,
      in-flight paginations stop at the next page boundary, backoff sleeps
      wake immediately; unfinished intervals are reported missing
    - Incompleteness is always signalled, either by IncompleteFetchError
      or by ``FetchResult.missing_intervals`` when partial results are allowed

See Also:
    - CursorPaginator: Per-interval pagination
    - BackfillAPI: Facade that owns an orchestrator per client
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from time import perf_counter
from typing import Any

from ..core.cancellation import CancellationToken
from ..core.config import FetchConfig, RetryPolicy
from ..core.constants import DEFAULT_MAX_CONCURRENCY
from ..core.exceptions import (
    FetchCancelledError,
    IncompleteFetchError,
    IntervalFetchError,
    InvalidInputError,
    RateLimitError,
)
from ..models.interval import TimeInterval
from ..models.result import FetchResult, FetchTask, TaskState
from .paginator import CursorPaginator
from .telemetry import log_fetch_complete, log_task_failed, log_task_retry

logger = logging.getLogger(__name__)


class FetchOrchestrator:
    """Runs interval fetches concurrently under a worker budget.

    Example:
        >>> async with FetchOrchestrator(paginator, max_concurrency=8) as orchestrator:
        ...     result = await orchestrator.fetch_all(intervals, allow_partial=True)
        ...     if not result.is_complete:
        ...         print(result.missing_intervals)
    """

    def __init__(
        self,
        paginator: CursorPaginator,
        *,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        retry: RetryPolicy | None = None,
    ) -> None:
        """Initialize orchestrator.

        Args:
            paginator: Paginator used for every interval
            max_concurrency: Maximum intervals paginated at the same time
            retry: Retry/backoff policy (defaults to RetryPolicy())
        """
        if max_concurrency <= 0:
            raise InvalidInputError("max_concurrency must be positive")
        self._paginator = paginator
        self._max_concurrency = max_concurrency
        self._retry = retry or RetryPolicy()
        self._slots = asyncio.Semaphore(max_concurrency)
        self._workers: set[asyncio.Task[None]] = set()
        self._closed = False

    @classmethod
    def from_config(cls, paginator: CursorPaginator, config: FetchConfig) -> FetchOrchestrator:
        return cls(paginator, max_concurrency=config.max_concurrency, retry=config.retry)

    @property
    def max_concurrency(self) -> int:
        return self._max_concurrency

    async def fetch_all(
        self,
        intervals: Sequence[TimeInterval],
        *,
        cancel_token: CancellationToken | None = None,
        allow_partial: bool = False,
        max_concurrency: int | None = None,
    ) -> FetchResult:
        """Fetch every interval and merge the records.

        Args:
            intervals: Disjoint intervals to fetch
            cancel_token: Cooperative cancellation token
            allow_partial: Return an incomplete result instead of raising
            max_concurrency: Per-call worker cap (never above the instance's)

        Returns:
            FetchResult with records concatenated in interval order

        Raises:
            IncompleteFetchError: If any interval is missing or flagged and
                ``allow_partial`` is False (the result is attached)
            RuntimeError: If the orchestrator was closed
        """
        if self._closed:
            raise RuntimeError("FetchOrchestrator is closed")
        if max_concurrency is not None and max_concurrency <= 0:
            raise InvalidInputError("max_concurrency must be positive")

        started = perf_counter()
        token = cancel_token or CancellationToken()
        tasks = [FetchTask(index=i, interval=interval) for i, interval in enumerate(intervals)]

        if tasks:
            queue: asyncio.Queue[FetchTask] = asyncio.Queue()
            for task in tasks:
                queue.put_nowait(task)

            budget = min(max_concurrency or self._max_concurrency, self._max_concurrency)
            pool_size = min(budget, len(tasks))
            workers = [asyncio.create_task(self._worker(queue, token)) for _ in range(pool_size)]
            self._workers.update(workers)
            try:
                await asyncio.gather(*workers)
            finally:
                self._workers.difference_update(workers)

        result = FetchResult.from_tasks(tasks, cancelled=token.cancelled)
        log_fetch_complete(result=result, total_latency_ms=(perf_counter() - started) * 1000.0)

        if not allow_partial and not result.is_complete:
            raise IncompleteFetchError(result)
        return result

    async def _worker(self, queue: asyncio.Queue[FetchTask], token: CancellationToken) -> None:
        """Drain the queue until empty. Never raises for task failures."""
        while True:
            try:
                task = queue.get_nowait()
            except asyncio.QueueEmpty:
                return

            if token.cancelled:
                task.state = TaskState.CANCELLED
                continue

            await self._run_task(task, token)

    async def _run_task(self, task: FetchTask, token: CancellationToken) -> None:
        """Run one interval through the paginator with retry/backoff.

        A slot is held only while an attempt runs, not during backoff.
        """
        while True:
            try:
                async with self._slots:
                    task.attempts += 1
                    task.state = TaskState.RUNNING
                    outcome = await self._paginator.fetch_interval(
                        task.interval, cancel_token=token
                    )
            except FetchCancelledError as e:
                task.state = TaskState.CANCELLED
                task.error = e
                return
            except IntervalFetchError as e:
                task.requests += e.requests
                task.error = e.cause
                if e.is_transient and task.attempts < self._retry.max_attempts:
                    floor = e.cause.retry_after if isinstance(e.cause, RateLimitError) else None
                    delay = self._retry.delay_for(task.attempts, floor=floor)
                    log_task_retry(
                        interval=task.interval,
                        attempt=task.attempts,
                        max_attempts=self._retry.max_attempts,
                        delay=delay,
                        error_type=type(e.cause).__name__,
                        error_message=str(e.cause),
                    )
                    task.state = TaskState.RETRYING
                    if await token.sleep(delay):
                        task.state = TaskState.CANCELLED
                        return
                    continue
                self._fail(task, e.cause)
                return
            except Exception as e:
                # Unexpected errors are scoped to the interval like permanent ones
                logger.error(f"Unexpected error fetching {task.interval}: {e}", exc_info=True)
                self._fail(task, e)
                return

            task.requests += outcome.requests
            task.records = outcome.records
            task.warning = outcome.warning
            task.error = None
            task.state = TaskState.SUCCEEDED
            return

    @staticmethod
    def _fail(task: FetchTask, error: BaseException) -> None:
        task.state = TaskState.FAILED
        task.error = error
        log_task_failed(
            interval=task.interval,
            attempts=task.attempts,
            error_type=type(error).__name__,
            error_message=str(error),
        )

    async def close(self) -> None:
        """Cancel in-flight workers and refuse further calls."""
        self._closed = True
        workers = list(self._workers)
        for worker in workers:
            worker.cancel()
        await asyncio.gather(*workers, return_exceptions=True)
        self._workers.clear()
        logger.info("FetchOrchestrator closed")

    async def __aenter__(self) -> FetchOrchestrator:
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()
