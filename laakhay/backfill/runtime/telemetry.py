"""Structured logging for segmentation, pagination and orchestration.

This module provides telemetry hooks for the fetch pipeline, emitting
structured logs (event name as message, fields in ``extra``).
"""

from __future__ import annotations

import logging

from ..models.interval import TimeInterval
from ..models.record import SortCursor
from ..models.result import FetchResult

logger = logging.getLogger(__name__)


def log_segment_plan(
    *,
    interval: TimeInterval,
    total_segments: int,
    hourly_days: int = 0,
    half_days: int = 0,
) -> None:
    """Log segmentation of a caller interval.

    Args:
        interval: Interval that was segmented
        total_segments: Number of sub-intervals produced
        hourly_days: Days split into hourly segments
        half_days: Days split into half-day segments
    """
    logger.info(
        "segment_plan_created",
        extra={
            "start_time": interval.start.isoformat(),
            "end_time": interval.end.isoformat(),
            "total_segments": total_segments,
            "hourly_days": hourly_days,
            "half_days": half_days,
        },
    )


def log_window_completed(
    *,
    interval: TimeInterval,
    window_index: int,
    rows_fetched: int,
    capped: bool,
    latency_ms: float | None = None,
) -> None:
    """Log completion of one capped query window.

    Args:
        interval: Interval being paginated
        window_index: Zero-based index of the window within the interval
        rows_fetched: Records returned by this window
        capped: Whether the window hit the per-query cap
        latency_ms: Latency in milliseconds (optional)
    """
    logger.debug(
        "window_completed",
        extra={
            "interval": str(interval),
            "window_index": window_index,
            "rows_fetched": rows_fetched,
            "capped": capped,
            "latency_ms": latency_ms,
        },
    )


def log_interval_completed(
    *,
    interval: TimeInterval,
    total_records: int,
    windows: int,
    requests: int,
    latency_ms: float | None = None,
) -> None:
    """Log completion of an interval."""
    logger.info(
        "interval_completed",
        extra={
            "interval": str(interval),
            "total_records": total_records,
            "windows": windows,
            "requests": requests,
            "latency_ms": latency_ms,
        },
    )


def log_cursor_stuck(*, interval: TimeInterval, cursor: SortCursor | None, cap: int) -> None:
    """Log a cursor that could not advance past a cap-sized tie."""
    logger.warning(
        "cursor_stuck",
        extra={
            "interval": str(interval),
            "cursor": str(cursor) if cursor else None,
            "per_query_cap": cap,
        },
    )


def log_task_retry(
    *,
    interval: TimeInterval,
    attempt: int,
    max_attempts: int,
    delay: float,
    error_type: str,
    error_message: str,
) -> None:
    """Log a transient failure that will be retried.

    Args:
        interval: Interval whose fetch failed
        attempt: One-based attempt that failed
        max_attempts: Attempt budget
        delay: Backoff before the next attempt (seconds)
        error_type: Exception class name
        error_message: Exception message
    """
    logger.warning(
        "task_retry_scheduled",
        extra={
            "interval": str(interval),
            "attempt": attempt,
            "max_attempts": max_attempts,
            "delay": delay,
            "error_type": error_type,
            "error_message": error_message,
        },
    )


def log_task_failed(
    *,
    interval: TimeInterval,
    attempts: int,
    error_type: str,
    error_message: str,
) -> None:
    """Log an interval that failed permanently."""
    logger.error(
        "task_failed",
        extra={
            "interval": str(interval),
            "attempts": attempts,
            "error_type": error_type,
            "error_message": error_message,
        },
    )


def log_fetch_complete(*, result: FetchResult, total_latency_ms: float | None = None) -> None:
    """Log completion of a multi-interval fetch.

    Args:
        result: Aggregated result
        total_latency_ms: Total latency in milliseconds (optional)
    """
    logger.info(
        "fetch_complete",
        extra={
            "intervals_total": result.intervals_total,
            "total_records": result.total_records,
            "missing_intervals": len(result.missing_intervals),
            "warnings": len(result.warnings),
            "cancelled": result.cancelled,
            "requests_issued": result.requests_issued,
            "total_latency_ms": total_latency_ms,
        },
    )
