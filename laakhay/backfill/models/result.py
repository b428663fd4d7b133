"""Fetch task lifecycle and result structures.

Architecture:
    A ``FetchTask`` tracks one interval from dispatch to a terminal state.
    Once every task is terminal, the orchestrator folds them into a single
    ``FetchResult`` that always distinguishes "fully complete" from
    "complete except for intervals X, Y".

Design Decisions:
    - Missing intervals and completeness warnings are data, not log lines:
      callers decide whether a partial result is acceptable
    - ``raise_for_incomplete`` mirrors ``raise_for_status`` on HTTP responses
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from ..core.exceptions import IncompleteFetchError
from .interval import TimeInterval
from .record import Record, SortCursor


class TaskState(Enum):
    """Lifecycle states of a fetch task."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    RETRYING = "failed_retrying"
    FAILED = "failed_permanently"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskState.SUCCEEDED, TaskState.FAILED, TaskState.CANCELLED)


@dataclass(frozen=True)
class CompletenessWarning:
    """Pagination stopped early because the cursor could not advance.

    Attributes:
        interval: Interval whose records may be incomplete
        cursor: Last sort key that was reached
        message: Human-readable explanation
    """

    interval: TimeInterval
    cursor: SortCursor | None
    message: str


@dataclass(frozen=True)
class MissingInterval:
    """Marker for an interval whose records are absent from the result.

    Attributes:
        interval: The interval that was not fetched
        reason: "failed" or "cancelled"
        attempts: Number of attempts made
        error: Final error, if any
    """

    interval: TimeInterval
    reason: str
    attempts: int = 0
    error: BaseException | None = None


@dataclass
class PaginationResult:
    """Outcome of paginating a single interval.

    Attributes:
        interval: Interval that was paginated
        records: Records in ``(timestamp, id)`` order, each exactly once
        windows: Number of capped query windows issued
        requests: Number of page requests issued
        warning: Set when the cursor got stuck
    """

    interval: TimeInterval
    records: list[Record] = field(default_factory=list)
    windows: int = 0
    requests: int = 0
    warning: CompletenessWarning | None = None


@dataclass
class FetchTask:
    """One interval bound to a worker slot."""

    index: int
    interval: TimeInterval
    state: TaskState = TaskState.PENDING
    attempts: int = 0
    requests: int = 0
    records: list[Record] = field(default_factory=list)
    warning: CompletenessWarning | None = None
    error: BaseException | None = None


@dataclass
class FetchResult:
    """Aggregated result of fetching a set of intervals.

    Attributes:
        records: Concatenated records of every successful interval
        missing_intervals: Intervals that failed permanently or were cancelled
        warnings: Completeness warnings from stuck cursors
        cancelled: Whether cancellation was requested during the fetch
        intervals_total: Number of intervals that were dispatched
        requests_issued: Total page requests across all attempts
    """

    records: list[Record] = field(default_factory=list)
    missing_intervals: list[MissingInterval] = field(default_factory=list)
    warnings: list[CompletenessWarning] = field(default_factory=list)
    cancelled: bool = False
    intervals_total: int = 0
    requests_issued: int = 0

    @property
    def is_complete(self) -> bool:
        return not self.missing_intervals and not self.warnings and not self.cancelled

    @property
    def total_records(self) -> int:
        return len(self.records)

    def sorted_records(self) -> list[Record]:
        """Return records in canonical ``(timestamp, id)`` order."""
        return sorted(self.records, key=lambda r: r.sort_key)

    def raise_for_incomplete(self) -> None:
        """Raise IncompleteFetchError unless every record was fetched."""
        if not self.is_complete:
            raise IncompleteFetchError(self)

    @classmethod
    def from_tasks(cls, tasks: list[FetchTask], *, cancelled: bool = False) -> FetchResult:
        """Fold terminal tasks into a result, in interval order."""
        result = cls(cancelled=cancelled, intervals_total=len(tasks))
        for task in sorted(tasks, key=lambda t: t.index):
            result.requests_issued += task.requests
            if task.state is TaskState.SUCCEEDED:
                result.records.extend(task.records)
                if task.warning is not None:
                    result.warnings.append(task.warning)
            else:
                result.missing_intervals.append(
                    MissingInterval(
                        interval=task.interval,
                        reason="failed" if task.state is TaskState.FAILED else "cancelled",
                        attempts=task.attempts,
                        error=task.error,
                    )
                )
        return result

    def merge(self, other: FetchResult) -> FetchResult:
        """Combine with a re-run of this result's missing intervals.

        ``other`` must cover every missing interval of this result; its own
        missing markers replace ours.
        """
        return FetchResult(
            records=[*self.records, *other.records],
            missing_intervals=list(other.missing_intervals),
            warnings=[*self.warnings, *other.warnings],
            cancelled=other.cancelled,
            intervals_total=self.intervals_total,
            requests_issued=self.requests_issued + other.requests_issued,
        )
