"""Unit tests for FetchResult aggregation."""

from datetime import UTC, datetime, timedelta

import pytest

from laakhay.backfill.core import IncompleteFetchError, TransientUpstreamError
from laakhay.backfill.models import (
    CompletenessWarning,
    FetchResult,
    FetchTask,
    Record,
    TaskState,
    TimeInterval,
)

START = datetime(2024, 3, 1, tzinfo=UTC)


def interval(hour: int) -> TimeInterval:
    return TimeInterval(start=START + timedelta(hours=hour), end=START + timedelta(hours=hour + 1))


def record(hour: int, n: int) -> Record:
    return Record(id=f"{hour}-{n}", timestamp=START + timedelta(hours=hour, seconds=n))


class TestFetchResult:
    """Test FetchResult."""

    def test_from_tasks_orders_by_interval(self):
        tasks = [
            FetchTask(index=1, interval=interval(1), state=TaskState.SUCCEEDED,
                      records=[record(1, 0)], requests=1),
            FetchTask(index=0, interval=interval(0), state=TaskState.SUCCEEDED,
                      records=[record(0, 0), record(0, 1)], requests=2),
        ]

        result = FetchResult.from_tasks(tasks)

        assert [r.id for r in result.records] == ["0-0", "0-1", "1-0"]
        assert result.requests_issued == 3
        assert result.intervals_total == 2
        assert result.is_complete

    def test_from_tasks_marks_missing(self):
        error = TransientUpstreamError("503")
        tasks = [
            FetchTask(index=0, interval=interval(0), state=TaskState.FAILED, attempts=3,
                      error=error),
            FetchTask(index=1, interval=interval(1), state=TaskState.CANCELLED),
            FetchTask(index=2, interval=interval(2), state=TaskState.PENDING),
        ]

        result = FetchResult.from_tasks(tasks, cancelled=True)

        assert [m.reason for m in result.missing_intervals] == ["failed", "cancelled", "cancelled"]
        assert result.missing_intervals[0].attempts == 3
        assert result.missing_intervals[0].error is error
        assert result.cancelled

    def test_warning_makes_result_incomplete(self):
        warning = CompletenessWarning(interval=interval(0), cursor=None, message="stuck")
        tasks = [
            FetchTask(index=0, interval=interval(0), state=TaskState.SUCCEEDED,
                      records=[record(0, 0)], warning=warning),
        ]

        result = FetchResult.from_tasks(tasks)

        assert result.warnings == [warning]
        assert not result.is_complete
        with pytest.raises(IncompleteFetchError):
            result.raise_for_incomplete()

    def test_sorted_records(self):
        result = FetchResult(records=[record(2, 0), record(0, 5), record(0, 1)])
        assert [r.id for r in result.sorted_records()] == ["0-1", "0-5", "2-0"]

    def test_merge_replaces_missing_markers(self):
        first = FetchResult.from_tasks(
            [
                FetchTask(index=0, interval=interval(0), state=TaskState.SUCCEEDED,
                          records=[record(0, 0)], requests=1),
                FetchTask(index=1, interval=interval(1), state=TaskState.FAILED),
            ]
        )
        rerun = FetchResult.from_tasks(
            [
                FetchTask(index=0, interval=interval(1), state=TaskState.SUCCEEDED,
                          records=[record(1, 0)], requests=1),
            ]
        )

        merged = first.merge(rerun)

        assert merged.is_complete
        assert {r.id for r in merged.records} == {"0-0", "1-0"}
        assert merged.intervals_total == 2
        assert merged.requests_issued == 2
