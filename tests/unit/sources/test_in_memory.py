"""Unit tests for InMemoryRecordSource."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from laakhay.backfill.core import (
    SORT_KEY,
    InvalidInputError,
    PermanentUpstreamError,
    RangeFilter,
    TransientUpstreamError,
)
from laakhay.backfill.models import Record, SortCursor, TimeInterval
from laakhay.backfill.sources import InMemoryRecordSource, synthetic_records

START = datetime(2024, 3, 1, tzinfo=UTC)
DAY = TimeInterval(start=START, end=START + timedelta(days=1))
WINDOW = RangeFilter(start=DAY.start, end=DAY.end)


def records(count: int) -> list[Record]:
    return [Record(id=f"r{i:03d}", timestamp=START + timedelta(minutes=i)) for i in range(count)]


class TestInMemoryRecordSource:
    """Test the in-memory query contract."""

    @pytest.mark.asyncio
    async def test_pages_in_sort_order(self):
        source = InMemoryRecordSource(reversed(records(10)), per_query_cap=100)

        page = await source.query(WINDOW, SORT_KEY, 2, 3)

        assert [r.id for r in page.records] == ["r002", "r003", "r004"]
        assert page.total == 10

    @pytest.mark.asyncio
    async def test_cap_limits_results_and_total(self):
        source = InMemoryRecordSource(records(30), per_query_cap=20)

        page = await source.query(WINDOW, SORT_KEY, 15, 10)

        assert len(page.records) == 5
        assert page.total == 20

    @pytest.mark.asyncio
    async def test_offset_at_cap_is_refused(self):
        source = InMemoryRecordSource(records(30), per_query_cap=20)

        with pytest.raises(PermanentUpstreamError):
            await source.query(WINDOW, SORT_KEY, 20, 5)

    @pytest.mark.asyncio
    async def test_keyset_predicate(self):
        source = InMemoryRecordSource(records(10), per_query_cap=100)
        after = SortCursor(timestamp=START + timedelta(minutes=4), record_id="r004")
        window = RangeFilter(start=after.timestamp, end=DAY.end, after=after)

        page = await source.query(window, SORT_KEY, 0, 100)

        assert page.records[0].id == "r005"
        assert page.total == 5

    @pytest.mark.asyncio
    async def test_scripted_failures(self):
        source = InMemoryRecordSource(records(5), per_query_cap=100)
        rule = source.fail_interval(DAY, TransientUpstreamError("503"), times=2)

        for _ in range(2):
            with pytest.raises(TransientUpstreamError):
                await source.query(WINDOW, SORT_KEY, 0, 10)
        page = await source.query(WINDOW, SORT_KEY, 0, 10)

        assert len(page.records) == 5
        assert rule.fired == 2
        assert len(source.calls) == 3

    @pytest.mark.asyncio
    async def test_failure_match_is_scoped(self):
        source = InMemoryRecordSource(records(5), per_query_cap=100)
        other = TimeInterval(start=DAY.end, end=DAY.end + timedelta(days=1))
        source.fail_interval(other, TransientUpstreamError("503"))

        page = await source.query(WINDOW, SORT_KEY, 0, 10)

        assert len(page.records) == 5

    @pytest.mark.asyncio
    async def test_clear_failures_and_reset_stats(self):
        source = InMemoryRecordSource(records(5), per_query_cap=100)
        source.inject_failure(TransientUpstreamError("503"))
        source.clear_failures()

        await source.query(WINDOW, SORT_KEY, 0, 10)
        assert source.max_in_flight == 1
        source.reset_stats()

        assert source.calls == []
        assert source.max_in_flight == 0

    @pytest.mark.asyncio
    async def test_report_total_disabled(self):
        source = InMemoryRecordSource(records(5), per_query_cap=100, report_total=False)

        page = await source.query(WINDOW, SORT_KEY, 0, 10)

        assert page.total is None

    def test_invalid_configuration(self):
        with pytest.raises(InvalidInputError):
            InMemoryRecordSource(per_query_cap=0)
        with pytest.raises(InvalidInputError):
            InMemoryRecordSource(latency=-1)


class TestSyntheticRecords:
    """Test synthetic record generation."""

    def test_records_fall_inside_interval(self):
        generated = synthetic_records(DAY, 500, seed=7)

        assert len(generated) == 500
        assert len({r.id for r in generated}) == 500
        assert all(DAY.contains(r.timestamp) for r in generated)

    def test_seed_is_deterministic(self):
        first = synthetic_records(DAY, 50, seed=1)
        second = synthetic_records(DAY, 50, seed=1)

        assert [r.timestamp for r in first] == [r.timestamp for r in second]

    def test_empty_interval_rejected(self):
        with pytest.raises(InvalidInputError):
            synthetic_records(TimeInterval(start=START, end=START), 1)
