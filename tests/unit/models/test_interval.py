"""Unit tests for TimeInterval."""

from datetime import UTC, date, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from laakhay.backfill.core import InvalidIntervalError
from laakhay.backfill.models import TimeInterval

START = datetime(2024, 3, 1, tzinfo=UTC)


def test_interval_valid():
    """Test valid interval creation."""
    interval = TimeInterval(start=START, end=START + timedelta(hours=2))
    assert interval.duration == timedelta(hours=2)
    assert not interval.is_empty
    assert str(interval) == "[2024-03-01T00:00:00+00:00, 2024-03-01T02:00:00+00:00)"


def test_interval_is_half_open():
    """Test start is included and end excluded."""
    interval = TimeInterval(start=START, end=START + timedelta(hours=1))
    assert interval.contains(START)
    assert interval.contains(START + timedelta(minutes=59))
    assert not interval.contains(START + timedelta(hours=1))
    assert not interval.contains(START - timedelta(microseconds=1))


def test_interval_frozen():
    """Test interval is immutable."""
    interval = TimeInterval(start=START, end=START)
    with pytest.raises(AttributeError):
        interval.start = START + timedelta(days=1)


def test_empty_interval_is_valid():
    assert TimeInterval(start=START, end=START).is_empty


def test_start_after_end_rejected():
    with pytest.raises(InvalidIntervalError):
        TimeInterval(start=START + timedelta(seconds=1), end=START)


def test_naive_bounds_rejected():
    with pytest.raises(InvalidIntervalError):
        TimeInterval(start=datetime(2024, 3, 1), end=datetime(2024, 3, 2))


def test_clip():
    interval = TimeInterval(start=START, end=START + timedelta(days=1))

    clipped = interval.clip(START + timedelta(hours=20), START + timedelta(days=2))
    assert clipped == TimeInterval(start=START + timedelta(hours=20), end=interval.end)
    assert interval.clip(START + timedelta(days=1), START + timedelta(days=2)) is None


def test_from_dates_covers_whole_days():
    """Test inclusive calendar dates become [start 00:00, end+1 00:00)."""
    interval = TimeInterval.from_dates(date(2024, 3, 1), date(2024, 3, 31), UTC)
    assert interval.start == START
    assert interval.end == datetime(2024, 4, 1, tzinfo=UTC)


def test_from_dates_in_local_timezone():
    tz = ZoneInfo("Europe/Berlin")
    interval = TimeInterval.from_dates(date(2024, 3, 1), date(2024, 3, 1), tz)
    assert interval.start == datetime(2024, 2, 29, 23, tzinfo=UTC)
    assert interval.end == datetime(2024, 3, 1, 23, tzinfo=UTC)


def test_from_dates_rejects_reversed_dates():
    with pytest.raises(InvalidIntervalError):
        TimeInterval.from_dates(date(2024, 3, 2), date(2024, 3, 1), UTC)
