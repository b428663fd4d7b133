"""Unit tests for daily volume estimation."""

from __future__ import annotations

from datetime import date

import pytest

from laakhay.backfill.core import InvalidInputError
from laakhay.backfill.runtime import KnownDatesEstimator, VolumeEstimator


class TestVolumeEstimator:
    """Test VolumeEstimator lookup order and registration."""

    def test_global_default(self):
        assert VolumeEstimator().estimate(date(2024, 3, 5)) == 2000
        assert VolumeEstimator(default=42).estimate(date(2024, 3, 5)) == 42

    def test_lookup_order(self):
        """Test exact date beats recurring, which beats weekday, which beats default."""
        estimator = VolumeEstimator(default=1)
        tuesday = date(2024, 3, 5)
        estimator.register_day_of_week(tuesday.weekday(), 10)
        assert estimator.estimate(tuesday) == 10

        estimator.register_recurring(3, 5, 100)
        assert estimator.estimate(tuesday) == 100

        estimator.register_override(tuesday, 1000)
        assert estimator.estimate(tuesday) == 1000
        # Recurring still applies in other years
        assert estimator.estimate(date(2025, 3, 5)) == 100

    def test_retail_calendar(self):
        """Test preloaded weekday volumes and annual peaks."""
        estimator = VolumeEstimator.retail_calendar()

        assert estimator.estimate(date(2024, 3, 4)) == 4000  # Monday
        assert estimator.estimate(date(2024, 3, 9)) == 6000  # Saturday
        assert estimator.estimate(date(2024, 3, 10)) == 3000  # Sunday
        assert estimator.estimate(date(2024, 11, 29)) == 12_000
        assert estimator.estimate(date(2023, 11, 25)) == 15_000
        assert estimator.estimate(date(2024, 12, 23)) == 10_000

    def test_negative_counts_rejected(self):
        estimator = VolumeEstimator()

        with pytest.raises(InvalidInputError):
            estimator.register_override(date(2024, 1, 1), -1)
        with pytest.raises(InvalidInputError):
            estimator.register_recurring(1, 1, -5)
        with pytest.raises(InvalidInputError):
            estimator.register_day_of_week(0, -5)
        with pytest.raises(InvalidInputError):
            VolumeEstimator(default=-1)

    def test_invalid_calendar_keys_rejected(self):
        estimator = VolumeEstimator()

        with pytest.raises(InvalidInputError):
            estimator.register_recurring(2, 30, 10)
        with pytest.raises(InvalidInputError):
            estimator.register_day_of_week(7, 10)

    def test_feb_29_is_a_valid_recurring_date(self):
        estimator = VolumeEstimator()
        estimator.register_recurring(2, 29, 777)

        assert estimator.estimate(date(2024, 2, 29)) == 777

    def test_copy_is_independent(self):
        """Test overrides on a copy do not leak into the original."""
        original = VolumeEstimator.retail_calendar()
        clone = original.copy()
        clone.register_override(date(2024, 3, 5), 99_999)

        assert clone.estimate(date(2024, 3, 5)) == 99_999
        assert original.estimate(date(2024, 3, 5)) == 3500
        assert clone.estimate(date(2024, 11, 29)) == 12_000


class TestKnownDatesEstimator:
    """Test KnownDatesEstimator."""

    def test_estimates_from_date_lists(self):
        estimator = KnownDatesEstimator(
            high_dates=[date(2024, 12, 21)],
            extreme_dates=[date(2024, 12, 22)],
            high_watermark=5000,
            extreme_threshold=10_000,
        )

        assert estimator.estimate(date(2024, 12, 20)) == 0
        assert estimator.estimate(date(2024, 12, 21)) == 5000
        assert estimator.estimate(date(2024, 12, 22)) == 10_000

    def test_extreme_wins_over_high(self):
        day = date(2024, 11, 29)
        estimator = KnownDatesEstimator(
            high_dates=[day], extreme_dates=[day], high_watermark=5, extreme_threshold=10
        )

        assert estimator.estimate(day) == 10
