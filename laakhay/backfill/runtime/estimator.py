"""Daily record volume estimation.

The segmenter asks an estimator how many records a calendar day is likely
to hold and picks a granularity from the answer. Estimates only steer
segmentation; an estimate that is wrong costs extra requests (the paginator
re-anchors past the cap), never records.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import date
from typing import Protocol

from ..core.constants import (
    DEFAULT_DAILY_VOLUME,
    RETAIL_DAY_OF_WEEK_VOLUMES,
    RETAIL_RECURRING_VOLUMES,
)
from ..core.exceptions import InvalidInputError

logger = logging.getLogger(__name__)


class DailyVolumeEstimator(Protocol):
    """Protocol for anything that can estimate a day's record count."""

    def estimate(self, day: date) -> int:
        """Return the expected number of records on ``day`` (>= 0)."""
        ...


def _check_count(count: int) -> int:
    if count < 0:
        raise InvalidInputError(f"volume estimate cannot be negative: {count}")
    return count


class VolumeEstimator:
    """Layered lookup of expected daily volumes.

    Lookup order, first match wins:
        1. Exact-date override (historical volume or a one-off event)
        2. Recurring month/day override (fixed annual events)
        3. Day-of-week default
        4. Global default

    Registration is meant to happen during setup, before any concurrent
    fetch starts. Use ``copy()`` to layer per-call overrides.
    """

    def __init__(
        self,
        *,
        default: int = DEFAULT_DAILY_VOLUME,
        day_of_week: Mapping[int, int] | None = None,
        recurring: Mapping[tuple[int, int], int] | None = None,
        overrides: Mapping[date, int] | None = None,
    ) -> None:
        """Initialize estimator.

        Args:
            default: Estimate when nothing else matches
            day_of_week: Weekday (Monday == 0) to estimate
            recurring: (month, day) to estimate
            overrides: Exact date to estimate
        """
        self._default = _check_count(default)
        self._day_of_week: dict[int, int] = {}
        self._recurring: dict[tuple[int, int], int] = {}
        self._overrides: dict[date, int] = {}
        for weekday, count in (day_of_week or {}).items():
            self.register_day_of_week(weekday, count)
        for (month, day), count in (recurring or {}).items():
            self.register_recurring(month, day, count)
        for day, count in (overrides or {}).items():
            self.register_override(day, count)

    @classmethod
    def retail_calendar(cls) -> VolumeEstimator:
        """Estimator preloaded with retail weekday patterns and annual peaks."""
        return cls(day_of_week=RETAIL_DAY_OF_WEEK_VOLUMES, recurring=RETAIL_RECURRING_VOLUMES)

    def register_override(self, day: date, count: int) -> None:
        """Pin the estimate for one exact date (e.g. historical volume)."""
        self._overrides[day] = _check_count(count)
        logger.info(f"Registered volume override for {day.isoformat()}: {count}")

    def register_recurring(self, month: int, day: int, count: int) -> None:
        """Pin the estimate for a month/day every year."""
        # Leap year so that Feb 29 validates
        try:
            date(2000, month, day)
        except ValueError as e:
            raise InvalidInputError(f"invalid recurring date {month:02d}-{day:02d}") from e
        self._recurring[(month, day)] = _check_count(count)
        logger.info(f"Registered recurring volume for {month:02d}-{day:02d}: {count}")

    def register_day_of_week(self, weekday: int, count: int) -> None:
        """Set the default estimate for a weekday (Monday == 0)."""
        if not 0 <= weekday <= 6:
            raise InvalidInputError(f"weekday must be in 0..6, got {weekday}")
        self._day_of_week[weekday] = _check_count(count)

    def estimate(self, day: date) -> int:
        """Estimate the record count for ``day``."""
        if day in self._overrides:
            return self._overrides[day]
        recurring = self._recurring.get((day.month, day.day))
        if recurring is not None:
            return recurring
        weekday = self._day_of_week.get(day.weekday())
        if weekday is not None:
            return weekday
        return self._default

    def copy(self) -> VolumeEstimator:
        """Return an independent estimator with the same tables."""
        clone = VolumeEstimator(default=self._default)
        clone._day_of_week = dict(self._day_of_week)
        clone._recurring = dict(self._recurring)
        clone._overrides = dict(self._overrides)
        return clone


class KnownDatesEstimator:
    """Estimator that only knows which dates are high or extreme volume.

    Extreme dates estimate at the extreme threshold, high dates at the high
    watermark, everything else at zero.
    """

    def __init__(
        self,
        *,
        high_dates: Iterable[date],
        extreme_dates: Iterable[date],
        high_watermark: int,
        extreme_threshold: int,
    ) -> None:
        self._high = frozenset(high_dates)
        self._extreme = frozenset(extreme_dates)
        self._high_watermark = high_watermark
        self._extreme_threshold = extreme_threshold

    def estimate(self, day: date) -> int:
        if day in self._extreme:
            return self._extreme_threshold
        if day in self._high:
            return self._high_watermark
        return 0
