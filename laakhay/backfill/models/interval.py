"""Half-open time interval value type."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo

from ..core.exceptions import InvalidIntervalError


@dataclass(frozen=True)
class TimeInterval:
    """Immutable half-open interval ``[start, end)`` of aware timestamps.

    Attributes:
        start: Inclusive lower bound (timezone-aware)
        end: Exclusive upper bound (timezone-aware)
    """

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        """Validate bounds."""
        if self.start.tzinfo is None or self.end.tzinfo is None:
            raise InvalidIntervalError("TimeInterval bounds must be timezone-aware")
        if self.start > self.end:
            raise InvalidIntervalError(
                f"TimeInterval start {self.start.isoformat()} is after end {self.end.isoformat()}"
            )

    @classmethod
    def from_dates(cls, start_date: date, end_date: date, tz: tzinfo) -> TimeInterval:
        """Build the interval covering whole calendar days.

        Args:
            start_date: First day (inclusive)
            end_date: Last day (inclusive)
            tz: Timezone the calendar days are read in

        Returns:
            ``[start_date 00:00, end_date + 1 00:00)`` in ``tz``
        """
        if start_date > end_date:
            raise InvalidIntervalError(f"start date {start_date} is after end date {end_date}")
        return cls(
            start=datetime.combine(start_date, time.min, tzinfo=tz),
            end=datetime.combine(end_date + timedelta(days=1), time.min, tzinfo=tz),
        )

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def is_empty(self) -> bool:
        return self.start == self.end

    def contains(self, ts: datetime) -> bool:
        """Return True if ``ts`` falls inside ``[start, end)``."""
        return self.start <= ts < self.end

    def clip(self, start: datetime, end: datetime) -> TimeInterval | None:
        """Intersect with ``[start, end)``; None if the intersection is empty."""
        lo = max(self.start, start)
        hi = min(self.end, end)
        if lo >= hi:
            return None
        return TimeInterval(start=lo, end=hi)

    def __str__(self) -> str:
        return f"[{self.start.isoformat()}, {self.end.isoformat()})"
