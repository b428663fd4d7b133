"""Adaptive interval segmentation.

This module provides the IntervalSegmenter class that splits a caller
interval into contiguous sub-intervals whose expected record counts stay
under the API's per-query cap.

Architecture:
    Granularity is chosen per calendar day from a declarative tier table
    (``SegmentationPolicy``) of contiguous estimate ranges. One configurable
    segmenter covers the plain and the volume-adaptive behavior; there is
    no subclass per strategy.

Design Decisions:
    - Day boundaries are local midnights in a configured timezone; hourly
      steps are absolute hours, so DST days yield 23 or 25 hourly segments
      instead of skipping or duplicating wall-clock hours
    - Low-volume days are coalesced into multi-day segments within a span
      budget that grows with the range length
    - Hourly is the finest granularity
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta, tzinfo
from enum import Enum

from ..core.config import FetchConfig
from ..core.constants import COALESCE_SPANS, DEFAULT_PER_QUERY_CAP
from ..core.exceptions import InvalidInputError, InvalidIntervalError
from ..models.interval import TimeInterval
from .estimator import DailyVolumeEstimator, KnownDatesEstimator, VolumeEstimator
from .telemetry import log_segment_plan

_ONE_HOUR = timedelta(hours=1)


class Granularity(str, Enum):
    """How finely a single day is split."""

    DAY = "day"
    HALF_DAY = "half_day"
    HOUR = "hour"


@dataclass(frozen=True)
class GranularityTier:
    """Granularity tier keyed on a day's estimated volume.

    Attributes:
        min_estimate: Minimum estimate (inclusive)
        max_estimate: Maximum estimate (exclusive, or None for unbounded)
        granularity: Granularity for days in this tier
    """

    min_estimate: int
    max_estimate: int | None  # None means unbounded
    granularity: Granularity


@dataclass(frozen=True)
class SegmentationPolicy:
    """Declarative volume-to-granularity table.

    Tiers must start at zero, be contiguous and end unbounded, so every
    estimate maps to exactly one tier. Thresholds are inclusive at or above:
    an estimate equal to a tier's ``min_estimate`` belongs to that tier.

    Examples:
        # Defaults for a 10,000 per-query cap
        SegmentationPolicy.from_thresholds(high_watermark=5000, extreme_threshold=10000)

        # Custom table
        SegmentationPolicy(tiers=(
            GranularityTier(0, 8000, Granularity.DAY),
            GranularityTier(8000, None, Granularity.HOUR),
        ))
    """

    tiers: tuple[GranularityTier, ...]

    def __post_init__(self) -> None:
        """Validate tier table."""
        if not self.tiers:
            raise InvalidInputError("SegmentationPolicy tiers cannot be empty")
        if self.tiers[0].min_estimate != 0:
            raise InvalidInputError("SegmentationPolicy first tier must start at 0")
        for prev, nxt in zip(self.tiers, self.tiers[1:]):
            if prev.max_estimate is None or prev.max_estimate != nxt.min_estimate:
                raise InvalidInputError("SegmentationPolicy tiers must be contiguous")
            if nxt.min_estimate <= prev.min_estimate:
                raise InvalidInputError("SegmentationPolicy tiers must be increasing")
        if self.tiers[-1].max_estimate is not None:
            raise InvalidInputError("SegmentationPolicy last tier must be unbounded")

    @classmethod
    def from_thresholds(cls, *, high_watermark: int, extreme_threshold: int) -> SegmentationPolicy:
        """Build the default DAY / HALF_DAY / HOUR table.

        Args:
            high_watermark: Estimates at or above this are split in half
            extreme_threshold: Estimates at or above this are split hourly
        """
        if high_watermark <= 0 or extreme_threshold < high_watermark:
            raise InvalidInputError(
                "thresholds must satisfy 0 < high_watermark <= extreme_threshold"
            )
        tiers = [GranularityTier(0, high_watermark, Granularity.DAY)]
        if extreme_threshold > high_watermark:
            tiers.append(GranularityTier(high_watermark, extreme_threshold, Granularity.HALF_DAY))
        tiers.append(GranularityTier(extreme_threshold, None, Granularity.HOUR))
        return cls(tiers=tuple(tiers))

    @property
    def high_watermark(self) -> int:
        """Smallest estimate that is split below whole days."""
        for tier in self.tiers:
            if tier.granularity is not Granularity.DAY:
                return tier.min_estimate
        return self.tiers[-1].min_estimate

    @property
    def extreme_threshold(self) -> int:
        """Smallest estimate that is split hourly."""
        for tier in self.tiers:
            if tier.granularity is Granularity.HOUR:
                return tier.min_estimate
        return self.tiers[-1].min_estimate

    def granularity_for(self, estimate: int) -> Granularity:
        """Return the granularity for a day's estimate."""
        for tier in self.tiers:
            if tier.min_estimate <= estimate and (
                tier.max_estimate is None or estimate < tier.max_estimate
            ):
                return tier.granularity
        # Negative estimates fall below the first tier
        return self.tiers[0].granularity


def coalesce_span_days(total_days: int) -> int | None:
    """Span budget (days) for merged low-volume segments; None = whole range."""
    for max_days, span in COALESCE_SPANS:
        if max_days is None or total_days <= max_days:
            return span
    return COALESCE_SPANS[-1][1]


class IntervalSegmenter:
    """Splits intervals into sub-intervals sized for the per-query cap.

    The segmenter walks the interval one local calendar day at a time,
    asks the estimator for the day's volume and emits hourly, half-day or
    whole-day segments. Consecutive whole days are merged while the merged
    segment stays within both the span budget and the per-query cap.
    """

    def __init__(
        self,
        *,
        policy: SegmentationPolicy | None = None,
        per_query_cap: int = DEFAULT_PER_QUERY_CAP,
        tz: tzinfo = UTC,
        estimator: DailyVolumeEstimator | None = None,
        coalesce: bool = True,
    ) -> None:
        """Initialize segmenter.

        Args:
            policy: Volume-to-granularity table (defaults derived from the cap)
            per_query_cap: API cap; bounds the summed estimate of merged days
            tz: Timezone calendar days are read in
            estimator: Default estimator (plain VolumeEstimator if omitted)
            coalesce: Merge consecutive low-volume days
        """
        if per_query_cap <= 0:
            raise InvalidInputError("per_query_cap must be positive")
        self._policy = policy or SegmentationPolicy.from_thresholds(
            high_watermark=per_query_cap // 2 or 1,
            extreme_threshold=per_query_cap,
        )
        self._cap = per_query_cap
        self._tz = tz
        self._estimator = estimator or VolumeEstimator()
        self._coalesce = coalesce

    @classmethod
    def from_config(
        cls,
        config: FetchConfig,
        *,
        tz: tzinfo = UTC,
        estimator: DailyVolumeEstimator | None = None,
    ) -> IntervalSegmenter:
        """Create a segmenter using the thresholds of a FetchConfig."""
        return cls(
            policy=SegmentationPolicy.from_thresholds(
                high_watermark=config.resolved_high_watermark,
                extreme_threshold=config.resolved_extreme_threshold,
            ),
            per_query_cap=config.per_query_cap,
            tz=tz,
            estimator=estimator,
        )

    @property
    def policy(self) -> SegmentationPolicy:
        return self._policy

    def segment(
        self,
        interval: TimeInterval,
        estimator: DailyVolumeEstimator | None = None,
    ) -> list[TimeInterval]:
        """Segment an interval.

        Args:
            interval: Interval to split
            estimator: Estimator for this call (overrides the default)

        Returns:
            Chronological, contiguous, non-overlapping sub-intervals whose
            union is exactly ``interval`` (empty list for an empty interval)

        Raises:
            InvalidIntervalError: If ``interval`` is not a valid TimeInterval
        """
        if not isinstance(interval, TimeInterval):
            raise InvalidIntervalError(f"expected TimeInterval, got {type(interval).__name__}")
        if interval.is_empty:
            return []

        estimator = estimator or self._estimator
        days = list(self._iter_days(interval))
        span = coalesce_span_days(len(days)) if self._coalesce else 1

        segments: list[TimeInterval] = []
        run: list[TimeInterval] = []
        run_volume = 0
        hourly_days = 0
        half_days = 0

        def flush() -> None:
            nonlocal run, run_volume
            if run:
                segments.append(TimeInterval(start=run[0].start, end=run[-1].end))
            run = []
            run_volume = 0

        for day, day_start, next_start, piece in days:
            estimate = estimator.estimate(day)
            granularity = self._policy.granularity_for(estimate)

            if granularity is Granularity.DAY:
                if run and (
                    (span is not None and len(run) >= span) or run_volume + estimate > self._cap
                ):
                    flush()
                run.append(piece)
                run_volume += estimate
                continue

            flush()
            if granularity is Granularity.HOUR:
                hourly_days += 1
                segments.extend(self._split_hourly(piece, day_start, next_start))
            else:
                half_days += 1
                segments.extend(self._split_half_day(piece, day, day_start, next_start))
        flush()

        log_segment_plan(
            interval=interval,
            total_segments=len(segments),
            hourly_days=hourly_days,
            half_days=half_days,
        )
        return segments

    def segment_with_known_dates(
        self,
        interval: TimeInterval,
        *,
        high_dates: Iterable[date] = (),
        extreme_dates: Iterable[date] = (),
    ) -> list[TimeInterval]:
        """Segment using only lists of known high and extreme volume dates."""
        estimator = KnownDatesEstimator(
            high_dates=high_dates,
            extreme_dates=extreme_dates,
            high_watermark=self._policy.high_watermark,
            extreme_threshold=self._policy.extreme_threshold,
        )
        return self.segment(interval, estimator)

    def _midnight(self, day: date) -> datetime:
        return datetime.combine(day, time.min, tzinfo=self._tz)

    def _iter_days(
        self, interval: TimeInterval
    ) -> Iterator[tuple[date, datetime, datetime, TimeInterval]]:
        """Yield (day, local midnight, next local midnight, clipped piece)."""
        day = interval.start.astimezone(self._tz).date()
        while True:
            day_start = self._midnight(day)
            if day_start >= interval.end:
                return
            next_start = self._midnight(day + timedelta(days=1))
            piece = interval.clip(day_start, next_start)
            if piece is not None:
                yield day, day_start, next_start, piece
            day += timedelta(days=1)

    def _split_hourly(
        self, piece: TimeInterval, day_start: datetime, next_start: datetime
    ) -> list[TimeInterval]:
        # Hourly bounds are emitted in UTC: same-zone datetime arithmetic and
        # comparison ignore the fold, which would merge the repeated DST hour
        out: list[TimeInterval] = []
        lo = piece.start.astimezone(UTC)
        hi = piece.end.astimezone(UTC)
        cursor = day_start.astimezone(UTC)
        end = next_start.astimezone(UTC)
        while cursor < end:
            nxt = min(cursor + _ONE_HOUR, end)
            start, stop = max(cursor, lo), min(nxt, hi)
            if start < stop:
                out.append(TimeInterval(start=start, end=stop))
            cursor = nxt
        return out

    def _split_half_day(
        self, piece: TimeInterval, day: date, day_start: datetime, next_start: datetime
    ) -> list[TimeInterval]:
        noon = datetime.combine(day, time(12), tzinfo=self._tz)
        halves = (piece.clip(day_start, noon), piece.clip(noon, next_start))
        return [half for half in halves if half is not None]
