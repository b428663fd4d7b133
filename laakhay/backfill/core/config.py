"""Fetch configuration and retry policy.

This module defines the knobs exposed to callers: API caps, segmentation
thresholds, concurrency and retry/backoff behavior.
"""

from __future__ import annotations

import dataclasses
import random
from dataclasses import dataclass, field

from .constants import (
    DEFAULT_BACKOFF_BASE,
    DEFAULT_BACKOFF_MAX,
    DEFAULT_BACKOFF_MULTIPLIER,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MAX_CONCURRENCY,
    DEFAULT_PAGE_SIZE,
    DEFAULT_PER_QUERY_CAP,
    DEFAULT_REQUEST_TIMEOUT,
)
from .exceptions import InvalidInputError


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff policy for transient failures.

    The delay before attempt ``n + 1`` is
    ``base_delay * multiplier ** (n - 1)``, capped to ``max_delay`` and
    spread by +/- ``jitter``.

    Attributes:
        max_attempts: Total attempts per interval, including the first
        base_delay: Delay after the first failure (seconds)
        multiplier: Growth factor between consecutive delays
        max_delay: Upper bound on a single delay (seconds)
        jitter: Relative jitter, e.g. 0.2 for +/-20%
    """

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    base_delay: float = DEFAULT_BACKOFF_BASE
    multiplier: float = DEFAULT_BACKOFF_MULTIPLIER
    max_delay: float = DEFAULT_BACKOFF_MAX
    jitter: float = 0.0

    def __post_init__(self) -> None:
        """Validate retry policy configuration."""
        if self.max_attempts < 1:
            raise InvalidInputError("RetryPolicy max_attempts must be >= 1")
        if self.base_delay < 0 or self.max_delay < 0:
            raise InvalidInputError("RetryPolicy delays cannot be negative")
        if self.multiplier < 1:
            raise InvalidInputError("RetryPolicy multiplier must be >= 1")
        if not 0 <= self.jitter < 1:
            raise InvalidInputError("RetryPolicy jitter must be in [0, 1)")

    def delay_for(self, attempt: int, *, floor: float | None = None) -> float:
        """Calculate the delay after a failed attempt.

        Args:
            attempt: One-based number of the attempt that just failed
            floor: Minimum delay (e.g. a server-provided Retry-After)

        Returns:
            Delay in seconds
        """
        delay = min(self.base_delay * self.multiplier ** (attempt - 1), self.max_delay)
        if self.jitter:
            delay *= random.uniform(1 - self.jitter, 1 + self.jitter)
        if floor is not None:
            delay = max(delay, floor)
        return delay


@dataclass(frozen=True)
class FetchConfig:
    """Configuration for segmenting and fetching a time range.

    Attributes:
        per_query_cap: Maximum results the API returns for one predicate
        page_size: Records requested per page
        high_watermark: Daily estimate at or above which days are split in
            half (None = half the per-query cap)
        extreme_threshold: Daily estimate at or above which days are split
            hourly (None = twice the high watermark)
        max_concurrency: Maximum intervals paginated at the same time
        request_timeout: Timeout of a single page request (None = no timeout)
        max_requests_per_second: Shared request rate limit (None = unlimited)
        retry: Retry/backoff policy for transient failures
    """

    per_query_cap: int = DEFAULT_PER_QUERY_CAP
    page_size: int = DEFAULT_PAGE_SIZE
    high_watermark: int | None = None
    extreme_threshold: int | None = None
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    request_timeout: float | None = DEFAULT_REQUEST_TIMEOUT
    max_requests_per_second: float | None = None
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    def __post_init__(self) -> None:
        """Validate fetch configuration."""
        if self.per_query_cap <= 0:
            raise InvalidInputError("per_query_cap must be positive")
        if self.page_size <= 0:
            raise InvalidInputError("page_size must be positive")
        if self.page_size > self.per_query_cap:
            raise InvalidInputError("page_size cannot exceed per_query_cap")
        if self.max_concurrency <= 0:
            raise InvalidInputError("max_concurrency must be positive")
        if self.request_timeout is not None and self.request_timeout <= 0:
            raise InvalidInputError("request_timeout must be positive")
        if self.max_requests_per_second is not None and self.max_requests_per_second <= 0:
            raise InvalidInputError("max_requests_per_second must be positive")
        if self.resolved_high_watermark <= 0:
            raise InvalidInputError("high_watermark must be positive")
        if self.resolved_extreme_threshold < self.resolved_high_watermark:
            raise InvalidInputError("extreme_threshold cannot be below high_watermark")

    @property
    def resolved_high_watermark(self) -> int:
        if self.high_watermark is not None:
            return self.high_watermark
        return self.per_query_cap // 2

    @property
    def resolved_extreme_threshold(self) -> int:
        if self.extreme_threshold is not None:
            return self.extreme_threshold
        return 2 * self.resolved_high_watermark

    def replace(self, **changes: object) -> FetchConfig:
        """Return a copy with some fields changed (re-validated)."""
        return dataclasses.replace(self, **changes)
