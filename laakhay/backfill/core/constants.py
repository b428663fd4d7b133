"""Shared defaults for query caps, segmentation and volume estimation.

Centralizes the numbers used by the config layer, the segmenter and the
default volume estimator so the runtime modules stay small and focused.
"""

from __future__ import annotations

# Query API limits (paged query endpoints commonly allow 500 per page and
# refuse offsets beyond 10,000 results for a single predicate)
DEFAULT_PER_QUERY_CAP = 10_000
DEFAULT_PAGE_SIZE = 500

# Orchestration
DEFAULT_MAX_CONCURRENCY = 4
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BACKOFF_BASE = 1.0  # seconds
DEFAULT_BACKOFF_MULTIPLIER = 2.0
DEFAULT_BACKOFF_MAX = 30.0  # seconds
DEFAULT_REQUEST_TIMEOUT = 30.0  # seconds

# Volume estimation
DEFAULT_DAILY_VOLUME = 2_000

# Weekday volumes, Monday == 0
RETAIL_DAY_OF_WEEK_VOLUMES: dict[int, int] = {
    0: 4_000,
    1: 3_500,
    2: 3_500,
    3: 4_000,
    4: 5_000,
    5: 6_000,
    6: 3_000,
}

# Recurring (month, day) volumes for fixed annual retail peaks
RETAIL_RECURRING_VOLUMES: dict[tuple[int, int], int] = {
    # Black Friday window
    (11, 25): 15_000,
    (11, 26): 15_000,
    (11, 27): 15_000,
    (11, 28): 12_000,
    # Cyber Monday window
    (11, 29): 12_000,
    (11, 30): 8_000,
    # Pre-Christmas
    (12, 20): 8_000,
    (12, 21): 8_000,
    (12, 22): 9_000,
    (12, 23): 10_000,
}

# Coalescing span budget for low-volume days: (max range days, span days).
# None as max means unbounded; None as span means "whole range".
COALESCE_SPANS: tuple[tuple[int | None, int | None], ...] = (
    (30, None),
    (90, 7),
    (365, 14),
    (None, 30),
)

# Sort key every query is issued with
SORT_KEY: tuple[str, ...] = ("timestamp asc", "id asc")
