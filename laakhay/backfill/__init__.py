"""Laakhay Backfill - Gap-free, duplicate-free time-range record fetching."""

from .api import BackfillAPI
from .connectors import HTTPClient, QueryHint, RESTQueryClient
from .core import (
    AuthenticationError,
    BackfillError,
    CancellationToken,
    FetchCancelledError,
    FetchConfig,
    IncompleteFetchError,
    IntervalFetchError,
    InvalidInputError,
    InvalidIntervalError,
    PermanentUpstreamError,
    QueryClient,
    QueryPage,
    RangeFilter,
    RateLimitError,
    RequestTimeoutError,
    RetryPolicy,
    TransientUpstreamError,
    UpstreamError,
)
from .models import (
    CompletenessWarning,
    FetchResult,
    MissingInterval,
    RangeRequest,
    Record,
    SortCursor,
    TaskState,
    TimeInterval,
)
from .runtime import (
    CursorMode,
    CursorPaginator,
    FetchOrchestrator,
    Granularity,
    GranularityTier,
    IntervalSegmenter,
    KnownDatesEstimator,
    RequestRateLimiter,
    SegmentationPolicy,
    VolumeEstimator,
)
from .sources import InMemoryRecordSource

__version__ = "0.1.0"

__all__ = [
    # API
    "BackfillAPI",
    # Runtime
    "CursorMode",
    "CursorPaginator",
    "FetchOrchestrator",
    "Granularity",
    "GranularityTier",
    "IntervalSegmenter",
    "KnownDatesEstimator",
    "RequestRateLimiter",
    "SegmentationPolicy",
    "VolumeEstimator",
    # Models
    "CompletenessWarning",
    "FetchResult",
    "MissingInterval",
    "RangeRequest",
    "Record",
    "SortCursor",
    "TaskState",
    "TimeInterval",
    # Client contract and connectors
    "QueryClient",
    "QueryPage",
    "RangeFilter",
    "HTTPClient",
    "QueryHint",
    "RESTQueryClient",
    "InMemoryRecordSource",
    # Config
    "CancellationToken",
    "FetchConfig",
    "RetryPolicy",
    # Exceptions
    "BackfillError",
    "InvalidInputError",
    "InvalidIntervalError",
    "UpstreamError",
    "TransientUpstreamError",
    "RateLimitError",
    "RequestTimeoutError",
    "PermanentUpstreamError",
    "AuthenticationError",
    "IntervalFetchError",
    "FetchCancelledError",
    "IncompleteFetchError",
]
