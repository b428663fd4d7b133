"""Core contracts, configuration and errors."""

from .cancellation import CancellationToken
from .client import QueryClient, QueryPage, RangeFilter
from .config import FetchConfig, RetryPolicy
from .constants import SORT_KEY
from .exceptions import (
    AuthenticationError,
    BackfillError,
    FetchCancelledError,
    IncompleteFetchError,
    IntervalFetchError,
    InvalidInputError,
    InvalidIntervalError,
    PermanentUpstreamError,
    RateLimitError,
    RequestTimeoutError,
    TransientUpstreamError,
    UpstreamError,
)

__all__ = [
    "AuthenticationError",
    "BackfillError",
    "CancellationToken",
    "FetchCancelledError",
    "FetchConfig",
    "IncompleteFetchError",
    "IntervalFetchError",
    "InvalidInputError",
    "InvalidIntervalError",
    "PermanentUpstreamError",
    "QueryClient",
    "QueryPage",
    "RangeFilter",
    "RateLimitError",
    "RequestTimeoutError",
    "RetryPolicy",
    "SORT_KEY",
    "TransientUpstreamError",
    "UpstreamError",
]
