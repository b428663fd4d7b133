"""Custom exception hierarchy."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..models.interval import TimeInterval
    from ..models.result import FetchResult


class BackfillError(Exception):
    """Base exception for all library errors."""

    pass


class InvalidInputError(BackfillError, ValueError):
    """Caller supplied a malformed argument (bad cap, page size, count...).

    Never retried.
    """

    pass


class InvalidIntervalError(InvalidInputError):
    """Time interval is malformed (start after end, naive timestamps)."""

    pass


class UpstreamError(BackfillError):
    """Error reported by the query API client."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code


class TransientUpstreamError(UpstreamError):
    """Network failure, timeout, 5xx or rate limit. Eligible for retry."""

    pass


class RateLimitError(TransientUpstreamError):
    """Query API rate limit exceeded."""

    def __init__(self, message: str, retry_after: float | None = None) -> None:
        super().__init__(message, status_code=429)
        self.retry_after = retry_after


class RequestTimeoutError(TransientUpstreamError):
    """A single page request exceeded its timeout."""

    pass


class PermanentUpstreamError(UpstreamError):
    """Validation or other 4xx failure. Retrying cannot help."""

    pass


class AuthenticationError(PermanentUpstreamError):
    """Credentials were rejected (401/403)."""

    pass


class IntervalFetchError(BackfillError):
    """Fetching one interval failed; carries the interval and the root cause."""

    def __init__(self, interval: TimeInterval, cause: BaseException, *, requests: int = 0) -> None:
        super().__init__(f"Failed to fetch interval {interval}: {cause}")
        self.interval = interval
        self.cause = cause
        self.requests = requests

    @property
    def is_transient(self) -> bool:
        return isinstance(self.cause, TransientUpstreamError)


class FetchCancelledError(BackfillError):
    """Cooperative cancellation was requested while fetching."""

    pass


class IncompleteFetchError(BackfillError):
    """The fetch finished without every record of the requested range.

    The partial result is attached so callers can keep what was fetched
    and re-run only the missing intervals.
    """

    def __init__(self, result: FetchResult) -> None:
        missing = ", ".join(str(m.interval) for m in result.missing_intervals) or "none"
        super().__init__(
            f"Fetch incomplete: {len(result.missing_intervals)} missing interval(s) "
            f"[{missing}], {len(result.warnings)} completeness warning(s)"
        )
        self.result = result
