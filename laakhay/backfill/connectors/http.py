"""HTTP client helper."""

from __future__ import annotations

import logging
from typing import Any

import aiohttp

from ..core.constants import DEFAULT_REQUEST_TIMEOUT
from ..core.exceptions import (
    AuthenticationError,
    PermanentUpstreamError,
    RateLimitError,
    RequestTimeoutError,
    TransientUpstreamError,
)

logger = logging.getLogger(__name__)


def parse_retry_after(value: str | None) -> float | None:
    """Parse a ``Retry-After`` header given in seconds.

    HTTP-date values and garbage are ignored (None).
    """
    if not value:
        return None
    try:
        seconds = float(value.strip())
    except ValueError:
        return None
    return seconds if seconds >= 0 else None


def raise_for_status(status: int, body: str = "", headers: Any = None) -> None:
    """Map an HTTP status to the upstream error hierarchy.

    Raises:
        RateLimitError: 429
        TransientUpstreamError: 408 and 5xx
        AuthenticationError: 401 and 403
        PermanentUpstreamError: Any other 4xx
    """
    if status < 400:
        return

    message = f"HTTP {status}: {body[:200]}" if body else f"HTTP {status}"
    if status == 429:
        retry_after = parse_retry_after(headers.get("Retry-After") if headers else None)
        raise RateLimitError(message, retry_after=retry_after)
    if status == 408 or status >= 500:
        raise TransientUpstreamError(message, status_code=status)
    if status in (401, 403):
        raise AuthenticationError(message, status_code=status)
    raise PermanentUpstreamError(message, status_code=status)


class HTTPClient:
    """Async HTTP client wrapper."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.base_url = base_url
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.headers = dict(headers or {})
        self._session: aiohttp.ClientSession | None = None

    @property
    def session(self) -> aiohttp.ClientSession:
        """Get or create session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout, headers=self.headers)
        return self._session

    async def get(
        self,
        url: str,
        params: dict[str, Any] | list[tuple[str, Any]] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """GET request returning the decoded JSON body.

        Raises:
            TransientUpstreamError: Connection failure, timeout, 408, 429 or 5xx
            PermanentUpstreamError: Any other 4xx
        """
        if self.base_url and not url.startswith("http"):
            url = f"{self.base_url}{url}"

        try:
            async with self.session.get(url, params=params, headers=headers) as response:
                if response.status >= 400:
                    body = await response.text()
                    raise_for_status(response.status, body, response.headers)
                return await response.json()
        except TimeoutError as e:
            raise RequestTimeoutError(f"GET {url} timed out") from e
        except aiohttp.ContentTypeError as e:
            raise PermanentUpstreamError(f"GET {url} returned non-JSON body: {e}") from e
        except aiohttp.ClientError as e:
            logger.warning(f"GET {url} failed: {e}")
            raise TransientUpstreamError(f"GET {url} failed: {e}") from e

    async def close(self) -> None:
        """Close session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> HTTPClient:
        """Context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit."""
        await self.close()
