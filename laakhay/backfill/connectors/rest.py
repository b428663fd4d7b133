"""QueryClient over a JSON paged-query REST API.

The connector speaks the predicate dialect of commerce-style query APIs:
a ``where`` expression on the timestamp field, repeated ``sort``
parameters, ``offset``/``limit`` paging and a ``{"results": [...],
"total": n}`` response envelope.

Architecture:
    - QueryHint: field and parameter names of the remote resource
    - RESTQueryClient: builds query parameters, calls HTTPClient, adapts
      the envelope into a QueryPage
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from pydantic import ValidationError

from ..core.client import QueryPage, RangeFilter
from ..core.constants import DEFAULT_REQUEST_TIMEOUT
from ..core.exceptions import InvalidInputError, PermanentUpstreamError
from ..models.record import Record
from .http import HTTPClient


@dataclass(frozen=True)
class QueryHint:
    """Field and parameter names of a paged-query resource.

    Attributes:
        path: Resource path relative to the base URL
        timestamp_field: Remote field holding the record timestamp
        id_field: Remote field holding the unique record id
        results_field: Envelope key of the result list
        total_field: Envelope key of the (capped) total count
    """

    path: str = "/orders"
    timestamp_field: str = "createdAt"
    id_field: str = "id"
    results_field: str = "results"
    total_field: str = "total"


def format_timestamp(ts: datetime) -> str:
    """Format a timestamp as a UTC ISO-8601 literal with milliseconds.

    Raises:
        InvalidInputError: If the timestamp has sub-millisecond precision
    """
    if ts.microsecond % 1000:
        raise InvalidInputError(f"{ts.isoformat()} has sub-millisecond precision")
    return ts.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def quote(value: str) -> str:
    """Render a string literal for the ``where`` dialect."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def build_where(predicate: RangeFilter, hint: QueryHint) -> str:
    """Build the ``where`` expression for one query window."""
    ts = hint.timestamp_field
    clause = (
        f"{ts} >= {quote(format_timestamp(predicate.start))} "
        f"and {ts} < {quote(format_timestamp(predicate.end))}"
    )
    if predicate.after is not None:
        anchor = quote(format_timestamp(predicate.after.timestamp))
        clause += (
            f" and ({ts} > {anchor} or "
            f"({ts} = {anchor} and {hint.id_field} > {quote(predicate.after.record_id)}))"
        )
    return clause


def build_sort(sort: tuple[str, ...], hint: QueryHint) -> list[str]:
    """Translate logical sort keys to remote field names."""
    fields = {"timestamp": hint.timestamp_field, "id": hint.id_field}
    translated = []
    for key in sort:
        name, _, direction = key.partition(" ")
        translated.append(f"{fields.get(name, name)} {direction or 'asc'}")
    return translated


class RESTQueryClient:
    """QueryClient backed by an HTTP paged-query endpoint.

    Example:
        >>> client = RESTQueryClient(
        ...     "https://api.example.com/my-project",
        ...     headers={"Authorization": f"Bearer {token}"},
        ... )
        >>> api = BackfillAPI(client)
    """

    def __init__(
        self,
        base_url: str,
        *,
        hint: QueryHint | None = None,
        headers: dict[str, str] | None = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        http: HTTPClient | None = None,
    ) -> None:
        self.hint = hint or QueryHint()
        self._http = http or HTTPClient(base_url=base_url, timeout=timeout, headers=headers)

    def build_params(
        self,
        predicate: RangeFilter,
        sort: tuple[str, ...],
        offset: int,
        limit: int,
    ) -> list[tuple[str, Any]]:
        params: list[tuple[str, Any]] = [("where", build_where(predicate, self.hint))]
        params.extend(("sort", key) for key in build_sort(sort, self.hint))
        params.extend(
            [
                ("offset", offset),
                ("limit", limit),
                ("withTotal", "true"),
            ]
        )
        return params

    async def query(
        self,
        predicate: RangeFilter,
        sort: tuple[str, ...],
        offset: int,
        limit: int,
    ) -> QueryPage:
        params = self.build_params(predicate, sort, offset, limit)
        data = await self._http.get(self.hint.path, params=params)
        return self.parse(data)

    def parse(self, data: Any) -> QueryPage:
        """Adapt a response envelope into a QueryPage.

        Raises:
            PermanentUpstreamError: If the envelope or a record is malformed
        """
        if not isinstance(data, dict) or not isinstance(data.get(self.hint.results_field), list):
            raise PermanentUpstreamError(
                f"Malformed response: expected an object with a '{self.hint.results_field}' list"
            )

        records = []
        for item in data[self.hint.results_field]:
            try:
                records.append(
                    Record(
                        id=str(item[self.hint.id_field]),
                        timestamp=item[self.hint.timestamp_field],
                        payload=item,
                    )
                )
            except (KeyError, TypeError, ValidationError) as e:
                raise PermanentUpstreamError(f"Malformed record in response: {e}") from e

        total = data.get(self.hint.total_field)
        return QueryPage(records=records, total=int(total) if total is not None else None)

    async def close(self) -> None:
        await self._http.close()

    async def __aenter__(self) -> RESTQueryClient:
        """Context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit."""
        await self.close()
