"""Query API client contract.

The core consumes exactly one external collaborator: a client that runs a
filtered, sorted, offset-paged query. Transport, auth and wire format are
the client's business.

Architecture:
    Protocol-based: any object with an async ``query``
    method works (REST connector, SDK wrapper, in-memory source).
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ..models.record import Record, SortCursor


@dataclass(frozen=True)
class RangeFilter:
    """Predicate of one query window.

    Matches ``start <= timestamp < end`` and, when ``after`` is set,
    ``(timestamp, id) > after``.

    Attributes:
        start: Inclusive lower timestamp bound
        end: Exclusive upper timestamp bound
        after: Keyset cursor; only records strictly after it match
    """

    start: datetime
    end: datetime
    after: SortCursor | None = None

    def matches(self, record: Record) -> bool:
        if not (self.start <= record.timestamp < self.end):
            return False
        if self.after is not None and not record.sort_key > self.after:
            return False
        return True


@dataclass(frozen=True)
class QueryPage:
    """One page of query results.

    Attributes:
        records: Records on this page, sorted by ``(timestamp, id)``
        total: Total matching records, as reported by the API (capped)
    """

    records: Sequence[Record]
    total: int | None = None


class QueryClient(Protocol):
    """Protocol for query API clients."""

    async def query(
        self,
        predicate: RangeFilter,
        sort: tuple[str, ...],
        offset: int,
        limit: int,
    ) -> QueryPage:
        """Run one page of a query.

        Args:
            predicate: Timestamp range (and keyset tie-break) to filter on
            sort: Sort key, always ``("timestamp asc", "id asc")``
            offset: Number of matching records to skip
            limit: Maximum records to return

        Returns:
            QueryPage with the records and the capped total

        Raises:
            TransientUpstreamError: Network, 5xx, timeout or rate limit
            PermanentUpstreamError: Validation, auth or other 4xx failures
        """
        ...
