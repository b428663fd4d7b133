"""In-memory record source.

A QueryClient that serves records from memory while enforcing the same
contract as a real query API, including the per-query result cap. Used by
tests and examples in place of a remote service.

Architecture:
    - Records are kept sorted by ``(timestamp, id)``; a query bisects to
      the window start and scans forward to the window end
    - Failure rules are matched per request and can be limited to a number
      of occurrences, which scripts "fails twice then recovers" scenarios
    - Every request is logged and in-flight requests are counted, so
      callers can assert request counts and the concurrency ceiling
"""

from __future__ import annotations

import asyncio
import random
from bisect import bisect_left
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import timedelta

from ..core.client import QueryPage, RangeFilter
from ..core.constants import DEFAULT_PER_QUERY_CAP
from ..core.exceptions import InvalidInputError, PermanentUpstreamError
from ..models.interval import TimeInterval
from ..models.record import Record


@dataclass(frozen=True)
class QueryCall:
    """One request received by the source."""

    predicate: RangeFilter
    sort: tuple[str, ...]
    offset: int
    limit: int


@dataclass
class FailureRule:
    """Scripted failure.

    Attributes:
        error: Exception raised when the rule fires
        match: Predicate on the request; None matches every request
        remaining: Times the rule still fires (None = forever)
    """

    error: BaseException
    match: Callable[[QueryCall], bool] | None = None
    remaining: int | None = None
    fired: int = field(default=0, init=False)

    def applies(self, call: QueryCall) -> bool:
        if self.remaining is not None and self.remaining <= 0:
            return False
        return self.match is None or self.match(call)


class InMemoryRecordSource:
    """QueryClient over an in-memory record set.

    Example:
        >>> source = InMemoryRecordSource(records, per_query_cap=100)
        >>> source.fail_interval(interval, TransientUpstreamError("503"), times=2)
        >>> api = BackfillAPI(source, config=FetchConfig(per_query_cap=100, page_size=20))
    """

    def __init__(
        self,
        records: Iterable[Record] = (),
        *,
        per_query_cap: int = DEFAULT_PER_QUERY_CAP,
        latency: float = 0.0,
        report_total: bool = True,
    ) -> None:
        """Initialize source.

        Args:
            records: Initial records
            per_query_cap: Matching results served for one predicate
            latency: Simulated seconds per request
            report_total: Include the capped total in each page
        """
        if per_query_cap <= 0:
            raise InvalidInputError("per_query_cap must be positive")
        if latency < 0:
            raise InvalidInputError("latency must be non-negative")
        self.per_query_cap = per_query_cap
        self.latency = latency
        self.report_total = report_total
        self._records: list[Record] = []
        self._failures: list[FailureRule] = []
        self.calls: list[QueryCall] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.add(records)

    @property
    def records(self) -> list[Record]:
        return list(self._records)

    def add(self, records: Iterable[Record]) -> None:
        """Add records, keeping the store sorted."""
        self._records.extend(records)
        self._records.sort(key=lambda r: r.sort_key)

    def inject_failure(
        self,
        error: BaseException,
        *,
        match: Callable[[QueryCall], bool] | None = None,
        times: int | None = None,
    ) -> FailureRule:
        """Raise ``error`` for matching requests, ``times`` times or forever."""
        rule = FailureRule(error=error, match=match, remaining=times)
        self._failures.append(rule)
        return rule

    def fail_interval(
        self,
        interval: TimeInterval,
        error: BaseException,
        *,
        times: int | None = None,
    ) -> FailureRule:
        """Fail requests whose window starts inside ``interval``."""
        return self.inject_failure(
            error,
            match=lambda call: interval.contains(call.predicate.start),
            times=times,
        )

    def clear_failures(self) -> None:
        self._failures.clear()

    def reset_stats(self) -> None:
        self.calls.clear()
        self.max_in_flight = 0

    async def query(
        self,
        predicate: RangeFilter,
        sort: tuple[str, ...],
        offset: int,
        limit: int,
    ) -> QueryPage:
        call = QueryCall(predicate=predicate, sort=sort, offset=offset, limit=limit)
        self.calls.append(call)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.latency:
                await asyncio.sleep(self.latency)
            for rule in self._failures:
                if rule.applies(call):
                    if rule.remaining is not None:
                        rule.remaining -= 1
                    rule.fired += 1
                    raise rule.error
            return self._page(call)
        finally:
            self.in_flight -= 1

    def _page(self, call: QueryCall) -> QueryPage:
        if call.offset < 0 or call.limit <= 0:
            raise PermanentUpstreamError(
                f"invalid paging offset={call.offset} limit={call.limit}", status_code=400
            )
        if call.offset >= self.per_query_cap:
            raise PermanentUpstreamError(
                f"offset {call.offset} exceeds the per-query cap of {self.per_query_cap}",
                status_code=400,
            )

        matching = self._matching(call.predicate)
        end = min(call.offset + call.limit, self.per_query_cap)
        total = min(len(matching), self.per_query_cap) if self.report_total else None
        return QueryPage(records=matching[call.offset : end], total=total)

    def _matching(self, predicate: RangeFilter) -> list[Record]:
        start = bisect_left(self._records, predicate.start, key=lambda r: r.timestamp)
        out: list[Record] = []
        for record in self._records[start:]:
            if record.timestamp >= predicate.end:
                break
            if predicate.matches(record):
                out.append(record)
                # Nothing past the cap is ever served for this predicate
                if len(out) >= self.per_query_cap:
                    break
        return out


def synthetic_records(
    interval: TimeInterval,
    count: int,
    *,
    prefix: str = "rec",
    seed: int | None = None,
) -> list[Record]:
    """Generate ``count`` records with random timestamps inside ``interval``.

    Timestamps are whole seconds; ids are unique (``{prefix}-{n}``).
    """
    if count < 0:
        raise InvalidInputError("count must be non-negative")
    seconds = int(interval.duration.total_seconds())
    if count and seconds <= 0:
        raise InvalidInputError("cannot place records in an empty interval")
    rng = random.Random(seed)
    return [
        Record(
            id=f"{prefix}-{n:08d}",
            timestamp=interval.start + timedelta(seconds=rng.randrange(seconds)),
            payload={"n": n},
        )
        for n in range(count)
    ]
