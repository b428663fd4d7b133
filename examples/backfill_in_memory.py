#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import logging
from datetime import UTC, date

from laakhay.backfill import (
    BackfillAPI,
    FetchConfig,
    InMemoryRecordSource,
    RangeRequest,
    RetryPolicy,
    TransientUpstreamError,
    VolumeEstimator,
)
from laakhay.backfill.sources import synthetic_records


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Backfill a simulated order stream")
    p.add_argument("start", nargs="?", default="2024-11-20", type=date.fromisoformat)
    p.add_argument("end", nargs="?", default="2024-11-30", type=date.fromisoformat)
    p.add_argument("--records", type=int, default=50_000)
    p.add_argument("--cap", type=int, default=1_000)
    p.add_argument("--concurrency", type=int, default=8)
    p.add_argument(
        "--flaky", action="store_true", help="Fail the first five requests with a transient 503"
    )
    p.add_argument("-v", "--verbose", action="store_true")
    return p.parse_args()


async def main() -> None:
    args = parse_args()
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)

    request = RangeRequest(start_date=args.start, end_date=args.end)
    interval = request.to_interval(UTC)
    source = InMemoryRecordSource(
        synthetic_records(interval, args.records, prefix="order", seed=42),
        per_query_cap=args.cap,
        latency=0.002,
    )
    if args.flaky:
        source.inject_failure(TransientUpstreamError("503 Service Unavailable"), times=5)

    days = (args.end - args.start).days + 1
    estimator = VolumeEstimator(default=args.records // days)
    config = FetchConfig(
        per_query_cap=args.cap,
        page_size=min(250, args.cap),
        max_concurrency=args.concurrency,
        retry=RetryPolicy(base_delay=0.05),
    )

    async with BackfillAPI(source, config=config, estimator=estimator) as api:
        plan = api.plan(request)
        result = await api.fetch_all_records_in_range(request)

    print("=" * 65)
    print(f"Range          : {interval}")
    print(f"Segments       : {len(plan)}")
    print(f"Records        : {result.total_records} / {args.records}")
    print(f"Unique ids     : {len({r.id for r in result.records})}")
    print(f"Requests       : {result.requests_issued}")
    print(f"Max in flight  : {source.max_in_flight}")
    print(f"Complete       : {result.is_complete}")
    print("=" * 65)
    for missing in result.missing_intervals:
        print(f"MISSING {missing.interval} ({missing.reason}, {missing.attempts} attempts)")
    for warning in result.warnings:
        print(f"WARNING {warning.interval}: {warning.message}")


if __name__ == "__main__":
    asyncio.run(main())
