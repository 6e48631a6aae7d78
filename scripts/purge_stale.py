#!/usr/bin/env python3
"""Storage hygiene — prune old quota witnesses and cache entries.

Usage:
  python scripts/purge_stale.py            # keep the last 2 days
  python scripts/purge_stale.py --days 7

Correctness never depends on this: stale quota rows are ignored by date and
expired cache rows are ignored by expires_at. It only keeps the tables small.
"""

import argparse
import asyncio
import os
import sys
from datetime import datetime, timedelta, timezone

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


def ok(msg: str) -> None:
    print(f"  ✅ {msg}")


def fail(msg: str) -> None:
    print(f"  ❌ {msg}")


async def main(days: int) -> int:
    from analysis_gateway.database import close_db, init_db
    from analysis_gateway.services.quota import QuotaLedger
    from analysis_gateway.services.result_cache import ResultCache

    if not await init_db():
        fail("Database unavailable")
        return 1

    cutoff = datetime.now(timezone.utc).date() - timedelta(days=days)
    print(f"\n  Purging rows dated before {cutoff.isoformat()}\n")
    try:
        quota_rows = await QuotaLedger().prune(cutoff)
        ok(f"Quota witnesses removed: {quota_rows}")
        cache_rows = await ResultCache().purge(cutoff)
        ok(f"Cache entries removed: {cache_rows}")
    finally:
        await close_db()
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--days", type=int, default=2, help="days of history to keep")
    args = parser.parse_args()
    sys.exit(asyncio.run(main(args.days)))
