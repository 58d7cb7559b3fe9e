"""Geocode all non-archived properties missing coordinates in batches.

Run from the project root: python3 scripts/geocode_missing.py
"""
import asyncio

from house_tracker.database import async_session
from house_tracker.services.geocoding_service import get_geocoding_service
from house_tracker.services.property_service import geocode_all_missing

BATCH_SIZE = 50


def _report(batch_num, stats):
    print(
        f"Batch {batch_num}: {stats['success']} success, "
        f"{stats['failed']} failed, {stats['skipped']} skipped "
        f"(total in batch: {stats['total']})"
    )


async def main():
    totals = await geocode_all_missing(
        async_session, get_geocoding_service(), batch_size=BATCH_SIZE, on_batch=_report
    )
    print(f"\nDone! Total: {totals['success']} geocoded, {totals['failed']} failed")


if __name__ == "__main__":
    asyncio.run(main())
