"""Check the booking store for overlapping active bookings.

The availability projections assume that no two pending/confirmed bookings of
one property share a night. This script reads every active booking, reports
each overlapping pair and exits with status 1 when any are found.

Run:
    python -m scripts.check_overlaps
"""

import asyncio
import logging
import sys
from pathlib import Path

# Add backend to path so imports work when run as a script
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from stay_calendar.config import settings
from stay_calendar.services.availability import BookingConflict, find_overlaps
from stay_calendar.services.booking_store import BookingStore

logger = logging.getLogger("check_overlaps")


async def check_overlaps(session_factory: async_sessionmaker[AsyncSession]) -> list[BookingConflict]:
    """Return every overlapping pair of active bookings, logging each one."""
    async with session_factory() as session:
        store = BookingStore(session)
        bookings = await store.fetch_all_bookings(settings.active_statuses)

    conflicts = find_overlaps(bookings)
    for conflict in conflicts:
        logger.warning(
            "Property %s: bookings %s and %s overlap on %s..%s",
            conflict.property_id,
            conflict.first_booking_id,
            conflict.second_booking_id,
            conflict.overlap_start.isoformat(),
            conflict.overlap_end.isoformat(),
        )
    logger.info("Checked %d active bookings, found %d overlaps", len(bookings), len(conflicts))
    return conflicts


async def main() -> int:
    from stay_calendar.database import async_session_factory, engine

    try:
        conflicts = await check_overlaps(async_session_factory)
    finally:
        await engine.dispose()
    return 1 if conflicts else 0


if __name__ == "__main__":
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    sys.exit(asyncio.run(main()))
