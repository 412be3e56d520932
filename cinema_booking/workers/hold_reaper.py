import asyncio
import logging

from sqlalchemy.ext.asyncio import async_sessionmaker

from cinema_booking.crud.booking import BookingEngine

logger = logging.getLogger(__name__)


# Notes:
# Holds also lapse lazily: an expired hold already reads as FREE and can be
# taken by a new booking. The reaper only cleans up the store and moves the
# abandoned PENDING bookings to CANCELLED.


async def hold_reaper(engine: BookingEngine, session_factory: async_sessionmaker, interval_seconds: float):
    logger.info("Hold reaper started, running every %ss", interval_seconds)
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            async with session_factory() as db:
                await engine.expire_stale_holds(db)
        except Exception:
            # keep the loop alive, the next sweep retries
            logger.exception("Hold reaper sweep failed")
