import asyncio

from cinema_booking.models.booking import BookingStatus
from cinema_booking.workers.hold_reaper import hold_reaper


async def test_reaper_cancels_abandoned_bookings(seeded_test_data, db_session_factory, booking_engine, clock):
    async with db_session_factory() as session:
        booking = await booking_engine.start_booking(
            session, seeded_test_data["show_id"], seeded_test_data["seat_ids"][:2], hold_duration_seconds=60)
    clock.advance(seconds=61)

    task = asyncio.create_task(hold_reaper(booking_engine, db_session_factory, interval_seconds=0.01))
    try:
        for _ in range(200):
            await asyncio.sleep(0.01)
            async with db_session_factory() as session:
                current = await booking_engine.get_booking(session, booking.id)
                if current.status == BookingStatus.CANCELLED:
                    break
    finally:
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

    assert current.status == BookingStatus.CANCELLED


class FlakyEngine:
    def __init__(self):
        self.calls = 0

    async def expire_stale_holds(self, db):
        self.calls += 1
        if self.calls == 1:
            raise RuntimeError("store unavailable")
        return 0


async def test_reaper_survives_a_failed_sweep(db_session_factory):
    engine = FlakyEngine()
    task = asyncio.create_task(hold_reaper(engine, db_session_factory, interval_seconds=0.01))
    try:
        for _ in range(200):
            await asyncio.sleep(0.01)
            if engine.calls >= 2:
                break
    finally:
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

    assert engine.calls >= 2
    assert task.cancelled()
