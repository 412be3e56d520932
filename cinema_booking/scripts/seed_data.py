import asyncio
import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from cinema_booking.core.config import settings
from cinema_booking.core.logging import configure_logging
from cinema_booking.crud.catalog import crud_catalog
from cinema_booking.crud.show import ShowScheduler
from cinema_booking.db.session import async_session as AsyncSessionLocal, engine, init_db
from cinema_booking.schemas.cinema import CinemaCreate, ShowRoomCreate
from cinema_booking.schemas.film import FilmCreate
from cinema_booking.schemas.seat import SeatCreate, SeatKindCreate
from cinema_booking.seat_store import build_seat_store

logger = logging.getLogger(__name__)


def room_seats(rows, seats_per_row, kinds):
    # row A vip, rows B-C premium, the rest standard
    seats = []
    for row in rows:
        kind = kinds["vip"] if row == "A" else kinds["premium"] if row in ["B", "C"] else kinds["standard"]
        for num in range(1, seats_per_row + 1):
            seats.append(SeatCreate(name=f"{row}{num}", seat_kind_id=kind.id))
    return seats


async def seed():
    scheduler = ShowScheduler(build_seat_store(settings.SEAT_STORE))
    async with AsyncSessionLocal() as session:

        # ------------------------------------------------------------------------------------
        # 1. Create Cinema and seat kinds
        # ------------------------------------------------------------------------------------
        cinema = await crud_catalog.create_cinema(session, CinemaCreate(name="Odeon Leicester Square"))
        kinds = {
            "standard": await crud_catalog.create_seat_kind(session, SeatKindCreate(title="standard")),
            "premium": await crud_catalog.create_seat_kind(
                session, SeatKindCreate(title="premium", premium_percentage=25)),
            "vip": await crud_catalog.create_seat_kind(session, SeatKindCreate(title="vip", premium_percentage=50)),
        }

        # ------------------------------------------------------------------------------------
        # 2. Create Show rooms (5 rows x 10 seats, 5 rows x 8 seats)
        # ------------------------------------------------------------------------------------
        rows = ["A", "B", "C", "D", "E"]
        room1 = await crud_catalog.create_show_room(session, ShowRoomCreate(
            cinema_id=cinema.id, name="Screen 1", seats=room_seats(rows, 10, kinds)))
        room2 = await crud_catalog.create_show_room(session, ShowRoomCreate(
            cinema_id=cinema.id, name="Screen 2", seats=room_seats(rows, 8, kinds)))

        # ------------------------------------------------------------------------------------
        # 3. Create Films
        # ------------------------------------------------------------------------------------
        film1 = await crud_catalog.create_film(session, FilmCreate(name="Interstellar", duration_mins=169))
        film2 = await crud_catalog.create_film(session, FilmCreate(name="Spirited Away", duration_mins=125))

        # ------------------------------------------------------------------------------------
        # 4. Create Shows (Today's date)
        # ------------------------------------------------------------------------------------
        now = datetime.now(timezone.utc).replace(minute=0, second=0, microsecond=0)
        await scheduler.create_show(session, film1.id, room1.id, now + timedelta(hours=1), Decimal("12.50"))
        await scheduler.create_show(session, film1.id, room1.id, now + timedelta(hours=4), Decimal("14.00"))
        await scheduler.create_show(session, film2.id, room2.id, now + timedelta(hours=2), Decimal("10.00"))

    logger.info("Seed data inserted successfully")


async def main():
    configure_logging(settings.LOG_LEVEL)
    await init_db()
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
