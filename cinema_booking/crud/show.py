import asyncio
import logging
from collections import defaultdict
from datetime import datetime, timedelta
from decimal import Decimal
from typing import AsyncIterator, Optional
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import select

from cinema_booking.core.clock import ensure_utc
from cinema_booking.crud.catalog import crud_catalog
from cinema_booking.exceptions import InvalidRequestError, NotFoundError, ScheduleConflictError
from cinema_booking.models import Booking, BookingSeat, Film, Seat, Show, ShowRoom
from cinema_booking.seat_store import SeatStatusStore

logger = logging.getLogger(__name__)


async def get_show_or_raise(db: AsyncSession, show_id: int) -> Show:
    show = await db.get(Show, show_id)
    if show is None:
        raise NotFoundError("Show", show_id)
    return show


class ShowScheduler:
    """
    Schedules shows into show rooms and owns their cleanup.

    Conflict check and insert for one room run under an in-process lock for
    that room plus a row lock on the show room, so two overlapping shows can
    never both pass the check.
    """

    def __init__(self, store: SeatStatusStore):
        self.store = store
        self._room_locks: dict[int, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def create_show(self, db: AsyncSession, film_id: int, show_room_id: int,
                          start_time: datetime, per_seat_price: Decimal) -> Show:
        if Decimal(str(per_seat_price)) <= 0:
            raise InvalidRequestError("Per seat price must be greater than 0")
        film = await crud_catalog.get_film(db, film_id)
        start_time = ensure_utc(start_time)
        end_time = start_time + timedelta(minutes=film.duration_mins)

        async with self._room_locks[show_room_id]:
            result = await db.execute(
                select(ShowRoom)
                .where(ShowRoom.id == show_room_id)
                .with_for_update()  # serializes scheduling of this room across processes
            )
            if result.scalar_one_or_none() is None:
                await db.rollback()
                raise NotFoundError("Show room", show_room_id)

            # half-open intervals: [start, end) overlaps [other.start, other.end)
            conflict = await db.scalar(
                select(Show)
                .where(Show.show_room_id == show_room_id)
                .where(Show.start_time < end_time)
                .where(Show.end_time > start_time)
                .order_by(Show.start_time)
                .limit(1)
            )
            if conflict is not None:
                error = ScheduleConflictError(show_room_id, conflict.id, conflict.start_time, conflict.end_time)
                await db.rollback()
                logger.warning("Rejected show in room %s: %s", show_room_id, error)
                raise error

            show = Show(film_id=film_id, show_room_id=show_room_id, start_time=start_time,
                        end_time=end_time, per_seat_price=per_seat_price)
            db.add(show)
            await db.commit()
        await db.refresh(show)
        logger.info("Scheduled show %s of film %s in room %s at %s", show.id, film_id, show_room_id, start_time)
        return show

    async def get_show(self, db: AsyncSession, show_id: int) -> Show:
        return await get_show_or_raise(db, show_id)

    async def list_shows(self, db: AsyncSession, film_id: Optional[int] = None,
                         starts_from: Optional[datetime] = None,
                         starts_before: Optional[datetime] = None) -> AsyncIterator[Show]:
        """
        Shows ordered by start time, streamed from the database.
        starts_from/starts_before bound the start time, [starts_from, starts_before).
        """
        stmt = select(Show)
        if film_id is not None:
            stmt = stmt.where(Show.film_id == film_id)
        if starts_from is not None:
            stmt = stmt.where(Show.start_time >= ensure_utc(starts_from))
        if starts_before is not None:
            stmt = stmt.where(Show.start_time < ensure_utc(starts_before))
        shows = await db.stream_scalars(stmt.order_by(Show.start_time, Show.id))
        async for show in shows:
            yield show

    async def delete_show(self, db: AsyncSession, show_id: int) -> None:
        await get_show_or_raise(db, show_id)
        await self._purge_shows(db, [show_id])
        logger.info("Deleted show %s", show_id)

    async def delete_film(self, db: AsyncSession, film_id: int) -> list[int]:
        await crud_catalog.get_film(db, film_id)
        show_ids = list((await db.scalars(select(Show.id).where(Show.film_id == film_id))).all())

        async def remove_film():
            await db.execute(delete(Film).where(Film.id == film_id))

        await self._purge_shows(db, show_ids, then=remove_film)
        logger.info("Deleted film %s with %d shows", film_id, len(show_ids))
        return show_ids

    async def delete_show_room(self, db: AsyncSession, show_room_id: int) -> list[int]:
        async def remove_room():
            await db.execute(delete(Seat).where(Seat.show_room_id == show_room_id))
            await db.execute(delete(ShowRoom).where(ShowRoom.id == show_room_id))

        # scheduling into this room waits for the delete, then finds no room
        room_lock = self._room_locks[show_room_id]
        try:
            async with room_lock:
                await crud_catalog.get_show_room(db, show_room_id)
                show_ids = list((await db.scalars(
                    select(Show.id).where(Show.show_room_id == show_room_id))).all())
                await self._purge_shows(db, show_ids, then=remove_room)
        finally:
            if not room_lock.locked():
                self._room_locks.pop(show_room_id, None)
        logger.info("Deleted show room %s with %d shows", show_room_id, len(show_ids))
        return show_ids

    async def _purge_shows(self, db: AsyncSession, show_ids: list[int], then=None) -> None:
        # dependents first: booking seats, bookings, shows
        try:
            if show_ids:
                await db.execute(delete(BookingSeat).where(BookingSeat.show_id.in_(show_ids)))
                await db.execute(delete(Booking).where(Booking.show_id.in_(show_ids)))
                await db.execute(delete(Show).where(Show.id.in_(show_ids)))
            if then is not None:
                await then()
            await db.commit()
        except Exception:
            logger.error("Failed to delete shows %s", show_ids, exc_info=True)
            await db.rollback()
            raise
        for show_id in show_ids:
            await self.store.clear_show(show_id)
