import logging
from datetime import datetime
from typing import Iterable, Optional
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import select

from cinema_booking.core.clock import ensure_utc, utc_now
from cinema_booking.exceptions import InvalidRequestError, NotFoundError
from cinema_booking.models import Cinema, Film, Seat, SeatKind, SeatKindPremium, ShowRoom
from cinema_booking.schemas.cinema import CinemaCreate, ShowRoomCreate
from cinema_booking.schemas.film import FilmCreate
from cinema_booking.schemas.seat import SeatKindCreate

logger = logging.getLogger(__name__)


class CRUDCatalog:
    """Reference data: cinema, show rooms and their seat layouts, films, seat kinds."""

    async def create_cinema(self, db: AsyncSession, data: CinemaCreate) -> Cinema:
        cinema = Cinema(**data.model_dump())
        db.add(cinema)
        await db.commit()
        await db.refresh(cinema)
        return cinema

    async def get_cinema(self, db: AsyncSession, cinema_id: int) -> Cinema:
        cinema = await db.get(Cinema, cinema_id)
        if cinema is None:
            raise NotFoundError("Cinema", cinema_id)
        return cinema

    async def create_film(self, db: AsyncSession, data: FilmCreate) -> Film:
        if data.duration_mins <= 0:
            raise InvalidRequestError("Film duration must be greater than 0")
        film = Film(**data.model_dump())
        db.add(film)
        await db.commit()
        await db.refresh(film)
        return film

    async def get_film(self, db: AsyncSession, film_id: int) -> Film:
        result = await db.execute(select(Film).where(Film.id == film_id))
        film = result.scalar_one_or_none()
        if film is None:
            raise NotFoundError("Film", film_id)
        return film

    async def list_films(self, db: AsyncSession) -> list[Film]:
        result = await db.execute(select(Film).order_by(Film.name, Film.id))
        return list(result.scalars().all())

    async def create_seat_kind(self, db: AsyncSession, data: SeatKindCreate) -> SeatKind:
        if data.premium_percentage < 0:
            raise InvalidRequestError("Premium percentage must not be negative")
        existing = await db.scalar(select(SeatKind.id).where(SeatKind.title == data.title))
        if existing is not None:
            raise InvalidRequestError(f"Seat kind {data.title!r} already exists")
        seat_kind = SeatKind(title=data.title)
        db.add(seat_kind)
        await db.flush()
        db.add(SeatKindPremium(seat_kind_id=seat_kind.id, premium_percentage=data.premium_percentage))
        await db.commit()
        await db.refresh(seat_kind)
        return seat_kind

    async def get_seat_kind(self, db: AsyncSession, seat_kind_id: int) -> SeatKind:
        seat_kind = await db.get(SeatKind, seat_kind_id)
        if seat_kind is None:
            raise NotFoundError("Seat kind", seat_kind_id)
        return seat_kind

    async def set_seat_kind_premium(self, db: AsyncSession, seat_kind_id: int, premium_percentage: int) -> SeatKindPremium:
        # history is append-only, the newest row wins
        if premium_percentage < 0:
            raise InvalidRequestError("Premium percentage must not be negative")
        await self.get_seat_kind(db, seat_kind_id)
        premium = SeatKindPremium(seat_kind_id=seat_kind_id, premium_percentage=premium_percentage)
        db.add(premium)
        await db.commit()
        await db.refresh(premium)
        logger.info("Seat kind %s premium set to %s%%", seat_kind_id, premium_percentage)
        return premium

    async def get_seat_kind_premium(self, db: AsyncSession, seat_kind_id: int, as_of: Optional[datetime] = None) -> int:
        await self.get_seat_kind(db, seat_kind_id)
        as_of = ensure_utc(as_of) if as_of is not None else utc_now()
        premium = await db.scalar(
            select(SeatKindPremium.premium_percentage)
            .where(SeatKindPremium.seat_kind_id == seat_kind_id)
            .where(SeatKindPremium.created_at <= as_of)
            .order_by(SeatKindPremium.created_at.desc(), SeatKindPremium.id.desc())
            .limit(1)
        )
        return premium if premium is not None else 0

    async def get_seat_kind_premiums(self, db: AsyncSession, seat_kind_ids: Iterable[int]) -> dict[int, int]:
        """Current premium of each seat kind; kinds without any premium row map to 0."""
        seat_kind_ids = set(seat_kind_ids)
        if not seat_kind_ids:
            return {}
        latest = (
            select(SeatKindPremium.seat_kind_id, func.max(SeatKindPremium.id).label("premium_id"))
            .where(SeatKindPremium.seat_kind_id.in_(seat_kind_ids))
            .group_by(SeatKindPremium.seat_kind_id)
            .subquery()
        )
        result = await db.execute(
            select(SeatKindPremium.seat_kind_id, SeatKindPremium.premium_percentage)
            .join(latest, SeatKindPremium.id == latest.c.premium_id)
        )
        premiums = {seat_kind_id: 0 for seat_kind_id in seat_kind_ids}
        premiums.update({row.seat_kind_id: row.premium_percentage for row in result})
        return premiums

    async def create_show_room(self, db: AsyncSession, data: ShowRoomCreate) -> ShowRoom:
        await self.get_cinema(db, data.cinema_id)
        if not data.seats:
            raise InvalidRequestError("A show room needs at least one seat")
        names = [seat.name for seat in data.seats]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise InvalidRequestError(f"Duplicate seat names {duplicates}")
        kind_ids = {seat.seat_kind_id for seat in data.seats}
        known = set((await db.scalars(select(SeatKind.id).where(SeatKind.id.in_(kind_ids)))).all())
        unknown = sorted(kind_ids - known)
        if unknown:
            raise InvalidRequestError(f"Unknown seat kinds {unknown}")

        try:
            show_room = ShowRoom(cinema_id=data.cinema_id, name=data.name)
            db.add(show_room)
            await db.flush()
            db.add_all([
                Seat(show_room_id=show_room.id, seat_kind_id=seat.seat_kind_id, name=seat.name, position=position)
                for position, seat in enumerate(data.seats)
            ])
            await db.commit()
        except Exception:
            logger.error("Failed to create show room %r", data.name, exc_info=True)
            await db.rollback()
            raise
        await db.refresh(show_room)
        logger.info("Created show room %s with %d seats", show_room.id, len(data.seats))
        return show_room

    async def get_show_room(self, db: AsyncSession, show_room_id: int) -> ShowRoom:
        show_room = await db.get(ShowRoom, show_room_id)
        if show_room is None:
            raise NotFoundError("Show room", show_room_id)
        return show_room

    async def get_seat_layout(self, db: AsyncSession, show_room_id: int) -> list[Seat]:
        await self.get_show_room(db, show_room_id)
        result = await db.execute(
            select(Seat)
            .where(Seat.show_room_id == show_room_id)
            .order_by(Seat.position, Seat.id)
        )
        return list(result.scalars().all())


crud_catalog = CRUDCatalog()
