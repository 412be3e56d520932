from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import select

from cinema_booking.core.clock import Clock, utc_now
from cinema_booking.crud.catalog import crud_catalog
from cinema_booking.crud.show import get_show_or_raise
from cinema_booking.exceptions import InvalidRequestError
from cinema_booking.models import Seat, Show
from cinema_booking.seat_store import FREE_SEAT, SeatStatus, SeatStatusStore
from cinema_booking.services.pricing import quote_seats


class AvailabilityIndex:
    """Read side of the seat-status store: which seats of a show are free."""

    def __init__(self, store: SeatStatusStore, clock: Clock = utc_now):
        self.store = store
        self.clock = clock

    async def _room_seat_ids(self, db: AsyncSession, show: Show) -> list[int]:
        result = await db.scalars(
            select(Seat.id)
            .where(Seat.show_room_id == show.show_room_id)
            .order_by(Seat.position, Seat.id)
        )
        return list(result.all())

    async def available_seats(self, db: AsyncSession, show_id: int) -> set[int]:
        show = await get_show_or_raise(db, show_id)
        seat_ids = await self._room_seat_ids(db, show)
        taken = await self.store.get_statuses(show_id, self.clock())
        return {seat_id for seat_id in seat_ids if seat_id not in taken}

    async def has_free_seats(self, db: AsyncSession, show: Show) -> bool:
        seat_ids = await self._room_seat_ids(db, show)
        taken = await self.store.get_statuses(show.id, self.clock())
        return any(seat_id not in taken for seat_id in seat_ids)

    async def seat_status(self, db: AsyncSession, show_id: int, seat_id: int) -> SeatStatus:
        show = await get_show_or_raise(db, show_id)
        in_room = await db.scalar(
            select(Seat.id)
            .where(Seat.id == seat_id)
            .where(Seat.show_room_id == show.show_room_id)
        )
        if in_room is None:
            raise InvalidRequestError(f"Seat {seat_id} is not in the room of show {show_id}", seat_ids=[seat_id])
        return await self.store.get_status(show_id, seat_id, self.clock())

    async def seat_map(self, db: AsyncSession, show_id: int) -> list[dict]:
        """Room layout of a show with each seat's live state and price."""
        show = await get_show_or_raise(db, show_id)
        seats = await crud_catalog.get_seat_layout(db, show.show_room_id)
        premiums = await crud_catalog.get_seat_kind_premiums(db, {seat.seat_kind_id for seat in seats})
        prices = quote_seats(show, seats, premiums)
        statuses = await self.store.get_statuses(show_id, self.clock())
        layout = []
        for seat in seats:
            status = statuses.get(seat.id, FREE_SEAT)
            layout.append({
                "seat_id": seat.id,
                "name": seat.name,
                "seat_kind_id": seat.seat_kind_id,
                "state": status.state,
                "price": prices[seat.id],
            })
        return layout
