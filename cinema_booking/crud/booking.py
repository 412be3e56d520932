import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import select

from cinema_booking.core.clock import Clock, ensure_utc, utc_now
from cinema_booking.core.config import settings
from cinema_booking.crud.catalog import crud_catalog
from cinema_booking.crud.show import get_show_or_raise
from cinema_booking.exceptions import (
    AlreadyFinalError,
    HoldExpiredError,
    InvalidRequestError,
    NotFoundError,
    SeatsUnavailableError,
)
from cinema_booking.models import Booking, BookingSeat, BookingStatus, CancelReason, Seat
from cinema_booking.seat_store import ConfirmOutcome, SeatState, SeatStatus, SeatStatusStore
from cinema_booking.services.pricing import quote_seats

logger = logging.getLogger(__name__)


class BookingEngine:
    """
    Hold, confirm and release seats of a show for a booking.

    The seat-status store decides who gets a seat: every seat transition is
    one atomic store call. The database keeps the booking rows, and booking
    status changes are conditional updates on the current status.
    """

    def __init__(self, store: SeatStatusStore, clock: Clock = utc_now,
                 default_hold_seconds: int = settings.HOLD_DURATION_SECONDS,
                 max_hold_seconds: int = settings.HOLD_DURATION_MAX_SECONDS):
        self.store = store
        self.clock = clock
        self.default_hold_seconds = default_hold_seconds
        self.max_hold_seconds = max_hold_seconds

    async def get_booking(self, db: AsyncSession, booking_id: int) -> Booking:
        booking = await db.get(Booking, booking_id, populate_existing=True)
        if booking is None:
            raise NotFoundError("Booking", booking_id)
        return booking

    async def get_booking_seat_ids(self, db: AsyncSession, booking_id: int) -> list[int]:
        result = await db.scalars(
            select(BookingSeat.seat_id)
            .where(BookingSeat.booking_id == booking_id)
            .order_by(BookingSeat.seat_id)
        )
        return list(result.all())

    async def get_booking_seats(self, db: AsyncSession, booking_id: int) -> list[dict]:
        """Seats of a booking in room order, with the name and the price paid for each."""
        result = await db.execute(
            select(BookingSeat.seat_id, Seat.name, BookingSeat.price)
            .join(Seat, Seat.id == BookingSeat.seat_id)
            .where(BookingSeat.booking_id == booking_id)
            .order_by(Seat.position, Seat.id)
        )
        return [{"seat_id": seat_id, "name": name, "price": price} for seat_id, name, price in result.all()]

    # 1. validate the request and replay a known idempotency key.
    # 2. price the seats and persist the PENDING booking to get its id.
    # 3. hold every seat in the store, all or nothing.
    # 4. add the booking seats and commit.
    # 5. on any failure after the hold, release it and roll back.
    async def start_booking(self, db: AsyncSession, show_id: int, seat_ids: Iterable[int],
                            hold_duration_seconds: Optional[int] = None,
                            idempotency_key: Optional[str] = None) -> Booking:
        seat_ids = set(seat_ids)
        if not seat_ids:
            raise InvalidRequestError("At least one seat is required")
        if hold_duration_seconds is None:
            hold_duration_seconds = self.default_hold_seconds
        if hold_duration_seconds <= 0:
            raise InvalidRequestError("Hold duration must be greater than 0 seconds")
        if hold_duration_seconds > self.max_hold_seconds:
            raise InvalidRequestError(f"Hold duration must be at most {self.max_hold_seconds} seconds")

        if idempotency_key:
            existing = await db.scalar(select(Booking).where(Booking.idempotency_key == idempotency_key))
            if existing is not None:
                existing_seat_ids = await self.get_booking_seat_ids(db, existing.id)
                if existing.show_id != show_id or set(existing_seat_ids) != seat_ids:
                    raise InvalidRequestError(
                        f"Idempotency key {idempotency_key!r} was already used for a different booking")
                logger.info("Replaying booking %s for idempotency key %s", existing.id, idempotency_key)
                return existing

        show = await get_show_or_raise(db, show_id)
        seats = (await db.scalars(
            select(Seat)
            .where(Seat.show_room_id == show.show_room_id)
            .where(Seat.id.in_(seat_ids))
        )).all()
        outside_room = seat_ids - {seat.id for seat in seats}
        if outside_room:
            raise InvalidRequestError(
                f"Seats {sorted(outside_room)} are not in the room of show {show_id}", seat_ids=outside_room)

        premiums = await crud_catalog.get_seat_kind_premiums(db, {seat.seat_kind_id for seat in seats})
        prices = quote_seats(show, seats, premiums)
        now = self.clock()
        expires_at = now + timedelta(seconds=hold_duration_seconds)
        booking = Booking(
            show_id=show_id,
            status=BookingStatus.PENDING,
            expires_at=expires_at,
            total_amount=sum(prices.values(), Decimal("0.00")),
            idempotency_key=idempotency_key,
        )

        booking_id = None
        held = False
        try:
            db.add(booking)
            await db.flush()
            booking_id = booking.id
            conflicts = await self.store.hold_seats(show_id, sorted(seat_ids), booking_id, expires_at, now)
            if conflicts:
                raise SeatsUnavailableError(show_id, conflicts)
            held = True

            db.add_all([
                BookingSeat(booking_id=booking_id, show_id=show_id, seat_id=seat_id, price=price)
                for seat_id, price in prices.items()
            ])
            await db.commit()
        except SeatsUnavailableError as e:
            logger.warning("Seats %s of show %s are not available", e.seat_ids, show_id)
            await db.rollback()
            raise
        except Exception:
            logger.error("Failed to start booking for show %s", show_id, exc_info=True)
            if held:
                await self.store.release_seats(show_id, seat_ids, booking_id)
            await db.rollback()
            raise

        await db.refresh(booking)
        logger.info("Booking %s holds seats %s of show %s until %s",
                    booking_id, sorted(seat_ids), show_id, expires_at)
        return booking

    async def confirm_booking(self, db: AsyncSession, booking_id: int) -> Booking:
        booking = await self.get_booking(db, booking_id)
        self._raise_if_final(booking)
        show_id = booking.show_id
        seat_ids = await self.get_booking_seat_ids(db, booking_id)

        outcome = await self.store.confirm_seats(show_id, seat_ids, booking_id, self.clock())
        if outcome is not ConfirmOutcome.CONFIRMED:
            # the hold lapsed or was reaped: free whatever is left and cancel
            released = await self.store.release_seats(show_id, seat_ids, booking_id)
            moved = await self._transition(db, booking_id, [BookingStatus.PENDING],
                                           BookingStatus.CANCELLED, CancelReason.EXPIRED, seats_released=True)
            await db.commit()
            await db.refresh(booking)
            if not moved:
                self._raise_if_final(booking)
            logger.warning("Booking %s expired before confirmation, released %d seats", booking_id, released)
            raise HoldExpiredError(booking_id)

        try:
            moved = await self._transition(db, booking_id, [BookingStatus.PENDING], BookingStatus.CONFIRMED)
            await db.commit()
        except Exception:
            logger.error("Failed to confirm booking %s, releasing its seats", booking_id, exc_info=True)
            await db.rollback()
            await self.store.release_seats(show_id, seat_ids, booking_id)
            raise

        await db.refresh(booking)
        # CONFIRMED without our update means a sweep settled our store confirm
        if not moved and booking.status is not BookingStatus.CONFIRMED:
            self._raise_if_final(booking)
        logger.info("Booking %s confirmed", booking_id)
        return booking

    async def cancel_booking(self, db: AsyncSession, booking_id: int) -> Booking:
        booking = await self.get_booking(db, booking_id)
        if booking.status is BookingStatus.CANCELLED:
            raise AlreadyFinalError(booking_id, booking.status)
        show_id = booking.show_id

        moved = await self._transition(db, booking_id, [BookingStatus.PENDING, BookingStatus.CONFIRMED],
                                       BookingStatus.CANCELLED, CancelReason.REQUESTED)
        await db.commit()
        if not moved:
            # someone else cancelled it first, they release the seats
            await db.refresh(booking)
            raise AlreadyFinalError(booking_id, booking.status)

        try:
            released = await self._release_cancelled(db, booking_id, show_id)
        except Exception:
            # seats_released stays False, expire_stale_holds retries the release
            logger.error("Booking %s cancelled but its seats were not released", booking_id, exc_info=True)
            await db.rollback()
        else:
            logger.info("Booking %s cancelled, released %d seats", booking_id, released)
        await db.refresh(booking)
        return booking

    async def expire_stale_holds(self, db: AsyncSession, now: Optional[datetime] = None) -> int:
        """
        Release every hold that expired by now and settle the PENDING bookings
        behind them. Returns the number of seats released.

        A stale PENDING booking whose seats the store already booked for it is
        confirmed, any other is cancelled as expired. Cancelled bookings whose
        seats were never released get their release retried. Each release is a
        conditional store step, so this is safe to run next to user operations
        and next to itself.
        """
        now = ensure_utc(now) if now is not None else self.clock()
        released = len(await self.store.release_expired(now))

        stale = (await db.execute(
            select(Booking.id, Booking.show_id)
            .where(Booking.status == BookingStatus.PENDING)
            .where(Booking.expires_at <= now)
            .order_by(Booking.id)
        )).all()
        expired = settled = 0
        for booking_id, show_id in stale:
            seat_ids = await self.get_booking_seat_ids(db, booking_id)
            statuses = await self.store.get_statuses(show_id, now)
            if seat_ids and all(self._booked_by(statuses.get(seat_id), booking_id) for seat_id in seat_ids):
                # the store confirmed these seats but the booking row never followed
                if await self._transition(db, booking_id, [BookingStatus.PENDING], BookingStatus.CONFIRMED):
                    settled += 1
                continue
            released += await self.store.release_seats(show_id, seat_ids, booking_id, expired_at=now)
            if await self._transition(db, booking_id, [BookingStatus.PENDING],
                                      BookingStatus.CANCELLED, CancelReason.EXPIRED, seats_released=True):
                expired += 1
        await db.commit()

        unreleased = (await db.execute(
            select(Booking.id, Booking.show_id)
            .where(Booking.status == BookingStatus.CANCELLED)
            .where(Booking.seats_released.is_(False))
            .order_by(Booking.id)
        )).all()
        for booking_id, show_id in unreleased:
            released += await self._release_cancelled(db, booking_id, show_id)

        if released or expired or settled:
            logger.info("Released %d seats, cancelled %d bookings, confirmed %d bookings",
                        released, expired, settled)
        return released

    async def _release_cancelled(self, db: AsyncSession, booking_id: int, show_id: int) -> int:
        seat_ids = await self.get_booking_seat_ids(db, booking_id)
        released = await self.store.release_seats(show_id, seat_ids, booking_id)
        await db.execute(
            update(Booking)
            .where(Booking.id == booking_id)
            .values(seats_released=True)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        return released

    async def _transition(self, db: AsyncSession, booking_id: int, from_statuses: list[BookingStatus],
                          to_status: BookingStatus, reason: Optional[CancelReason] = None,
                          seats_released: bool = False) -> bool:
        """Move a booking to to_status only if it is still in one of from_statuses."""
        result = await db.execute(
            update(Booking)
            .where(Booking.id == booking_id)
            .where(Booking.status.in_(from_statuses))
            .values(status=to_status, cancel_reason=reason, seats_released=seats_released)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    @staticmethod
    def _booked_by(status: Optional[SeatStatus], booking_id: int) -> bool:
        return status is not None and status.state is SeatState.BOOKED and status.booking_id == booking_id

    @staticmethod
    def _raise_if_final(booking: Booking) -> None:
        if booking.status is BookingStatus.CONFIRMED:
            raise AlreadyFinalError(booking.id, booking.status)
        if booking.status is BookingStatus.CANCELLED:
            if booking.cancel_reason is CancelReason.EXPIRED:
                raise HoldExpiredError(booking.id)
            raise AlreadyFinalError(booking.id, booking.status)
