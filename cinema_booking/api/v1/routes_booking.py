from typing import Optional
from fastapi import APIRouter, Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from cinema_booking.api.v1.dependencies import get_booking_engine
from cinema_booking.crud.booking import BookingEngine
from cinema_booking.crud.catalog import crud_catalog
from cinema_booking.crud.show import get_show_or_raise
from cinema_booking.db.session import getDB_session
from cinema_booking.models import Booking
from cinema_booking.schemas.booking import BookedSeatResponse, BookingCreate, BookingResponse, ExpireHoldsResponse


router = APIRouter(
    prefix="/booking"
)


async def to_response(db: AsyncSession, engine: BookingEngine, booking: Booking) -> BookingResponse:
    response = BookingResponse.model_validate(booking)
    show = await get_show_or_raise(db, booking.show_id)
    show_room = await crud_catalog.get_show_room(db, show.show_room_id)
    response.show_room_id = show_room.id
    response.show_room_name = show_room.name
    response.seats = [BookedSeatResponse(**seat) for seat in await engine.get_booking_seats(db, booking.id)]
    response.seat_ids = sorted(seat.seat_id for seat in response.seats)
    return response


@router.post("", response_model=BookingResponse)
async def start_booking(
        data: BookingCreate,
        idempotency_key: Optional[str] = Header(default=None, alias="X-Idempotency-Key"),
        db: AsyncSession = Depends(getDB_session),
        engine: BookingEngine = Depends(get_booking_engine)):
    booking = await engine.start_booking(
        db, data.show_id, data.seat_ids, data.hold_duration_seconds, idempotency_key)
    return await to_response(db, engine, booking)


@router.post("/expire-stale-holds", response_model=ExpireHoldsResponse)
async def expire_stale_holds(
        db: AsyncSession = Depends(getDB_session),
        engine: BookingEngine = Depends(get_booking_engine)):
    released = await engine.expire_stale_holds(db)
    return ExpireHoldsResponse(released=released)


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
        booking_id: int,
        db: AsyncSession = Depends(getDB_session),
        engine: BookingEngine = Depends(get_booking_engine)):
    booking = await engine.get_booking(db, booking_id)
    return await to_response(db, engine, booking)


@router.post("/{booking_id}/confirm", response_model=BookingResponse)
async def confirm_booking(
        booking_id: int,
        db: AsyncSession = Depends(getDB_session),
        engine: BookingEngine = Depends(get_booking_engine)):
    booking = await engine.confirm_booking(db, booking_id)
    return await to_response(db, engine, booking)


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
        booking_id: int,
        db: AsyncSession = Depends(getDB_session),
        engine: BookingEngine = Depends(get_booking_engine)):
    booking = await engine.cancel_booking(db, booking_id)
    return await to_response(db, engine, booking)
