from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from cinema_booking.api.v1.dependencies import get_availability, get_scheduler
from cinema_booking.crud.show import ShowScheduler
from cinema_booking.db.session import getDB_session
from cinema_booking.schemas.seat import SeatMapEntry, SeatStatusResponse
from cinema_booking.schemas.show import AvailableSeatsResponse, ShowCreate, ShowResponse
from cinema_booking.services.availability import AvailabilityIndex


router = APIRouter(
    prefix="/show"
)


@router.post("", response_model=ShowResponse)
async def create_show(
        data: ShowCreate,
        db: AsyncSession = Depends(getDB_session),
        scheduler: ShowScheduler = Depends(get_scheduler)):
    return await scheduler.create_show(db, data.film_id, data.show_room_id, data.start_time, data.per_seat_price)


@router.get("", response_model=list[ShowResponse])
async def list_shows(
        film_id: Optional[int] = None,
        starts_from: Optional[datetime] = None,
        starts_before: Optional[datetime] = None,
        available_only: bool = False,
        db: AsyncSession = Depends(getDB_session),
        scheduler: ShowScheduler = Depends(get_scheduler),
        availability: AvailabilityIndex = Depends(get_availability)):
    shows = [show async for show in scheduler.list_shows(db, film_id, starts_from, starts_before)]
    if not available_only:
        return shows
    # booked out shows are hidden
    return [show for show in shows if await availability.has_free_seats(db, show)]


@router.get("/{show_id}", response_model=ShowResponse)
async def get_show(
        show_id: int,
        db: AsyncSession = Depends(getDB_session),
        scheduler: ShowScheduler = Depends(get_scheduler)):
    return await scheduler.get_show(db, show_id)


@router.delete("/{show_id}")
async def delete_show(
        show_id: int,
        db: AsyncSession = Depends(getDB_session),
        scheduler: ShowScheduler = Depends(get_scheduler)):
    await scheduler.delete_show(db, show_id)
    return {"deleted_show_ids": [show_id]}


@router.get("/{show_id}/available-seats", response_model=AvailableSeatsResponse)
async def get_available_seats(
        show_id: int,
        db: AsyncSession = Depends(getDB_session),
        availability: AvailabilityIndex = Depends(get_availability)):
    seat_ids = await availability.available_seats(db, show_id)
    return AvailableSeatsResponse(show_id=show_id, seat_ids=sorted(seat_ids))


@router.get("/{show_id}/seat-layout", response_model=list[SeatMapEntry])
async def get_show_seat_layout(
        show_id: int,
        db: AsyncSession = Depends(getDB_session),
        availability: AvailabilityIndex = Depends(get_availability)):
    return await availability.seat_map(db, show_id)


@router.get("/{show_id}/seat/{seat_id}", response_model=SeatStatusResponse)
async def get_seat_status(
        show_id: int,
        seat_id: int,
        db: AsyncSession = Depends(getDB_session),
        availability: AvailabilityIndex = Depends(get_availability)):
    status = await availability.seat_status(db, show_id, seat_id)
    return SeatStatusResponse(seat_id=seat_id, state=status.state,
                              booking_id=status.booking_id, expires_at=status.expires_at)
