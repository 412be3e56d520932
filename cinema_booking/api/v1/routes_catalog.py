from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from cinema_booking.api.v1.dependencies import get_scheduler
from cinema_booking.crud.catalog import crud_catalog
from cinema_booking.crud.show import ShowScheduler
from cinema_booking.db.session import getDB_session
from cinema_booking.schemas.cinema import CinemaCreate, CinemaResponse, ShowRoomCreate, ShowRoomResponse
from cinema_booking.schemas.film import FilmCreate, FilmResponse
from cinema_booking.schemas.seat import (
    SeatKindCreate,
    SeatKindPremiumResponse,
    SeatKindPremiumUpdate,
    SeatKindResponse,
    SeatResponse,
)


router = APIRouter()


@router.post("/cinema", response_model=CinemaResponse)
async def create_cinema(data: CinemaCreate, db: AsyncSession = Depends(getDB_session)):
    return await crud_catalog.create_cinema(db, data)


@router.get("/cinema/{cinema_id}", response_model=CinemaResponse)
async def get_cinema(cinema_id: int, db: AsyncSession = Depends(getDB_session)):
    return await crud_catalog.get_cinema(db, cinema_id)


@router.post("/film", response_model=FilmResponse)
async def create_film(data: FilmCreate, db: AsyncSession = Depends(getDB_session)):
    return await crud_catalog.create_film(db, data)


@router.get("/film", response_model=list[FilmResponse])
async def list_films(db: AsyncSession = Depends(getDB_session)):
    return await crud_catalog.list_films(db)


@router.get("/film/{film_id}", response_model=FilmResponse)
async def get_film(film_id: int, db: AsyncSession = Depends(getDB_session)):
    return await crud_catalog.get_film(db, film_id)


@router.delete("/film/{film_id}")
async def delete_film(
        film_id: int,
        db: AsyncSession = Depends(getDB_session),
        scheduler: ShowScheduler = Depends(get_scheduler)):
    deleted_show_ids = await scheduler.delete_film(db, film_id)
    return {"deleted_show_ids": deleted_show_ids}


@router.post("/seat-kind", response_model=SeatKindResponse)
async def create_seat_kind(data: SeatKindCreate, db: AsyncSession = Depends(getDB_session)):
    return await crud_catalog.create_seat_kind(db, data)


@router.get("/seat-kind/{seat_kind_id}/premium")
async def get_seat_kind_premium(seat_kind_id: int, db: AsyncSession = Depends(getDB_session)):
    premium = await crud_catalog.get_seat_kind_premium(db, seat_kind_id)
    return {"seat_kind_id": seat_kind_id, "premium_percentage": premium}


@router.post("/seat-kind/{seat_kind_id}/premium", response_model=SeatKindPremiumResponse)
async def set_seat_kind_premium(
        seat_kind_id: int,
        data: SeatKindPremiumUpdate,
        db: AsyncSession = Depends(getDB_session)):
    return await crud_catalog.set_seat_kind_premium(db, seat_kind_id, data.premium_percentage)


@router.post("/show-room", response_model=ShowRoomResponse)
async def create_show_room(data: ShowRoomCreate, db: AsyncSession = Depends(getDB_session)):
    return await crud_catalog.create_show_room(db, data)


@router.get("/show-room/{show_room_id}/layout", response_model=list[SeatResponse])
async def get_seat_layout(show_room_id: int, db: AsyncSession = Depends(getDB_session)):
    return await crud_catalog.get_seat_layout(db, show_room_id)


@router.delete("/show-room/{show_room_id}")
async def delete_show_room(
        show_room_id: int,
        db: AsyncSession = Depends(getDB_session),
        scheduler: ShowScheduler = Depends(get_scheduler)):
    deleted_show_ids = await scheduler.delete_show_room(db, show_room_id)
    return {"deleted_show_ids": deleted_show_ids}
