from pydantic import BaseModel, Field

from cinema_booking.schemas.seat import SeatCreate


class CinemaBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)


class CinemaCreate(CinemaBase):
    pass


class CinemaResponse(CinemaBase):
    id: int

    class Config:
        from_attributes = True


class ShowRoomBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)


class ShowRoomCreate(ShowRoomBase):
    cinema_id: int
    # layout order is the order given here
    seats: list[SeatCreate]


class ShowRoomResponse(ShowRoomBase):
    id: int
    cinema_id: int

    class Config:
        from_attributes = True
