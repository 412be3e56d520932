from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel


class ShowBase(BaseModel):
    film_id: int
    show_room_id: int
    start_time: datetime
    per_seat_price: Decimal


class ShowCreate(ShowBase):
    pass


class ShowResponse(ShowBase):
    id: int
    end_time: datetime

    class Config:
        from_attributes = True


class AvailableSeatsResponse(BaseModel):
    show_id: int
    seat_ids: list[int]
