from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field

from cinema_booking.seat_store import SeatState


class SeatKindBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)


class SeatKindCreate(SeatKindBase):
    premium_percentage: int = 0


class SeatKindResponse(SeatKindBase):
    id: int

    class Config:
        from_attributes = True


class SeatKindPremiumUpdate(BaseModel):
    premium_percentage: int


class SeatKindPremiumResponse(BaseModel):
    seat_kind_id: int
    premium_percentage: int
    created_at: datetime

    class Config:
        from_attributes = True


class SeatBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=20)
    seat_kind_id: int


class SeatCreate(SeatBase):
    pass


class SeatResponse(SeatBase):
    id: int
    show_room_id: int
    position: int

    class Config:
        from_attributes = True


class SeatStatusResponse(BaseModel):
    seat_id: int
    state: SeatState
    booking_id: Optional[int] = None
    expires_at: Optional[datetime] = None


class SeatMapEntry(BaseModel):
    seat_id: int
    name: str
    seat_kind_id: int
    state: SeatState
    price: Decimal
