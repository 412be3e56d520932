from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field

from cinema_booking.models.booking import BookingStatus, CancelReason


class BookingCreate(BaseModel):
    show_id: int
    seat_ids: list[int]
    hold_duration_seconds: Optional[int] = Field(default=None, gt=0)


class BookedSeatResponse(BaseModel):
    seat_id: int
    name: str
    price: Decimal


class BookingResponse(BaseModel):
    id: int
    show_id: int
    status: BookingStatus
    cancel_reason: Optional[CancelReason] = None
    total_amount: Decimal
    expires_at: datetime
    seat_ids: list[int] = []
    show_room_id: Optional[int] = None
    show_room_name: Optional[str] = None
    seats: list[BookedSeatResponse] = []

    class Config:
        from_attributes = True


class ExpireHoldsResponse(BaseModel):
    released: int
