from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional
from sqlalchemy import Boolean, Enum as SAEnum, ForeignKey, Numeric, String, false
from sqlalchemy.orm import Mapped, mapped_column, relationship
from cinema_booking.db.base import Base, BigIntId
from cinema_booking.db.types import UTCDateTime
from cinema_booking.models import TimestampMixin


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class CancelReason(str, Enum):
    REQUESTED = "REQUESTED"
    EXPIRED = "EXPIRED"


class Booking(Base, TimestampMixin):
    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, index=True)
    status: Mapped[BookingStatus] = mapped_column(
        SAEnum(BookingStatus, name="booking_status_enum"), nullable=False, default=BookingStatus.PENDING)
    cancel_reason: Mapped[Optional[CancelReason]] = mapped_column(
        SAEnum(CancelReason, name="cancel_reason_enum"), nullable=True)
    show_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("show.id", ondelete="CASCADE"), index=True, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    idempotency_key: Mapped[Optional[str]] = mapped_column(
        String(100), nullable=True, unique=True, index=True)
    # False while a cancelled booking may still own entries in the seat store
    seats_released: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false())
    seats: Mapped[List["BookingSeat"]] = relationship(back_populates="booking")
