from decimal import Decimal
from cinema_booking.db.base import Base, BigIntId
from cinema_booking.models import TimestampMixin
from sqlalchemy import ForeignKey, Numeric
from sqlalchemy.orm import Mapped, mapped_column, relationship


class BookingSeat(Base, TimestampMixin):
    id: Mapped[int] = mapped_column(BigIntId, primary_key=True)
    booking_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("booking.id", ondelete="CASCADE"), index=True, nullable=False)
    show_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("show.id", ondelete="CASCADE"), index=True, nullable=False)
    seat_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("seat.id", ondelete="CASCADE"), nullable=False)
    # price at the time the hold was taken
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    booking: Mapped["Booking"] = relationship(back_populates="seats")
