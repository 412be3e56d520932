from datetime import datetime
from decimal import Decimal
from sqlalchemy import ForeignKey, Index, Numeric
from sqlalchemy.orm import Mapped, mapped_column, relationship
from cinema_booking.db.base import Base, BigIntId
from cinema_booking.db.types import UTCDateTime
from cinema_booking.models import TimestampMixin


class Show(Base, TimestampMixin):
    __table_args__ = (
        Index("ix_show_room_start", "show_room_id", "start_time"),
    )
    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, index=True)
    film_id: Mapped[int] = mapped_column(BigIntId, ForeignKey(
        "film.id", ondelete="CASCADE"), index=True, nullable=False)
    show_room_id: Mapped[int] = mapped_column(BigIntId, ForeignKey(
        "show_room.id", ondelete="CASCADE"), nullable=False)
    # [start_time, end_time) with end_time = start_time + film duration
    start_time: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    end_time: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    per_seat_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    film: Mapped["Film"] = relationship(back_populates="shows")
    show_room: Mapped["ShowRoom"] = relationship(back_populates="shows")
