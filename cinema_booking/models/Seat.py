from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from cinema_booking.db.base import Base, BigIntId
from cinema_booking.models import TimestampMixin


class SeatKind(Base, TimestampMixin):
    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    premiums: Mapped[list["SeatKindPremium"]] = relationship(back_populates="seat_kind")


class SeatKindPremium(Base, TimestampMixin):
    """
    Append-only premium history for a seat kind.
    The row created most recently is the one in effect.
    """
    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, index=True)
    seat_kind_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("seat_kind.id", ondelete="CASCADE"), index=True, nullable=False)
    premium_percentage: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    seat_kind: Mapped["SeatKind"] = relationship(back_populates="premiums")


class Seat(Base, TimestampMixin):
    __table_args__ = (
        UniqueConstraint("show_room_id", "name", name="uix_seat_room_name"),
    )
    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, index=True)
    show_room_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("show_room.id", ondelete="CASCADE"), index=True, nullable=False)
    seat_kind_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("seat_kind.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(String(20), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    show_room: Mapped["ShowRoom"] = relationship(back_populates="seats")
