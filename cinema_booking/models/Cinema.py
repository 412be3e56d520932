from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from cinema_booking.db.base import Base, BigIntId
from cinema_booking.models import TimestampMixin


class Cinema(Base, TimestampMixin):
    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    show_rooms: Mapped[list["ShowRoom"]] = relationship(back_populates="cinema")


class ShowRoom(Base, TimestampMixin):
    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, index=True)
    cinema_id: Mapped[int] = mapped_column(BigIntId, ForeignKey("cinema.id", ondelete="CASCADE"), index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    cinema: Mapped["Cinema"] = relationship(back_populates="show_rooms")
    seats: Mapped[list["Seat"]] = relationship(back_populates="show_room", order_by="Seat.position")
    shows: Mapped[list["Show"]] = relationship(back_populates="show_room")
