from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from cinema_booking.db.base import Base, BigIntId
from cinema_booking.models import TimestampMixin


class Film(Base, TimestampMixin):
    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    duration_mins: Mapped[int] = mapped_column(Integer, nullable=False)
    shows: Mapped[list["Show"]] = relationship(back_populates="film")
