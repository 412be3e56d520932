from datetime import datetime, timezone
from sqlalchemy.orm import Mapped, mapped_column

from cinema_booking.db.types import UTCDateTime


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )


from .Cinema import Cinema, ShowRoom  # noqa: E402
from .Seat import Seat, SeatKind, SeatKindPremium  # noqa: E402
from .Film import Film  # noqa: E402
from .Show import Show  # noqa: E402
from .booking import Booking, BookingStatus, CancelReason  # noqa: E402
from .booking_seat import BookingSeat  # noqa: E402

__all__ = [
    "TimestampMixin", "Cinema", "ShowRoom", "Seat", "SeatKind", "SeatKindPremium",
    "Film", "Show", "Booking", "BookingStatus", "CancelReason", "BookingSeat",
]
