from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional


class SeatState(str, Enum):
    FREE = "FREE"
    HELD = "HELD"
    BOOKED = "BOOKED"


class ConfirmOutcome(str, Enum):
    CONFIRMED = "CONFIRMED"
    EXPIRED = "EXPIRED"
    NOT_HELD = "NOT_HELD"


@dataclass(frozen=True)
class SeatStatus:
    state: SeatState
    booking_id: Optional[int] = None
    expires_at: Optional[datetime] = None

    def is_expired_hold(self, now: datetime) -> bool:
        return self.state is SeatState.HELD and self.expires_at is not None and self.expires_at <= now

    def is_free(self, now: datetime) -> bool:
        return self.state is SeatState.FREE or self.is_expired_hold(now)


FREE_SEAT = SeatStatus(SeatState.FREE)


@dataclass(frozen=True)
class ReleasedHold:
    show_id: int
    seat_id: int
    booking_id: int


class SeatStatusStore(ABC):
    """
    Per-show seat status: FREE, HELD(booking, expires_at) or BOOKED(booking).

    Every mutating method is a single atomic step against the backing store,
    so transitions of one seat are seen in the same order by every caller.
    A hold whose expires_at is <= now counts as FREE everywhere.
    """

    @abstractmethod
    async def get_statuses(self, show_id: int, now: datetime) -> dict[int, SeatStatus]:
        """Live HELD/BOOKED entries of a show, keyed by seat id."""

    async def get_status(self, show_id: int, seat_id: int, now: datetime) -> SeatStatus:
        statuses = await self.get_statuses(show_id, now)
        return statuses.get(seat_id, FREE_SEAT)

    @abstractmethod
    async def hold_seats(self, show_id: int, seat_ids: Iterable[int], booking_id: int,
                         expires_at: datetime, now: datetime) -> list[int]:
        """
        Hold every seat for booking_id or none of them.
        Returns the seat ids that were not free; empty means all seats are held.
        """

    @abstractmethod
    async def confirm_seats(self, show_id: int, seat_ids: Iterable[int], booking_id: int,
                            now: datetime) -> ConfirmOutcome:
        """Turn the booking's live holds into BOOKED, all or nothing."""

    @abstractmethod
    async def release_seats(self, show_id: int, seat_ids: Iterable[int], booking_id: int,
                            expired_at: Optional[datetime] = None) -> int:
        """
        Free the seats owned by booking_id (held or booked) and return how many were freed.
        With expired_at, only holds already expired at that instant are freed.
        """

    @abstractmethod
    async def release_expired(self, now: datetime) -> list[ReleasedHold]:
        """Free every hold that has expired by now."""

    @abstractmethod
    async def clear_show(self, show_id: int) -> None:
        """Forget every seat status of a show."""
