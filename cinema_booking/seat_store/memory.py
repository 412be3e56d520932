import threading
from datetime import datetime
from typing import Iterable, Optional

from .base import ConfirmOutcome, ReleasedHold, SeatState, SeatStatus, SeatStatusStore


class InMemorySeatStatusStore(SeatStatusStore):
    """
    Process-local store. One lock guards all shows; no critical section awaits,
    so it is safe from both event-loop tasks and threads.
    """

    def __init__(self):
        self._shows: dict[int, dict[int, SeatStatus]] = {}
        self._lock = threading.Lock()

    async def get_statuses(self, show_id: int, now: datetime) -> dict[int, SeatStatus]:
        with self._lock:
            seats = self._shows.get(show_id, {})
            return {seat_id: status for seat_id, status in seats.items() if not status.is_free(now)}

    async def hold_seats(self, show_id: int, seat_ids: Iterable[int], booking_id: int,
                         expires_at: datetime, now: datetime) -> list[int]:
        seat_ids = list(seat_ids)
        with self._lock:
            seats = self._shows.setdefault(show_id, {})
            conflicts = [
                seat_id for seat_id in seat_ids
                if seat_id in seats and not seats[seat_id].is_free(now)
            ]
            if conflicts:
                return sorted(conflicts)
            hold = SeatStatus(SeatState.HELD, booking_id, expires_at)
            for seat_id in seat_ids:
                seats[seat_id] = hold
            return []

    async def confirm_seats(self, show_id: int, seat_ids: Iterable[int], booking_id: int,
                            now: datetime) -> ConfirmOutcome:
        seat_ids = list(seat_ids)
        with self._lock:
            seats = self._shows.get(show_id, {})
            owned = [seats.get(seat_id) for seat_id in seat_ids]
            if any(status is None or status.booking_id != booking_id for status in owned):
                return ConfirmOutcome.NOT_HELD
            if any(status.is_expired_hold(now) for status in owned):
                return ConfirmOutcome.EXPIRED
            booked = SeatStatus(SeatState.BOOKED, booking_id)
            for seat_id in seat_ids:
                seats[seat_id] = booked
            return ConfirmOutcome.CONFIRMED

    async def release_seats(self, show_id: int, seat_ids: Iterable[int], booking_id: int,
                            expired_at: Optional[datetime] = None) -> int:
        released = 0
        with self._lock:
            seats = self._shows.get(show_id, {})
            for seat_id in seat_ids:
                status = seats.get(seat_id)
                if status is None or status.booking_id != booking_id:
                    continue
                if expired_at is not None and not status.is_expired_hold(expired_at):
                    continue
                del seats[seat_id]
                released += 1
            if not seats:
                self._shows.pop(show_id, None)
        return released

    async def release_expired(self, now: datetime) -> list[ReleasedHold]:
        released = []
        with self._lock:
            for show_id, seats in list(self._shows.items()):
                expired = [seat_id for seat_id, status in seats.items() if status.is_expired_hold(now)]
                for seat_id in expired:
                    released.append(ReleasedHold(show_id, seat_id, seats.pop(seat_id).booking_id))
                if not seats:
                    del self._shows[show_id]
        return released

    async def clear_show(self, show_id: int) -> None:
        with self._lock:
            self._shows.pop(show_id, None)
