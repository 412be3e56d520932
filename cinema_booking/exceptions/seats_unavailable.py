from typing import Iterable
from .base import CinemaBookingError


class SeatsUnavailableError(CinemaBookingError):
    status_code = 409

    def __init__(self, show_id: int, seat_ids: Iterable[int]):
        self.show_id = show_id
        self.seat_ids = sorted(seat_ids)
        super().__init__(f"Seats {self.seat_ids} are not available for show {show_id}")

    def details(self) -> dict:
        return {"show_id": self.show_id, "seat_ids": self.seat_ids}
