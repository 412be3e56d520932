from typing import Iterable, Optional
from .base import CinemaBookingError


class InvalidRequestError(CinemaBookingError):
    status_code = 422

    def __init__(self, message: str, seat_ids: Optional[Iterable[int]] = None):
        self.seat_ids = sorted(seat_ids) if seat_ids is not None else None
        super().__init__(message)

    def details(self) -> dict:
        if self.seat_ids is None:
            return {}
        return {"seat_ids": self.seat_ids}
