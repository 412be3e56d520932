from .base import CinemaBookingError


class HoldExpiredError(CinemaBookingError):
    status_code = 410

    def __init__(self, booking_id: int):
        self.booking_id = booking_id
        super().__init__(f"Seat hold for booking {booking_id} has expired")

    def details(self) -> dict:
        return {"booking_id": self.booking_id}
