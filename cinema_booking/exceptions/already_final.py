from .base import CinemaBookingError


class AlreadyFinalError(CinemaBookingError):
    status_code = 409

    def __init__(self, booking_id: int, status):
        self.booking_id = booking_id
        self.status = getattr(status, "value", status)
        super().__init__(f"Booking {booking_id} is already {self.status}")

    def details(self) -> dict:
        return {"booking_id": self.booking_id, "status": self.status}
