from datetime import datetime
from .base import CinemaBookingError


class ScheduleConflictError(CinemaBookingError):
    status_code = 409

    def __init__(self, show_room_id: int, conflicting_show_id: int, start_time: datetime, end_time: datetime):
        self.show_room_id = show_room_id
        self.conflicting_show_id = conflicting_show_id
        self.start_time = start_time
        self.end_time = end_time
        super().__init__(
            f"Show room {show_room_id} is already booked from {start_time.isoformat()} "
            f"to {end_time.isoformat()} by show {conflicting_show_id}")

    def details(self) -> dict:
        return {
            "show_room_id": self.show_room_id,
            "conflicting_show_id": self.conflicting_show_id,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
        }
