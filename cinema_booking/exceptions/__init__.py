from .base import CinemaBookingError
from .not_found import NotFoundError
from .schedule_conflict import ScheduleConflictError
from .seats_unavailable import SeatsUnavailableError
from .hold_expired import HoldExpiredError
from .already_final import AlreadyFinalError
from .invalid_request import InvalidRequestError

__all__ = [
    "CinemaBookingError",
    "NotFoundError",
    "ScheduleConflictError",
    "SeatsUnavailableError",
    "HoldExpiredError",
    "AlreadyFinalError",
    "InvalidRequestError",
]
