from fastapi import Request

from cinema_booking.crud.booking import BookingEngine
from cinema_booking.crud.show import ShowScheduler
from cinema_booking.services.availability import AvailabilityIndex


# services are built once per app in create_app and live on app.state
def get_booking_engine(request: Request) -> BookingEngine:
    return request.app.state.booking_engine


def get_scheduler(request: Request) -> ShowScheduler:
    return request.app.state.scheduler


def get_availability(request: Request) -> AvailabilityIndex:
    return request.app.state.availability
