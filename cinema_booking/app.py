import asyncio
import contextlib
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cinema_booking.api.v1 import routes_booking, routes_catalog, routes_health, routes_show
from cinema_booking.core.clock import Clock, utc_now
from cinema_booking.core.config import settings
from cinema_booking.core.logging import configure_logging
from cinema_booking.crud.booking import BookingEngine
from cinema_booking.crud.show import ShowScheduler
from cinema_booking.db import session
from cinema_booking.exceptions import CinemaBookingError
from cinema_booking.seat_store import SeatStatusStore, build_seat_store
from cinema_booking.services.availability import AvailabilityIndex
from cinema_booking.workers.hold_reaper import hold_reaper



@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.ENV == 'development':
        await session.init_db()

    reaper = None
    if settings.HOLD_REAPER_ENABLED:
        reaper = asyncio.create_task(hold_reaper(
            app.state.booking_engine, session.async_session, settings.HOLD_REAPER_INTERVAL_SECONDS))
    yield

    if reaper is not None:
        reaper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await reaper
    if settings.SEAT_STORE == "redis":
        from cinema_booking.redis import close_redis
        await close_redis()


def create_app(seat_store: Optional[SeatStatusStore] = None, clock: Clock = utc_now) -> FastAPI:
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.PROJECT_VERSION,
        description=settings.PROJECT_DESCRIPTION,
        lifespan=lifespan
    )

    if seat_store is None:
        seat_store = build_seat_store(settings.SEAT_STORE)
    app.state.seat_store = seat_store
    app.state.scheduler = ShowScheduler(seat_store)
    app.state.availability = AvailabilityIndex(seat_store, clock)
    app.state.booking_engine = BookingEngine(
        seat_store, clock, settings.HOLD_DURATION_SECONDS, settings.HOLD_DURATION_MAX_SECONDS)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for router in (routes_health.router, routes_catalog.router, routes_show.router, routes_booking.router):
        app.include_router(
            router,
            prefix=settings.API_V1_PREFIX
        )

    @app.exception_handler(CinemaBookingError)
    async def cinema_booking_error_handler(request, ex: CinemaBookingError):
        return JSONResponse(status_code=ex.status_code, content={"error": ex.message, **ex.details()})

    @app.get("/")
    async def root():
        return {"message": "Cinema booking backend is running"}
    return app


app = create_app()
