import os
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

import cinema_booking.models  # noqa: F401  registers every table on Base.metadata
from cinema_booking.core.config import settings
from cinema_booking.crud.booking import BookingEngine
from cinema_booking.crud.catalog import crud_catalog
from cinema_booking.crud.show import ShowScheduler
from cinema_booking.db.base import Base
from cinema_booking.schemas.cinema import CinemaCreate, ShowRoomCreate
from cinema_booking.schemas.film import FilmCreate
from cinema_booking.schemas.seat import SeatCreate, SeatKindCreate
from cinema_booking.seat_store import InMemorySeatStatusStore
from cinema_booking.services.availability import AvailabilityIndex


class FakeClock:
    """Clock the tests move by hand."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
async def db_engine(tmp_path):
    """Create a database engine for the tests.

    Function-scoped to ensure it's created in the same event loop as the test.
    A fresh sqlite file per test unless TEST_DATABASE_URL points somewhere else.
    """
    test_db_url = os.environ.get("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path / 'cinema_test.db'}"
    engine = create_async_engine(
        test_db_url,
        echo=False,
        future=True,
    )

    # create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)  # Clean slate
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Cleanup: drop tables and dispose engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def db_session_factory(db_engine):
    """Factory to create multiple sessions for concurrent tests."""
    return async_sessionmaker(
        bind=db_engine,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def db_session(db_session_factory):
    """Create a database session for the tests."""
    async with db_session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def clock():
    return FakeClock(datetime.now(timezone.utc).replace(microsecond=0))


@pytest.fixture
def seat_store():
    return InMemorySeatStatusStore()


@pytest.fixture
def scheduler(seat_store):
    return ShowScheduler(seat_store)


@pytest.fixture
def availability(seat_store, clock):
    return AvailabilityIndex(seat_store, clock)


@pytest.fixture
def booking_engine(seat_store, clock):
    return BookingEngine(seat_store, clock, default_hold_seconds=600)


@pytest.fixture
async def redis_client():
    """Create a Redis client for the tests, skipping them when Redis is not running."""
    redis = Redis.from_url(
        settings.REDIS_URL,
        decode_responses=False,
        socket_connect_timeout=2
    )
    try:
        await redis.ping()
    except Exception:
        await redis.aclose()
        pytest.skip("Redis is not reachable")

    async def cleanup():
        for pattern in ("seats:{show:*", "holds:{show:*"):
            keys = await redis.keys(pattern)
            if keys:
                await redis.delete(*keys)
        await redis.delete("seat_store:shows")

    try:
        # Clean up any existing seat statuses from previous test runs
        await cleanup()
        yield redis
    finally:
        await cleanup()
        await redis.aclose()


@pytest.fixture
async def catalog_data(db_session_factory):
    """Cinema with one 10 seat room (row A standard, row B vip +50%) and a 120 minute film."""
    async with db_session_factory() as session:
        cinema = await crud_catalog.create_cinema(session, CinemaCreate(name="Test Cinema"))
        standard = await crud_catalog.create_seat_kind(session, SeatKindCreate(title="standard"))
        vip = await crud_catalog.create_seat_kind(session, SeatKindCreate(title="vip", premium_percentage=50))

        seats = []
        for row, kind in (("A", standard), ("B", vip)):
            for num in range(1, 6):
                seats.append(SeatCreate(name=f"{row}{num}", seat_kind_id=kind.id))
        room = await crud_catalog.create_show_room(
            session, ShowRoomCreate(cinema_id=cinema.id, name="Screen 1", seats=seats))
        layout = await crud_catalog.get_seat_layout(session, room.id)
        film = await crud_catalog.create_film(session, FilmCreate(name="Test Film", duration_mins=120))

        return {
            "cinema_id": cinema.id,
            "show_room_id": room.id,
            "film_id": film.id,
            "standard_kind_id": standard.id,
            "vip_kind_id": vip.id,
            "seat_ids": [seat.id for seat in layout],
        }


@pytest.fixture
async def seeded_test_data(catalog_data, db_session_factory, scheduler, clock):
    """Seed a show an hour from now at 100.00 per seat and return the ids needed for testing."""
    async with db_session_factory() as session:
        show = await scheduler.create_show(
            session,
            catalog_data["film_id"],
            catalog_data["show_room_id"],
            clock.now + timedelta(hours=1),
            Decimal("100.00"),
        )

    seat_ids = catalog_data["seat_ids"]
    return {
        **catalog_data,
        "show_id": show.id,
        "seat_ids": seat_ids,
        "standard_seat_ids": seat_ids[:5],
        "vip_seat_ids": seat_ids[5:],
    }


@pytest.fixture
def test_show_id(seeded_test_data):
    """Get the show ID from seeded test data."""
    return seeded_test_data["show_id"]
