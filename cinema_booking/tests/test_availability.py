from decimal import Decimal

import pytest

from cinema_booking.crud.show import get_show_or_raise
from cinema_booking.exceptions import InvalidRequestError, NotFoundError
from cinema_booking.seat_store import SeatState


async def test_all_seats_free_before_any_booking(seeded_test_data, db_session, availability):
    show_id = seeded_test_data["show_id"]
    assert await availability.available_seats(db_session, show_id) == set(seeded_test_data["seat_ids"])
    status = await availability.seat_status(db_session, show_id, seeded_test_data["seat_ids"][0])
    assert status.state == SeatState.FREE
    assert status.booking_id is None


async def test_seat_map_follows_layout_with_prices(seeded_test_data, db_session, availability, booking_engine):
    show_id = seeded_test_data["show_id"]
    held_seat_id = seeded_test_data["vip_seat_ids"][0]
    await booking_engine.start_booking(db_session, show_id, [held_seat_id])

    seat_map = await availability.seat_map(db_session, show_id)

    assert [entry["seat_id"] for entry in seat_map] == seeded_test_data["seat_ids"]
    assert seat_map[0]["name"] == "A1"
    assert seat_map[0]["price"] == Decimal("100.00")
    assert seat_map[5]["name"] == "B1"
    assert seat_map[5]["price"] == Decimal("150.00")
    states = {entry["seat_id"]: entry["state"] for entry in seat_map}
    assert states[held_seat_id] == SeatState.HELD
    assert sum(state == SeatState.FREE for state in states.values()) == 9


async def test_expired_hold_reads_as_free(seeded_test_data, db_session, availability, booking_engine, clock):
    show_id = seeded_test_data["show_id"]
    seat_id = seeded_test_data["seat_ids"][0]
    await booking_engine.start_booking(db_session, show_id, [seat_id], hold_duration_seconds=30)

    clock.advance(seconds=29)
    assert seat_id not in await availability.available_seats(db_session, show_id)

    clock.advance(seconds=1)
    assert seat_id in await availability.available_seats(db_session, show_id)
    status = await availability.seat_status(db_session, show_id, seat_id)
    assert status.state == SeatState.FREE


async def test_booked_out_show_has_no_free_seats(seeded_test_data, db_session, availability, booking_engine):
    show_id = seeded_test_data["show_id"]
    booking = await booking_engine.start_booking(db_session, show_id, seeded_test_data["seat_ids"])
    await booking_engine.confirm_booking(db_session, booking.id)

    show = await get_show_or_raise(db_session, show_id)
    assert not await availability.has_free_seats(db_session, show)
    assert await availability.available_seats(db_session, show_id) == set()


async def test_seat_status_of_seat_outside_room(seeded_test_data, db_session, availability):
    with pytest.raises(InvalidRequestError) as exc_info:
        await availability.seat_status(db_session, seeded_test_data["show_id"], 999999)
    assert exc_info.value.seat_ids == [999999]


async def test_unknown_show(db_session, availability):
    with pytest.raises(NotFoundError):
        await availability.available_seats(db_session, 999999)
    with pytest.raises(NotFoundError):
        await availability.seat_map(db_session, 999999)
