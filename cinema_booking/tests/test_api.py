from datetime import timedelta

import pytest
from httpx import ASGITransport, AsyncClient

from cinema_booking.app import create_app
from cinema_booking.db.session import getDB_session


@pytest.fixture
async def client(db_session_factory, seat_store, clock):
    app = create_app(seat_store=seat_store, clock=clock)

    async def override_session():
        async with db_session_factory() as session:
            yield session

    app.dependency_overrides[getDB_session] = override_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


async def test_health(client):
    response = await client.get("/api/v1/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


async def test_catalog_and_show_flow(client, clock):
    cinema = (await client.post("/api/v1/cinema", json={"name": "Rex"})).json()
    kind = (await client.post("/api/v1/seat-kind", json={"title": "vip", "premium_percentage": 50})).json()
    room = (await client.post("/api/v1/show-room", json={
        "cinema_id": cinema["id"],
        "name": "Screen 1",
        "seats": [{"name": "A1", "seat_kind_id": kind["id"]}, {"name": "A2", "seat_kind_id": kind["id"]}],
    })).json()
    film = (await client.post("/api/v1/film", json={"name": "Heat", "duration_mins": 170})).json()

    layout = (await client.get(f"/api/v1/show-room/{room['id']}/layout")).json()
    assert [seat["name"] for seat in layout] == ["A1", "A2"]

    start = (clock.now + timedelta(days=1)).isoformat()
    response = await client.post("/api/v1/show", json={
        "film_id": film["id"], "show_room_id": room["id"], "start_time": start, "per_seat_price": "10.00"})
    assert response.status_code == 200
    show = response.json()

    response = await client.post("/api/v1/show", json={
        "film_id": film["id"], "show_room_id": room["id"], "start_time": start, "per_seat_price": "10.00"})
    assert response.status_code == 409
    assert response.json()["conflicting_show_id"] == show["id"]

    seat_map = (await client.get(f"/api/v1/show/{show['id']}/seat-layout")).json()
    assert [entry["price"] for entry in seat_map] == ["15.00", "15.00"]

    shows = (await client.get("/api/v1/show", params={"film_id": film["id"]})).json()
    assert [s["id"] for s in shows] == [show["id"]]

    premium = (await client.post(f"/api/v1/seat-kind/{kind['id']}/premium", json={"premium_percentage": 60})).json()
    assert premium["premium_percentage"] == 60
    assert (await client.get(f"/api/v1/seat-kind/{kind['id']}/premium")).json()["premium_percentage"] == 60


async def test_booking_lifecycle(client, seeded_test_data):
    show_id = seeded_test_data["show_id"]
    seat_ids = seeded_test_data["seat_ids"][:2]

    response = await client.post("/api/v1/booking", json={"show_id": show_id, "seat_ids": seat_ids})
    assert response.status_code == 200
    booking = response.json()
    assert booking["status"] == "PENDING"
    assert booking["seat_ids"] == sorted(seat_ids)
    assert booking["total_amount"] == "200.00"

    available = (await client.get(f"/api/v1/show/{show_id}/available-seats")).json()
    assert not set(seat_ids) & set(available["seat_ids"])

    response = await client.post("/api/v1/booking", json={"show_id": show_id, "seat_ids": seat_ids[1:]})
    assert response.status_code == 409
    assert response.json()["seat_ids"] == [seat_ids[1]]

    response = await client.post(f"/api/v1/booking/{booking['id']}/confirm")
    assert response.status_code == 200
    assert response.json()["status"] == "CONFIRMED"

    seat = (await client.get(f"/api/v1/show/{show_id}/seat/{seat_ids[0]}")).json()
    assert seat["state"] == "BOOKED"
    assert seat["booking_id"] == booking["id"]

    response = await client.post(f"/api/v1/booking/{booking['id']}/cancel")
    assert response.status_code == 200
    assert response.json()["cancel_reason"] == "REQUESTED"

    response = await client.post(f"/api/v1/booking/{booking['id']}/cancel")
    assert response.status_code == 409
    assert response.json()["status"] == "CANCELLED"


async def test_expired_booking_is_gone(client, seeded_test_data, clock):
    response = await client.post("/api/v1/booking", json={
        "show_id": seeded_test_data["show_id"],
        "seat_ids": seeded_test_data["seat_ids"][:1],
        "hold_duration_seconds": 60,
    })
    booking_id = response.json()["id"]

    clock.advance(minutes=5)

    response = await client.post(f"/api/v1/booking/{booking_id}/confirm")
    assert response.status_code == 410
    assert response.json()["booking_id"] == booking_id
    assert (await client.get(f"/api/v1/booking/{booking_id}")).json()["status"] == "CANCELLED"


async def test_expire_stale_holds_endpoint(client, seeded_test_data, clock):
    await client.post("/api/v1/booking", json={
        "show_id": seeded_test_data["show_id"],
        "seat_ids": seeded_test_data["seat_ids"][:3],
        "hold_duration_seconds": 60,
    })
    clock.advance(minutes=2)

    response = await client.post("/api/v1/booking/expire-stale-holds")

    assert response.status_code == 200
    assert response.json() == {"released": 3}


async def test_idempotency_header(client, seeded_test_data):
    payload = {"show_id": seeded_test_data["show_id"], "seat_ids": seeded_test_data["seat_ids"][:1]}
    headers = {"X-Idempotency-Key": "checkout-42"}

    first = (await client.post("/api/v1/booking", json=payload, headers=headers)).json()
    second = (await client.post("/api/v1/booking", json=payload, headers=headers)).json()

    assert first["id"] == second["id"]


async def test_available_only_hides_booked_out_shows(client, seeded_test_data):
    show_id = seeded_test_data["show_id"]
    booking = (await client.post("/api/v1/booking", json={
        "show_id": show_id, "seat_ids": seeded_test_data["seat_ids"]})).json()
    await client.post(f"/api/v1/booking/{booking['id']}/confirm")

    assert [s["id"] for s in (await client.get("/api/v1/show")).json()] == [show_id]
    assert (await client.get("/api/v1/show", params={"available_only": True})).json() == []


@pytest.mark.parametrize("path, status", [
    ("/api/v1/film/999999", 404),
    ("/api/v1/show/999999", 404),
    ("/api/v1/booking/999999", 404),
    ("/api/v1/cinema/999999", 404),
])
async def test_not_found_mapping(client, path, status):
    response = await client.get(path)
    assert response.status_code == status
    assert "error" in response.json()


async def test_invalid_request_mapping(client, seeded_test_data):
    response = await client.post("/api/v1/booking", json={"show_id": seeded_test_data["show_id"], "seat_ids": []})
    assert response.status_code == 422
    assert "error" in response.json()


async def test_delete_film_endpoint(client, seeded_test_data):
    response = await client.delete(f"/api/v1/film/{seeded_test_data['film_id']}")
    assert response.status_code == 200
    assert response.json() == {"deleted_show_ids": [seeded_test_data["show_id"]]}
    assert (await client.get(f"/api/v1/show/{seeded_test_data['show_id']}")).status_code == 404


async def test_booking_tells_where_the_seats_are(client, seeded_test_data):
    show_id = seeded_test_data["show_id"]
    s = seeded_test_data["seat_ids"]

    response = await client.post("/api/v1/booking", json={"show_id": show_id, "seat_ids": [s[6], s[0]]})
    assert response.status_code == 200
    booking = response.json()

    assert booking["show_room_id"] == seeded_test_data["show_room_id"]
    assert booking["show_room_name"] == "Screen 1"
    assert booking["seats"] == [
        {"seat_id": s[0], "name": "A1", "price": "100.00"},
        {"seat_id": s[6], "name": "B2", "price": "150.00"},
    ]
    assert booking["total_amount"] == "250.00"

    fetched = (await client.get(f"/api/v1/booking/{booking['id']}")).json()
    assert fetched["seats"] == booking["seats"]


async def test_oversized_hold_duration_is_rejected(client, seeded_test_data):
    response = await client.post("/api/v1/booking", json={
        "show_id": seeded_test_data["show_id"],
        "seat_ids": seeded_test_data["seat_ids"][:1],
        "hold_duration_seconds": 10 ** 20,
    })

    assert response.status_code == 422
    assert "Hold duration" in response.json()["error"]
