"""
Integration tests for the REST API endpoints.

Uses an in-memory SQLite database and a recording notification sink in
place of Redis.
"""

import pytest
from httpx import AsyncClient

from rideshare.domain.enums import NotificationType
from rideshare.infrastructure.repositories import RideRepository
from tests.conftest import (
    ADMIN,
    DRIVER,
    OTHER_DRIVER,
    RIDER,
    STRANGER,
    auth_headers,
)

RIDE_BODY = {
    "pickup_lat": 12.9716,
    "pickup_lng": 77.5946,
    "dropoff_lat": 12.9352,
    "dropoff_lng": 77.6245,
}


async def _request_ride(client: AsyncClient, **extra) -> dict:
    resp = await client.post(
        "/api/v1/rides", json={**RIDE_BODY, **extra}, headers=auth_headers(RIDER)
    )
    assert resp.status_code == 201
    return resp.json()


async def _move(client: AsyncClient, ride_id: str, status: str, principal):
    return await client.patch(
        f"/api/v1/rides/{ride_id}/status",
        json={"status": status},
        headers=auth_headers(principal),
    )


# ── Basics ────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    resp = await client.get("/api/v1/admin/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_missing_token_is_rejected(client: AsyncClient):
    resp = await client.post("/api/v1/rides", json=RIDE_BODY)
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_garbage_token_is_rejected(client: AsyncClient):
    resp = await client.get(
        "/api/v1/rides", headers={"Authorization": "Bearer not-a-jwt"}
    )
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_create_ride(client: AsyncClient):
    data = await _request_ride(client, seats_requested=2)
    assert data["status"] == "PENDING"
    assert data["rider_id"] == RIDER.id
    assert data["driver_id"] is None
    assert data["seats_requested"] == 2
    assert 4.0 < data["distance_km"] < 6.0
    assert set(data["timestamps"]) == {"PENDING"}


@pytest.mark.asyncio
async def test_drivers_cannot_request_rides(client: AsyncClient):
    resp = await client.post("/api/v1/rides", json=RIDE_BODY, headers=auth_headers(DRIVER))
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_invalid_coordinates(client: AsyncClient):
    resp = await client.post(
        "/api/v1/rides",
        json={**RIDE_BODY, "pickup_lat": 999},
        headers=auth_headers(RIDER),
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_idempotency_key(client: AsyncClient):
    first = await _request_ride(client, idempotency_key="unique-key-123")
    second = await _request_ride(client, idempotency_key="unique-key-123")
    assert first["id"] == second["id"]


@pytest.mark.asyncio
async def test_get_ride_not_found(client: AsyncClient):
    resp = await client.get("/api/v1/rides/nope", headers=auth_headers(RIDER))
    assert resp.status_code == 404
    assert resp.json()["code"] == "not_found"


@pytest.mark.asyncio
async def test_strangers_cannot_view_ride(client: AsyncClient):
    ride = await _request_ride(client)
    resp = await client.get(f"/api/v1/rides/{ride['id']}", headers=auth_headers(STRANGER))
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_open_rides_for_drivers(client: AsyncClient):
    ride = await _request_ride(client)
    resp = await client.get("/api/v1/rides/open", headers=auth_headers(DRIVER))
    assert resp.status_code == 200
    assert [r["id"] for r in resp.json()] == [ride["id"]]

    resp = await client.get("/api/v1/rides/open", headers=auth_headers(RIDER))
    assert resp.status_code == 403


# ── Lifecycle ─────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_full_lifecycle(client: AsyncClient, sink):
    ride = await _request_ride(client)
    ride_id = ride["id"]

    resp = await _move(client, ride_id, "ACCEPTED", DRIVER)
    assert resp.status_code == 200
    body = resp.json()
    assert body["accepted"] is True
    assert body["new_status"] == "ACCEPTED"
    assert body["ride"]["driver_id"] == DRIVER.id
    assert body["notification"]["type"] == "ride_accepted"
    assert body["notification"]["target_user_id"] == RIDER.id

    assert (await _move(client, ride_id, "IN_PROGRESS", DRIVER)).status_code == 200
    resp = await _move(client, ride_id, "COMPLETED", DRIVER)
    assert resp.status_code == 200
    assert resp.json()["notification"]["rateable"] is True
    assert set(resp.json()["ride"]["timestamps"]) == {
        "PENDING",
        "ACCEPTED",
        "IN_PROGRESS",
        "COMPLETED",
    }

    assert [n.type for n in sink.published] == [
        NotificationType.RIDE_ACCEPTED,
        NotificationType.RIDE_STARTED,
        NotificationType.RIDE_COMPLETED,
    ]


@pytest.mark.asyncio
async def test_rider_cannot_accept(client: AsyncClient, sink):
    ride = await _request_ride(client)
    resp = await _move(client, ride["id"], "ACCEPTED", RIDER)
    assert resp.status_code == 403
    assert resp.json()["code"] == "unauthorized"
    assert sink.published == []

    resp = await client.get(f"/api/v1/rides/{ride['id']}", headers=auth_headers(RIDER))
    assert resp.json()["driver_id"] is None


@pytest.mark.asyncio
async def test_second_driver_cannot_take_accepted_ride(client: AsyncClient):
    ride = await _request_ride(client)
    assert (await _move(client, ride["id"], "ACCEPTED", DRIVER)).status_code == 200

    resp = await _move(client, ride["id"], "ACCEPTED", OTHER_DRIVER)
    assert resp.status_code == 400
    assert resp.json()["code"] == "noop_transition"

    resp = await client.get(f"/api/v1/rides/{ride['id']}", headers=auth_headers(RIDER))
    assert resp.json()["driver_id"] == DRIVER.id


@pytest.mark.asyncio
async def test_skipping_a_step_is_invalid(client: AsyncClient):
    ride = await _request_ride(client)
    resp = await _move(client, ride["id"], "COMPLETED", DRIVER)
    assert resp.status_code == 409
    assert resp.json()["code"] == "invalid_transition"


@pytest.mark.asyncio
async def test_cancel_in_progress_ride(client: AsyncClient, sink):
    ride = await _request_ride(client)
    ride_id = ride["id"]
    await _move(client, ride_id, "ACCEPTED", DRIVER)
    await _move(client, ride_id, "IN_PROGRESS", DRIVER)

    resp = await client.patch(
        f"/api/v1/rides/{ride_id}/cancel",
        json={"reason": "Feeling unwell"},
        headers=auth_headers(RIDER),
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["new_status"] == "CANCELLED"
    assert body["ride"]["cancel_reason"] == "Feeling unwell"
    assert body["ride"]["driver_id"] == DRIVER.id
    assert body["notification"]["type"] == "ride_canceled"
    assert body["notification"]["target_user_id"] == DRIVER.id

    resp = await client.patch(
        f"/api/v1/rides/{ride_id}/cancel", headers=auth_headers(RIDER)
    )
    assert resp.status_code in (400, 409)
    assert len(sink.published) == 3


@pytest.mark.asyncio
async def test_admin_can_cancel(client: AsyncClient):
    ride = await _request_ride(client)
    resp = await client.patch(
        f"/api/v1/rides/{ride['id']}/cancel", headers=auth_headers(ADMIN)
    )
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_progress_view(client: AsyncClient):
    ride = await _request_ride(client)
    await _move(client, ride["id"], "ACCEPTED", DRIVER)
    await _move(client, ride["id"], "IN_PROGRESS", DRIVER)

    resp = await client.get(
        f"/api/v1/rides/{ride['id']}/progress", headers=auth_headers(RIDER)
    )
    assert resp.status_code == 200
    steps = resp.json()
    assert [s["key"] for s in steps] == ["PENDING", "ACCEPTED", "IN_PROGRESS", "COMPLETED"]
    assert [s["is_completed"] for s in steps] == [True, True, False, False]
    assert steps[2]["is_current"] is True
    assert steps[3]["is_future"] is True
    assert steps[1]["actor"] == "driver"


# ── Ratings & notifications ──────────────────────────────────────────


async def _completed_ride(client: AsyncClient) -> str:
    ride = await _request_ride(client)
    for status in ("ACCEPTED", "IN_PROGRESS", "COMPLETED"):
        assert (await _move(client, ride["id"], status, DRIVER)).status_code == 200
    return ride["id"]


@pytest.mark.asyncio
async def test_rider_rates_driver(client: AsyncClient):
    ride_id = await _completed_ride(client)
    resp = await client.post(
        f"/api/v1/rides/{ride_id}/ratings",
        json={"value": 4.5, "comment": "Smooth ride"},
        headers=auth_headers(RIDER),
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["to_user_id"] == DRIVER.id
    assert body["type"] == "RIDER_TO_DRIVER"

    ride = await client.get(f"/api/v1/rides/{ride_id}", headers=auth_headers(RIDER))
    assert ride.json()["rider_rated"] is True
    assert ride.json()["status"] == "COMPLETED"

    again = await client.post(
        f"/api/v1/rides/{ride_id}/ratings", json={"value": 1}, headers=auth_headers(RIDER)
    )
    assert again.status_code == 409


@pytest.mark.asyncio
async def test_cannot_rate_unfinished_ride(client: AsyncClient):
    ride = await _request_ride(client)
    resp = await client.post(
        f"/api/v1/rides/{ride['id']}/ratings", json={"value": 5}, headers=auth_headers(RIDER)
    )
    assert resp.status_code == 409
    assert resp.json()["code"] == "rating_not_allowed"


@pytest.mark.asyncio
async def test_rating_out_of_range(client: AsyncClient):
    ride_id = await _completed_ride(client)
    resp = await client.post(
        f"/api/v1/rides/{ride_id}/ratings", json={"value": 6}, headers=auth_headers(RIDER)
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_notification_feed(client: AsyncClient):
    ride = await _request_ride(client)
    await _move(client, ride["id"], "ACCEPTED", DRIVER)

    resp = await client.get("/api/v1/notifications", headers=auth_headers(RIDER))
    assert resp.status_code == 200
    feed = resp.json()
    assert len(feed) == 1
    assert feed[0]["type"] == "ride_accepted"
    assert feed[0]["ride_id"] == ride["id"]

    resp = await client.get("/api/v1/notifications", headers=auth_headers(DRIVER))
    assert resp.json() == []


# ── Admin ─────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_admin_lists_rides_by_status(client: AsyncClient):
    first = await _request_ride(client)
    await _request_ride(client)
    await _move(client, first["id"], "ACCEPTED", DRIVER)

    resp = await client.get(
        "/api/v1/admin/rides", params={"status": "ACCEPTED"}, headers=auth_headers(ADMIN)
    )
    assert resp.status_code == 200
    assert [r["id"] for r in resp.json()] == [first["id"]]

    resp = await client.get("/api/v1/admin/rides", headers=auth_headers(RIDER))
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_my_rides(client: AsyncClient):
    ride = await _request_ride(client)
    await _move(client, ride["id"], "ACCEPTED", DRIVER)

    for principal in (RIDER, DRIVER):
        resp = await client.get("/api/v1/rides", headers=auth_headers(principal))
        assert [r["id"] for r in resp.json()] == [ride["id"]]

    resp = await client.get("/api/v1/rides", headers=auth_headers(OTHER_DRIVER))
    assert resp.json() == []


# ── Idempotency is per rider ─────────────────────────────────────────


@pytest.mark.asyncio
async def test_idempotency_key_is_scoped_to_rider(client: AsyncClient):
    mine = await _request_ride(client, idempotency_key="shared-key")

    resp = await client.post(
        "/api/v1/rides",
        json={**RIDE_BODY, "pickup_lat": 12.9121, "idempotency_key": "shared-key"},
        headers=auth_headers(STRANGER),
    )
    assert resp.status_code == 201
    theirs = resp.json()
    assert theirs["rider_id"] == STRANGER.id
    assert theirs["id"] != mine["id"]
    assert theirs["pickup_lat"] == 12.9121

    again = await _request_ride(client, idempotency_key="shared-key")
    assert again["id"] == mine["id"]


@pytest.mark.asyncio
async def test_concurrent_duplicate_insert_returns_existing_ride(
    client: AsyncClient, monkeypatch
):
    first = await _request_ride(client, idempotency_key="retry-key")

    # The lookup misses as it would for a request racing the first insert.
    lookup = RideRepository.get_by_idempotency_key
    calls = []

    async def racing_lookup(self, key, *, rider_id):
        calls.append(key)
        if len(calls) == 1:
            return None
        return await lookup(self, key, rider_id=rider_id)

    monkeypatch.setattr(RideRepository, "get_by_idempotency_key", racing_lookup)

    second = await _request_ride(client, idempotency_key="retry-key")
    assert second["id"] == first["id"]
    assert len(calls) == 2

    resp = await client.get("/api/v1/rides", headers=auth_headers(RIDER))
    assert len(resp.json()) == 1


# ── Fares and search ──────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_ride_carries_quoted_fare(client: AsyncClient):
    single = await _request_ride(client)
    assert single["currency"] == "INR"
    # 50 base + ~5.2 km x 15 per km
    assert 120.0 < single["price"] < 140.0
    assert single["price_display"] == f"₹{single['price']:,.2f}"

    double = await _request_ride(client, seats_requested=2)
    assert double["price"] == pytest.approx(single["price"] * 1.8, abs=0.02)


async def _request_at(client: AsyncClient, pickup, dropoff, seats=1) -> dict:
    return await _request_ride(
        client,
        pickup_lat=pickup[0],
        pickup_lng=pickup[1],
        dropoff_lat=dropoff[0],
        dropoff_lng=dropoff[1],
        seats_requested=seats,
    )


@pytest.mark.asyncio
async def test_open_rides_search(client: AsyncClient):
    mg_road, koramangala = (12.9716, 77.5946), (12.9352, 77.6245)
    airport = (13.1986, 77.7066)

    city = await _request_at(client, mg_road, koramangala)
    to_airport = await _request_at(client, koramangala, airport, seats=3)

    async def search(**params):
        resp = await client.get(
            "/api/v1/rides/open", params=params, headers=auth_headers(DRIVER)
        )
        assert resp.status_code == 200
        return [r["id"] for r in resp.json()]

    assert await search(near_lat=mg_road[0], near_lng=mg_road[1], radius_km=2) == [
        city["id"]
    ]
    assert await search(dest_lat=airport[0], dest_lng=airport[1]) == [to_airport["id"]]
    assert await search(max_seats=2) == [city["id"]]
    assert await search(sort_by="fare", descending="true") == [
        to_airport["id"],
        city["id"],
    ]
    assert await search(min_fare=city["price"] + 1) == [to_airport["id"]]
    assert await search(requested_on="2000-01-01") == []


@pytest.mark.asyncio
async def test_open_rides_search_needs_both_coordinates(client: AsyncClient):
    resp = await client.get(
        "/api/v1/rides/open", params={"near_lat": 12.97}, headers=auth_headers(DRIVER)
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_error_shape_is_documented(client: AsyncClient):
    schema = (await client.get("/openapi.json")).json()
    assert "ErrorResponse" in schema["components"]["schemas"]
    status_route = schema["paths"]["/api/v1/rides/{ride_id}/status"]["patch"]
    assert {"400", "403", "404", "409"} <= set(status_route["responses"])
