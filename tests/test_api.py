import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.core.database import get_session
from app.main import app

INDOOR_1 = "Badminton Court 1 (Indoor)"


@pytest_asyncio.fixture
async def client(session_factory, facility):
    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


def booking_payload(court_id, start="2024-01-03T10:00:00", end="2024-01-03T11:00:00", **kw):
    payload = {
        "customer_name": "Dana",
        "customer_email": "dana@example.com",
        "start_at": start,
        "end_at": end,
        "court_id": court_id,
    }
    payload.update(kw)
    return payload


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_facility_config(client):
    response = await client.get("/api/v1/config")

    assert response.status_code == 200
    body = response.json()
    assert body["config"]["open_time"] == "06:00:00"
    assert body["config"]["slot_minutes"] == 60
    assert len(body["courts"]) == 4
    assert [c["name"] for c in body["coaches"]] == ["Coach A", "Coach B", "Coach C"]
    assert {e["name"] for e in body["equipment_types"]} == {"Racket", "Shoes"}


@pytest.mark.asyncio
async def test_availability(client):
    response = await client.get("/api/v1/availability", params={"date": "2024-01-03"})

    assert response.status_code == 200
    body = response.json()
    assert body["day"] == "2024-01-03"
    assert len(body["slots"]) == 16
    assert body["slots"][0]["start_at"] == "2024-01-03T06:00:00"


@pytest.mark.asyncio
@pytest.mark.parametrize("value", ["03-01-2024", "2024-1-3", "2024-02-30", "tomorrow"])
async def test_availability_rejects_bad_dates(client, value):
    response = await client.get("/api/v1/availability", params={"date": value})

    assert response.status_code == 400
    assert response.json()["error"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_price_quote_applies_seeded_rules(client, facility):
    response = await client.post(
        "/api/v1/price-quote",
        json={
            "start_at": "2024-01-06T19:00:00",
            "end_at": "2024-01-06T20:00:00",
            "court_id": facility["courts"][INDOOR_1],
            "equipment": [{"equipment_type_id": facility["equipment"]["Racket"], "quantity": 2}],
        },
    )

    assert response.status_code == 200
    breakdown = response.json()["price_breakdown"]
    # 600 -> peak 780 -> weekend 936 -> indoor 1123.2
    assert breakdown["court"]["total_cents"] == 1123
    assert [r["name"] for r in breakdown["court"]["applied_rules"]] == [
        "Peak hours (6-9 PM)",
        "Weekend premium",
        "Indoor court premium",
    ]
    assert breakdown["equipment"]["total_cents"] == 200
    assert breakdown["total_cents"] == 1323


@pytest.mark.asyncio
async def test_booking_lifecycle(client, facility):
    court_id = facility["courts"][INDOOR_1]

    created = await client.post("/api/v1/bookings", json=booking_payload(court_id))
    assert created.status_code == 201
    booking_id = created.json()["booking_id"]
    assert created.json()["price_total_cents"] == 720

    conflict = await client.post(
        "/api/v1/bookings",
        json=booking_payload(court_id, customer_email="other@example.com"),
    )
    assert conflict.status_code == 409
    assert conflict.json()["error"] == "RESOURCE_UNAVAILABLE"
    assert conflict.json()["path"] == "/api/v1/bookings"

    history = await client.get("/api/v1/bookings", params={"email": "DANA@example.com"})
    assert history.status_code == 200
    [booking] = history.json()["bookings"]
    assert booking["id"] == booking_id
    assert booking["status"] == "CONFIRMED"
    assert booking["court"]["name"] == INDOOR_1

    for _ in range(2):
        cancelled = await client.post(f"/api/v1/bookings/{booking_id}/cancel")
        assert cancelled.status_code == 200
        assert cancelled.json() == {"ok": True}

    history = await client.get("/api/v1/bookings", params={"email": "dana@example.com"})
    [booking] = history.json()["bookings"]
    assert booking["status"] == "CANCELLED"
    assert booking["court"] is None
    assert booking["price_total_cents"] == 720


@pytest.mark.asyncio
async def test_unknown_resources_and_bookings_are_404(client):
    response = await client.post("/api/v1/bookings", json=booking_payload(999))
    assert response.status_code == 404
    assert response.json()["error"] == "NOT_FOUND"

    response = await client.post("/api/v1/bookings/999/cancel")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_invalid_interval_is_400(client, facility):
    response = await client.post(
        "/api/v1/bookings",
        json=booking_payload(
            facility["courts"][INDOOR_1],
            start="2024-01-03T11:00:00",
            end="2024-01-03T10:00:00",
        ),
    )

    assert response.status_code == 400
    assert response.json()["error"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_malformed_body_is_422(client):
    response = await client.post("/api/v1/bookings", json={"customer_name": "Dana"})

    assert response.status_code == 422
    assert response.json()["error"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_waitlist_and_notifications(client, facility):
    court_id = facility["courts"][INDOOR_1]
    created = await client.post("/api/v1/bookings", json=booking_payload(court_id))

    joined = await client.post(
        "/api/v1/waitlist",
        json={
            "customer_name": "Sam",
            "customer_email": "sam@example.com",
            "start_at": "2024-01-03T10:00:00",
            "end_at": "2024-01-03T11:00:00",
            "preferred_surface": "INDOOR",
        },
    )
    assert joined.status_code == 201
    assert joined.json()["position"] == 1

    await client.post(f"/api/v1/bookings/{created.json()['booking_id']}/cancel")

    entries = await client.get("/api/v1/waitlist", params={"email": "sam@example.com"})
    assert entries.status_code == 200
    assert [e["status"] for e in entries.json()["entries"]] == ["NOTIFIED"]

    notifications = await client.get("/api/v1/notifications", params={"email": "sam@example.com"})
    assert notifications.status_code == 200
    [notification] = notifications.json()["notifications"]
    assert notification["type"] == "WAITLIST_AVAILABLE"
    assert notification["payload"]["preferred_surface"] == "INDOOR"
