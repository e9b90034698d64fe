from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

import valet.main as main_module
from fakes import FakeSession, make_booking, make_location, make_schedule
from valet.db.models import Booking, Schedule
from valet.main import app


client = TestClient(app)

FUTURE = datetime(2099, 3, 2, 10, 0, tzinfo=timezone.utc)
ADMIN_HEADERS = {"X-Admin-Key": "super-secret"}


@pytest.fixture
def fake_session(monkeypatch):
    session = FakeSession(locations=[make_location(1), make_location(2, is_active=False)])
    monkeypatch.setattr(main_module, "SessionLocal", lambda: session)
    monkeypatch.setenv("ENV", "prod")
    monkeypatch.setenv("ADMIN_API_KEY", "super-secret")
    return session


def _booking_payload(start=FUTURE, hours=1, location_id=1):
    return {
        "user_id": 7,
        "location_id": location_id,
        "start_time": start.isoformat(),
        "end_time": (start + timedelta(hours=hours)).isoformat(),
        "price": "30.00",
    }


def test_health():
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"ok": True}
    assert response.headers["x-request-id"]


def test_create_booking_then_conflict(fake_session):
    created = client.post("/v1/bookings", json=_booking_payload())
    assert created.status_code == 201
    booking = created.json()["data"]["booking"]
    assert booking["status"] == "PENDING"
    assert booking["price"] == "30.00"
    assert booking["duration_hours"] == 1

    overlapping = client.post(
        "/v1/bookings", json=_booking_payload(start=FUTURE + timedelta(minutes=30))
    )
    assert overlapping.status_code == 409
    assert overlapping.json() == {
        "ok": False,
        "error_code": "CONFLICT",
        "human_message": "Booking time slot is not available",
    }

    abutting = client.post("/v1/bookings", json=_booking_payload(start=FUTURE + timedelta(hours=1)))
    assert abutting.status_code == 201
    assert len(fake_session.store[Booking]) == 2


def test_create_booking_invalid_args(fake_session):
    response = client.post("/v1/bookings", json={"user_id": 7, "location_id": 1})

    assert response.status_code == 400
    assert response.json()["error_code"] == "INVALID_ARGS"
    assert response.json()["human_message"].startswith("Invalid args:")


def test_create_booking_unknown_and_inactive_location(fake_session):
    missing = client.post("/v1/bookings", json=_booking_payload(location_id=99))
    inactive = client.post("/v1/bookings", json=_booking_payload(location_id=2))

    assert missing.status_code == 404
    assert missing.json()["error_code"] == "NOT_FOUND"
    assert inactive.status_code == 400
    assert inactive.json()["error_code"] == "VALIDATION"


def test_booking_status_flow(fake_session):
    fake_session.store[Booking].append(make_booking(1, FUTURE, FUTURE + timedelta(hours=1)))

    confirmed = client.post("/v1/bookings/1/status", json={"status": "confirmed"})
    assert confirmed.status_code == 200
    assert confirmed.json()["data"]["booking"]["status"] == "CONFIRMED"

    reverted = client.post("/v1/bookings/1/status", json={"status": "PENDING"})
    assert reverted.status_code == 400
    assert reverted.json()["error_code"] == "INVALID_TRANSITION"

    unknown = client.post("/v1/bookings/1/status", json={"status": "PARKED"})
    assert unknown.status_code == 400
    assert unknown.json()["error_code"] == "INVALID_ARGS"

    cancelled = client.post("/v1/bookings/1/cancel")
    assert cancelled.json()["data"]["booking"]["status"] == "CANCELLED"
    again = client.post("/v1/bookings/1/cancel")
    assert again.status_code == 400
    assert again.json()["human_message"] == "Booking is already cancelled"


def test_get_and_patch_booking(fake_session):
    fake_session.store[Booking].extend(
        [
            make_booking(1, FUTURE, FUTURE + timedelta(hours=1)),
            make_booking(2, FUTURE + timedelta(hours=2), FUTURE + timedelta(hours=3)),
        ]
    )

    assert client.get("/v1/bookings/1").json()["data"]["booking"]["id"] == 1
    assert client.get("/v1/bookings/404").status_code == 404

    moved = client.patch(
        "/v1/bookings/2",
        json={"start_time": (FUTURE + timedelta(minutes=30)).isoformat()},
    )
    assert moved.status_code == 409
    assert moved.json()["human_message"] == "Updated booking time slot is not available"

    unknown_field = client.patch("/v1/bookings/2", json={"status": "CONFIRMED"})
    assert unknown_field.status_code == 400
    assert unknown_field.json()["error_code"] == "INVALID_ARGS"


def test_location_open_endpoint(fake_session):
    fake_session.store[Schedule].append(make_schedule(1, 1, "09:00", "18:00"))

    open_response = client.get("/v1/locations/1/open", params={"day_of_week": 1, "time": "10:00"})
    closed_response = client.get("/v1/locations/1/open", params={"day_of_week": 1, "time": "18:00"})

    assert open_response.json()["data"]["is_open"] is True
    assert closed_response.json()["data"]["is_open"] is False


def test_admin_auth_required(fake_session):
    response = client.get("/v1/admin/bookings")

    assert response.status_code == 401
    assert response.json()["detail"]["error_code"] == "INVALID_ADMIN_API_KEY"


def test_admin_auth_not_configured_outside_dev(monkeypatch):
    monkeypatch.setenv("ENV", "prod")
    monkeypatch.delenv("ADMIN_API_KEY", raising=False)

    response = client.get("/v1/admin/schedules")

    assert response.status_code == 401
    assert response.json()["detail"]["error_code"] == "ADMIN_AUTH_NOT_CONFIGURED"


def test_admin_list_bookings_with_pagination(fake_session):
    fake_session.store[Booking].extend(
        make_booking(i, FUTURE + timedelta(days=i), FUTURE + timedelta(days=i, hours=1))
        for i in range(1, 4)
    )

    response = client.get(
        "/v1/admin/bookings",
        params={"limit": 2, "page": 1, "sort_order": "asc"},
        headers=ADMIN_HEADERS,
    )

    body = response.json()["data"]
    assert response.status_code == 200
    assert [b["id"] for b in body["bookings"]] == [1, 2]
    assert body["pagination"]["total_pages"] == 2


def test_admin_status_change_to_same_status(fake_session):
    fake_session.store[Booking].append(
        make_booking(1, FUTURE, FUTURE + timedelta(hours=1), status="CONFIRMED")
    )

    response = client.patch(
        "/v1/admin/bookings/1/status", json={"status": "CONFIRMED"}, headers=ADMIN_HEADERS
    )

    assert response.status_code == 400
    assert response.json()["human_message"].startswith("Booking is already CONFIRMED")


def test_admin_create_schedule_and_duplicate(fake_session):
    payload = {"location_id": 1, "day_of_week": 1, "start_time": "09:00", "end_time": "18:00"}

    created = client.post("/v1/admin/schedules", json=payload, headers=ADMIN_HEADERS)
    duplicate = client.post("/v1/admin/schedules", json=payload, headers=ADMIN_HEADERS)

    assert created.status_code == 201
    assert created.json()["data"]["schedule"]["day_name"] == "Monday"
    assert duplicate.status_code == 409


def test_admin_bulk_schedules_partial_success(fake_session):
    fake_session.store[Schedule].append(make_schedule(1, 2, "09:00", "18:00"))
    entries = [
        {"day_of_week": day, "start_time": "08:00", "end_time": "20:00"} for day in (1, 2, 3)
    ]

    response = client.post(
        "/v1/admin/schedules/bulk",
        json={"location_id": 1, "schedules": entries},
        headers=ADMIN_HEADERS,
    )

    body = response.json()["data"]
    assert response.status_code == 207
    assert [s["day_of_week"] for s in body["successful"]] == [1, 3]
    assert body["failed"][0]["schedule"]["day_of_week"] == 2


def test_admin_bulk_schedules_all_created(fake_session):
    response = client.post(
        "/v1/admin/schedules/bulk",
        json={
            "location_id": 1,
            "schedules": [{"day_of_week": 0, "start_time": "10:00", "end_time": "16:00"}],
        },
        headers=ADMIN_HEADERS,
    )

    assert response.status_code == 201


def test_admin_delete_booking_and_location(fake_session):
    fake_session.store[Booking].append(
        make_booking(1, FUTURE, FUTURE + timedelta(hours=1), status="IN_PROGRESS")
    )

    in_progress = client.delete("/v1/admin/bookings/1", headers=ADMIN_HEADERS)
    blocked = client.delete("/v1/admin/locations/1", headers=ADMIN_HEADERS)

    assert in_progress.status_code == 400
    assert blocked.status_code == 400
    assert blocked.json()["human_message"] == "Cannot delete location with active bookings"

    allowed = client.delete("/v1/admin/locations/2", headers=ADMIN_HEADERS)
    assert allowed.status_code == 200
