"""Tests for the buyer-facing HTTP API."""

from datetime import timedelta

from fastapi.testclient import TestClient

from safe_meet.api.app import create_app
from tests.conftest import TODAY, FakeTelegramClient

ADMIN = {"X-Admin-Token": "admin-token", "X-Operator": "reviewer-1"}


def _approved(client: TestClient) -> str:
    created = client.post("/sessions", json={"amount": "49.90", "currency": "EUR"})
    session_id = created.json()["id"]
    client.post(
        f"/sessions/{session_id}/artifact", json={"artifact_ref": "uploads/p.jpg"}
    )
    client.post(f"/admin/reviews/{session_id}/approve", headers=ADMIN)
    return session_id


def test_health(container) -> None:
    client = TestClient(create_app(container))

    assert client.get("/health").json() == {"status": "ok"}


def test_booking_flow_over_http(
    container, telegram_client: FakeTelegramClient
) -> None:
    client = TestClient(create_app(container))

    created = client.post(
        "/sessions",
        json={"amount": "49.90", "buyer_context": {"order": "o-1"}},
    )
    assert created.status_code == 201
    body = created.json()
    assert body["status"] == "PENDING_VERIFICATION"
    assert body["verification"]["gesture"] == "peace"
    assert body["meetup"] is None
    session_id = body["id"]

    submitted = client.post(
        f"/sessions/{session_id}/artifact", json={"artifact_ref": "uploads/p.jpg"}
    )
    assert submitted.json()["status"] == "VERIFICATION_SUBMITTED"
    assert telegram_client.messages[0][0] == 100

    client.post(f"/admin/reviews/{session_id}/approve", headers=ADMIN)
    located = client.post(
        f"/sessions/{session_id}/location", json={"location_id": "mall"}
    )
    assert located.json()["status"] == "LOCATION_SELECTED"

    slotted = client.post(
        f"/sessions/{session_id}/slot",
        json={"day": TODAY.isoformat(), "time": "14:00"},
    )
    assert slotted.json()["meetup"]["confirmation_code"] is None

    confirmed = client.post(f"/sessions/{session_id}/confirm")
    assert confirmed.status_code == 200
    meetup = confirmed.json()["meetup"]
    assert confirmed.json()["status"] == "CONFIRMED"
    assert len(meetup["confirmation_code"]) == 6
    assert meetup["instructions"][-1] == (
        "Bring the exact amount in cash and a photo ID."
    )
    assert telegram_client.messages[-1][0] == 200

    fetched = client.get(f"/sessions/{session_id}")
    assert fetched.json()["meetup"]["confirmation_code"] == meetup["confirmation_code"]


def test_errors_carry_code_status_and_retry(container) -> None:
    client = TestClient(create_app(container))
    session_id = _approved(client)
    client.post(f"/sessions/{session_id}/location", json={"location_id": "mall"})

    response = client.post(
        f"/sessions/{session_id}/slot",
        json={"day": TODAY.isoformat(), "time": "10:30"},
    )

    assert response.status_code == 422
    assert response.json() == {
        "error": "lead_time_too_short",
        "message": "Meetups must be booked at least two hours ahead",
        "status": "LOCATION_SELECTED",
        "retry": "select_slot",
    }


def test_unknown_session_is_404(container) -> None:
    client = TestClient(create_app(container))

    response = client.get("/sessions/missing")

    assert response.status_code == 404
    assert response.json()["error"] == "session_not_found"


def test_invalid_transition_is_409(container) -> None:
    client = TestClient(create_app(container))
    created = client.post("/sessions", json={"amount": "10"})

    response = client.post(f"/sessions/{created.json()['id']}/confirm")

    assert response.status_code == 409
    assert response.json()["error"] == "invalid_transition"
    assert response.json()["status"] == "PENDING_VERIFICATION"


def test_request_validation(container) -> None:
    client = TestClient(create_app(container))

    assert client.post("/sessions", json={"amount": "0"}).status_code == 422
    created = client.post("/sessions", json={"amount": "10"})
    response = client.post(
        f"/sessions/{created.json()['id']}/slot",
        json={"day": TODAY.isoformat(), "time": "25:00"},
    )
    assert response.status_code == 422


def test_cancel_confirmed_notifies_staff(
    container, telegram_client: FakeTelegramClient
) -> None:
    client = TestClient(create_app(container))
    session_id = _approved(client)
    client.post(f"/sessions/{session_id}/location", json={"location_id": "mall"})
    client.post(
        f"/sessions/{session_id}/slot",
        json={"day": TODAY.isoformat(), "time": "14:00"},
    )
    client.post(f"/sessions/{session_id}/confirm")

    first = client.post(f"/sessions/{session_id}/cancel")
    second = client.post(f"/sessions/{session_id}/cancel")

    assert first.json()["status"] == "CANCELLED"
    assert second.status_code == 200
    assert "cancelled" in telegram_client.messages[-1][1]
    staff_messages = [text for chat, text in telegram_client.messages if chat == 200]
    assert len(staff_messages) == 2


def test_location_endpoints(container) -> None:
    client = TestClient(create_app(container))
    session_id = _approved(client)
    client.post(f"/sessions/{session_id}/location", json={"location_id": "mall"})
    client.post(
        f"/sessions/{session_id}/slot",
        json={"day": TODAY.isoformat(), "time": "14:00"},
    )
    client.post(f"/sessions/{session_id}/confirm")

    locations = client.get("/locations").json()["locations"]
    assert sorted(location["id"] for location in locations) == ["bank", "mall"]
    assert locations[0]["operating_hours"]["monday"] == [
        {"start": "10:00", "end": "20:00"}
    ]

    days = client.get("/locations/mall/days").json()["days"]
    assert days[0] == TODAY.isoformat()
    assert len(days) == 14

    slots = client.get(
        "/locations/mall/slots", params={"day": TODAY.isoformat()}
    ).json()["slots"]
    statuses = {slot["time"]: slot["status"] for slot in slots}
    assert statuses["10:00"] == "too_soon"
    assert statuses["14:00"] == "booked"
    assert statuses["14:30"] == "available"

    booked = client.get(
        "/locations/mall/booked-slots", params={"day": TODAY.isoformat()}
    ).json()
    assert booked["booked_times"] == ["14:00"]


def test_disabled_location_is_rejected(container) -> None:
    client = TestClient(create_app(container))

    response = client.get("/locations/closed/days")

    assert response.status_code == 422
    assert response.json()["error"] == "location_unavailable"


def test_listings_follow_session_deadline(container) -> None:
    client = TestClient(create_app(container))
    session_id = _approved(client)
    tomorrow = (TODAY + timedelta(days=1)).isoformat()

    days = client.get("/locations/mall/days", params={"session_id": session_id})
    slots = client.get(
        "/locations/mall/slots", params={"day": tomorrow, "session_id": session_id}
    )

    assert days.json()["days"] == [TODAY.isoformat(), tomorrow]
    statuses = {slot["status"] for slot in slots.json()["slots"]}
    assert statuses == {"after_session_expiry"}


def test_listing_with_unknown_session_is_404(container) -> None:
    client = TestClient(create_app(container))

    response = client.get("/locations/mall/days", params={"session_id": "missing"})

    assert response.status_code == 404
    assert response.json()["error"] == "session_not_found"


def test_non_positive_amount_is_rejected(container) -> None:
    client = TestClient(create_app(container))

    response = client.post("/sessions", json={"amount": "-5", "currency": "EUR"})

    assert response.status_code == 422
    assert container.session_service.session_repository.list_sessions() == []
