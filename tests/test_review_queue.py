"""Tests for the verification review queue."""

from datetime import timedelta
from decimal import Decimal

from safe_meet.domain.sessions import SessionStatus
from tests.conftest import FrozenClock


def test_pending_reviews_oldest_first(container, clock: FrozenClock) -> None:
    service = container.session_service
    first = service.create_session(amount=Decimal("10"), currency="EUR")
    second = service.create_session(amount=Decimal("20"), currency="EUR")
    service.create_session(amount=Decimal("30"), currency="EUR")
    service.submit_artifact(second.id, "uploads/second.jpg")
    clock.advance(timedelta(minutes=5))
    service.submit_artifact(first.id, "uploads/first.jpg")

    items = container.review_service.list_pending()

    assert [item.session_id for item in items] == [second.id, first.id]
    assert items[0].artifact_ref == "uploads/second.jpg"
    assert items[0].gesture == "peace"
    assert items[0].display_icon == "✌️"
    assert items[0].amount == Decimal("20")


def test_decided_sessions_leave_the_queue(container) -> None:
    service = container.session_service
    approved = service.create_session(amount=Decimal("10"), currency="EUR")
    rejected = service.create_session(amount=Decimal("10"), currency="EUR")
    service.submit_artifact(approved.id, "uploads/a.jpg")
    service.submit_artifact(rejected.id, "uploads/b.jpg")

    container.review_service.approve(approved.id, reviewer="ops")
    container.review_service.reject(rejected.id, reason="Wrong gesture", reviewer="ops")

    assert container.review_service.list_pending() == []
    assert service.get_session(approved.id).verification.reviewer == "ops"
    assert (
        service.get_session(rejected.id).status == SessionStatus.PENDING_VERIFICATION
    )


def test_expired_submissions_are_not_listed(container, clock: FrozenClock) -> None:
    service = container.session_service
    session = service.create_session(amount=Decimal("10"), currency="EUR")
    service.submit_artifact(session.id, "uploads/a.jpg")
    clock.advance(timedelta(hours=25))

    assert container.review_service.list_pending() == []
    assert service.get_session(session.id).status == SessionStatus.EXPIRED


def test_pending_reviews_respect_limit(container) -> None:
    service = container.session_service
    for _ in range(3):
        session = service.create_session(amount=Decimal("10"), currency="EUR")
        service.submit_artifact(session.id, "uploads/a.jpg")

    assert len(container.review_service.list_pending(limit=2)) == 2
