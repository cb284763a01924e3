"""Operator-facing verification review queue."""

from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal

from safe_meet.domain.gestures import gesture_by_key
from safe_meet.domain.sessions import BookingSession, SessionStatus
from safe_meet.services.sessions import BookingSessionService, SessionRepository

_EPOCH = datetime.min.replace(tzinfo=UTC)


@dataclass(frozen=True)
class ReviewItem:
    """A submitted verification photo awaiting a decision."""

    session_id: str
    artifact_ref: str
    gesture: str
    display_icon: str
    instruction_text: str
    submitted_at: datetime | None
    expires_at: datetime
    amount: Decimal
    currency: str
    security_level: str


@dataclass
class ReviewQueueService:
    """Lists pending verifications and records reviewer decisions."""

    session_repository: SessionRepository
    session_service: BookingSessionService

    def list_pending(self, limit: int = 50) -> list[ReviewItem]:
        """Return submitted sessions, oldest submission first."""
        sessions = self.session_repository.list_sessions(
            statuses={SessionStatus.VERIFICATION_SUBMITTED}
        )
        items = []
        for session in sessions:
            current = self.session_service.get_session(session.id)
            if current.status != SessionStatus.VERIFICATION_SUBMITTED:
                continue
            items.append(_to_item(current))
        items.sort(key=lambda item: item.submitted_at or _EPOCH)
        return items[:limit]

    def approve(self, session_id: str, reviewer: str) -> BookingSession:
        """Approve a submitted verification."""
        return self.session_service.review_approve(session_id, reviewer)

    def reject(self, session_id: str, reason: str, reviewer: str) -> BookingSession:
        """Reject a submitted verification with a reason for the buyer."""
        return self.session_service.review_reject(session_id, reason, reviewer)


def _to_item(session: BookingSession) -> ReviewItem:
    challenge = gesture_by_key(session.verification.gesture)
    return ReviewItem(
        session_id=session.id,
        artifact_ref=session.verification.artifact_ref or "",
        gesture=challenge.gesture,
        display_icon=challenge.display_icon,
        instruction_text=challenge.instruction_text,
        submitted_at=session.verification.submitted_at,
        expires_at=session.expires_at,
        amount=session.amount,
        currency=session.currency,
        security_level=session.security_level.value,
    )
