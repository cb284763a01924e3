"""Domain models and transition table for booking sessions."""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import StrEnum

from safe_meet.domain.errors import InvalidTransition


class SessionStatus(StrEnum):
    """Lifecycle states of a booking session."""

    PENDING_VERIFICATION = "PENDING_VERIFICATION"
    VERIFICATION_SUBMITTED = "VERIFICATION_SUBMITTED"
    VERIFICATION_APPROVED = "VERIFICATION_APPROVED"
    LOCATION_SELECTED = "LOCATION_SELECTED"
    TIME_SELECTED = "TIME_SELECTED"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"


class SessionEvent(StrEnum):
    """Events that drive session transitions."""

    SUBMIT_ARTIFACT = "submit_artifact"
    REVIEW_APPROVE = "review_approve"
    REVIEW_REJECT = "review_reject"
    SELECT_LOCATION = "select_location"
    SELECT_SLOT = "select_slot"
    CONFIRM = "confirm"
    COMPLETE = "complete"
    CANCEL = "cancel"
    EXPIRE = "expire"


class ReviewState(StrEnum):
    """Review state of the verification artifact."""

    PENDING = "PENDING"
    UPLOADED = "UPLOADED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class SecurityLevel(StrEnum):
    """Informational security tier copied from checkout."""

    STANDARD = "standard"
    ENHANCED = "enhanced"
    PREMIUM = "premium"


TERMINAL_STATUSES = frozenset(
    {SessionStatus.COMPLETED, SessionStatus.CANCELLED, SessionStatus.EXPIRED}
)
MEETUP_STATUSES = frozenset(
    {SessionStatus.TIME_SELECTED, SessionStatus.CONFIRMED, SessionStatus.COMPLETED}
)
# Sessions whose confirmation code is live.
CODE_HOLDING_STATUSES = frozenset({SessionStatus.CONFIRMED, SessionStatus.COMPLETED})
PENDING_STATUSES = frozenset(
    {
        SessionStatus.PENDING_VERIFICATION,
        SessionStatus.VERIFICATION_SUBMITTED,
        SessionStatus.VERIFICATION_APPROVED,
        SessionStatus.LOCATION_SELECTED,
        SessionStatus.TIME_SELECTED,
    }
)
ACTIVE_STATUSES = PENDING_STATUSES | {SessionStatus.CONFIRMED}

TRANSITIONS: dict[tuple[SessionStatus, SessionEvent], SessionStatus] = {
    (
        SessionStatus.PENDING_VERIFICATION,
        SessionEvent.SUBMIT_ARTIFACT,
    ): SessionStatus.VERIFICATION_SUBMITTED,
    (
        SessionStatus.VERIFICATION_SUBMITTED,
        SessionEvent.REVIEW_APPROVE,
    ): SessionStatus.VERIFICATION_APPROVED,
    (
        SessionStatus.VERIFICATION_SUBMITTED,
        SessionEvent.REVIEW_REJECT,
    ): SessionStatus.PENDING_VERIFICATION,
    (
        SessionStatus.VERIFICATION_APPROVED,
        SessionEvent.SELECT_LOCATION,
    ): SessionStatus.LOCATION_SELECTED,
    (
        SessionStatus.LOCATION_SELECTED,
        SessionEvent.SELECT_LOCATION,
    ): SessionStatus.LOCATION_SELECTED,
    (
        SessionStatus.TIME_SELECTED,
        SessionEvent.SELECT_LOCATION,
    ): SessionStatus.LOCATION_SELECTED,
    (
        SessionStatus.LOCATION_SELECTED,
        SessionEvent.SELECT_SLOT,
    ): SessionStatus.TIME_SELECTED,
    (
        SessionStatus.TIME_SELECTED,
        SessionEvent.SELECT_SLOT,
    ): SessionStatus.TIME_SELECTED,
    (SessionStatus.TIME_SELECTED, SessionEvent.CONFIRM): SessionStatus.CONFIRMED,
    (SessionStatus.CONFIRMED, SessionEvent.COMPLETE): SessionStatus.COMPLETED,
}
for _status in ACTIVE_STATUSES:
    TRANSITIONS[(_status, SessionEvent.CANCEL)] = SessionStatus.CANCELLED
    TRANSITIONS[(_status, SessionEvent.EXPIRE)] = SessionStatus.EXPIRED


def next_status(status: SessionStatus, event: SessionEvent) -> SessionStatus:
    """Return the target status for an event or raise ``InvalidTransition``."""
    target = TRANSITIONS.get((status, event))
    if target is None:
        raise InvalidTransition(
            f"Cannot {event.value} a session in status {status.value}",
            status=status.value,
        )
    return target


@dataclass(frozen=True)
class VerificationRecord:
    """Gesture challenge and review progress for a session."""

    gesture: str
    review_state: ReviewState = ReviewState.PENDING
    artifact_ref: str | None = None
    submitted_at: datetime | None = None
    reviewed_at: datetime | None = None
    reviewer: str | None = None
    rejection_reason: str | None = None


@dataclass(frozen=True)
class MeetupRecord:
    """Chosen meetup slot; the code is set once the slot is committed."""

    location_id: str
    location_name: str
    day: date
    time: str
    staff_contact: str | None = None
    confirmation_code: str | None = None


@dataclass(frozen=True)
class BookingSession:
    """Aggregate root of the cash payment booking flow."""

    id: str
    status: SessionStatus
    amount: Decimal
    currency: str
    security_level: SecurityLevel
    verification: VerificationRecord
    created_at: datetime
    expires_at: datetime
    buyer_context: dict[str, object]
    location_id: str | None = None
    meetup: MeetupRecord | None = None
    updated_at: datetime | None = None
    version: int = 0

    @property
    def is_terminal(self) -> bool:
        """Return whether the session can no longer change."""
        return self.status in TERMINAL_STATUSES

    def is_past_deadline(self, now: datetime) -> bool:
        """Return whether the session deadline has passed."""
        return now > self.expires_at
