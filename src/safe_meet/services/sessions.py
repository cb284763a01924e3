"""Session state machine for Safe-Meet cash payments."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import date, timedelta
from decimal import Decimal
from typing import Protocol
from uuid import uuid4

from safe_meet.clock import Clock, utc_now
from safe_meet.domain.codes import (
    generate_confirmation_code,
    normalize_confirmation_code,
)
from safe_meet.domain.errors import (
    ArtifactRequired,
    BookingError,
    ConcurrentModification,
    DuplicateConfirmationCode,
    InvalidAmount,
    InvalidTransition,
    LeadTimeTooShort,
    OutsideOperatingHours,
    ReviewAlreadyDecided,
    SessionExpired,
    SessionNotFound,
    SlotBooked,
    SlotNoLongerAvailable,
    SlotOutsideBookingWindow,
)
from safe_meet.domain.gestures import GestureChallenge, generate_challenge
from safe_meet.domain.locations import Location, parse_slot_time
from safe_meet.domain.sessions import (
    CODE_HOLDING_STATUSES,
    BookingSession,
    MeetupRecord,
    ReviewState,
    SecurityLevel,
    SessionEvent,
    SessionStatus,
    VerificationRecord,
    next_status,
)
from safe_meet.domain.slots import SlotStatus, meetup_datetime
from safe_meet.services.audit import AuditService
from safe_meet.services.availability import AvailabilityService, SlotBookingRepository
from safe_meet.services.locations import LocationService

_logger = logging.getLogger(__name__)

_DECIDED_REVIEW_STATES = {ReviewState.APPROVED, ReviewState.REJECTED}


class SessionRepository(Protocol):
    """Persistence interface for booking sessions."""

    def create_session(self, session: BookingSession) -> BookingSession:
        """Persist a new session and return it."""

    def get_session(self, session_id: str) -> BookingSession | None:
        """Return a session by id, if present."""

    def update_session(
        self, session: BookingSession, expected_version: int
    ) -> BookingSession:
        """Store a session if its stored version still equals ``expected_version``.

        Raises ``ConcurrentModification`` when the stored version moved on.
        """

    def list_sessions(
        self,
        statuses: set[SessionStatus] | None = None,
        limit: int | None = None,
    ) -> list[BookingSession]:
        """Return sessions, newest first, optionally filtered by status."""

    def confirmation_code_in_use(self, code: str) -> bool:
        """Return whether a confirmed or completed session holds the code."""

    def find_by_confirmation_code(self, code: str) -> BookingSession | None:
        """Return the confirmed or completed session holding the code."""


@dataclass
class BookingSessionService:
    """Drives booking sessions through verification, slot choice and confirmation."""

    session_repository: SessionRepository
    slot_repository: SlotBookingRepository
    location_service: LocationService
    availability_service: AvailabilityService
    audit_service: AuditService
    session_ttl: timedelta = timedelta(hours=24)
    confirmation_code_attempts: int = 5
    clock: Clock = utc_now
    code_generator: Callable[[], str] = generate_confirmation_code
    challenge_generator: Callable[[], GestureChallenge] = generate_challenge

    def create_session(
        self,
        amount: Decimal,
        currency: str,
        buyer_context: dict[str, object] | None = None,
        security_level: SecurityLevel = SecurityLevel.STANDARD,
    ) -> BookingSession:
        """Create a session for a checkout and assign its gesture challenge."""
        if amount <= 0:
            raise InvalidAmount("Amount must be positive")
        now = self.clock()
        challenge = self.challenge_generator()
        session = BookingSession(
            id=str(uuid4()),
            status=SessionStatus.PENDING_VERIFICATION,
            amount=Decimal(amount),
            currency=currency.upper(),
            security_level=security_level,
            verification=VerificationRecord(gesture=challenge.gesture),
            created_at=now,
            expires_at=now + self.session_ttl,
            buyer_context=dict(buyer_context or {}),
            updated_at=now,
        )
        created = self.session_repository.create_session(session)
        self.audit_service.record_transition(
            actor="checkout",
            session_id=created.id,
            event_type="created",
            before=None,
            after=_audit_view(created),
        )
        _logger.info(
            "Booking session created: id=%s gesture=%s", created.id, challenge.gesture
        )
        return created

    def get_session(self, session_id: str) -> BookingSession:
        """Resume a session by id, expiring it first when its deadline passed."""
        return self._load(session_id)

    def submit_artifact(self, session_id: str, artifact_ref: str) -> BookingSession:
        """Attach the buyer's verification photo and queue it for review."""
        session = self._load(session_id)
        target = self._target(session, SessionEvent.SUBMIT_ARTIFACT)
        cleaned = artifact_ref.strip() if artifact_ref else ""
        if not cleaned:
            raise ArtifactRequired(
                "A verification photo is required", status=session.status.value
            )
        verification = replace(
            session.verification,
            review_state=ReviewState.UPLOADED,
            artifact_ref=cleaned,
            submitted_at=self.clock(),
            reviewed_at=None,
            reviewer=None,
            rejection_reason=None,
        )
        return self._save(
            session,
            replace(session, status=target, verification=verification),
            SessionEvent.SUBMIT_ARTIFACT,
            actor="buyer",
        )

    def review_approve(self, session_id: str, reviewer: str) -> BookingSession:
        """Approve the submitted verification artifact."""
        session = self._load(session_id)
        self._ensure_undecided(session)
        target = self._target(session, SessionEvent.REVIEW_APPROVE)
        verification = replace(
            session.verification,
            review_state=ReviewState.APPROVED,
            reviewed_at=self.clock(),
            reviewer=reviewer,
        )
        return self._save(
            session,
            replace(session, status=target, verification=verification),
            SessionEvent.REVIEW_APPROVE,
            actor=reviewer,
        )

    def review_reject(
        self, session_id: str, reason: str, reviewer: str
    ) -> BookingSession:
        """Reject the artifact; the buyer resubmits with the same challenge."""
        session = self._load(session_id)
        self._ensure_undecided(session)
        target = self._target(session, SessionEvent.REVIEW_REJECT)
        verification = replace(
            session.verification,
            review_state=ReviewState.REJECTED,
            reviewed_at=self.clock(),
            reviewer=reviewer,
            rejection_reason=reason.strip() or None,
        )
        return self._save(
            session,
            replace(session, status=target, verification=verification),
            SessionEvent.REVIEW_REJECT,
            actor=reviewer,
        )

    def select_location(self, session_id: str, location_id: str) -> BookingSession:
        """Choose the meetup location; clears any previously chosen slot."""
        session = self._load(session_id)
        target = self._target(session, SessionEvent.SELECT_LOCATION)
        self._ensure_verified(session)
        location = self.location_service.get_enabled(
            location_id, status=session.status.value
        )
        return self._save(
            session,
            replace(session, status=target, location_id=location.id, meetup=None),
            SessionEvent.SELECT_LOCATION,
            actor="buyer",
        )

    def select_slot(self, session_id: str, day: date, time: str) -> BookingSession:
        """Choose a slot at the selected location.

        Only committed bookings are checked here; the slot is reserved on
        ``confirm``.
        """
        session = self._load(session_id)
        target = self._target(session, SessionEvent.SELECT_SLOT)
        self._ensure_verified(session)
        location = self.location_service.get_enabled(
            str(session.location_id), status=session.status.value
        )
        parse_slot_time(time)
        self._ensure_available(session, location, day, time, on_booked=SlotBooked)
        if meetup_datetime(location, day, time) > session.expires_at:
            raise SlotOutsideBookingWindow(
                "The meetup must take place before the session expires",
                status=session.status.value,
            )
        meetup = MeetupRecord(
            location_id=location.id,
            location_name=location.name,
            day=day,
            time=time,
            staff_contact=location.staff_contact,
        )
        return self._save(
            session,
            replace(session, status=target, meetup=meetup),
            SessionEvent.SELECT_SLOT,
            actor="buyer",
        )

    def confirm(self, session_id: str) -> BookingSession:
        """Commit the selected slot and issue a confirmation code.

        The slot booking and the status change succeed together or not at all;
        on failure the session stays ``TIME_SELECTED``.
        """
        session = self._load(session_id)
        target = self._target(session, SessionEvent.CONFIRM)
        meetup = session.meetup
        if meetup is None:
            raise InvalidTransition(
                "No slot selected", status=session.status.value
            )
        location = self.location_service.get_enabled(
            meetup.location_id, status=session.status.value
        )
        self._ensure_available(
            session, location, meetup.day, meetup.time, on_booked=SlotNoLongerAvailable
        )
        try:
            self.slot_repository.reserve(
                location_id=location.id,
                day=meetup.day,
                time=meetup.time,
                session_id=session.id,
                capacity=location.capacity_per_slot,
            )
        except BookingError as exc:
            exc.status = session.status.value
            raise
        try:
            confirmed = self._persist_confirmation(session, target, meetup)
        except Exception:
            self.slot_repository.release(session.id)
            _logger.warning("Confirmation rolled back: id=%s", session.id)
            raise
        self._record(session, confirmed, SessionEvent.CONFIRM, actor="buyer")
        return confirmed

    def mark_completed(self, session_id: str, operator: str) -> BookingSession:
        """Record that staff completed the cash handover."""
        session = self._load(session_id)
        target = self._target(session, SessionEvent.COMPLETE)
        return self._save(
            session,
            replace(session, status=target),
            SessionEvent.COMPLETE,
            actor=operator,
        )

    def cancel(self, session_id: str, actor: str = "buyer") -> BookingSession:
        """Cancel a session; cancelling a cancelled session is a no-op."""
        session = self._load(session_id)
        if session.status == SessionStatus.CANCELLED:
            return session
        target = self._target(session, SessionEvent.CANCEL)
        held_slot = session.status == SessionStatus.CONFIRMED
        cancelled = self._save(
            session,
            replace(session, status=target, meetup=None),
            SessionEvent.CANCEL,
            actor=actor,
        )
        if held_slot:
            self.slot_repository.release(session.id)
        return cancelled

    def lookup_confirmation_code(self, raw_code: str) -> BookingSession | None:
        """Return the live session behind a code presented at a meetup."""
        session = self.session_repository.find_by_confirmation_code(
            normalize_confirmation_code(raw_code)
        )
        if session is None:
            return None
        session = self._expire_if_due(session)
        if session.status not in CODE_HOLDING_STATUSES:
            return None
        return session

    def _load(self, session_id: str) -> BookingSession:
        session = self.session_repository.get_session(session_id)
        if session is None:
            raise SessionNotFound(f"Session {session_id} not found")
        return self._expire_if_due(session)

    def _expire_if_due(self, session: BookingSession) -> BookingSession:
        if session.is_terminal or not session.is_past_deadline(self.clock()):
            return session
        held_slot = session.status == SessionStatus.CONFIRMED
        try:
            expired = self._save(
                session,
                replace(
                    session,
                    status=next_status(session.status, SessionEvent.EXPIRE),
                    meetup=None,
                ),
                SessionEvent.EXPIRE,
                actor="system",
            )
        except ConcurrentModification:
            reloaded = self.session_repository.get_session(session.id)
            if reloaded is None:
                raise SessionNotFound(f"Session {session.id} not found") from None
            return self._expire_if_due(reloaded)
        if held_slot:
            self.slot_repository.release(session.id)
        return expired

    def _target(self, session: BookingSession, event: SessionEvent) -> SessionStatus:
        if session.status == SessionStatus.EXPIRED:
            raise SessionExpired(
                f"Session {session.id} expired at {session.expires_at.isoformat()}",
                status=session.status.value,
            )
        return next_status(session.status, event)

    def _ensure_undecided(self, session: BookingSession) -> None:
        if session.status == SessionStatus.EXPIRED:
            return
        if (
            session.status != SessionStatus.VERIFICATION_SUBMITTED
            and session.verification.review_state in _DECIDED_REVIEW_STATES
        ):
            raise ReviewAlreadyDecided(
                f"Verification already {session.verification.review_state.value}",
                status=session.status.value,
            )

    def _ensure_verified(self, session: BookingSession) -> None:
        if session.verification.review_state != ReviewState.APPROVED:
            raise InvalidTransition(
                "Verification has not been approved", status=session.status.value
            )

    def _ensure_available(
        self,
        session: BookingSession,
        location: Location,
        day: date,
        time: str,
        on_booked: type[BookingError],
    ) -> None:
        slot_status = self.availability_service.classify_slot(
            location, day, time, now=self.clock()
        )
        status = session.status.value
        if slot_status == SlotStatus.OUTSIDE_HOURS:
            raise OutsideOperatingHours(
                f"{time} is not a bookable slot at {location.name}",
                status=status,
            )
        if slot_status == SlotStatus.TOO_SOON:
            raise LeadTimeTooShort(
                "Meetups must be booked at least two hours ahead", status=status
            )
        if slot_status == SlotStatus.BOOKED:
            raise on_booked(
                f"{day.isoformat()} {time} at {location.name} is fully booked",
                status=status,
            )

    def _persist_confirmation(
        self, session: BookingSession, target: SessionStatus, meetup: MeetupRecord
    ) -> BookingSession:
        """Store the confirmed session under a fresh code.

        Codes already held by a live session are skipped before writing; a code
        taken between that check and the write is rejected by storage and retried.
        """
        for attempt in range(1, self.confirmation_code_attempts + 1):
            code = self.code_generator()
            if self.session_repository.confirmation_code_in_use(code):
                _logger.warning(
                    "Confirmation code collision: id=%s attempt=%s",
                    session.id,
                    attempt,
                )
                continue
            confirmed = replace(
                session,
                status=target,
                meetup=replace(meetup, confirmation_code=code),
            )
            try:
                return self._persist(session, confirmed)
            except DuplicateConfirmationCode:
                _logger.warning(
                    "Confirmation code taken on write: id=%s attempt=%s",
                    session.id,
                    attempt,
                )
        raise DuplicateConfirmationCode(
            "Could not issue a unique confirmation code",
            status=session.status.value,
        )

    def _save(
        self,
        before: BookingSession,
        after: BookingSession,
        event: SessionEvent,
        actor: str,
    ) -> BookingSession:
        stored = self._persist(before, after)
        self._record(before, stored, event, actor)
        return stored

    def _persist(self, before: BookingSession, after: BookingSession) -> BookingSession:
        updated = replace(
            after, version=before.version + 1, updated_at=self.clock()
        )
        return self.session_repository.update_session(
            updated, expected_version=before.version
        )

    def _record(
        self,
        before: BookingSession,
        stored: BookingSession,
        event: SessionEvent,
        actor: str,
    ) -> None:
        self.audit_service.record_transition(
            actor=actor,
            session_id=before.id,
            event_type=event.value,
            before=_audit_view(before),
            after=_audit_view(stored),
        )
        _logger.info(
            "Booking session transition: id=%s event=%s %s->%s",
            before.id,
            event.value,
            before.status.value,
            stored.status.value,
        )


def _audit_view(session: BookingSession) -> dict[str, object]:
    meetup = session.meetup
    return {
        "status": session.status.value,
        "review_state": session.verification.review_state.value,
        "location_id": session.location_id,
        "meetup": {
            "location_id": meetup.location_id,
            "day": meetup.day.isoformat(),
            "time": meetup.time,
            "confirmation_code": meetup.confirmation_code,
        }
        if meetup
        else None,
        "version": session.version,
    }
