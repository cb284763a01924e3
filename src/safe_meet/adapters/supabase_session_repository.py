"""Supabase-backed booking session repository."""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from postgrest.exceptions import APIError
from supabase import Client

from safe_meet.domain.errors import ConcurrentModification, DuplicateConfirmationCode
from safe_meet.domain.sessions import (
    CODE_HOLDING_STATUSES,
    BookingSession,
    MeetupRecord,
    ReviewState,
    SecurityLevel,
    SessionStatus,
    VerificationRecord,
)
from safe_meet.services.sessions import SessionRepository

_TABLE = "booking_sessions"
_UNIQUE_VIOLATION = "23505"


@dataclass
class SupabaseSessionRepository(SessionRepository):
    """Supabase implementation for booking sessions."""

    client: Client

    def create_session(self, session: BookingSession) -> BookingSession:
        """Insert a session row and return it."""
        response = self.client.table(_TABLE).insert(_session_to_row(session)).execute()
        if not response.data:
            raise RuntimeError("Failed to create booking session")
        return _row_to_session(response.data[0])

    def get_session(self, session_id: str) -> BookingSession | None:
        """Return a session by id, if present."""
        response = (
            self.client.table(_TABLE)
            .select("*")
            .eq("id", session_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _row_to_session(response.data[0])

    def update_session(
        self, session: BookingSession, expected_version: int
    ) -> BookingSession:
        """Update a session row guarded by its version column."""
        try:
            response = (
                self.client.table(_TABLE)
                .update(_session_to_row(session))
                .eq("id", session.id)
                .eq("version", expected_version)
                .execute()
            )
        except APIError as exc:
            if exc.code == _UNIQUE_VIOLATION:
                raise DuplicateConfirmationCode(
                    "Confirmation code already in use"
                ) from exc
            raise
        if not response.data:
            raise ConcurrentModification(
                f"Session {session.id} changed concurrently"
            )
        return _row_to_session(response.data[0])

    def list_sessions(
        self,
        statuses: set[SessionStatus] | None = None,
        limit: int | None = None,
    ) -> list[BookingSession]:
        """Return sessions ordered by creation time, newest first."""
        query = self.client.table(_TABLE).select("*")
        if statuses is not None:
            query = query.in_("status", sorted(status.value for status in statuses))
        query = query.order("created_at", desc=True)
        if limit is not None:
            query = query.limit(limit)
        response = query.execute()
        return [_row_to_session(row) for row in response.data or []]

    def confirmation_code_in_use(self, code: str) -> bool:
        """Return whether an active session holds the code."""
        return self.find_by_confirmation_code(code) is not None

    def find_by_confirmation_code(self, code: str) -> BookingSession | None:
        """Return the confirmed or completed session holding a code."""
        response = (
            self.client.table(_TABLE)
            .select("*")
            .eq("confirmation_code", code)
            .in_("status", sorted(status.value for status in CODE_HOLDING_STATUSES))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _row_to_session(response.data[0])


def _session_to_row(session: BookingSession) -> dict[str, object]:
    verification = session.verification
    meetup = session.meetup
    return {
        "id": session.id,
        "status": session.status.value,
        "amount": str(session.amount),
        "currency": session.currency,
        "security_level": session.security_level.value,
        "buyer_context": session.buyer_context,
        "verification_json": {
            "gesture": verification.gesture,
            "review_state": verification.review_state.value,
            "artifact_ref": verification.artifact_ref,
            "submitted_at": _iso(verification.submitted_at),
            "reviewed_at": _iso(verification.reviewed_at),
            "reviewer": verification.reviewer,
            "rejection_reason": verification.rejection_reason,
        },
        "location_id": session.location_id,
        "meetup_json": {
            "location_id": meetup.location_id,
            "location_name": meetup.location_name,
            "day": meetup.day.isoformat(),
            "time": meetup.time,
            "staff_contact": meetup.staff_contact,
        }
        if meetup
        else None,
        "confirmation_code": meetup.confirmation_code if meetup else None,
        "created_at": session.created_at.isoformat(),
        "expires_at": session.expires_at.isoformat(),
        "updated_at": _iso(session.updated_at),
        "version": session.version,
    }


def _row_to_session(row: dict[str, object]) -> BookingSession:
    verification = row.get("verification_json") or {}
    meetup = row.get("meetup_json")
    return BookingSession(
        id=str(row["id"]),
        status=SessionStatus(row["status"]),
        amount=Decimal(str(row["amount"])),
        currency=str(row["currency"]),
        security_level=SecurityLevel(row["security_level"]),
        verification=VerificationRecord(
            gesture=str(verification["gesture"]),
            review_state=ReviewState(verification.get("review_state", "PENDING")),
            artifact_ref=verification.get("artifact_ref"),
            submitted_at=_parse_datetime(verification.get("submitted_at")),
            reviewed_at=_parse_datetime(verification.get("reviewed_at")),
            reviewer=verification.get("reviewer"),
            rejection_reason=verification.get("rejection_reason"),
        ),
        created_at=datetime.fromisoformat(str(row["created_at"])),
        expires_at=datetime.fromisoformat(str(row["expires_at"])),
        buyer_context=dict(row.get("buyer_context") or {}),
        location_id=row.get("location_id"),
        meetup=MeetupRecord(
            location_id=meetup["location_id"],
            location_name=meetup["location_name"],
            day=date.fromisoformat(meetup["day"]),
            time=meetup["time"],
            staff_contact=meetup.get("staff_contact"),
            confirmation_code=row.get("confirmation_code"),
        )
        if isinstance(meetup, dict)
        else None,
        updated_at=_parse_datetime(row.get("updated_at")),
        version=int(row.get("version") or 0),
    )


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _parse_datetime(value: object) -> datetime | None:
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value)
    return None
