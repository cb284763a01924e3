"""Pydantic request models and response serializers for the HTTP API."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field

from safe_meet.domain.directory import (
    DirectoryOverview,
    LocationUtilization,
    RevenueSummary,
)
from safe_meet.domain.gestures import gesture_by_key
from safe_meet.domain.locations import Location
from safe_meet.domain.sessions import BookingSession, SecurityLevel
from safe_meet.domain.slots import SlotOption
from safe_meet.services.notifications import meetup_instructions
from safe_meet.services.review import ReviewItem

SLOT_TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class CreateSessionRequest(BaseModel):
    """Checkout hand-off that opens a cash payment session."""

    amount: Decimal = Field(gt=0)
    currency: str = Field(default="EUR", min_length=3, max_length=3)
    buyer_context: dict[str, Any] = Field(default_factory=dict)
    security_level: SecurityLevel = SecurityLevel.STANDARD


class ArtifactRequest(BaseModel):
    """Reference to the uploaded verification photo."""

    artifact_ref: str = ""


class LocationChoiceRequest(BaseModel):
    """Meetup location chosen by the buyer."""

    location_id: str


class SlotChoiceRequest(BaseModel):
    """Meetup slot chosen by the buyer."""

    day: date
    time: str = Field(pattern=SLOT_TIME_PATTERN)


class RejectRequest(BaseModel):
    """Reviewer rejection with a reason shown to the buyer."""

    reason: str = Field(min_length=1)


def serialize_session(
    session: BookingSession, location: Location | None = None
) -> dict[str, object]:
    """Return the buyer-facing snapshot of a session."""
    verification = session.verification
    challenge = gesture_by_key(verification.gesture)
    meetup = session.meetup
    return {
        "id": session.id,
        "status": session.status.value,
        "amount": str(session.amount),
        "currency": session.currency,
        "security_level": session.security_level.value,
        "verification": {
            "gesture": challenge.gesture,
            "display_icon": challenge.display_icon,
            "instruction_text": challenge.instruction_text,
            "review_state": verification.review_state.value,
            "artifact_ref": verification.artifact_ref,
            "submitted_at": _iso(verification.submitted_at),
            "reviewed_at": _iso(verification.reviewed_at),
            "rejection_reason": verification.rejection_reason,
        },
        "location_id": session.location_id,
        "meetup": {
            "location_id": meetup.location_id,
            "location_name": meetup.location_name,
            "day": meetup.day.isoformat(),
            "time": meetup.time,
            "staff_contact": meetup.staff_contact,
            "confirmation_code": meetup.confirmation_code,
            "instructions": meetup_instructions(meetup, location),
        }
        if meetup
        else None,
        "created_at": session.created_at.isoformat(),
        "expires_at": session.expires_at.isoformat(),
    }


def serialize_admin_session(session: BookingSession) -> dict[str, object]:
    """Return the operator view of a session, including buyer context."""
    payload = serialize_session(session)
    payload["buyer_context"] = session.buyer_context
    payload["reviewer"] = session.verification.reviewer
    payload["updated_at"] = _iso(session.updated_at)
    return payload


def serialize_location(location: Location) -> dict[str, object]:
    """Return the public view of a location."""
    return {
        "id": location.id,
        "name": location.name,
        "address": location.address,
        "city": location.city,
        "kind": location.kind,
        "safety_level": location.safety_level,
        "features": location.features,
        "staff_contact": location.staff_contact,
        "notes": location.notes,
        "capacity_per_slot": location.capacity_per_slot,
        "operating_hours": {
            weekday: [
                {"start": window.start, "end": window.end} for window in windows
            ]
            for weekday, windows in location.operating_hours.items()
        },
    }


def serialize_slot(option: SlotOption) -> dict[str, object]:
    return {
        "day": option.day.isoformat(),
        "time": option.time,
        "status": option.status.value,
        "booked": option.booked,
        "capacity": option.capacity,
    }


def serialize_review_item(item: ReviewItem) -> dict[str, object]:
    return {
        "session_id": item.session_id,
        "artifact_ref": item.artifact_ref,
        "gesture": item.gesture,
        "display_icon": item.display_icon,
        "instruction_text": item.instruction_text,
        "submitted_at": _iso(item.submitted_at),
        "expires_at": item.expires_at.isoformat(),
        "amount": str(item.amount),
        "currency": item.currency,
        "security_level": item.security_level,
    }


def serialize_utilization(row: LocationUtilization) -> dict[str, object]:
    return {
        "location_id": row.location_id,
        "location_name": row.location_name,
        "day": row.day.isoformat(),
        "booked": row.booked,
        "capacity": row.capacity,
        "utilization_pct": row.utilization_pct,
    }


def serialize_revenue(summary: RevenueSummary) -> dict[str, object]:
    return {
        "currency": summary.currency,
        "completed_sessions": summary.completed_sessions,
        "total_amount": str(summary.total_amount),
        "average_amount": str(summary.average_amount),
    }


def serialize_overview(overview: DirectoryOverview) -> dict[str, object]:
    return {
        "total_sessions": overview.total_sessions,
        "completed_sessions": overview.completed_sessions,
        "pending_sessions": overview.pending_sessions,
        "cancelled_sessions": overview.cancelled_sessions,
        "expired_sessions": overview.expired_sessions,
        "success_rate": overview.success_rate,
        "top_location": overview.top_location,
        "peak_hour": overview.peak_hour,
    }


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None
