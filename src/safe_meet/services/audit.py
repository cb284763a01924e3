"""Audit logging service."""

from dataclasses import dataclass
from typing import Protocol


class AuditRepository(Protocol):
    """Persistence interface for audit events."""

    def create_event(  # noqa: PLR0913
        self,
        actor: str,
        entity_type: str,
        entity_id: str,
        event_type: str,
        before: dict[str, object] | None,
        after: dict[str, object] | None,
    ) -> None:
        """Create an audit event row."""

    def list_events(self, entity_id: str, limit: int) -> list[dict[str, object]]:
        """Return recent audit events for an entity."""


@dataclass
class AuditService:
    """Service for recording session transitions."""

    repository: AuditRepository

    def record_transition(
        self,
        actor: str,
        session_id: str,
        event_type: str,
        before: dict[str, object] | None,
        after: dict[str, object] | None,
    ) -> None:
        """Persist a booking session audit event."""
        self.repository.create_event(
            actor=actor,
            entity_type="booking_session",
            entity_id=session_id,
            event_type=event_type,
            before=before,
            after=after,
        )

    def history(self, session_id: str, limit: int = 50) -> list[dict[str, object]]:
        """Return the audit trail of a session."""
        return self.repository.list_events(session_id, limit)
