"""Telegram notifications for reviewers and meetup staff."""

import logging
from dataclasses import dataclass

import httpx

from safe_meet.adapters.telegram_client import TelegramClient
from safe_meet.domain.gestures import gesture_by_key
from safe_meet.domain.locations import Location
from safe_meet.domain.sessions import BookingSession, MeetupRecord

_logger = logging.getLogger(__name__)


def meetup_instructions(meetup: MeetupRecord, location: Location | None) -> list[str]:
    """Build the buyer-facing checklist for a meetup."""
    lines = [
        f"Location: {meetup.location_name}",
        f"Date: {meetup.day.isoformat()} at {meetup.time}",
    ]
    if location is not None:
        lines.append(f"Address: {location.address}")
        if location.notes:
            lines.append(location.notes)
    if meetup.staff_contact:
        lines.append(f"Staff contact: {meetup.staff_contact}")
    if meetup.confirmation_code:
        lines.append(f"Confirmation code for staff: {meetup.confirmation_code}")
    lines.append("Bring the exact amount in cash and a photo ID.")
    return lines


@dataclass
class StaffNotificationService:
    """Sends review requests and booking updates to staff chats.

    Chats left unset disable the matching notifications.
    """

    telegram_client: TelegramClient
    review_chat_id: int | None = None
    staff_chat_id: int | None = None

    async def notify_review_requested(self, session: BookingSession) -> None:
        """Ask reviewers to check a freshly submitted verification photo."""
        challenge = gesture_by_key(session.verification.gesture)
        text = (
            "New Safe-Meet verification to review\n"
            f"Session: {session.id}\n"
            f"Expected gesture: {challenge.display_icon} {challenge.gesture}\n"
            f"Photo: {session.verification.artifact_ref}\n"
            f"Amount: {session.amount} {session.currency}\n"
            f"Expires: {session.expires_at.isoformat()}"
        )
        await self._send(self.review_chat_id, text)

    async def notify_booking_confirmed(
        self, session: BookingSession, location: Location | None
    ) -> None:
        """Tell meetup staff about a confirmed booking."""
        if session.meetup is None:
            return
        lines = ["Safe-Meet booking confirmed", f"Session: {session.id}"]
        lines.extend(meetup_instructions(session.meetup, location)[:-1])
        lines.append(f"Amount: {session.amount} {session.currency}")
        await self._send(self.staff_chat_id, "\n".join(lines))

    async def notify_booking_cancelled(self, session: BookingSession) -> None:
        """Tell meetup staff a booking no longer takes place."""
        await self._send(
            self.staff_chat_id,
            f"Safe-Meet session {session.id} was {session.status.value.lower()}.",
        )

    async def _send(self, chat_id: int | None, text: str) -> None:
        if chat_id is None:
            return
        try:
            await self.telegram_client.send_message(chat_id=chat_id, text=text)
        except httpx.HTTPError:
            _logger.exception("Failed to send staff notification to %s", chat_id)
