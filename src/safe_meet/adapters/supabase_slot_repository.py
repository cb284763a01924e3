"""Supabase-backed slot booking repository."""

from dataclasses import dataclass
from datetime import date, datetime

from postgrest.exceptions import APIError
from supabase import Client

from safe_meet.domain.errors import ConcurrentModification, SlotNoLongerAvailable
from safe_meet.domain.slots import SlotBooking
from safe_meet.services.availability import SlotBookingRepository

_TABLE = "slot_bookings"
_UNIQUE_VIOLATION = "23505"


@dataclass
class SupabaseSlotBookingRepository(SlotBookingRepository):
    """Supabase implementation for committed slot bookings.

    The table is unique on ``(location_id, day, time, seat)`` and on
    ``session_id``; a failed insert means another session holds that seat.
    """

    client: Client

    def list_bookings(self, location_id: str, day: date) -> list[SlotBooking]:
        """Return bookings for a location and date."""
        response = (
            self.client.table(_TABLE)
            .select("*")
            .eq("location_id", location_id)
            .eq("day", day.isoformat())
            .execute()
        )
        return [_row_to_booking(row) for row in response.data or []]

    def list_bookings_for_day(self, day: date) -> list[SlotBooking]:
        """Return bookings across all locations for a date."""
        response = (
            self.client.table(_TABLE).select("*").eq("day", day.isoformat()).execute()
        )
        return [_row_to_booking(row) for row in response.data or []]

    def list_all_bookings(self) -> list[SlotBooking]:
        """Return every booking."""
        response = self.client.table(_TABLE).select("*").execute()
        return [_row_to_booking(row) for row in response.data or []]

    def reserve(
        self, location_id: str, day: date, time: str, session_id: str, capacity: int
    ) -> SlotBooking:
        """Insert the first free seat of a slot."""
        for seat in range(capacity):
            try:
                response = (
                    self.client.table(_TABLE)
                    .insert(
                        {
                            "location_id": location_id,
                            "day": day.isoformat(),
                            "time": time,
                            "session_id": session_id,
                            "seat": seat,
                        }
                    )
                    .execute()
                )
            except APIError as exc:
                if exc.code != _UNIQUE_VIOLATION:
                    raise
                if "session_id" in (exc.message or ""):
                    raise ConcurrentModification(
                        f"Session {session_id} already holds a slot"
                    ) from exc
                continue
            if not response.data:
                raise RuntimeError("Failed to create slot booking")
            return _row_to_booking(response.data[0])
        raise SlotNoLongerAvailable(
            f"{day.isoformat()} {time} at {location_id} was just booked"
        )

    def release(self, session_id: str) -> None:
        """Delete the booking owned by a session."""
        self.client.table(_TABLE).delete().eq("session_id", session_id).execute()


def _row_to_booking(row: dict[str, object]) -> SlotBooking:
    return SlotBooking(
        id=str(row["id"]),
        location_id=str(row["location_id"]),
        day=date.fromisoformat(str(row["day"])),
        time=str(row["time"])[:5],
        session_id=str(row["session_id"]),
        seat=int(row.get("seat") or 0),
        created_at=datetime.fromisoformat(str(row["created_at"])),
    )
