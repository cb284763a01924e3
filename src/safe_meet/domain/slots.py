"""Slot classification rules."""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import StrEnum
from zoneinfo import ZoneInfo

from safe_meet.domain.locations import Location, parse_slot_time

MIN_LEAD_TIME = timedelta(hours=2)


class SlotStatus(StrEnum):
    """Classification of a candidate slot."""

    AVAILABLE = "available"
    BOOKED = "booked"
    OUTSIDE_HOURS = "outside_hours"
    TOO_SOON = "too_soon"
    AFTER_SESSION_EXPIRY = "after_session_expiry"


@dataclass(frozen=True)
class SlotBooking:
    """One committed seat at a location slot."""

    id: str
    location_id: str
    day: date
    time: str
    session_id: str
    seat: int
    created_at: datetime


@dataclass(frozen=True)
class SlotOption:
    """A candidate slot and its classification."""

    day: date
    time: str
    status: SlotStatus
    booked: int
    capacity: int


def meetup_datetime(location: Location, day: date, slot_time: str) -> datetime:
    """Return the aware meetup start in the location's timezone."""
    return datetime.combine(
        day, parse_slot_time(slot_time), tzinfo=ZoneInfo(location.timezone)
    )


def classify(  # noqa: PLR0913
    location: Location,
    day: date,
    slot_time: str,
    booked_slots: Iterable[str],
    now: datetime,
    min_lead_time: timedelta = MIN_LEAD_TIME,
) -> SlotStatus:
    """Classify a slot for booking.

    ``booked_slots`` holds one entry per committed booking, so a time appears
    as often as it is booked. Rules apply in order: operating hours, lead time,
    capacity.
    """
    if not any(window.contains(slot_time) for window in location.windows_for(day)):
        return SlotStatus.OUTSIDE_HOURS
    if meetup_datetime(location, day, slot_time) < now + min_lead_time:
        return SlotStatus.TOO_SOON
    taken = sum(1 for booked in booked_slots if booked == slot_time)
    if taken >= location.capacity_per_slot:
        return SlotStatus.BOOKED
    return SlotStatus.AVAILABLE
