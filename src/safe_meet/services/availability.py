"""Slot availability for meetup locations."""

from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Protocol
from zoneinfo import ZoneInfo

from safe_meet.clock import Clock, utc_now
from safe_meet.domain.locations import Location
from safe_meet.domain.slots import (
    MIN_LEAD_TIME,
    SlotBooking,
    SlotOption,
    SlotStatus,
    classify,
    meetup_datetime,
)


class SlotBookingRepository(Protocol):
    """Persistence interface for committed slot bookings."""

    def list_bookings(self, location_id: str, day: date) -> list[SlotBooking]:
        """Return bookings for a location and date."""

    def list_bookings_for_day(self, day: date) -> list[SlotBooking]:
        """Return bookings across all locations for a date."""

    def list_all_bookings(self) -> list[SlotBooking]:
        """Return every committed booking."""

    def reserve(
        self, location_id: str, day: date, time: str, session_id: str, capacity: int
    ) -> SlotBooking:
        """Commit a seat or raise ``SlotNoLongerAvailable`` when none is free."""

    def release(self, session_id: str) -> None:
        """Delete the booking owned by a session, if any."""


@dataclass
class AvailabilityService:
    """Answers which slots of a location are free."""

    repository: SlotBookingRepository
    slot_interval_minutes: int = 30
    booking_horizon_days: int = 14
    min_lead_time: timedelta = MIN_LEAD_TIME
    clock: Clock = utc_now

    def get_booked_slots(self, location_id: str, day: date) -> Counter[str]:
        """Return booked times for a location and date, counted per booking."""
        bookings = self.repository.list_bookings(location_id, day)
        return Counter(booking.time for booking in bookings)

    def classify_slot(
        self,
        location: Location,
        day: date,
        time: str,
        now: datetime | None = None,
    ) -> SlotStatus:
        """Classify a single slot against current bookings.

        Times off the location's slot grid count as outside hours, so capacity is
        always counted on a grid time.
        """
        if time not in location.slot_times(day, self.slot_interval_minutes):
            return SlotStatus.OUTSIDE_HOURS
        booked = self.get_booked_slots(location.id, day)
        return classify(
            location,
            day,
            time,
            booked.elements(),
            now or self.clock(),
            self.min_lead_time,
        )

    def list_slots(
        self, location: Location, day: date, deadline: datetime | None = None
    ) -> list[SlotOption]:
        """Return every candidate slot of a date with its classification.

        With a session ``deadline``, free slots starting after it are reported as
        ``after_session_expiry``.
        """
        booked = self.get_booked_slots(location.id, day)
        now = self.clock()
        options = []
        for time in location.slot_times(day, self.slot_interval_minutes):
            status = classify(
                location, day, time, booked.elements(), now, self.min_lead_time
            )
            if (
                status == SlotStatus.AVAILABLE
                and deadline is not None
                and meetup_datetime(location, day, time) > deadline
            ):
                status = SlotStatus.AFTER_SESSION_EXPIRY
            options.append(
                SlotOption(
                    day=day,
                    time=time,
                    status=status,
                    booked=booked[time],
                    capacity=location.capacity_per_slot,
                )
            )
        return options

    def booking_days(
        self, location: Location, deadline: datetime | None = None
    ) -> list[date]:
        """Return the bookable dates starting today in the location timezone.

        With a session ``deadline``, dates after it in the location timezone are
        left out.
        """
        zone = ZoneInfo(location.timezone)
        today = self.clock().astimezone(zone).date()
        days = [
            today + timedelta(days=offset)
            for offset in range(self.booking_horizon_days)
        ]
        if deadline is None:
            return days
        last_day = deadline.astimezone(zone).date()
        return [day for day in days if day <= last_day]
