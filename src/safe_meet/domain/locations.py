"""Domain models for Safe-Meet locations."""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta

WEEKDAYS = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


def parse_slot_time(value: str) -> time:
    """Parse an ``HH:MM`` slot time."""
    hours, _, minutes = value.partition(":")
    if len(hours) != 2 or len(minutes) != 2:  # noqa: PLR2004
        raise ValueError(f"Invalid slot time: {value!r}")
    return time(int(hours), int(minutes))


def format_slot_time(value: time) -> str:
    """Format a slot time as ``HH:MM``."""
    return f"{value.hour:02d}:{value.minute:02d}"


@dataclass(frozen=True)
class OperatingWindow:
    """An opening window within a day; both bounds are valid slot starts."""

    start: str
    end: str

    def contains(self, slot_time: str) -> bool:
        """Return whether a slot time falls within the window."""
        value = parse_slot_time(slot_time)
        return parse_slot_time(self.start) <= value <= parse_slot_time(self.end)

    def slot_times(self, interval_minutes: int) -> list[str]:
        """Return every slot start in the window at the given interval."""
        anchor = date(2000, 1, 1)
        cursor = datetime.combine(anchor, parse_slot_time(self.start))
        end = datetime.combine(anchor, parse_slot_time(self.end))
        times = []
        while cursor <= end:
            times.append(format_slot_time(cursor.time()))
            cursor += timedelta(minutes=interval_minutes)
        return times


@dataclass(frozen=True)
class Location:
    """A vetted public meetup point."""

    id: str
    name: str
    address: str
    safety_level: str
    operating_hours: dict[str, list[OperatingWindow]]
    capacity_per_slot: int = 1
    city: str | None = None
    kind: str = "public_place"
    features: list[str] = field(default_factory=list)
    staff_contact: str | None = None
    notes: str | None = None
    enabled: bool = True
    timezone: str = "Europe/Berlin"

    def windows_for(self, day: date) -> list[OperatingWindow]:
        """Return the opening windows for a calendar date."""
        return self.operating_hours.get(WEEKDAYS[day.weekday()], [])

    def slot_times(self, day: date, interval_minutes: int) -> list[str]:
        """Return candidate slot starts for a date, sorted and de-duplicated."""
        times: set[str] = set()
        for window in self.windows_for(day):
            times.update(window.slot_times(interval_minutes))
        return sorted(times)
