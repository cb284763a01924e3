"""Read-only aggregation over sessions and locations for operators."""

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from safe_meet.domain.directory import (
    DirectoryOverview,
    LocationUtilization,
    RevenueSummary,
)
from safe_meet.domain.sessions import (
    PENDING_STATUSES,
    BookingSession,
    SessionStatus,
)
from safe_meet.domain.slots import SlotBooking
from safe_meet.services.availability import SlotBookingRepository
from safe_meet.services.locations import LocationService
from safe_meet.services.sessions import SessionRepository

SESSION_FILTERS: dict[str, set[SessionStatus] | None] = {
    "all": None,
    "pending": set(PENDING_STATUSES),
    "confirmed": {SessionStatus.CONFIRMED},
    "completed": {SessionStatus.COMPLETED},
}

_CENT = Decimal("0.01")


@dataclass
class SessionDirectoryService:
    """Derived views for the cash payment dashboard; never writes."""

    session_repository: SessionRepository
    slot_repository: SlotBookingRepository
    location_service: LocationService
    slot_interval_minutes: int = 30

    def list_sessions(
        self, filter_name: str = "all", limit: int = 50
    ) -> list[BookingSession]:
        """Return recent sessions for a dashboard filter."""
        if filter_name not in SESSION_FILTERS:
            raise ValueError(f"Unknown session filter: {filter_name}")
        return self.session_repository.list_sessions(
            statuses=SESSION_FILTERS[filter_name], limit=limit
        )

    def status_counts(self) -> dict[str, int]:
        """Return the number of sessions per status, including empty ones."""
        counts = Counter(
            session.status for session in self.session_repository.list_sessions()
        )
        return {status.value: counts.get(status, 0) for status in SessionStatus}

    def location_utilization(self, day: date) -> list[LocationUtilization]:
        """Return per-location bookings against daily capacity for a date."""
        per_location = Counter(
            booking.location_id
            for booking in self.slot_repository.list_bookings_for_day(day)
        )
        rows = []
        for location in self.location_service.list_all():
            slots = location.slot_times(day, self.slot_interval_minutes)
            capacity = len(slots) * location.capacity_per_slot
            booked = per_location.get(location.id, 0)
            rows.append(
                LocationUtilization(
                    location_id=location.id,
                    location_name=location.name,
                    day=day,
                    booked=booked,
                    capacity=capacity,
                    utilization_pct=round(booked / capacity * 100, 1)
                    if capacity
                    else 0.0,
                )
            )
        return rows

    def revenue_summary(self) -> list[RevenueSummary]:
        """Return total and average amount of completed sessions per currency."""
        completed = self.session_repository.list_sessions(
            statuses={SessionStatus.COMPLETED}
        )
        totals: dict[str, Decimal] = {}
        counts: Counter[str] = Counter()
        for session in completed:
            totals[session.currency] = (
                totals.get(session.currency, Decimal(0)) + session.amount
            )
            counts[session.currency] += 1
        return [
            RevenueSummary(
                currency=currency,
                completed_sessions=counts[currency],
                total_amount=totals[currency].quantize(_CENT, ROUND_HALF_UP),
                average_amount=(totals[currency] / counts[currency]).quantize(
                    _CENT, ROUND_HALF_UP
                ),
            )
            for currency in sorted(totals)
        ]

    def overview(self) -> DirectoryOverview:
        """Return headline numbers for the dashboard."""
        counts = self.status_counts()
        completed = counts[SessionStatus.COMPLETED.value]
        cancelled = counts[SessionStatus.CANCELLED.value]
        expired = counts[SessionStatus.EXPIRED.value]
        pending = sum(counts[status.value] for status in PENDING_STATUSES)
        finished = completed + cancelled + expired
        bookings = self.slot_repository.list_all_bookings()
        return DirectoryOverview(
            total_sessions=sum(counts.values()),
            completed_sessions=completed,
            pending_sessions=pending,
            cancelled_sessions=cancelled,
            expired_sessions=expired,
            success_rate=round(completed / finished * 100, 2) if finished else 0.0,
            top_location=self._top_location(bookings),
            peak_hour=_peak_hour(booking.time for booking in bookings),
        )

    def _top_location(self, bookings: list[SlotBooking]) -> str | None:
        per_location = Counter(booking.location_id for booking in bookings)
        if not per_location:
            return None
        location_id, _ = per_location.most_common(1)[0]
        names = {loc.id: loc.name for loc in self.location_service.list_all()}
        return names.get(location_id, location_id)


def _peak_hour(times: Iterable[str]) -> str | None:
    hours = Counter(int(time.split(":")[0]) for time in times)
    if not hours:
        return None
    hour, _ = hours.most_common(1)[0]
    return f"{hour:02d}:00-{(hour + 1) % 24:02d}:00"
