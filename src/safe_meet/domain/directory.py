"""Domain models for the admin session directory."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal


@dataclass(frozen=True)
class LocationUtilization:
    """Bookings against daily capacity for one location."""

    location_id: str
    location_name: str
    day: date
    booked: int
    capacity: int
    utilization_pct: float


@dataclass(frozen=True)
class RevenueSummary:
    """Completed cash throughput for one currency."""

    currency: str
    completed_sessions: int
    total_amount: Decimal
    average_amount: Decimal


@dataclass(frozen=True)
class DirectoryOverview:
    """Headline numbers for the cash payment dashboard."""

    total_sessions: int
    completed_sessions: int
    pending_sessions: int
    cancelled_sessions: int
    expired_sessions: int
    success_rate: float
    top_location: str | None
    peak_hour: str | None
