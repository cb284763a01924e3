"""Shared test fixtures."""

import threading
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from safe_meet.adapters.telegram_client import TelegramClient
from safe_meet.config import Settings
from safe_meet.containers import AppContainer
from safe_meet.domain.errors import ConcurrentModification, SlotNoLongerAvailable
from safe_meet.domain.gestures import GESTURE_CATALOG, GestureChallenge
from safe_meet.domain.locations import WEEKDAYS, Location, OperatingWindow
from safe_meet.domain.sessions import (
    CODE_HOLDING_STATUSES,
    BookingSession,
    SessionStatus,
)
from safe_meet.domain.slots import SlotBooking
from safe_meet.services.audit import AuditRepository, AuditService
from safe_meet.services.availability import AvailabilityService, SlotBookingRepository
from safe_meet.services.directory import SessionDirectoryService
from safe_meet.services.locations import LocationRepository, LocationService
from safe_meet.services.notifications import StaffNotificationService
from safe_meet.services.review import ReviewQueueService
from safe_meet.services.sessions import BookingSessionService, SessionRepository

# Monday 2026-03-02, 09:00 in Berlin.
START = datetime(2026, 3, 2, 8, 0, tzinfo=UTC)
TODAY = date(2026, 3, 2)


@dataclass
class FrozenClock:
    """Manually advanced clock."""

    now: datetime = START

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


def daily_hours(start: str, end: str) -> dict[str, list[OperatingWindow]]:
    return {weekday: [OperatingWindow(start, end)] for weekday in WEEKDAYS}


def make_location(
    location_id: str = "mall",
    capacity_per_slot: int = 1,
    enabled: bool = True,
) -> Location:
    return Location(
        id=location_id,
        name=f"Location {location_id}",
        address="Leipziger Platz 12, 10117 Berlin",
        safety_level="high",
        operating_hours=daily_hours("10:00", "20:00"),
        capacity_per_slot=capacity_per_slot,
        city="Berlin",
        kind="shopping_mall",
        features=["CCTV surveillance"],
        staff_contact="Customer service desk",
        notes="Meet at the customer service desk.",
        enabled=enabled,
    )


@dataclass
class InMemorySessionRepository(SessionRepository):
    """In-memory session repository with version checks."""

    sessions: dict[str, BookingSession] = field(default_factory=dict)
    taken_codes: set[str] = field(default_factory=set)
    lock: threading.Lock = field(default_factory=threading.Lock)

    def create_session(self, session: BookingSession) -> BookingSession:
        with self.lock:
            self.sessions[session.id] = session
        return session

    def get_session(self, session_id: str) -> BookingSession | None:
        return self.sessions.get(session_id)

    def update_session(
        self, session: BookingSession, expected_version: int
    ) -> BookingSession:
        with self.lock:
            current = self.sessions.get(session.id)
            if current is None or current.version != expected_version:
                raise ConcurrentModification(
                    f"Session {session.id} changed concurrently"
                )
            self.sessions[session.id] = session
        return session

    def list_sessions(
        self,
        statuses: set[SessionStatus] | None = None,
        limit: int | None = None,
    ) -> list[BookingSession]:
        rows = [
            session
            for session in self.sessions.values()
            if statuses is None or session.status in statuses
        ]
        rows.sort(key=lambda session: session.created_at, reverse=True)
        return rows[:limit] if limit is not None else rows

    def confirmation_code_in_use(self, code: str) -> bool:
        if code in self.taken_codes:
            return True
        return self.find_by_confirmation_code(code) is not None

    def find_by_confirmation_code(self, code: str) -> BookingSession | None:
        for session in self.sessions.values():
            if (
                session.status in CODE_HOLDING_STATUSES
                and session.meetup is not None
                and session.meetup.confirmation_code == code
            ):
                return session
        return None


@dataclass
class InMemorySlotBookingRepository(SlotBookingRepository):
    """In-memory slot bookings with one row per seat."""

    bookings: list[SlotBooking] = field(default_factory=list)
    lock: threading.Lock = field(default_factory=threading.Lock)

    def list_bookings(self, location_id: str, day: date) -> list[SlotBooking]:
        return [
            booking
            for booking in self.bookings
            if booking.location_id == location_id and booking.day == day
        ]

    def list_bookings_for_day(self, day: date) -> list[SlotBooking]:
        return [booking for booking in self.bookings if booking.day == day]

    def list_all_bookings(self) -> list[SlotBooking]:
        return list(self.bookings)

    def reserve(
        self, location_id: str, day: date, time: str, session_id: str, capacity: int
    ) -> SlotBooking:
        with self.lock:
            if any(booking.session_id == session_id for booking in self.bookings):
                raise ConcurrentModification(
                    f"Session {session_id} already holds a slot"
                )
            seats = {
                booking.seat
                for booking in self.bookings
                if (booking.location_id, booking.day, booking.time)
                == (location_id, day, time)
            }
            for seat in range(capacity):
                if seat in seats:
                    continue
                booking = SlotBooking(
                    id=str(uuid4()),
                    location_id=location_id,
                    day=day,
                    time=time,
                    session_id=session_id,
                    seat=seat,
                    created_at=START,
                )
                self.bookings.append(booking)
                return booking
        raise SlotNoLongerAvailable(f"{day.isoformat()} {time} was just booked")

    def release(self, session_id: str) -> None:
        with self.lock:
            self.bookings = [
                booking for booking in self.bookings if booking.session_id != session_id
            ]

    def add(self, location_id: str, day: date, time: str, seat: int = 0) -> None:
        self.bookings.append(
            SlotBooking(
                id=str(uuid4()),
                location_id=location_id,
                day=day,
                time=time,
                session_id=str(uuid4()),
                seat=seat,
                created_at=START,
            )
        )


@dataclass
class InMemoryLocationRepository(LocationRepository):
    """In-memory location catalog."""

    locations: dict[str, Location] = field(default_factory=dict)

    def get_location(self, location_id: str) -> Location | None:
        return self.locations.get(location_id)

    def list_locations(self) -> list[Location]:
        return sorted(self.locations.values(), key=lambda location: location.name)


@dataclass
class InMemoryAuditRepository(AuditRepository):
    """In-memory audit repository for tests."""

    events: list[dict[str, object]] = field(default_factory=list)

    def create_event(  # noqa: PLR0913
        self,
        actor: str,
        entity_type: str,
        entity_id: str,
        event_type: str,
        before: dict[str, object] | None,
        after: dict[str, object] | None,
    ) -> None:
        self.events.append(
            {
                "actor": actor,
                "entity_type": entity_type,
                "entity_id": entity_id,
                "event_type": event_type,
                "before": before,
                "after": after,
            }
        )

    def list_events(self, entity_id: str, limit: int) -> list[dict[str, object]]:
        rows = [event for event in self.events if event["entity_id"] == entity_id]
        return list(reversed(rows))[:limit]


@dataclass
class FakeTelegramClient(TelegramClient):
    """Fake Telegram client that records messages."""

    messages: list[tuple[int, str]] = field(default_factory=list)

    async def send_message(
        self, chat_id: int, text: str, reply_markup: dict | None = None
    ) -> None:
        self.messages.append((chat_id, text))


@dataclass
class Repositories:
    """Bundle of the in-memory repositories behind a container."""

    sessions: InMemorySessionRepository
    slots: InMemorySlotBookingRepository
    locations: InMemoryLocationRepository
    audit: InMemoryAuditRepository


def fixed_challenge() -> GestureChallenge:
    return GESTURE_CATALOG[0]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        telegram_bot_token="test-token",
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
        admin_token="admin-token",
        telegram_review_chat_id=100,
        telegram_staff_chat_id=200,
    )


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def repositories() -> Repositories:
    return Repositories(
        sessions=InMemorySessionRepository(),
        slots=InMemorySlotBookingRepository(),
        locations=InMemoryLocationRepository(
            {
                "mall": make_location("mall"),
                "bank": make_location("bank", capacity_per_slot=2),
                "closed": make_location("closed", enabled=False),
            }
        ),
        audit=InMemoryAuditRepository(),
    )


@pytest.fixture
def telegram_client() -> FakeTelegramClient:
    return FakeTelegramClient()


@pytest.fixture
def container(
    settings: Settings,
    clock: FrozenClock,
    repositories: Repositories,
    telegram_client: FakeTelegramClient,
) -> AppContainer:
    location_service = LocationService(repositories.locations)
    availability_service = AvailabilityService(
        repository=repositories.slots,
        booking_horizon_days=settings.booking_horizon_days,
        clock=clock,
    )
    audit_service = AuditService(repositories.audit)
    session_service = BookingSessionService(
        session_repository=repositories.sessions,
        slot_repository=repositories.slots,
        location_service=location_service,
        availability_service=availability_service,
        audit_service=audit_service,
        clock=clock,
        challenge_generator=fixed_challenge,
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        location_service=location_service,
        availability_service=availability_service,
        session_service=session_service,
        review_service=ReviewQueueService(
            session_repository=repositories.sessions,
            session_service=session_service,
        ),
        directory_service=SessionDirectoryService(
            session_repository=repositories.sessions,
            slot_repository=repositories.slots,
            location_service=location_service,
        ),
        audit_service=audit_service,
        notification_service=StaffNotificationService(
            telegram_client=telegram_client,
            review_chat_id=settings.telegram_review_chat_id,
            staff_chat_id=settings.telegram_staff_chat_id,
        ),
        close_resources=close_resources,
    )


@pytest.fixture
def service(container: AppContainer) -> BookingSessionService:
    return container.session_service


def approved_session(service: BookingSessionService) -> BookingSession:
    """Create a session and move it through a successful review."""
    session = service.create_session(amount=Decimal("49.90"), currency="EUR")
    service.submit_artifact(session.id, "uploads/photo.jpg")
    return service.review_approve(session.id, reviewer="reviewer")


def session_at_slot(
    service: BookingSessionService,
    location_id: str = "mall",
    day: date = TODAY,
    time: str = "14:00",
) -> BookingSession:
    """Create an approved session with a selected slot."""
    session = approved_session(service)
    service.select_location(session.id, location_id)
    return service.select_slot(session.id, day, time)


