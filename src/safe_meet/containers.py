"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import timedelta

from supabase import create_client

from safe_meet.adapters.supabase_audit_repository import SupabaseAuditRepository
from safe_meet.adapters.supabase_location_repository import (
    SupabaseLocationRepository,
)
from safe_meet.adapters.supabase_session_repository import (
    SupabaseSessionRepository,
)
from safe_meet.adapters.supabase_slot_repository import (
    SupabaseSlotBookingRepository,
)
from safe_meet.adapters.telegram_client import HttpxTelegramClient
from safe_meet.config import Settings
from safe_meet.services.audit import AuditService
from safe_meet.services.availability import AvailabilityService
from safe_meet.services.directory import SessionDirectoryService
from safe_meet.services.locations import LocationService
from safe_meet.services.notifications import StaffNotificationService
from safe_meet.services.review import ReviewQueueService
from safe_meet.services.sessions import BookingSessionService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    location_service: LocationService
    availability_service: AvailabilityService
    session_service: BookingSessionService
    review_service: ReviewQueueService
    directory_service: SessionDirectoryService
    audit_service: AuditService
    notification_service: StaffNotificationService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    session_repository = SupabaseSessionRepository(supabase_client)
    slot_repository = SupabaseSlotBookingRepository(supabase_client)
    location_repository = SupabaseLocationRepository(supabase_client)
    audit_service = AuditService(SupabaseAuditRepository(supabase_client))
    location_service = LocationService(location_repository)
    availability_service = AvailabilityService(
        repository=slot_repository,
        slot_interval_minutes=resolved_settings.slot_interval_minutes,
        booking_horizon_days=resolved_settings.booking_horizon_days,
        min_lead_time=timedelta(minutes=resolved_settings.min_lead_time_minutes),
    )
    session_service = BookingSessionService(
        session_repository=session_repository,
        slot_repository=slot_repository,
        location_service=location_service,
        availability_service=availability_service,
        audit_service=audit_service,
        session_ttl=timedelta(hours=resolved_settings.session_ttl_hours),
        confirmation_code_attempts=resolved_settings.confirmation_code_attempts,
    )
    review_service = ReviewQueueService(
        session_repository=session_repository,
        session_service=session_service,
    )
    directory_service = SessionDirectoryService(
        session_repository=session_repository,
        slot_repository=slot_repository,
        location_service=location_service,
        slot_interval_minutes=resolved_settings.slot_interval_minutes,
    )
    telegram_client = HttpxTelegramClient.create(resolved_settings.telegram_bot_token)
    notification_service = StaffNotificationService(
        telegram_client=telegram_client,
        review_chat_id=resolved_settings.telegram_review_chat_id,
        staff_chat_id=resolved_settings.telegram_staff_chat_id,
    )

    async def close_resources() -> None:
        await telegram_client.close()

    return AppContainer(
        settings=resolved_settings,
        location_service=location_service,
        availability_service=availability_service,
        session_service=session_service,
        review_service=review_service,
        directory_service=directory_service,
        audit_service=audit_service,
        notification_service=notification_service,
        close_resources=close_resources,
    )
