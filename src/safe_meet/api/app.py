"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date, datetime

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from safe_meet.api.admin import router as admin_router
from safe_meet.api.schemas import (
    ArtifactRequest,
    CreateSessionRequest,
    LocationChoiceRequest,
    SlotChoiceRequest,
    serialize_location,
    serialize_session,
    serialize_slot,
)
from safe_meet.app_logging import configure_logging
from safe_meet.containers import AppContainer
from safe_meet.domain.errors import (
    ArtifactRequired,
    BookingError,
    InvalidAmount,
    LeadTimeTooShort,
    LocationUnavailable,
    OutsideOperatingHours,
    SessionExpired,
    SessionNotFound,
    SlotOutsideBookingWindow,
)
from safe_meet.domain.sessions import BookingSession, SessionStatus

_ERROR_STATUS_CODES: dict[type[BookingError], int] = {
    SessionNotFound: status.HTTP_404_NOT_FOUND,
    SessionExpired: status.HTTP_410_GONE,
    ArtifactRequired: status.HTTP_422_UNPROCESSABLE_ENTITY,
    InvalidAmount: status.HTTP_422_UNPROCESSABLE_ENTITY,
    LocationUnavailable: status.HTTP_422_UNPROCESSABLE_ENTITY,
    OutsideOperatingHours: status.HTTP_422_UNPROCESSABLE_ENTITY,
    LeadTimeTooShort: status.HTTP_422_UNPROCESSABLE_ENTITY,
    SlotOutsideBookingWindow: status.HTTP_422_UNPROCESSABLE_ENTITY,
}


def error_status_code(exc: BookingError) -> int:
    """Map a booking error to an HTTP status; conflicts default to 409."""
    for error_type, code in _ERROR_STATUS_CODES.items():
        if isinstance(exc, error_type):
            return code
    return status.HTTP_409_CONFLICT


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)

    @app.exception_handler(BookingError)
    async def booking_error_handler(
        request: Request, exc: BookingError
    ) -> JSONResponse:
        logger.info(
            "Booking request rejected: path=%s error=%s", request.url.path, exc.code
        )
        return JSONResponse(
            status_code=error_status_code(exc),
            content={
                "error": exc.code,
                "message": exc.message,
                "status": exc.status,
                "retry": exc.retry_step,
            },
        )

    def _snapshot(state: AppContainer, session: BookingSession) -> dict[str, object]:
        location = (
            state.location_service.get(session.meetup.location_id)
            if session.meetup
            else None
        )
        return serialize_session(session, location)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/sessions", status_code=status.HTTP_201_CREATED)
    async def create_session(
        payload: CreateSessionRequest, request: Request
    ) -> dict[str, object]:
        """Open a cash payment session for a checkout."""
        state: AppContainer = request.app.state.container
        session = state.session_service.create_session(
            amount=payload.amount,
            currency=payload.currency,
            buyer_context=payload.buyer_context,
            security_level=payload.security_level,
        )
        return _snapshot(state, session)

    @app.get("/sessions/{session_id}")
    async def get_session(session_id: str, request: Request) -> dict[str, object]:
        """Resume a session by id."""
        state: AppContainer = request.app.state.container
        return _snapshot(state, state.session_service.get_session(session_id))

    @app.post("/sessions/{session_id}/artifact")
    async def submit_artifact(
        session_id: str, payload: ArtifactRequest, request: Request
    ) -> dict[str, object]:
        """Submit the verification photo reference for review."""
        state: AppContainer = request.app.state.container
        session = state.session_service.submit_artifact(
            session_id, payload.artifact_ref
        )
        await state.notification_service.notify_review_requested(session)
        return _snapshot(state, session)

    @app.post("/sessions/{session_id}/location")
    async def select_location(
        session_id: str, payload: LocationChoiceRequest, request: Request
    ) -> dict[str, object]:
        """Choose the meetup location."""
        state: AppContainer = request.app.state.container
        session = state.session_service.select_location(
            session_id, payload.location_id
        )
        return _snapshot(state, session)

    @app.post("/sessions/{session_id}/slot")
    async def select_slot(
        session_id: str, payload: SlotChoiceRequest, request: Request
    ) -> dict[str, object]:
        """Choose the meetup date and time."""
        state: AppContainer = request.app.state.container
        session = state.session_service.select_slot(
            session_id, payload.day, payload.time
        )
        return _snapshot(state, session)

    @app.post("/sessions/{session_id}/confirm")
    async def confirm(session_id: str, request: Request) -> dict[str, object]:
        """Commit the slot and issue the confirmation code."""
        state: AppContainer = request.app.state.container
        session = state.session_service.confirm(session_id)
        location = state.location_service.get(session.meetup.location_id)
        await state.notification_service.notify_booking_confirmed(session, location)
        return serialize_session(session, location)

    @app.post("/sessions/{session_id}/cancel")
    async def cancel(session_id: str, request: Request) -> dict[str, object]:
        """Cancel the session."""
        state: AppContainer = request.app.state.container
        before = state.session_service.get_session(session_id)
        session = state.session_service.cancel(session_id, actor="buyer")
        if before.status == SessionStatus.CONFIRMED:
            await state.notification_service.notify_booking_cancelled(session)
        return _snapshot(state, session)

    @app.get("/locations")
    async def list_locations(request: Request) -> dict[str, object]:
        """Return the locations buyers may choose."""
        state: AppContainer = request.app.state.container
        return {
            "locations": [
                serialize_location(location)
                for location in state.location_service.list_enabled()
            ]
        }

    def _session_deadline(
        state: AppContainer, session_id: str | None
    ) -> datetime | None:
        if session_id is None:
            return None
        return state.session_service.get_session(session_id).expires_at

    @app.get("/locations/{location_id}/days")
    async def booking_days(
        location_id: str, request: Request, session_id: str | None = None
    ) -> dict[str, object]:
        """Return the dates offered for booking at a location.

        Passing ``session_id`` drops dates after that session expires.
        """
        state: AppContainer = request.app.state.container
        location = state.location_service.get_enabled(location_id)
        days = state.availability_service.booking_days(
            location, deadline=_session_deadline(state, session_id)
        )
        return {"location_id": location.id, "days": [d.isoformat() for d in days]}

    @app.get("/locations/{location_id}/slots")
    async def list_slots(
        location_id: str, day: date, request: Request, session_id: str | None = None
    ) -> dict[str, object]:
        """Return every slot of a date with its availability."""
        state: AppContainer = request.app.state.container
        location = state.location_service.get_enabled(location_id)
        options = state.availability_service.list_slots(
            location, day, deadline=_session_deadline(state, session_id)
        )
        return {
            "location_id": location.id,
            "day": day.isoformat(),
            "slots": [serialize_slot(option) for option in options],
        }

    @app.get("/locations/{location_id}/booked-slots")
    async def booked_slots(
        location_id: str, day: date, request: Request
    ) -> dict[str, object]:
        """Return the booked times of a location for a date."""
        state: AppContainer = request.app.state.container
        booked = state.availability_service.get_booked_slots(location_id, day)
        return {
            "location_id": location_id,
            "day": day.isoformat(),
            "booked_times": sorted(booked),
        }

    return app
