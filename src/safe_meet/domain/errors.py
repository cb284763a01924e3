"""Booking errors surfaced by the session state machine."""


class BookingError(RuntimeError):
    """Base class for recoverable booking failures.

    Every error carries the session status at the time of failure, so callers
    can keep the buyer on the step they were already on.
    """

    code = "booking_error"
    retry_step: str | None = None

    def __init__(self, message: str, status: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


class SessionNotFound(BookingError):
    """Raised when a session id does not resolve to a session."""

    code = "session_not_found"


class InvalidAmount(BookingError):
    """Raised when a checkout amount is zero or negative."""

    code = "invalid_amount"


class InvalidTransition(BookingError):
    """Raised when an event is not legal from the current status."""

    code = "invalid_transition"


class SessionExpired(BookingError):
    """Raised for any transition attempted after the session deadline."""

    code = "session_expired"


class ArtifactRequired(BookingError):
    """Raised when a verification artifact reference is empty."""

    code = "artifact_required"
    retry_step = "submit_artifact"


class ReviewAlreadyDecided(BookingError):
    """Raised when a reviewer decides a session that was already decided."""

    code = "review_already_decided"


class LocationUnavailable(BookingError):
    """Raised when a location is unknown or disabled."""

    code = "location_unavailable"
    retry_step = "select_location"


class OutsideOperatingHours(BookingError):
    """Raised when a slot is outside the location's opening hours."""

    code = "outside_operating_hours"
    retry_step = "select_slot"


class LeadTimeTooShort(BookingError):
    """Raised when a slot starts before the minimum lead time."""

    code = "lead_time_too_short"
    retry_step = "select_slot"


class SlotBooked(BookingError):
    """Raised when a slot is already at capacity during selection."""

    code = "slot_booked"
    retry_step = "select_slot"


class SlotOutsideBookingWindow(BookingError):
    """Raised when the meetup would start after the session expires."""

    code = "slot_outside_booking_window"
    retry_step = "select_slot"


class SlotNoLongerAvailable(BookingError):
    """Raised when another session committed the slot first."""

    code = "slot_no_longer_available"
    retry_step = "select_slot"


class DuplicateConfirmationCode(BookingError):
    """Raised when no unique confirmation code could be drawn."""

    code = "duplicate_confirmation_code"
    retry_step = "confirm"


class ConcurrentModification(BookingError):
    """Raised when a session changed between read and write."""

    code = "concurrent_modification"
