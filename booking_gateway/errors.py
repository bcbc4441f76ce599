"""Domain errors raised by the booking gateway.

Each error carries the HTTP status it is rendered with and a user-facing
message. The FastAPI app turns any :class:`BookingError` into
``{"error": message}``.
"""

from __future__ import annotations


class BookingError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500
    default_message = "Internal server error."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class BookingValidationError(BookingError):
    """A required field is missing or malformed."""

    status_code = 400
    default_message = "Invalid request."


class PayloadTooLargeError(BookingError):
    status_code = 413
    default_message = "Request body too large."


class ServiceUnavailableError(BookingError):
    """The calendar client was never initialized."""

    status_code = 503
    default_message = "Calendar service unavailable. Please try again later."


class CalendarConfigError(BookingError):
    """The target calendar identifier is missing at request time."""

    status_code = 500
    default_message = "Calendar configuration is invalid on the server."


class SlotTakenError(BookingError):
    """The remote calendar reported a scheduling conflict (HTTP 409)."""

    status_code = 409
    default_message = "This time slot is already taken. Please choose another slot."


class RemoteCallError(BookingError):
    """Any other failure of the remote calendar call."""

    status_code = 500
    default_message = "Server error while contacting the calendar service."
