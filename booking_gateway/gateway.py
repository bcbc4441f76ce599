"""Booking gateway: availability checks and event creation.

The gateway wraps one calendar provider handle that is established once at
startup by :func:`initialize_gateway`. When that step fails the gateway stays
``UNINITIALIZED`` for the life of the process and every call is rejected with
:class:`ServiceUnavailableError` before anything else is looked at.
"""

from __future__ import annotations

import enum
import logging
from datetime import datetime
from typing import Optional

from booking_gateway.calendar_providers.base import (
    CalendarAPIError,
    CalendarEvent,
    CalendarProvider,
    Reminder,
    TimeSlot,
)
from booking_gateway.config import Settings
from booking_gateway.errors import (
    BookingValidationError,
    CalendarConfigError,
    RemoteCallError,
    ServiceUnavailableError,
    SlotTakenError,
)
from booking_gateway.models.booking import (
    AvailabilityRequest,
    BookingRequest,
    BookingResponse,
)

log = logging.getLogger("booking_gateway.gateway")

WINDOW_MINUTES = 30

BOOKING_REMINDERS = (
    Reminder(method="email", minutes=24 * 60),
    Reminder(method="popup", minutes=10),
)


def redact_pii(value: str) -> str:
    """Mask PII for logging: show first 3 and last 2 chars only."""
    if not value or len(value) <= 5:
        return "***"
    return value[:3] + "***" + value[-2:]


def parse_timestamp(value: str, field_name: str) -> datetime:
    """Parse an ISO-8601 timestamp, accepting a trailing ``Z``."""
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        raise BookingValidationError(
            f"{field_name} is not a valid ISO-8601 date and time."
        ) from None


class GatewayState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"


class BookingGateway:
    """Proxies availability checks and bookings to a remote calendar."""

    def __init__(
        self,
        provider: Optional[CalendarProvider],
        calendar_id: str = "",
        time_zone: str = "Europe/Paris",
    ) -> None:
        self._provider = provider
        self._calendar_id = calendar_id
        self._time_zone = time_zone

    @property
    def state(self) -> GatewayState:
        if self._provider is None:
            return GatewayState.UNINITIALIZED
        return GatewayState.READY

    @property
    def is_ready(self) -> bool:
        return self.state is GatewayState.READY

    def ensure_ready(self) -> None:
        if not self.is_ready:
            raise ServiceUnavailableError()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def check_availability(self, request: AvailabilityRequest) -> bool:
        """Return True iff no event overlaps the 30-minute window."""
        self.ensure_ready()
        log.info("Availability check received: start=%s", request.start_date_time_iso)

        if not self._calendar_id:
            log.error("Availability check rejected: CALENDAR_ID not configured")
            raise CalendarConfigError()
        if not request.start_date_time_iso:
            log.error("Availability check rejected: startDateTimeISO missing")
            raise BookingValidationError(
                "Start date and time are required to check availability."
            )

        start = parse_timestamp(request.start_date_time_iso, "startDateTimeISO")
        try:
            window = TimeSlot.starting_at(start, WINDOW_MINUTES)
        except OverflowError:
            log.error("Availability check rejected: %s is out of range", start.isoformat())
            raise BookingValidationError("startDateTimeISO is out of range.") from None
        log.info(
            "Looking for events between %s and %s",
            window.start.isoformat(),
            window.end.isoformat(),
        )

        try:
            events = await self._provider.list_events(
                self._calendar_id, window.start, window.end, max_results=1
            )
        except CalendarAPIError as exc:
            log.error("Availability check failed: %s (details: %s)", exc, exc.details)
            raise RemoteCallError(
                "Server error while checking availability."
            ) from exc
        except Exception as exc:
            log.exception("Availability check failed")
            raise RemoteCallError(
                "Server error while checking availability."
            ) from exc

        available = not events
        log.info("Availability result: available=%s", available)
        return available

    async def create_booking(self, request: BookingRequest) -> BookingResponse:
        """Create a calendar event for the requested slot.

        The contact email is never added as an attendee: service accounts
        cannot invite guests without domain-wide delegation.
        """
        self.ensure_ready()
        log.info(
            "Booking received: summary=%r start=%s end=%s email=%s",
            request.summary,
            request.start_date_time_iso,
            request.end_date_time_iso,
            redact_pii(request.email or ""),
        )

        if not (request.summary and request.start_date_time_iso and request.end_date_time_iso):
            log.error("Booking rejected: summary, startDateTimeISO or endDateTimeISO missing")
            raise BookingValidationError(
                "Summary, start date/time and end date/time are required."
            )
        if not self._calendar_id:
            log.error("Booking rejected: CALENDAR_ID not configured")
            raise CalendarConfigError()

        start = parse_timestamp(request.start_date_time_iso, "startDateTimeISO")
        end = parse_timestamp(request.end_date_time_iso, "endDateTimeISO")
        try:
            slot = TimeSlot(start=start, end=end)
        except (TypeError, ValueError) as exc:
            # TypeError: one timestamp has an offset and the other does not
            raise BookingValidationError(
                "endDateTimeISO must be after startDateTimeISO."
            ) from exc

        event = CalendarEvent(
            summary=request.summary,
            start=slot.start,
            end=slot.end,
            time_zone=self._time_zone,
            description=request.description or "",
            reminders=list(BOOKING_REMINDERS),
        )

        log.info("Creating event on calendar %s", self._calendar_id)
        try:
            result = await self._provider.create_event(self._calendar_id, event)
        except CalendarAPIError as exc:
            log.error("Booking failed: %s (details: %s)", exc, exc.details)
            if exc.status == 409:
                raise SlotTakenError() from exc
            raise RemoteCallError(
                "Server error while creating the booking."
            ) from exc
        except Exception as exc:
            log.exception("Booking failed")
            raise RemoteCallError(
                "Server error while creating the booking."
            ) from exc

        log.info("Event created: %s", result.get("html_link", ""))
        return BookingResponse(
            success=True,
            event_link=result.get("html_link", ""),
            event_id=result["event_id"],
        )


def initialize_gateway(settings: Settings) -> BookingGateway:
    """Exchange service-account credentials for a calendar client.

    Never raises: on any failure the returned gateway is UNINITIALIZED.
    """
    gateway_args = {
        "calendar_id": settings.calendar_id,
        "time_zone": settings.calendar_timezone,
    }

    if not settings.credentials_configured:
        log.error(
            "Cannot initialize Google Calendar: GOOGLE_CLIENT_EMAIL, "
            "GOOGLE_PRIVATE_KEY or CALENDAR_ID missing."
        )
        return BookingGateway(provider=None, **gateway_args)

    from booking_gateway.calendar_providers.google import GoogleCalendarProvider

    try:
        provider = GoogleCalendarProvider.from_service_account(
            settings.google_client_email, settings.google_private_key
        )
    except Exception as exc:
        log.error("Google Calendar initialization failed: %s", exc)
        return BookingGateway(provider=None, **gateway_args)

    log.info("Google Calendar client initialized for calendar %s", settings.calendar_id)
    return BookingGateway(provider=provider, **gateway_args)
