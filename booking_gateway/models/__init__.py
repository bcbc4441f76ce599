"""Data models for the booking API."""

from .booking import (
    AvailabilityRequest,
    AvailabilityResponse,
    BookingRequest,
    BookingResponse,
    ErrorResponse,
)

__all__ = [
    "AvailabilityRequest",
    "AvailabilityResponse",
    "BookingRequest",
    "BookingResponse",
    "ErrorResponse",
]
