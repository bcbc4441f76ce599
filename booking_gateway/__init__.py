"""Booking gateway: availability checks and bookings proxied to Google Calendar."""

__version__ = "0.1.0"
