"""Calendar provider abstractions and implementations."""

from .base import CalendarAPIError, CalendarEvent, CalendarProvider, Reminder, TimeSlot

__all__ = ["CalendarAPIError", "CalendarProvider", "CalendarEvent", "Reminder", "TimeSlot"]
