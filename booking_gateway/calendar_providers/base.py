"""Abstract base class for calendar providers.

Defines the interface for listing events in a window and creating events.
Any calendar backend (Google, Outlook, etc.) implements this ABC.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any


@dataclass(frozen=True)
class TimeSlot:
    """A time interval under consideration for booking."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise ValueError(
                f"Slot end ({self.end.isoformat()}) must be after start ({self.start.isoformat()})"
            )

    @classmethod
    def starting_at(cls, start: datetime, minutes: int) -> "TimeSlot":
        return cls(start=start, end=start + timedelta(minutes=minutes))


@dataclass(frozen=True)
class Reminder:
    method: str  # "email" | "popup"
    minutes: int


@dataclass
class CalendarEvent:
    """Represents a calendar event to be created."""

    summary: str
    start: datetime
    end: datetime
    time_zone: str = ""
    description: str = ""
    reminders: list[Reminder] = field(default_factory=list)
    attendees: list[str] = field(default_factory=list)  # email addresses


class CalendarAPIError(Exception):
    """Provider-neutral error raised when the remote calendar rejects a call."""

    def __init__(self, status: int, message: str = "", details: Any = None) -> None:
        self.status = status
        self.message = message
        self.details = details
        super().__init__(f"Calendar API error {status}: {message}")


class CalendarProvider(ABC):
    """Abstract calendar backend.

    Subclasses must implement event listing and event creation.
    """

    @abstractmethod
    async def list_events(
        self,
        calendar_id: str,
        start: datetime,
        end: datetime,
        max_results: int = 1,
    ) -> list[dict]:
        """Return events overlapping ``[start, end)``.

        Recurring events are expanded into their concrete occurrences and
        results are ordered by start time.

        Args:
            calendar_id: The calendar to query.
            start: Beginning of the search window.
            end: End of the search window.
            max_results: Maximum number of events to return.

        Raises:
            CalendarAPIError: The remote service rejected the request.
        """

    @abstractmethod
    async def create_event(
        self, calendar_id: str, event: CalendarEvent
    ) -> dict:
        """Create a calendar event.

        Args:
            calendar_id: The calendar to create the event on.
            event: Event details.

        Returns:
            Dict containing at least ``"event_id"`` and ``"html_link"``.

        Raises:
            CalendarAPIError: The remote service rejected the request.
        """
