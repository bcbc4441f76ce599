"""Tests for CalendarProvider ABC and GoogleCalendarProvider."""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import httplib2
import pytest
from googleapiclient.errors import HttpError

from booking_gateway.calendar_providers.base import (
    CalendarAPIError,
    CalendarEvent,
    CalendarProvider,
    Reminder,
    TimeSlot,
)


def _http_error(status: int, code: int | None = None, message: str = "boom") -> HttpError:
    body = {"error": {"code": code if code is not None else status, "message": message}}
    return HttpError(httplib2.Response({"status": status}), json.dumps(body).encode("utf-8"))


# ── TimeSlot / CalendarEvent dataclass tests ────────────────────────


class TestDataclasses:
    def test_timeslot_creation(self):
        now = datetime.now(tz=timezone.utc)
        slot = TimeSlot(start=now, end=now + timedelta(hours=1))
        assert (slot.end - slot.start).total_seconds() == 3600

    def test_timeslot_rejects_end_before_start(self):
        now = datetime.now(tz=timezone.utc)
        with pytest.raises(ValueError):
            TimeSlot(start=now, end=now - timedelta(minutes=1))

    def test_timeslot_rejects_empty_slot(self):
        now = datetime.now(tz=timezone.utc)
        with pytest.raises(ValueError):
            TimeSlot(start=now, end=now)

    def test_starting_at(self):
        start = datetime(2024, 6, 1, 10, 0, tzinfo=timezone.utc)
        slot = TimeSlot.starting_at(start, 30)
        assert slot.end == datetime(2024, 6, 1, 10, 30, tzinfo=timezone.utc)

    def test_calendar_event_defaults(self):
        now = datetime.now(tz=timezone.utc)
        event = CalendarEvent(
            summary="Test",
            start=now,
            end=now + timedelta(minutes=30),
        )
        assert event.description == ""
        assert event.attendees == []
        assert event.reminders == []
        assert event.time_zone == ""


# ── ABC contract tests ─────────────────────────────────────────────


class TestCalendarProviderABC:
    def test_cannot_instantiate(self):
        """CalendarProvider is abstract and can't be instantiated directly."""
        with pytest.raises(TypeError):
            CalendarProvider()

    def test_concrete_implementation(self):
        class MockProvider(CalendarProvider):
            async def list_events(self, calendar_id, start, end, max_results=1):
                return []
            async def create_event(self, calendar_id, event):
                return {}

        provider = MockProvider()
        assert isinstance(provider, CalendarProvider)


# ── GoogleCalendarProvider tests (mocked API) ──────────────────────


class TestGoogleCalendarProvider:
    @pytest.fixture
    def mock_provider(self):
        """Create a GoogleCalendarProvider with a mocked discovery client."""
        with patch("booking_gateway.calendar_providers.google.build") as mock_build:
            from booking_gateway.calendar_providers.google import GoogleCalendarProvider

            provider = GoogleCalendarProvider(credentials=MagicMock())
            provider._service = mock_build.return_value
            yield provider

    def test_from_service_account(self):
        with patch(
            "booking_gateway.calendar_providers.google.Credentials"
        ) as mock_creds, patch(
            "booking_gateway.calendar_providers.google.build"
        ) as mock_build:
            from booking_gateway.calendar_providers.google import (
                SCOPES,
                GoogleCalendarProvider,
            )

            GoogleCalendarProvider.from_service_account("svc@project.iam", "PEM")

        info = mock_creds.from_service_account_info.call_args.args[0]
        assert info["client_email"] == "svc@project.iam"
        assert info["private_key"] == "PEM"
        assert mock_creds.from_service_account_info.call_args.kwargs["scopes"] == SCOPES
        assert mock_build.call_args.args[:2] == ("calendar", "v3")

    def test_from_service_account_requires_credentials(self):
        from booking_gateway.calendar_providers.google import GoogleCalendarProvider

        with pytest.raises(ValueError):
            GoogleCalendarProvider.from_service_account("", "PEM")

    async def test_list_events_query(self, mock_provider):
        """list_events should expand recurring events and order by start."""
        start = datetime(2024, 6, 1, 10, 0, tzinfo=timezone.utc)
        end = start + timedelta(minutes=30)
        events_api = mock_provider._service.events.return_value
        events_api.list.return_value.execute.return_value = {"items": []}

        items = await mock_provider.list_events("cal-1", start, end, max_results=1)

        assert items == []
        kwargs = events_api.list.call_args.kwargs
        assert kwargs["calendarId"] == "cal-1"
        assert kwargs["timeMin"] == "2024-06-01T10:00:00+00:00"
        assert kwargs["timeMax"] == "2024-06-01T10:30:00+00:00"
        assert kwargs["maxResults"] == 1
        assert kwargs["singleEvents"] is True
        assert kwargs["orderBy"] == "startTime"

    async def test_list_events_naive_treated_as_utc(self, mock_provider):
        events_api = mock_provider._service.events.return_value
        events_api.list.return_value.execute.return_value = {}

        items = await mock_provider.list_events(
            "cal-1", datetime(2024, 6, 1, 10, 0), datetime(2024, 6, 1, 10, 30)
        )

        assert items == []
        assert events_api.list.call_args.kwargs["timeMin"] == "2024-06-01T10:00:00+00:00"

    async def test_list_events_returns_items(self, mock_provider):
        events_api = mock_provider._service.events.return_value
        events_api.list.return_value.execute.return_value = {
            "items": [{"id": "evt_1", "summary": "Busy"}]
        }
        start = datetime(2024, 6, 1, 10, 0, tzinfo=timezone.utc)

        items = await mock_provider.list_events("cal-1", start, start + timedelta(minutes=30))

        assert [e["id"] for e in items] == ["evt_1"]

    async def test_create_event(self, mock_provider):
        """create_event should call events().insert() and return event data."""
        start = datetime(2024, 6, 1, 10, 0, tzinfo=timezone.utc)
        event = CalendarEvent(
            summary="Consult",
            start=start,
            end=start + timedelta(minutes=30),
            time_zone="Europe/Paris",
            description="First meeting",
            reminders=[Reminder("email", 1440), Reminder("popup", 10)],
        )
        events_api = mock_provider._service.events.return_value
        events_api.insert.return_value.execute.return_value = {
            "id": "evt_123",
            "htmlLink": "https://calendar.google.com/event/evt_123",
            "status": "confirmed",
        }

        result = await mock_provider.create_event("cal-1", event)

        assert result["event_id"] == "evt_123"
        assert result["html_link"] == "https://calendar.google.com/event/evt_123"

        kwargs = events_api.insert.call_args.kwargs
        body = kwargs["body"]
        assert kwargs["calendarId"] == "cal-1"
        assert kwargs["sendUpdates"] == "all"
        assert body["start"] == {"dateTime": "2024-06-01T10:00:00+00:00", "timeZone": "Europe/Paris"}
        assert body["end"]["timeZone"] == "Europe/Paris"
        assert body["description"] == "First meeting"
        assert body["reminders"] == {
            "useDefault": False,
            "overrides": [
                {"method": "email", "minutes": 1440},
                {"method": "popup", "minutes": 10},
            ],
        }
        assert "attendees" not in body

    async def test_create_event_conflict_raises_calendar_error(self, mock_provider):
        events_api = mock_provider._service.events.return_value
        events_api.insert.return_value.execute.side_effect = _http_error(409, message="Conflict")
        start = datetime(2024, 6, 1, 10, 0, tzinfo=timezone.utc)
        event = CalendarEvent(summary="Consult", start=start, end=start + timedelta(minutes=30))

        with pytest.raises(CalendarAPIError) as exc_info:
            await mock_provider.create_event("cal-1", event)

        assert exc_info.value.status == 409
        assert exc_info.value.message == "Conflict"
        assert exc_info.value.details["code"] == 409

    async def test_list_events_forbidden_raises_calendar_error(self, mock_provider):
        events_api = mock_provider._service.events.return_value
        events_api.list.return_value.execute.side_effect = _http_error(403)
        start = datetime(2024, 6, 1, 10, 0, tzinfo=timezone.utc)

        with pytest.raises(CalendarAPIError) as exc_info:
            await mock_provider.list_events("cal-1", start, start + timedelta(minutes=30))

        assert exc_info.value.status == 403
