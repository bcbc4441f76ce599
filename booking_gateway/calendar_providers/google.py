"""Google Calendar provider implementation.

Uses a Google Cloud service account to interact with the Calendar API v3.
The client email and PEM private key are passed in directly (they come from
``GOOGLE_CLIENT_EMAIL`` / ``GOOGLE_PRIVATE_KEY``) instead of a key file.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from functools import partial
from typing import Any

from google.oauth2.service_account import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from .base import CalendarAPIError, CalendarEvent, CalendarProvider

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/calendar"]
TOKEN_URI = "https://oauth2.googleapis.com/token"


class GoogleCalendarProvider(CalendarProvider):
    """CalendarProvider backed by Google Calendar API v3."""

    def __init__(self, credentials: Credentials) -> None:
        self._credentials = credentials
        self._service = build(
            "calendar", "v3", credentials=self._credentials, cache_discovery=False
        )

    @classmethod
    def from_service_account(
        cls, client_email: str, private_key: str
    ) -> "GoogleCalendarProvider":
        """Build a provider from raw service-account credentials.

        Raises ``ValueError`` when either value is empty or the key cannot
        be parsed.
        """
        if not client_email or not private_key:
            raise ValueError(
                "Service account client email and private key must both be provided."
            )
        credentials = Credentials.from_service_account_info(
            {
                "type": "service_account",
                "client_email": client_email,
                "private_key": private_key,
                "token_uri": TOKEN_URI,
            },
            scopes=SCOPES,
        )
        return cls(credentials)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _run_in_executor(self, func, *args, **kwargs) -> Any:
        """Run a synchronous Google API call in the default thread pool.

        ``HttpError`` is translated to :class:`CalendarAPIError`.
        """
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(
                None, partial(func, *args, **kwargs)
            )
        except HttpError as exc:
            raise _to_calendar_error(exc) from exc

    @staticmethod
    def _to_rfc3339(dt: datetime) -> str:
        """Convert a datetime to an RFC 3339 string with timezone."""
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.isoformat()

    # ------------------------------------------------------------------
    # CalendarProvider interface
    # ------------------------------------------------------------------

    async def list_events(
        self,
        calendar_id: str,
        start: datetime,
        end: datetime,
        max_results: int = 1,
    ) -> list[dict]:
        """List events overlapping the window via ``events().list()``."""
        response = await self._run_in_executor(
            self._service.events()
            .list(
                calendarId=calendar_id,
                timeMin=self._to_rfc3339(start),
                timeMax=self._to_rfc3339(end),
                maxResults=max_results,
                singleEvents=True,
                orderBy="startTime",
            )
            .execute
        )
        return (response or {}).get("items", [])

    async def create_event(
        self, calendar_id: str, event: CalendarEvent
    ) -> dict:
        """Insert an event into the Google Calendar.

        Naive datetimes are sent without an offset so that Google reads
        them in ``event.time_zone``.
        """
        start: dict[str, Any] = {"dateTime": event.start.isoformat()}
        end: dict[str, Any] = {"dateTime": event.end.isoformat()}
        if event.time_zone:
            start["timeZone"] = event.time_zone
            end["timeZone"] = event.time_zone

        body: dict[str, Any] = {
            "summary": event.summary,
            "start": start,
            "end": end,
        }
        if event.description:
            body["description"] = event.description
        if event.reminders:
            body["reminders"] = {
                "useDefault": False,
                "overrides": [
                    {"method": r.method, "minutes": r.minutes}
                    for r in event.reminders
                ],
            }
        if event.attendees:
            body["attendees"] = [
                {"email": addr} for addr in event.attendees
            ]

        result = await self._run_in_executor(
            self._service.events()
            .insert(
                calendarId=calendar_id,
                body=body,
                sendUpdates="all",
            )
            .execute
        )

        logger.info("Created event %s on calendar %s", result["id"], calendar_id)

        return {
            "event_id": result["id"],
            "html_link": result.get("htmlLink", ""),
            "status": result.get("status", "confirmed"),
        }


def _to_calendar_error(exc: HttpError) -> CalendarAPIError:
    status = getattr(exc.resp, "status", 0)
    details: Any = None
    message = ""
    try:
        payload = json.loads(exc.content.decode("utf-8"))
    except (AttributeError, UnicodeDecodeError, ValueError):
        payload = None
    if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
        details = payload["error"]
        message = details.get("message", "")
        # The error body code wins over the transport status when present
        status = int(details.get("code") or status)
    return CalendarAPIError(int(status), message or str(exc.reason or ""), details)
