import asyncio
import logging
import os
from abc import ABC, abstractmethod
from datetime import date, datetime, time, timezone
from typing import Any, Dict, List, Optional

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from calendar_filler.errors import CalendarStoreError
from calendar_filler.models import CalendarEvent, StoredEvent

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/calendar.events"]
TAG_PROPERTY = "generated_by"


class CalendarStore(ABC):
    """External calendar the service writes into. Failures are per item."""

    @abstractmethod
    async def create(self, event: CalendarEvent) -> str:
        """Create the event and return its external id."""

    @abstractmethod
    async def list(self, tag: str, time_min: datetime, time_max: datetime) -> List[StoredEvent]:
        """Events carrying ``tag`` whose start falls within the window."""

    @abstractmethod
    async def delete(self, external_id: str) -> None:
        ...


def _parse_when(when: Dict[str, str]) -> datetime:
    if "dateTime" in when:
        return datetime.fromisoformat(when["dateTime"].replace("Z", "+00:00"))
    # all-day events only carry a date
    return datetime.combine(date.fromisoformat(when["date"]), time(), tzinfo=timezone.utc)


def to_google_event(event: CalendarEvent) -> Dict[str, Any]:
    private = {TAG_PROPERTY: event.tag}
    private.update({k: str(v) for k, v in event.metadata.items()})
    return {
        "summary": event.title,
        "description": event.description,
        "start": {"dateTime": event.interval.start.isoformat(), "timeZone": event.timezone},
        "end": {"dateTime": event.interval.end.isoformat(), "timeZone": event.timezone},
        "extendedProperties": {"private": private},
    }


def from_google_event(item: Dict[str, Any]) -> StoredEvent:
    private = item.get("extendedProperties", {}).get("private", {})
    return StoredEvent(
        id=item["id"],
        title=item.get("summary", "(No Title)"),
        start=_parse_when(item["start"]),
        end=_parse_when(item["end"]),
        description=item.get("description", ""),
        user_input=private.get("user_input"),
        html_link=item.get("htmlLink"),
    )


class GoogleCalendarStore(CalendarStore):
    """
    Google Calendar backed store.

    The Google client is blocking, so every call runs in a worker thread.
    httplib2 connections are not thread-safe, so each call builds its own
    service object unless one was injected.
    """

    def __init__(self, credentials=None, calendar_id: str = "primary", service=None):
        self.credentials = credentials
        self.calendar_id = calendar_id
        self._service = service

    @classmethod
    def from_token_file(cls, path: str, calendar_id: str = "primary") -> Optional["GoogleCalendarStore"]:
        """Load an already-authorized user token; None when there is none."""
        if not path or not os.path.exists(path):
            return None
        credentials = Credentials.from_authorized_user_file(path, SCOPES)
        return cls(credentials=credentials, calendar_id=calendar_id)

    def _events(self):
        service = self._service or build(
            "calendar", "v3", credentials=self.credentials, cache_discovery=False
        )
        return service.events()

    async def _execute(self, make_request, operation: str) -> Any:
        def _run():
            return make_request(self._events()).execute()

        try:
            return await asyncio.to_thread(_run)
        except HttpError as e:
            status = getattr(e.resp, "status", None)
            raise CalendarStoreError(f"{operation} failed: HTTP {status}", status=status) from e

    async def create(self, event: CalendarEvent) -> str:
        body = to_google_event(event)
        created = await self._execute(
            lambda events: events.insert(calendarId=self.calendar_id, body=body),
            "insert",
        )
        logger.debug(f"Created: {created.get('summary')} ({created['id']})")
        return created["id"]

    async def list(self, tag: str, time_min: datetime, time_max: datetime) -> List[StoredEvent]:
        found: List[StoredEvent] = []
        page_token = None
        while True:
            response = await self._execute(
                lambda events: events.list(
                    calendarId=self.calendar_id,
                    timeMin=time_min.isoformat(),
                    timeMax=time_max.isoformat(),
                    singleEvents=True,
                    orderBy="startTime",
                    privateExtendedProperty=f"{TAG_PROPERTY}={tag}",
                    pageToken=page_token,
                ),
                "list",
            )
            for item in response.get("items", []):
                private = item.get("extendedProperties", {}).get("private", {})
                if private.get(TAG_PROPERTY) == tag:
                    found.append(from_google_event(item))
            page_token = response.get("nextPageToken")
            if not page_token:
                return found

    async def delete(self, external_id: str) -> None:
        await self._execute(
            lambda events: events.delete(calendarId=self.calendar_id, eventId=external_id),
            "delete",
        )
