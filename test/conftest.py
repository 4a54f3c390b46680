import itertools
from datetime import date, timedelta

import pytest

from calendar_filler.config import SchedulingConfig
from calendar_filler.errors import CalendarStoreError
from calendar_filler.models import StoredEvent
from integration.calendar_integration import CalendarStore


class FakeProvider:
    """Replays scripted replies; an Exception in the script is raised instead."""

    name = "fake"

    def __init__(self, *responses):
        self._responses = list(responses)
        self.calls = 0

    async def generate(self, *, system: str, user: str, max_tokens=None) -> str:
        self.calls += 1
        response = self._responses[min(self.calls, len(self._responses)) - 1]
        if isinstance(response, Exception):
            raise response
        return response


class FakeCalendarStore(CalendarStore):
    def __init__(self, fail_titles=(), fail_deletes=()):
        self.fail_titles = set(fail_titles)
        self.fail_deletes = set(fail_deletes)
        self.events = {}
        self.create_calls = 0
        self._ids = itertools.count(1)

    async def create(self, event) -> str:
        self.create_calls += 1
        if event.title in self.fail_titles:
            raise CalendarStoreError("quota exceeded", status=403)
        external_id = f"evt-{next(self._ids)}"
        self.events[external_id] = event
        return external_id

    async def list(self, tag, time_min, time_max):
        return [
            StoredEvent(
                id=external_id,
                title=e.title,
                start=e.interval.start,
                end=e.interval.end,
                description=e.description,
                user_input=e.metadata.get("user_input"),
            )
            for external_id, e in self.events.items()
            if e.tag == tag and time_min <= e.interval.start <= time_max
        ]

    async def delete(self, external_id: str) -> None:
        if external_id in self.fail_deletes:
            raise CalendarStoreError("not found", status=404)
        del self.events[external_id]


class SleepRecorder:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def events_json(*titles, duration=60):
    import json

    return json.dumps(
        {"events": [{"title": t, "duration": duration, "description": f"About {t}"} for t in titles]}
    )


@pytest.fixture
def fake_provider_factory():
    def _make(*responses):
        return FakeProvider(*responses)
    return _make


@pytest.fixture
def calendar_store():
    return FakeCalendarStore()


@pytest.fixture
def sleep_recorder():
    return SleepRecorder()


@pytest.fixture
def fast_config():
    # no real waiting anywhere
    return SchedulingConfig(batch_cooldown_ms=0, provider_backoff_schedule_ms=(0,))


@pytest.fixture
def next_week():
    return date.today() + timedelta(days=7)
