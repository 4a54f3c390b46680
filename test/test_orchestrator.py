from datetime import datetime, timedelta, timezone

import pytest

from api.backend import RequestOrchestrator
from calendar_filler.config import SchedulingConfig
from calendar_filler.errors import ProviderError, RequestRejected
from calendar_filler.models import EventRequest
from conftest import FakeCalendarStore, FakeProvider, SleepRecorder, events_json
from content.templates import FALLBACK_TEMPLATES
from llm.llm_client import ContentClient
from scheduling.slot_allocator import SlotAllocator
from storage.content_cache import ContentCache


def make_orchestrator(store, provider=None, config=None, cache=None, allocator=None):
    config = config or SchedulingConfig(batch_cooldown_ms=0, provider_backoff_schedule_ms=(0,))
    client = ContentClient(provider, config=config, sleep=SleepRecorder()) if provider else None
    return RequestOrchestrator(
        store=store,
        cache=cache if cache is not None else ContentCache(),
        content_client=client,
        config=config,
        allocator=allocator,
        sleep=SleepRecorder(),
    )


def make_request(start, days=7, count=5, description="gym", **extra):
    return EventRequest(
        start_date=start,
        end_date=start + timedelta(days=days),
        count=count,
        description=description,
        timezone="UTC",
        **extra,
    )


@pytest.mark.asyncio
async def test_fills_range_with_generated_events(calendar_store, next_week):
    provider = FakeProvider(events_json("Gym A", "Gym B", "Gym C", "Gym D", "Gym E"))
    summary = await make_orchestrator(calendar_store, provider).create_events(make_request(next_week))

    assert summary.requested_count == 5
    assert summary.successful_count + summary.failed_count == 5
    assert summary.content_source == "provider"
    assert summary.timezone == "UTC"
    assert summary.user_input == "gym"
    assert len(summary.events) == 5
    for event in summary.events:
        assert next_week <= event.start.date() <= next_week + timedelta(days=7)
    created = [e for e in summary.events if not e.error]
    assert {e.id for e in created} == set(calendar_store.events)


@pytest.mark.asyncio
async def test_end_before_start_is_rejected_without_side_effects(calendar_store, next_week):
    provider = FakeProvider(events_json("A"))
    request = make_request(next_week, days=-1)
    with pytest.raises(RequestRejected, match="End date must be after or equal to start date"):
        await make_orchestrator(calendar_store, provider).create_events(request)
    assert provider.calls == 0
    assert calendar_store.create_calls == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("count", [0, 31])
async def test_count_out_of_bounds_is_rejected(calendar_store, next_week, count):
    with pytest.raises(RequestRejected, match="Count must be between 1 and 30"):
        await make_orchestrator(calendar_store).create_events(make_request(next_week, count=count))


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "request_kwargs,message",
    [
        ({"count": 2, "description": "   "}, "description"),
        ({"count": 2, "timezone": "Mars/Olympus"}, "Unknown timezone"),
        ({"count": 2, "earliest_start_hour": 24}, "earliestStartTime"),
    ],
)
async def test_other_invalid_inputs_are_rejected(calendar_store, next_week, request_kwargs, message):
    payload = {"start_date": next_week, "end_date": next_week, "timezone": "UTC", **request_kwargs}
    with pytest.raises(RequestRejected, match=message):
        await make_orchestrator(calendar_store).create_events(EventRequest(**payload))


@pytest.mark.asyncio
async def test_missing_dates_are_rejected(calendar_store):
    with pytest.raises(RequestRejected, match="required"):
        await make_orchestrator(calendar_store).create_events(EventRequest(count=1))


@pytest.mark.asyncio
@pytest.mark.parametrize("failure", [ProviderError("other", "invalid api key"), RuntimeError("boom")])
async def test_provider_failure_falls_back(calendar_store, next_week, failure):
    provider = FakeProvider(failure)
    summary = await make_orchestrator(calendar_store, provider).create_events(make_request(next_week))

    fallback_titles = {t.title for t in FALLBACK_TEMPLATES["personal"]}
    assert summary.content_source == "fallback"
    assert summary.requested_count == 5
    assert {e.title for e in summary.events} <= fallback_titles
    assert summary.successful_count == 5


@pytest.mark.asyncio
async def test_without_provider_uses_fallback(calendar_store, next_week):
    summary = await make_orchestrator(calendar_store).create_events(make_request(next_week, count=3))
    assert summary.content_source == "fallback"
    assert summary.successful_count == 3


@pytest.mark.asyncio
async def test_short_provider_reply_is_topped_up(calendar_store, next_week):
    provider = FakeProvider(events_json("Gym A", "Gym B"))
    summary = await make_orchestrator(calendar_store, provider).create_events(make_request(next_week, count=4))
    titles = [e.title for e in summary.events]
    assert summary.content_source == "provider+fallback"
    assert titles[:2] == ["Gym A", "Gym B"]
    assert len(titles) == 4


@pytest.mark.asyncio
async def test_identical_request_is_served_from_cache(calendar_store, next_week):
    provider = FakeProvider(events_json("Gym A", "Gym B", "Gym C"))
    orchestrator = make_orchestrator(calendar_store, provider)
    first = await orchestrator.create_events(make_request(next_week, count=3))
    second = await orchestrator.create_events(make_request(next_week, count=3, description="  GYM "))

    assert provider.calls == 1
    assert first.content_source == "provider"
    assert second.content_source == "cache"
    assert [e.title for e in second.events] == ["Gym A", "Gym B", "Gym C"]


@pytest.mark.asyncio
async def test_store_failure_is_reported_per_event(next_week):
    store = FakeCalendarStore(fail_titles={"Gym B"})
    provider = FakeProvider(events_json("Gym A", "Gym B", "Gym C"))
    summary = await make_orchestrator(store, provider).create_events(make_request(next_week, count=3))

    assert summary.successful_count == 2
    assert summary.failed_count == 1
    failed = [e for e in summary.events if e.error]
    assert failed[0].title == "Gym B"
    assert failed[0].id == "failed-1"
    assert failed[0].reason == "quota exceeded"


@pytest.mark.asyncio
async def test_unplaceable_slots_stay_in_the_summary(calendar_store, next_week):
    config = SchedulingConfig(batch_cooldown_ms=0)
    far_future = datetime.now(timezone.utc) + timedelta(days=400)
    allocator = SlotAllocator(config, now=lambda: far_future)
    orchestrator = make_orchestrator(calendar_store, config=config, allocator=allocator)

    summary = await orchestrator.create_events(make_request(next_week, count=3))

    assert summary.requested_count == 3
    assert summary.failed_count == 3
    assert calendar_store.create_calls == 0
    assert [e.id for e in summary.events] == ["failed-0", "failed-1", "failed-2"]
    assert all(e.reason.startswith("slot unplaceable: ") for e in summary.events)


@pytest.mark.asyncio
async def test_created_event_payload(calendar_store, next_week):
    provider = FakeProvider('{"events": [{"title": "Swim", "duration": 30}]}')
    await make_orchestrator(calendar_store, provider).create_events(
        make_request(next_week, count=1, description="gym & swim!")
    )
    (event,) = calendar_store.events.values()
    assert event.title == "Swim"
    assert event.tag == "calendar_filler"
    assert event.timezone == "UTC"
    assert event.description == 'Generated by Calendar Filler | User request: "gym  swim" | Duration: 30 minutes'
    assert event.metadata == {"user_input": "gym & swim!", "duration": "30", "ai_description": "false"}
    assert event.interval.duration_min == 30


@pytest.mark.asyncio
async def test_list_and_delete_created_events(next_week):
    store = FakeCalendarStore()
    orchestrator = make_orchestrator(store, FakeProvider(events_json("A", "B", "C")))
    summary = await orchestrator.create_events(make_request(next_week, count=3))

    listed = await orchestrator.list_created_events()
    created = {e.id: (e.title, e.start, e.end) for e in summary.events}
    assert {e.id: (e.title, e.start, e.end) for e in listed} == created
    assert sorted(e.title for e in listed) == ["A", "B", "C"]
    assert all(e.user_input == "gym" for e in listed)

    store.fail_deletes = {listed[0].id}
    results = await orchestrator.delete_created_events()
    assert sum(r.deleted for r in results) == 2
    failed = [r for r in results if not r.deleted]
    assert failed[0].id == listed[0].id
    assert failed[0].error == "not found"
    assert len(store.events) == 1
