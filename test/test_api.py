from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from api import state
from api.dependencies import get_calendar_store, get_services
from api.main import app
from calendar_filler.config import SchedulingConfig
from conftest import FakeCalendarStore, FakeProvider, SleepRecorder, events_json
from llm.llm_client import ContentClient
from llm.rate_limiter import ProviderRateLimiter
from storage.content_cache import ContentCache


def make_services(provider=None):
    config = SchedulingConfig(batch_cooldown_ms=0, provider_backoff_schedule_ms=(0,))
    limiter = ProviderRateLimiter(config.provider_requests_per_minute)
    client = None
    if provider is not None:
        client = ContentClient(provider, config=config, rate_limiter=limiter, sleep=SleepRecorder())
    return state.SharedServices(config=config, cache=ContentCache(), rate_limiter=limiter, content_client=client)


@pytest.fixture
def api():
    store = FakeCalendarStore()
    services = make_services(FakeProvider(events_json("Gym A", "Gym B", "Gym C")))
    app.dependency_overrides[get_calendar_store] = lambda: store
    app.dependency_overrides[get_services] = lambda: services
    yield TestClient(app), store, services
    app.dependency_overrides.clear()


def body(start, **overrides):
    payload = {
        "startDate": start.isoformat(),
        "endDate": (start + timedelta(days=3)).isoformat(),
        "count": 3,
        "description": "gym",
        "timezone": "UTC",
    }
    payload.update(overrides)
    return payload


def test_create_events_returns_camel_case_summary(api, next_week):
    client, store, _ = api
    response = client.post("/api/events", json=body(next_week, earliestStartTime=9))
    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Events created successfully"
    assert data["requestedCount"] == 3
    assert data["successfulCount"] == 3
    assert data["failedCount"] == 0
    assert data["contentSource"] == "provider"
    assert data["userInput"] == "gym"
    assert [e["title"] for e in data["events"]] == ["Gym A", "Gym B", "Gym C"]
    assert {e["id"] for e in data["events"]} == set(store.events)


def test_user_input_alias_is_accepted(api, next_week):
    client, _, _ = api
    payload = body(next_week, userInput="study sessions")
    del payload["description"]
    response = client.post("/api/events", json=payload)
    assert response.status_code == 200
    assert response.json()["userInput"] == "study sessions"


def test_partial_failure_message(api, next_week):
    client, store, _ = api
    store.fail_titles = {"Gym B"}
    data = client.post("/api/events", json=body(next_week)).json()
    assert data["message"] == "Created 2 of 3 events"
    failed = [e for e in data["events"] if e["error"]]
    assert failed[0]["reason"] == "quota exceeded"


@pytest.mark.parametrize(
    "overrides,error",
    [
        ({"count": 31}, "Count must be between 1 and 30"),
        ({"endDate": "2000-01-01"}, "End date must be after or equal to start date"),
        ({"startDate": None}, "startDate and endDate are required"),
        ({"startDate": "not-a-date"}, "Invalid date format. Use YYYY-MM-DD format."),
        ({"endDate": "2030-13-45"}, "Invalid date format. Use YYYY-MM-DD format."),
    ],
)
def test_rejected_requests_return_400(api, next_week, overrides, error):
    client, store, _ = api
    response = client.post("/api/events", json=body(next_week, **overrides))
    assert response.status_code == 400
    assert response.json() == {"error": error}
    assert store.create_calls == 0


@pytest.mark.parametrize("field,value", [("count", "many"), ("description", None)])
def test_malformed_fields_return_400(api, next_week, field, value):
    client, store, _ = api
    response = client.post("/api/events", json=body(next_week, **{field: value}))
    assert response.status_code == 400
    assert response.json()["error"].startswith(f"Invalid request: {field}: ")
    assert store.create_calls == 0


def test_not_connected_calendar_returns_401(next_week):
    app.dependency_overrides[get_calendar_store] = lambda: None
    app.dependency_overrides[get_services] = lambda: make_services()
    try:
        response = TestClient(app).post("/api/events", json=body(next_week))
    finally:
        app.dependency_overrides.clear()
    assert response.status_code == 401
    assert response.json() == {"error": "Not authorized. Visit /auth first."}


def test_list_and_delete_created(api, next_week):
    client, store, _ = api
    client.post("/api/events", json=body(next_week))

    listed = client.get("/api/events/created").json()
    assert listed["total"] == 3
    assert {e["userInput"] for e in listed["events"]} == {"gym"}

    deleted = client.delete("/api/events").json()
    assert deleted["totalFound"] == 3
    assert deleted["successfullyDeleted"] == 3
    assert deleted["failedDeletions"] == 0
    assert store.events == {}


def test_health_reports_provider_and_calendar(api):
    client, _, _ = api
    data = client.get("/health").json()
    assert data == {"status": "healthy", "provider": "fake", "calendar_connected": True, "cache_entries": 0}


def test_metrics_endpoint(api, next_week):
    client, _, _ = api
    client.post("/api/events", json=body(next_week))
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "calfill_requests_total" in response.text
    assert "calfill_cache_entries 1.0" in response.text
