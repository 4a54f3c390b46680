import pytest
from datetime import datetime, timezone

from calendar_filler.config import SchedulingConfig, WorkingHours
from calendar_filler.errors import ProviderError
from calendar_filler.models import ContentItem, TimeInterval


def test_content_item_invalid_duration():
    with pytest.raises(Exception):
        ContentItem(title="Bad", duration_min=0)


def test_content_item_empty_title():
    with pytest.raises(Exception):
        ContentItem(title="   ", duration_min=30)


def test_interval_end_must_follow_start():
    t = datetime(2026, 11, 2, 9, 0, tzinfo=timezone.utc)
    with pytest.raises(Exception):
        TimeInterval(start=t, end=t)


def test_working_hours_out_of_range():
    with pytest.raises(ValueError):
        WorkingHours(start=8, end=24)


@pytest.mark.parametrize(
    "start,end,earliest,expected",
    [(8, 1, 0, True), (8, 1, 8, True), (8, 8, 8, True), (8, 22, 8, False), (8, 22, 23, True)],
)
def test_working_hours_next_day_close(start, end, earliest, expected):
    assert WorkingHours(start=start, end=end).wraps_for(earliest) is expected


def test_config_rejects_empty_groups():
    with pytest.raises(ValueError):
        SchedulingConfig(batch_group_size=0)


def test_config_rejects_retries_without_schedule():
    with pytest.raises(ValueError):
        SchedulingConfig(provider_max_retries=2, provider_backoff_schedule_ms=())


def test_config_backoff_and_timeout():
    config = SchedulingConfig()
    assert [config.backoff_s(i) for i in range(4)] == [1.0, 2.0, 4.0, 4.0]
    assert config.provider_timeout_s(1) == pytest.approx(10.5)
    assert config.provider_timeout_s(30) == 20.0


@pytest.mark.parametrize(
    "kind,retryable",
    [("rate_limited", True), ("timeout", True), ("network", True), ("malformed", False), ("other", False)],
)
def test_provider_error_retryable(kind, retryable):
    assert ProviderError(kind).retryable is retryable
