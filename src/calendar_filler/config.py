from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple


@dataclass(frozen=True)
class WorkingHours:
    """Daily window for placing events.

    An ``end`` at or before ``start`` means the window closes at that hour on
    the following calendar day (8 -> 1 is 08:00 until 01:00 next morning).
    """

    start: int = 8
    end: int = 1

    def __post_init__(self) -> None:
        for name, hour in (("start", self.start), ("end", self.end)):
            if not 0 <= hour <= 23:
                raise ValueError(f"working hours {name} must be within 0-23, got {hour}")

    @property
    def wraps(self) -> bool:
        return self.end <= self.start

    def wraps_for(self, earliest_start_hour: int) -> bool:
        """Whether a day window opened at ``earliest_start_hour`` closes on the next day.

        A wrapping configuration always closes the next day, even when the
        request opens the window before the end hour (8 -> 1 opened at 0 is
        00:00 until 01:00 the following day).
        """
        return self.wraps or self.end <= earliest_start_hour


@dataclass(frozen=True)
class SchedulingConfig:
    working_hours: WorkingHours = field(default_factory=WorkingHours)
    buffer_minutes_between_events: int = 15
    batch_group_size: int = 3
    batch_cooldown_ms: int = 2000
    cache_ttl_ms: int = 300_000
    provider_max_retries: int = 3
    provider_backoff_schedule_ms: Tuple[int, ...] = (1000, 2000, 4000)
    max_events_per_request: int = 30

    max_overlap_attempts: int = 20
    day_jitter_probability: float = 0.3
    start_hour_jitter: int = 2
    provider_requests_per_minute: int = 60
    provider_timeout_base_s: float = 10.0
    provider_timeout_per_item_s: float = 0.5
    provider_timeout_cap_s: float = 20.0
    default_timezone: str = "America/New_York"
    event_tag: str = "calendar_filler"
    list_window_days: int = 30
    delete_window_days: int = 60

    def __post_init__(self) -> None:
        if self.batch_group_size < 1:
            raise ValueError("batch_group_size must be positive")
        if self.batch_cooldown_ms < 0 or self.cache_ttl_ms < 0:
            raise ValueError("durations must not be negative")
        if self.provider_max_retries < 0:
            raise ValueError("provider_max_retries must not be negative")
        if self.provider_max_retries and not self.provider_backoff_schedule_ms:
            raise ValueError("provider_backoff_schedule_ms must not be empty")
        if self.max_events_per_request < 1:
            raise ValueError("max_events_per_request must be positive")
        if not 0.0 <= self.day_jitter_probability <= 1.0:
            raise ValueError("day_jitter_probability must be within [0, 1]")

    @property
    def batch_cooldown_s(self) -> float:
        return self.batch_cooldown_ms / 1000.0

    @property
    def cache_ttl_s(self) -> float:
        return self.cache_ttl_ms / 1000.0

    def backoff_s(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (0-based); the last step repeats."""
        schedule = self.provider_backoff_schedule_ms
        return schedule[min(attempt, len(schedule) - 1)] / 1000.0

    def provider_timeout_s(self, count: int) -> float:
        return min(
            self.provider_timeout_base_s + count * self.provider_timeout_per_item_s,
            self.provider_timeout_cap_s,
        )
