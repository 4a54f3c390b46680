from __future__ import annotations

import logging
import random
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Callable, Optional, Sequence, Tuple

from calendar_filler.config import SchedulingConfig, WorkingHours
from calendar_filler.models import AllocationResult, ScheduledSet, TimeInterval

logger = logging.getLogger(__name__)

MAX_FUTURE = timedelta(days=365)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SlotAllocator:
    """
    Greedy placement of N events across an inclusive date range.

    Event ``i`` targets day ``floor(i / (count-1) * (days-1))`` so events are
    spread evenly from the first day to the last, with an occasional one-day
    jitter. Inside the day the start lands near the earliest start hour.
    Overlaps are resolved by moving past the conflicting interval plus a
    buffer; an event that would run past the day's window moves to the next
    day's window. Placement gives up after a bounded number of moves and the
    event is reported as skipped.

    All arithmetic is done on aware UTC datetimes; the local timezone is only
    used to anchor each day's working-hours window.
    """

    def __init__(
        self,
        config: Optional[SchedulingConfig] = None,
        rng: Optional[random.Random] = None,
        now: Callable[[], datetime] = _utcnow,
    ):
        self.config = config or SchedulingConfig()
        self.rng = rng or random.Random()
        self._now = now

    def allocate(
        self,
        range_start: date,
        range_end: date,
        count: int,
        durations: Sequence[int],
        tz: tzinfo = timezone.utc,
        earliest_start_hour: Optional[int] = None,
        existing: Optional[ScheduledSet] = None,
        working_hours: Optional[WorkingHours] = None,
    ) -> AllocationResult:
        hours = working_hours or self.config.working_hours
        earliest = hours.start if earliest_start_hour is None else earliest_start_hour
        self._check_inputs(range_start, range_end, count, durations, earliest)
        scheduled = existing if existing is not None else ScheduledSet()

        total_days = (range_end - range_start).days + 1
        result = AllocationResult(slots=[])
        for i, duration in enumerate(durations):
            day = range_start + timedelta(days=self._day_offset(i, count, total_days))
            interval, reason = self._place(day, range_end, duration, tz, earliest, hours, scheduled)
            if interval is None:
                logger.warning(f"Event {i + 1} skipped: {reason}")
                result.skip_reasons[i] = reason
            else:
                scheduled.add(interval)
            result.slots.append(interval)

        logger.info(
            f"Slots allocated: {count - result.skipped}, skipped: {result.skipped}, "
            f"total requested: {count} over {total_days} day(s)"
        )
        return result

    def _check_inputs(
        self,
        range_start: date,
        range_end: date,
        count: int,
        durations: Sequence[int],
        earliest: int,
    ) -> None:
        if range_end < range_start:
            raise ValueError("range end must not be before range start")
        if not 1 <= count <= self.config.max_events_per_request:
            raise ValueError(f"count must be between 1 and {self.config.max_events_per_request}")
        if len(durations) != count:
            raise ValueError("one duration is required per event")
        if any(d <= 0 for d in durations):
            raise ValueError("durations must be positive")
        if not 0 <= earliest <= 23:
            raise ValueError("earliest start hour must be within 0-23")

    def _day_offset(self, index: int, count: int, total_days: int) -> int:
        last = total_days - 1
        offset = min(index * max(1, last) // max(1, count - 1), last)
        if offset < last and self.rng.random() < self.config.day_jitter_probability:
            offset += 1
        return offset

    def _window(
        self, day: date, tz: tzinfo, earliest: int, hours: WorkingHours
    ) -> Tuple[datetime, datetime]:
        end_day = day + timedelta(days=1) if hours.wraps_for(earliest) else day
        start = datetime.combine(day, time(earliest), tzinfo=tz).astimezone(timezone.utc)
        end = datetime.combine(end_day, time(hours.end), tzinfo=tz).astimezone(timezone.utc)
        return start, end

    def _candidate_start(
        self, window: Tuple[datetime, datetime], duration: int
    ) -> datetime:
        window_start, window_end = window
        start = window_start + timedelta(
            hours=self.rng.randint(0, self.config.start_hour_jitter),
            minutes=self.rng.randint(0, 59),
        )
        latest = window_end - timedelta(minutes=duration)
        if start > latest:
            start = max(window_start, latest)
        return start

    def _place(
        self,
        day: date,
        last_day: date,
        duration: int,
        tz: tzinfo,
        earliest: int,
        hours: WorkingHours,
        scheduled: ScheduledSet,
    ) -> Tuple[Optional[TimeInterval], Optional[str]]:
        buffer = timedelta(minutes=self.config.buffer_minutes_between_events)
        window = self._window(day, tz, earliest, hours)
        start = self._candidate_start(window, duration)

        for _ in range(self.config.max_overlap_attempts):
            interval = TimeInterval.starting_at(start, duration)

            if interval.end > window[1]:
                day = day + timedelta(days=1)
                if day > last_day:
                    return None, "no room left before the end of the range"
                window = self._window(day, tz, earliest, hours)
                start = window[0]
                continue

            conflict = scheduled.first_conflict(interval)
            if conflict is None:
                return self._guard(interval)
            start = conflict.end + buffer

        return None, f"no free slot after {self.config.max_overlap_attempts} attempts"

    def _guard(self, interval: TimeInterval) -> Tuple[Optional[TimeInterval], Optional[str]]:
        now = self._now()
        if interval.start < now:
            return None, f"start {interval.start.isoformat()} is in the past"
        if interval.start > now + MAX_FUTURE:
            return None, f"start {interval.start.isoformat()} is more than a year ahead"
        return interval, None
