import asyncio
import logging
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone, tzinfo
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from calendar_filler.config import SchedulingConfig
from calendar_filler.errors import ProviderError, RequestRejected
from calendar_filler.models import (
    AllocationResult,
    BatchTask,
    CalendarEvent,
    ContentItem,
    DeletionResult,
    EventRequest,
    EventResult,
    RequestSummary,
    StoredEvent,
    TaskOutcome,
    TimeInterval,
)
from content.fallback_generator import FallbackContentGenerator
from integration.calendar_integration import CalendarStore
from llm.llm_client import ContentClient
from scheduling.batch_executor import BatchExecutor
from scheduling.slot_allocator import SlotAllocator
from storage.content_cache import ContentCache, make_cache_key

logger = logging.getLogger(__name__)

_UNSAFE_CHARS_RE = re.compile(r"[^a-zA-Z0-9\s]")


class RequestState(str, Enum):
    VALIDATING_INPUT = "validating_input"
    RESOLVING_CONTENT = "resolving_content"
    ALLOCATING_SLOTS = "allocating_slots"
    EXECUTING_BATCHES = "executing_batches"
    SUMMARIZING = "summarizing"
    DONE = "done"
    REJECTED = "rejected"


@dataclass
class ResolvedContent:
    items: List[ContentItem]
    source: str
    # leading items that came from the provider (directly or via cache)
    generated_count: int


@dataclass
class _Run:
    id: str
    state: RequestState = RequestState.VALIDATING_INPUT

    def enter(self, state: RequestState) -> None:
        logger.debug(f"[{self.id}] {self.state.value} -> {state.value}")
        self.state = state


class RequestOrchestrator:
    """Central orchestration component of the Calendar Filler system.

    One call to ``create_events`` walks a request through validation,
    content resolution (cache, provider, fallback), sequential slot
    allocation and batched creation in the calendar store. Only invalid
    input raises; every other failure ends up as a failed entry in the
    returned summary.
    """

    def __init__(
        self,
        store: CalendarStore,
        cache: ContentCache,
        content_client: Optional[ContentClient] = None,
        config: Optional[SchedulingConfig] = None,
        fallback: Optional[FallbackContentGenerator] = None,
        allocator: Optional[SlotAllocator] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.store = store
        self.cache = cache
        self.content_client = content_client
        self.config = config or SchedulingConfig()
        self.fallback = fallback or FallbackContentGenerator()
        self.allocator = allocator or SlotAllocator(self.config)
        self._sleep = sleep

    async def create_events(self, request: EventRequest) -> RequestSummary:
        run = _Run(id=uuid.uuid4().hex[:8])
        try:
            tz_name, tz, earliest = self._validate(request)
        except RequestRejected as e:
            run.enter(RequestState.REJECTED)
            logger.info(f"[{run.id}] Request rejected: {e}")
            raise

        description = request.description.strip()
        count = request.count
        logger.info(
            f"[{run.id}] Creating {count} events from {request.start_date} to {request.end_date} "
            f"({tz_name}, earliest {earliest}:00) for {description[:50]!r}"
        )

        run.enter(RequestState.RESOLVING_CONTENT)
        content = await self._resolve_content(description, count)

        run.enter(RequestState.ALLOCATING_SLOTS)
        allocation = self.allocator.allocate(
            request.start_date,
            request.end_date,
            count,
            [item.duration_min for item in content.items],
            tz=tz,
            earliest_start_hour=earliest,
        )

        run.enter(RequestState.EXECUTING_BATCHES)
        tasks = self._build_tasks(content, allocation, request, tz, earliest)

        async def dispatch(task: BatchTask) -> str:
            return await self.store.create(self._to_calendar_event(task, content, description, tz_name))

        executor = BatchExecutor(
            dispatch,
            group_size=self.config.batch_group_size,
            cooldown_s=self.config.batch_cooldown_s,
            sleep=self._sleep,
        )
        await executor.run(tasks)

        run.enter(RequestState.SUMMARIZING)
        summary = self._summarize(tasks, content, description, tz_name)
        run.enter(RequestState.DONE)
        logger.info(
            f"[{run.id}] Done. Requested: {summary.requested_count}, "
            f"Success: {summary.successful_count}, Failed: {summary.failed_count}"
        )
        return summary

    def _validate(self, request: EventRequest) -> Tuple[str, tzinfo, int]:
        max_events = self.config.max_events_per_request
        if request.start_date is None or request.end_date is None:
            raise RequestRejected("startDate and endDate are required")
        if request.end_date < request.start_date:
            raise RequestRejected("End date must be after or equal to start date")
        if not 1 <= request.count <= max_events:
            raise RequestRejected(f"Count must be between 1 and {max_events}")
        if not request.description or not request.description.strip():
            raise RequestRejected("description must not be empty")

        tz_name = request.timezone or self.config.default_timezone
        try:
            tz = ZoneInfo(tz_name)
        except (ZoneInfoNotFoundError, ValueError):
            raise RequestRejected(f"Unknown timezone: {tz_name}")

        earliest = request.earliest_start_hour
        if earliest is None:
            earliest = self.config.working_hours.start
        if not 0 <= earliest <= 23:
            raise RequestRejected("earliestStartTime must be an hour between 0 and 23")
        return tz_name, tz, earliest

    async def _resolve_content(self, description: str, count: int) -> ResolvedContent:
        key = make_cache_key(description, count)
        items: List[ContentItem] = []
        source = "fallback"

        cached = self.cache.get(key)
        if cached:
            items, source = cached[:count], "cache"
        elif self.content_client is not None:
            try:
                items = await self.content_client.obtain(description, count)
                self.cache.put(key, items)
                source = "provider"
            except ProviderError as e:
                logger.warning(f"Using fallback events due to AI error: {e}")
            except Exception:
                logger.exception("Unexpected content provider failure, using fallback events")

        generated = len(items)
        if generated < count:
            if generated:
                logger.info(
                    f"AI returned only {generated} events, generating {count - generated} fallback events"
                )
                source = f"{source}+fallback"
            items = items + self.fallback.generate(description, count - generated)
        return ResolvedContent(items=items[:count], source=source, generated_count=generated)

    def _placeholder(self, request: EventRequest, tz: tzinfo, earliest: int, duration_min: int) -> TimeInterval:
        start = datetime.combine(request.start_date, time(earliest), tzinfo=tz).astimezone(timezone.utc)
        return TimeInterval.starting_at(start, duration_min)

    def _build_tasks(
        self,
        content: ResolvedContent,
        allocation: AllocationResult,
        request: EventRequest,
        tz: tzinfo,
        earliest: int,
    ) -> List[BatchTask]:
        tasks = []
        for i, item in enumerate(content.items):
            slot = allocation.slots[i]
            if slot is None:
                # keep the entry so the response stays count-complete
                task = BatchTask(i, item, self._placeholder(request, tz, earliest, item.duration_min))
                task.mark_failed(f"slot unplaceable: {allocation.skip_reasons.get(i, 'unknown')}")
            else:
                task = BatchTask(i, item, slot)
            tasks.append(task)
        return tasks

    def _to_calendar_event(
        self, task: BatchTask, content: ResolvedContent, description: str, tz_name: str
    ) -> CalendarEvent:
        item = task.content
        text = item.description or (
            f"Generated by Calendar Filler | User request: "
            f"\"{_UNSAFE_CHARS_RE.sub('', description)[:100]}\" | Duration: {item.duration_min} minutes"
        )
        return CalendarEvent(
            title=item.title,
            description=text,
            interval=task.interval,
            timezone=tz_name,
            tag=self.config.event_tag,
            metadata={
                "user_input": description[:1000],
                "duration": str(item.duration_min),
                "ai_description": str(task.index < content.generated_count and bool(item.description)).lower(),
            },
        )

    def _summarize(
        self, tasks: List[BatchTask], content: ResolvedContent, description: str, tz_name: str
    ) -> RequestSummary:
        events = []
        for task in tasks:
            created = task.outcome is TaskOutcome.CREATED
            events.append(
                EventResult(
                    id=task.external_id if created else f"failed-{task.index}",
                    title=task.content.title,
                    start=task.interval.start,
                    end=task.interval.end,
                    duration=task.content.duration_min,
                    error=not created,
                    reason=None if created else (task.reason or "not attempted"),
                )
            )
        successful = sum(not e.error for e in events)
        return RequestSummary(
            requested_count=len(tasks),
            successful_count=successful,
            failed_count=len(tasks) - successful,
            events=events,
            content_source=content.source,
            timezone=tz_name,
            user_input=description,
        )

    async def list_created_events(self) -> List[StoredEvent]:
        now = datetime.now(timezone.utc)
        window = timedelta(days=self.config.list_window_days)
        return await self.store.list(self.config.event_tag, now - window, now + window)

    async def delete_created_events(self) -> List[DeletionResult]:
        now = datetime.now(timezone.utc)
        window = timedelta(days=self.config.delete_window_days)
        events = await self.store.list(self.config.event_tag, now - window, now + window)

        async def _delete(event: StoredEvent) -> DeletionResult:
            try:
                await self.store.delete(event.id)
            except Exception as e:
                logger.warning(f"Failed to delete event {event.id}: {e}")
                return DeletionResult(id=event.id, title=event.title, deleted=False, error=str(e))
            return DeletionResult(id=event.id, title=event.title, deleted=True)

        results = await asyncio.gather(*(_delete(e) for e in events))
        logger.info(
            f"Deleted {sum(r.deleted for r in results)} of {len(results)} generated events"
        )
        return list(results)
