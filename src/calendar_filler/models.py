from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Dict, Iterator, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class ContentItem(BaseModel):
    """Substantive payload of one calendar entry, independent of when it happens."""

    model_config = ConfigDict(frozen=True)

    title: str = Field(..., min_length=1)
    duration_min: int = Field(..., gt=0)
    description: str = ""

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        v2 = v.strip()
        if not v2:
            raise ValueError("title must not be blank")
        return v2


class TimeInterval(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @model_validator(mode="after")
    def end_after_start(self) -> "TimeInterval":
        if self.end <= self.start:
            raise ValueError("interval end must be after start")
        return self

    @classmethod
    def starting_at(cls, start: datetime, duration_min: int) -> "TimeInterval":
        return cls(start=start, end=start + timedelta(minutes=duration_min))

    @property
    def duration_min(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)

    def overlaps(self, other: "TimeInterval") -> bool:
        return self.start < other.end and other.start < self.end


class ScheduledSet:
    """Intervals already committed within one request, in placement order."""

    def __init__(self, intervals: Optional[List[TimeInterval]] = None):
        self._intervals: List[TimeInterval] = list(intervals or [])

    def add(self, interval: TimeInterval) -> None:
        self._intervals.append(interval)

    def first_conflict(self, candidate: TimeInterval) -> Optional[TimeInterval]:
        for existing in self._intervals:
            if candidate.overlaps(existing):
                return existing
        return None

    def __iter__(self) -> Iterator[TimeInterval]:
        return iter(self._intervals)

    def __len__(self) -> int:
        return len(self._intervals)


@dataclass
class AllocationResult:
    # one entry per requested event; None marks a skipped slot
    slots: List[Optional[TimeInterval]]
    skip_reasons: Dict[int, str] = field(default_factory=dict)

    @property
    def skipped(self) -> int:
        return len(self.skip_reasons)

    @property
    def intervals(self) -> List[TimeInterval]:
        return [s for s in self.slots if s is not None]


class TaskOutcome(str, Enum):
    PENDING = "pending"
    CREATED = "created"
    FAILED = "failed"


@dataclass
class BatchTask:
    index: int
    content: ContentItem
    interval: TimeInterval
    outcome: TaskOutcome = TaskOutcome.PENDING
    external_id: Optional[str] = None
    reason: Optional[str] = None

    def mark_created(self, external_id: str) -> None:
        self.outcome = TaskOutcome.CREATED
        self.external_id = external_id

    def mark_failed(self, reason: str) -> None:
        self.outcome = TaskOutcome.FAILED
        self.reason = reason


class CalendarEvent(BaseModel):
    """Payload handed to a CalendarStore for creation."""

    title: str
    description: str = ""
    interval: TimeInterval
    timezone: str
    tag: str
    metadata: Dict[str, str] = Field(default_factory=dict)


class StoredEvent(BaseModel):
    id: str
    title: str
    start: datetime
    end: datetime
    description: str = ""
    user_input: Optional[str] = None
    html_link: Optional[str] = None


class EventRequest(BaseModel):
    """
    Incoming request to fill a date range with generated events.

    Dates and count are intentionally unconstrained here: range and bound
    checks happen in the orchestrator so every rejection takes the same path.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    start_date: Optional[date] = None
    end_date: Optional[date] = None
    count: int = 5
    description: str = Field(
        "general activities",
        validation_alias=AliasChoices("description", "userInput"),
    )
    timezone: Optional[str] = None
    earliest_start_hour: Optional[int] = Field(
        None,
        validation_alias=AliasChoices(
            "earliestStartHour", "earliestStartTime", "earliest_start_hour"
        ),
    )


class EventResult(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    title: str
    start: datetime
    end: datetime
    duration: int
    error: bool = False
    reason: Optional[str] = None


class RequestSummary(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    requested_count: int
    successful_count: int
    failed_count: int
    events: List[EventResult] = Field(default_factory=list)
    content_source: str = "provider"
    timezone: str = "UTC"
    user_input: str = ""


class DeletionResult(BaseModel):
    id: str
    title: str
    deleted: bool
    error: Optional[str] = None
