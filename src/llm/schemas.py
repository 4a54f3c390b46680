from __future__ import annotations
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

from calendar_filler.models import ContentItem


class GeneratedEvent(BaseModel):
    title: str = Field(..., min_length=1)
    duration: int = Field(..., gt=0)
    description: Optional[str] = None

    @field_validator("duration", mode="before")
    @classmethod
    def round_duration(cls, v: Any) -> Any:
        # models occasionally answer 45.0 or "45"
        if isinstance(v, str) and v.strip().isdigit():
            return int(v.strip())
        if isinstance(v, float):
            return int(round(v))
        return v

    def to_content_item(self) -> ContentItem:
        return ContentItem(
            title=self.title,
            duration_min=self.duration,
            description=self.description or "",
        )


class ContentGenerationResult(BaseModel):
    # raw dicts; items are validated one by one so a single bad entry does not sink the reply
    events: List[Any] = Field(default_factory=list)
