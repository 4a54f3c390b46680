from __future__ import annotations
import json
import re
from typing import Optional

from llm.providers.base import LLMProvider

_COUNT_RE = re.compile(r"exactly (\d+)")

_SAMPLES = [
    ("Morning Run", 45, "Easy-pace run around the neighborhood. Warm up first."),
    ("Deep Work Block", 90, "Phones off; work through the top item on the list."),
    ("Lunch with a Colleague", 60, "Catch up over lunch near the office."),
    ("Language Practice", 30, "Flashcards and one short conversation exercise."),
    ("Weekly Review", 45, "Look back at the week and plan the next one."),
]


class MockProvider(LLMProvider):
    name = "mock"

    async def generate(self, *, system: str, user: str, max_tokens: Optional[int] = None) -> str:
        """
        Returns dummy JSON responses based on the prompt content.
        """
        if "calendar events" in system or "events" in user:
            m = _COUNT_RE.search(user)
            count = int(m.group(1)) if m else len(_SAMPLES)
            events = []
            for i in range(count):
                title, duration, description = _SAMPLES[i % len(_SAMPLES)]
                if i >= len(_SAMPLES):
                    title = f"{title} #{i // len(_SAMPLES) + 1}"
                events.append({"title": title, "duration": duration, "description": description})
            return json.dumps({"events": events})

        # Default fallback
        return "{}"
