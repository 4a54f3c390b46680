from __future__ import annotations

import re
from dataclasses import dataclass
from typing import FrozenSet, Set, Tuple

DEFAULT_CATEGORY = "general"

_WORD_RE = re.compile(r"[a-z]+")


@dataclass(frozen=True)
class CategoryRule:
    category: str
    keywords: FrozenSet[str]

    def matches(self, words: Set[str]) -> bool:
        # whole words only, so "workout" is not read as "work"; plurals count
        return any(w in self.keywords or w.rstrip("s") in self.keywords for w in words)


# Evaluated in order; the first matching rule wins.
CATEGORY_RULES: Tuple[CategoryRule, ...] = (
    CategoryRule(
        "work",
        frozenset({"work", "job", "office", "meeting", "client", "project", "career"}),
    ),
    CategoryRule(
        "academic",
        frozenset(
            {"study", "studying", "academic", "school", "college", "university", "exam", "lecture", "class"}
        ),
    ),
    CategoryRule(
        "personal",
        frozenset(
            {"gym", "exercise", "fitness", "workout", "family", "friend", "hobby", "personal", "run", "yoga"}
        ),
    ),
)


def classify_description(description: str) -> str:
    """Map free text onto one of the fallback categories by keyword match."""
    words = set(_WORD_RE.findall(description.lower()))
    for rule in CATEGORY_RULES:
        if rule.matches(words):
            return rule.category
    return DEFAULT_CATEGORY
