from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from calendar_filler.models import ContentItem
from classification.category_classifier import DEFAULT_CATEGORY, classify_description
from content.templates import FALLBACK_TEMPLATES

logger = logging.getLogger(__name__)


class FallbackContentGenerator:
    """Deterministic, always-available substitute for the content provider."""

    def __init__(self, templates: Optional[Dict[str, Sequence[ContentItem]]] = None):
        self.templates = templates or FALLBACK_TEMPLATES

    def generate(self, description: str, count: int) -> List[ContentItem]:
        category = classify_description(description)
        pool = self.templates.get(category) or self.templates[DEFAULT_CATEGORY]
        logger.info(f"Generating {count} fallback events (category: {category})")

        items = []
        for i in range(count):
            template = pool[i % len(pool)]
            cycle = i // len(pool)
            if cycle:
                # second and later passes get a counter so titles stay distinct
                template = template.model_copy(update={"title": f"{template.title} ({cycle + 1})"})
            items.append(template)
        return items
