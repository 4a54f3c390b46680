import asyncio
import json
import logging
import re
from typing import Awaitable, Callable, List, Optional

from pydantic import ValidationError

from calendar_filler.config import SchedulingConfig
from calendar_filler.errors import ProviderError
from calendar_filler.models import ContentItem
from llm.prompts import SYSTEM_PROMPT, event_generation_prompt
from llm.providers.base import LLMProvider
from llm.rate_limiter import ProviderRateLimiter
from llm.schemas import ContentGenerationResult, GeneratedEvent

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?")


def parse_content(text: str) -> List[ContentItem]:
    """Pull the ``{"events": [...]}`` object out of a model reply.

    Code fences and prose around the JSON are tolerated. Individually
    invalid events are dropped; a reply with nothing usable is malformed.
    """
    cleaned = _FENCE_RE.sub("", text).strip()
    start, end = cleaned.find("{"), cleaned.rfind("}")
    if start == -1 or end <= start:
        raise ProviderError("malformed", "no JSON object in response")

    try:
        payload = json.loads(cleaned[start : end + 1])
        result = ContentGenerationResult.model_validate(payload)
    except (json.JSONDecodeError, ValidationError) as e:
        raise ProviderError("malformed", f"failed to parse AI response: {e}") from e

    items: List[ContentItem] = []
    for i, raw in enumerate(result.events):
        try:
            items.append(GeneratedEvent.model_validate(raw).to_content_item())
        except ValidationError:
            logger.warning(f"Dropping invalid generated event at index {i}: {raw!r}")

    if not items:
        raise ProviderError("malformed", "no events generated in response")
    return items


class ContentClient:
    """Provider wrapper adding rate limiting, a bounded timeout and retry/backoff.

    Retryable failures (rate limit, timeout, network) are retried up to
    ``config.provider_max_retries`` times using the configured backoff
    schedule. Anything else, or exhausting the retries, re-raises the last
    ProviderError so the caller can fall back.
    """

    def __init__(
        self,
        provider: LLMProvider,
        config: Optional[SchedulingConfig] = None,
        rate_limiter: Optional[ProviderRateLimiter] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        on_retry: Optional[Callable[[ProviderError], None]] = None,
    ):
        self.provider = provider
        self.config = config or SchedulingConfig()
        self.rate_limiter = rate_limiter or ProviderRateLimiter(self.config.provider_requests_per_minute)
        self._sleep = sleep
        self._on_retry = on_retry

    async def obtain(self, description: str, count: int) -> List[ContentItem]:
        max_retries = self.config.provider_max_retries
        for attempt in range(max_retries + 1):
            try:
                return await self._attempt(description, count, attempt)
            except ProviderError as e:
                if not e.retryable or attempt >= max_retries:
                    logger.warning(
                        f"Content provider failed ({e.kind}) after {attempt + 1} attempt(s): {e}"
                    )
                    raise
                # Retry-After may stretch the wait, but never past the provider timeout cap
                retry_after = min(e.retry_after_s or 0.0, self.config.provider_timeout_cap_s)
                delay = max(self.config.backoff_s(attempt), retry_after)
                logger.info(
                    f"Provider {e.kind}; retrying after {delay:.1f}s (attempt {attempt + 1}/{max_retries})..."
                )
                if self._on_retry is not None:
                    self._on_retry(e)
                await self._sleep(delay)
        # unreachable: the final attempt either returns or raises
        raise ProviderError("other", "retries exhausted")

    async def _attempt(self, description: str, count: int, attempt: int) -> List[ContentItem]:
        await self.rate_limiter.acquire()
        timeout_s = self.config.provider_timeout_s(count)
        logger.info(
            f"[AI] Request{f' (Retry {attempt})' if attempt else ''}: "
            f"{count} events for {description[:50]!r} via {self.provider.name}"
        )
        try:
            text = await asyncio.wait_for(
                self.provider.generate(
                    system=SYSTEM_PROMPT,
                    user=event_generation_prompt(count, description),
                    max_tokens=min(count * 150, 4000),
                ),
                timeout=timeout_s,
            )
        except asyncio.TimeoutError as e:
            raise ProviderError("timeout", f"no response within {timeout_s:.1f}s") from e

        items = parse_content(text)
        logger.info(f"AI generated {len(items)} events out of requested {count}")
        return items[:count]
