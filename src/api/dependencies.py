import logging
import os
from typing import Optional

from fastapi import Depends, HTTPException

from api import state
from api.backend import RequestOrchestrator
from api.metrics import PROVIDER_RETRIES_TOTAL
from calendar_filler.config import SchedulingConfig, WorkingHours
from integration.calendar_integration import CalendarStore, GoogleCalendarStore
from llm.llm_client import ContentClient
from llm.providers.base import LLMProvider
from llm.providers.mock_provider import MockProvider
from llm.providers.ollama_provider import OllamaProvider
from llm.providers.openrouter_provider import OpenRouterProvider
from llm.rate_limiter import ProviderRateLimiter
from storage.content_cache import ContentCache

logger = logging.getLogger(__name__)

# Configuration
LLM_PROVIDER = os.getenv("LLM_PROVIDER", "openrouter").strip().lower()
GOOGLE_TOKEN_PATH = os.getenv("GOOGLE_TOKEN_PATH", "config/token.json")
GOOGLE_CALENDAR_ID = os.getenv("GOOGLE_CALENDAR_ID", "primary")


def _int_env(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def load_config() -> SchedulingConfig:
    backoff = os.getenv("PROVIDER_BACKOFF_MS", "1000,2000,4000")
    return SchedulingConfig(
        working_hours=WorkingHours(
            start=_int_env("WORKING_HOURS_START", 8),
            end=_int_env("WORKING_HOURS_END", 1),
        ),
        buffer_minutes_between_events=_int_env("BUFFER_MINUTES_BETWEEN_EVENTS", 15),
        batch_group_size=_int_env("BATCH_GROUP_SIZE", 3),
        batch_cooldown_ms=_int_env("BATCH_COOLDOWN_MS", 2000),
        cache_ttl_ms=_int_env("CACHE_TTL_MS", 300_000),
        provider_max_retries=_int_env("PROVIDER_MAX_RETRIES", 3),
        provider_backoff_schedule_ms=tuple(int(v) for v in backoff.split(",") if v.strip()),
        max_events_per_request=_int_env("MAX_EVENTS_PER_REQUEST", 30),
        provider_requests_per_minute=_int_env("PROVIDER_REQUESTS_PER_MINUTE", 60),
        default_timezone=os.getenv("DEFAULT_TIMEZONE", "America/New_York"),
    )


def build_provider(name: str = LLM_PROVIDER) -> Optional[LLMProvider]:
    if name == "mock":
        return MockProvider()
    if name == "ollama":
        return OllamaProvider()
    if name == "openrouter":
        try:
            return OpenRouterProvider()
        except RuntimeError as e:
            logger.warning(f"{e}; serving fallback content only")
            return None
    raise ValueError(f"Unknown LLM_PROVIDER: {name}")


def init_services(config: Optional[SchedulingConfig] = None) -> state.SharedServices:
    config = config or load_config()
    rate_limiter = ProviderRateLimiter(config.provider_requests_per_minute)
    provider = build_provider()
    content_client = None
    if provider is not None:
        content_client = ContentClient(
            provider,
            config=config,
            rate_limiter=rate_limiter,
            on_retry=lambda _e: PROVIDER_RETRIES_TOTAL.inc(),
        )
    state.services = state.SharedServices(
        config=config,
        cache=ContentCache(ttl_s=config.cache_ttl_s),
        rate_limiter=rate_limiter,
        content_client=content_client,
    )
    logger.info(f"Services initialized (provider: {state.services.provider_name})")
    return state.services


def get_services() -> state.SharedServices:
    if state.services is None:
        return init_services()
    return state.services


def get_calendar_store() -> Optional[CalendarStore]:
    return GoogleCalendarStore.from_token_file(GOOGLE_TOKEN_PATH, calendar_id=GOOGLE_CALENDAR_ID)


def get_orchestrator(
    store: Optional[CalendarStore] = Depends(get_calendar_store),
    services: state.SharedServices = Depends(get_services),
) -> RequestOrchestrator:
    if store is None:
        raise HTTPException(status_code=401, detail="Not authorized. Visit /auth first.")
    return RequestOrchestrator(
        store=store,
        cache=services.cache,
        content_client=services.content_client,
        config=services.config,
    )
