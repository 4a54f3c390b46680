from dataclasses import dataclass
from typing import Optional

from calendar_filler.config import SchedulingConfig
from llm.llm_client import ContentClient
from llm.rate_limiter import ProviderRateLimiter
from storage.content_cache import ContentCache


@dataclass
class SharedServices:
    """State shared by every request in the process.

    Built once (at startup, or lazily on first use) and injected into each
    RequestOrchestrator.
    """

    config: SchedulingConfig
    cache: ContentCache
    rate_limiter: ProviderRateLimiter
    content_client: Optional[ContentClient] = None

    @property
    def provider_name(self) -> str:
        return self.content_client.provider.name if self.content_client else "fallback-only"


# Global instance initialized at startup
services: Optional[SharedServices] = None
