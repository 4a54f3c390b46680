from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

import httpx

from calendar_filler.errors import ProviderError

TRANSIENT_STATUSES = {502, 503, 504}


def _retry_after_s(response: httpx.Response) -> Optional[float]:
    raw = response.headers.get("Retry-After")
    if raw is None:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


def to_provider_error(exc: Exception) -> ProviderError:
    """Translate an httpx failure into the provider error taxonomy."""
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        if status == 429:
            return ProviderError("rate_limited", "HTTP 429", retry_after_s=_retry_after_s(exc.response))
        if status == 408:
            return ProviderError("timeout", "HTTP 408")
        if status in TRANSIENT_STATUSES:
            return ProviderError("network", f"HTTP {status}")
        return ProviderError("other", f"HTTP {status}")
    if isinstance(exc, httpx.TimeoutException):
        return ProviderError("timeout", str(exc) or "request timed out")
    if isinstance(exc, httpx.TransportError):
        return ProviderError("network", str(exc) or exc.__class__.__name__)
    return ProviderError("other", str(exc))


class LLMProvider(ABC):
    name: str = "llm"

    @abstractmethod
    async def generate(self, *, system: str, user: str, max_tokens: Optional[int] = None) -> str:
        """
        Must return the model output as TEXT (parsing/validation happens in ContentClient).
        Failures are raised as ProviderError.
        """
        raise NotImplementedError
