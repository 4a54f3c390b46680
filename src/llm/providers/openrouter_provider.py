from __future__ import annotations
import os
from typing import Optional

import httpx

from calendar_filler.errors import ProviderError
from .base import LLMProvider, to_provider_error


class OpenRouterProvider(LLMProvider):
    """OpenAI-compatible chat completions endpoint (OpenRouter by default)."""

    name = "openrouter"

    def __init__(self, timeout_s: float = 30.0):
        self.api_key = os.getenv("OPENROUTER_API_KEY", "").strip()
        self.model = os.getenv("OPENROUTER_MODEL", "openai/gpt-4o-mini").strip()
        self.base_url = os.getenv("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1").strip()
        self.timeout_s = timeout_s

        if not self.api_key:
            raise RuntimeError("OPENROUTER_API_KEY is missing")

    async def generate(self, *, system: str, user: str, max_tokens: Optional[int] = None) -> str:
        url = f"{self.base_url}/chat/completions"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "X-Title": "Calendar Filler",
        }
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "temperature": 0.7,
        }
        if max_tokens:
            payload["max_tokens"] = max_tokens

        try:
            async with httpx.AsyncClient(timeout=self.timeout_s) as client:
                r = await client.post(url, headers=headers, json=payload)
                r.raise_for_status()
                data = r.json()
        except httpx.HTTPError as e:
            raise to_provider_error(e) from e
        except ValueError as e:
            raise ProviderError("malformed", "response body is not JSON") from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderError("malformed", "no content in response") from e
        if not content:
            raise ProviderError("malformed", "no content in response")
        return content
