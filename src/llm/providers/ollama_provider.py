from __future__ import annotations
import os
from typing import Optional

import httpx

from calendar_filler.errors import ProviderError
from .base import LLMProvider, to_provider_error


class OllamaProvider(LLMProvider):
    name = "ollama"

    def __init__(self, timeout_s: float = 60.0):
        self.model = os.getenv("OLLAMA_MODEL", "llama3.1").strip()
        self.base_url = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434").strip()
        self.timeout_s = timeout_s

    async def generate(self, *, system: str, user: str, max_tokens: Optional[int] = None) -> str:
        url = f"{self.base_url}/api/chat"
        options = {"temperature": 0.7}
        if max_tokens:
            options["num_predict"] = max_tokens
        payload = {
            "model": self.model,
            "stream": False,
            "format": "json",
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "options": options,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout_s) as client:
                r = await client.post(url, json=payload)
                r.raise_for_status()
                data = r.json()
        except httpx.HTTPError as e:
            raise to_provider_error(e) from e
        except ValueError as e:
            raise ProviderError("malformed", "response body is not JSON") from e

        try:
            return data["message"]["content"]
        except (KeyError, TypeError) as e:
            raise ProviderError("malformed", "no content in response") from e
