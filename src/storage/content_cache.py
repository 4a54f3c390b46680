from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from calendar_filler.models import ContentItem

logger = logging.getLogger(__name__)


def make_cache_key(description: str, count: int) -> str:
    """Requests with the same normalized description and count share an entry."""
    return f"{description.lower().strip()}_{count}"


@dataclass(frozen=True)
class CacheEntry:
    key: str
    items: Tuple[ContentItem, ...]
    created_at: float


class ContentCache:
    """
    Process-wide cache of generated content keyed by request fingerprint.

    Entries expire lazily on read once their TTL has passed; ``purge_expired``
    can be called periodically to bound memory. Only successful provider
    results are stored.
    """

    def __init__(
        self,
        ttl_s: float = 300.0,
        max_entries: int = 1024,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_s = ttl_s
        self.max_entries = max_entries
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def _is_fresh(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.created_at < self.ttl_s

    def get(self, key: str) -> Optional[List[ContentItem]]:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if not self._is_fresh(entry, now):
                del self._entries[key]
                logger.debug(f"[CACHE] Expired entry for: {key}")
                return None
        logger.info(f"[CACHE] Using cached events for: {key}")
        return list(entry.items)

    def put(self, key: str, items: List[ContentItem]) -> None:
        if not items:
            return
        now = self._clock()
        with self._lock:
            if key not in self._entries and len(self._entries) >= self.max_entries:
                self._purge_locked(now)
                if len(self._entries) >= self.max_entries:
                    oldest = min(self._entries.values(), key=lambda e: e.created_at)
                    del self._entries[oldest.key]
            self._entries[key] = CacheEntry(key=key, items=tuple(items), created_at=now)
        logger.info(f"[CACHE] Cached events for: {key}")

    def purge_expired(self) -> int:
        with self._lock:
            return self._purge_locked(self._clock())

    def _purge_locked(self, now: float) -> int:
        expired = [k for k, e in self._entries.items() if not self._is_fresh(e, now)]
        for k in expired:
            del self._entries[k]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
