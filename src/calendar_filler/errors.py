from __future__ import annotations

from typing import Literal, Optional

ProviderErrorKind = Literal["rate_limited", "timeout", "network", "malformed", "other"]

RETRYABLE_KINDS = frozenset({"rate_limited", "timeout", "network"})


class RequestRejected(ValueError):
    """Structurally invalid request; nothing external has been called."""


class ProviderError(Exception):
    def __init__(
        self,
        kind: ProviderErrorKind,
        message: str = "",
        retry_after_s: Optional[float] = None,
    ):
        super().__init__(message or kind)
        self.kind = kind
        self.retry_after_s = retry_after_s

    @property
    def retryable(self) -> bool:
        return self.kind in RETRYABLE_KINDS


class CalendarStoreError(Exception):
    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status
