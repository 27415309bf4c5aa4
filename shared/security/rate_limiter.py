"""
Fixed-window admission control for the gateway.

Counters live in the ``limits`` storage that backs slowapi. The default
``memory://`` storage is guarded by per-key locks, so concurrent requests on
one process are counted correctly, but it is process-local: every gateway
instance keeps its own windows and they are lost on restart. Running more
than one instance with a shared budget needs a shared storage URI such as
``redis://``.
"""
import math
import time
from dataclasses import dataclass

from fastapi import Request
from limits import RateLimitItemPerSecond
from limits.storage import storage_from_string
from limits.strategies import FixedWindowRateLimiter as _FixedWindowStrategy
from slowapi.util import get_remote_address


def client_key(request: Request) -> str:
    """Rate-limit key: the client's address (honours proxies via Uvicorn's forwarded headers)."""
    return f"ip:{get_remote_address(request)}"


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    retry_after: int = 0


class FixedWindowRateLimiter:
    """
    ``max_requests`` admissions per ``window_seconds`` per key.

    The window for a key opens on its first request and everything inside it
    counts, denied requests included. Once it expires the next request opens
    a fresh window.
    """

    def __init__(self, max_requests: int = 100, window_seconds: int = 60, storage_uri: str = "memory://"):
        if max_requests < 1 or window_seconds < 1:
            raise ValueError("max_requests and window_seconds must be positive")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._item = RateLimitItemPerSecond(max_requests, window_seconds)
        self._storage = storage_from_string(storage_uri)
        self._strategy = _FixedWindowStrategy(self._storage)

    def admit(self, key: str) -> RateLimitDecision:
        if self._strategy.hit(self._item, key):
            return RateLimitDecision(allowed=True)

        reset_time, _ = self._strategy.get_window_stats(self._item, key)
        retry_after = math.ceil(reset_time - time.time())
        return RateLimitDecision(allowed=False, retry_after=min(max(retry_after, 1), self.window_seconds))
