"""
Fixed-window rate limiting for the public endpoints.

State lives in process memory: every worker process keeps its own counters,
so the effective limit is per process. Expired windows are swept lazily on
access (at most once per minute) and by the housekeeping job.

Usage:
    @router.get("/validate")
    async def validate(..., _: None = Depends(rate_limit("invite-validate", 60))):
        ...
"""
import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from fastapi import Request

from kindred.core.errors import RateLimited

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 60
DEFAULT_WINDOW_SECONDS = 60
SWEEP_INTERVAL_SECONDS = 60

RATE_LIMIT_MESSAGE = "Too many requests. Please try again later."


@dataclass
class RateLimitResult:
    """Result of a rate limit check."""

    allowed: bool
    limit: int
    remaining: int
    reset_at: float  # Unix timestamp

    def retry_after(self, now: float) -> int:
        return max(1, math.ceil(self.reset_at - now))


@dataclass
class _Window:
    count: int
    reset_at: float


class RateLimiter:
    """Thread-safe in-memory fixed-window counter keyed by arbitrary strings."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._windows: Dict[str, _Window] = {}
        self._lock = threading.Lock()
        self._last_sweep = clock()

    def check(self, key: str, limit: int = DEFAULT_LIMIT, window_seconds: int = DEFAULT_WINDOW_SECONDS) -> RateLimitResult:
        now = self._clock()
        with self._lock:
            if now - self._last_sweep >= SWEEP_INTERVAL_SECONDS:
                self._sweep_locked(now)

            window = self._windows.get(key)
            if window is None or now >= window.reset_at:
                window = _Window(count=1, reset_at=now + window_seconds)
                self._windows[key] = window
                return RateLimitResult(True, limit, limit - 1, window.reset_at)

            if window.count >= limit:
                return RateLimitResult(False, limit, 0, window.reset_at)

            window.count += 1
            return RateLimitResult(True, limit, limit - window.count, window.reset_at)

    def sweep(self) -> int:
        """Drop expired windows. Returns the number removed."""
        with self._lock:
            return self._sweep_locked(self._clock())

    def _sweep_locked(self, now: float) -> int:
        expired = [key for key, window in self._windows.items() if now >= window.reset_at]
        for key in expired:
            del self._windows[key]
        self._last_sweep = now
        return len(expired)

    def reset(self):
        with self._lock:
            self._windows.clear()

    def __len__(self) -> int:
        return len(self._windows)


limiter = RateLimiter()


def get_client_ip(request: Request) -> str:
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def rate_limit(scope: str, limit: int = DEFAULT_LIMIT, window_seconds: int = DEFAULT_WINDOW_SECONDS,
               rate_limiter: Optional[RateLimiter] = None):
    """
    Dependency factory enforcing `limit` requests per `window_seconds` per client IP.
    Raises RateLimited (429) with Retry-After when the budget is spent.
    """
    def dependency(request: Request) -> None:
        active = rate_limiter or limiter
        key = f"{scope}:{get_client_ip(request)}"
        result = active.check(key, limit, window_seconds)
        if not result.allowed:
            logger.warning(f"Rate limit exceeded for {key}")
            raise RateLimited(
                RATE_LIMIT_MESSAGE,
                headers={
                    "Retry-After": str(result.retry_after(active._clock())),
                    "X-RateLimit-Limit": str(result.limit),
                    "X-RateLimit-Remaining": "0",
                },
            )

    return dependency
