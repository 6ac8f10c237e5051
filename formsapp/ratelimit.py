"""
Fixed-window request rate limiting.

Supports an in-memory limiter for tests/single-process runs and a
Redis-backed limiter shared by every worker process in production.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Protocol

import redis
from redis import exceptions as redis_exceptions
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests, please try again later."


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    count: int
    remaining: int
    reset_after: int


class RateLimiter(Protocol):
    """Counts hits per key inside a fixed time window."""

    max_requests: int

    def hit(self, key: str) -> RateLimitResult:
        ...


def _result(count: int, max_requests: int, reset_after: int) -> RateLimitResult:
    return RateLimitResult(
        allowed=count <= max_requests,
        count=count,
        remaining=max(max_requests - count, 0),
        reset_after=max(reset_after, 0),
    )


@dataclass
class InMemoryRateLimiter:
    """Per-process limiter for testing/dev."""

    max_requests: int = 100
    window_seconds: int = 15 * 60
    clock: Callable[[], float] = time.monotonic
    windows: dict[str, tuple[float, int]] = field(default_factory=dict)

    def __post_init__(self):
        self._lock = threading.Lock()
        self._last_sweep = self.clock()

    def _sweep(self, now: float) -> None:
        """Drop keys whose window has expired. Caller holds the lock."""
        expired = [
            key
            for key, (started, _) in self.windows.items()
            if now - started >= self.window_seconds
        ]
        for key in expired:
            del self.windows[key]
        self._last_sweep = now

    def hit(self, key: str) -> RateLimitResult:
        now = self.clock()
        with self._lock:
            if now - self._last_sweep >= self.window_seconds:
                self._sweep(now)
            started, count = self.windows.get(key, (now, 0))
            if now - started >= self.window_seconds:
                started, count = now, 0
            count += 1
            self.windows[key] = (started, count)
        reset_after = int(self.window_seconds - (now - started))
        return _result(count, self.max_requests, reset_after)

    def reset(self) -> None:
        with self._lock:
            self.windows.clear()


@dataclass
class RedisRateLimiter:
    """Redis-backed limiter using INCR with a window-long EXPIRE."""

    url: str
    max_requests: int = 100
    window_seconds: int = 15 * 60
    key_prefix: str = "formsapp:ratelimit"

    def __post_init__(self):
        self.client = redis.Redis.from_url(self.url)

    def hit(self, key: str) -> RateLimitResult:
        redis_key = f"{self.key_prefix}:{key}"
        try:
            pipe = self.client.pipeline()
            pipe.incr(redis_key)
            pipe.ttl(redis_key)
            count, ttl = pipe.execute()
            if ttl < 0:
                # First hit of the window; anchor the expiry here.
                self.client.expire(redis_key, self.window_seconds)
                ttl = self.window_seconds
        except redis_exceptions.RedisError:
            # Managed Redis drops idle connections and can stall on reads.
            # Reconnect for the next request and let this one through.
            logger.warning("Rate limit backend unavailable; allowing request")
            self.client = redis.Redis.from_url(self.url)
            return _result(0, self.max_requests, self.window_seconds)
        return _result(int(count), self.max_requests, int(ttl))


def client_key(request: Request) -> str:
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, limiter: RateLimiter):
        super().__init__(app)
        self.limiter = limiter

    async def dispatch(self, request: Request, call_next) -> Response:
        key = client_key(request)
        result = await run_in_threadpool(self.limiter.hit, key)
        if not result.allowed:
            logger.warning("Rate limit exceeded for %s (%d hits)", key, result.count)
            response: Response = JSONResponse(
                status_code=429,
                content={"error": RATE_LIMIT_MESSAGE},
                headers={"Retry-After": str(result.reset_after)},
            )
        else:
            response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self.limiter.max_requests)
        response.headers["X-RateLimit-Remaining"] = str(result.remaining)
        return response
