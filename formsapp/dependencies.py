"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from fastapi import Request

from formsapp.config import Settings
from formsapp.db import DbClient, InMemoryDbClient, SqlDbClient
from formsapp.ratelimit import InMemoryRateLimiter, RateLimiter, RedisRateLimiter


def build_db_client(settings: Settings) -> DbClient:
    """
    Build the DB client for one app instance; in-memory unless a
    DATABASE_URL is configured.
    """
    if settings.use_in_memory_backends or not settings.database_url:
        return InMemoryDbClient()
    return SqlDbClient(settings.database_url)


def get_db_client(request: Request) -> DbClient:
    """
    Return the app's DB client so users and forms persist across requests.
    """
    return request.app.state.db


def build_rate_limiter(settings: Settings) -> RateLimiter:
    """
    Build the limiter for one app instance. Redis is used when configured so
    that every worker process shares the same counters.
    """
    if settings.redis_url and not settings.use_in_memory_backends:
        return RedisRateLimiter(
            url=settings.redis_url,
            max_requests=settings.rate_limit_max_requests,
            window_seconds=settings.rate_limit_window_seconds,
            key_prefix=settings.redis_rate_limit_prefix,
        )
    return InMemoryRateLimiter(
        max_requests=settings.rate_limit_max_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
