from __future__ import annotations

from functools import lru_cache

from redis import Redis
from rq import Queue

from dashboard_api.config import get_settings


@lru_cache
def get_redis() -> Redis:
    settings = get_settings()
    return Redis.from_url(settings.redis_url(), socket_connect_timeout=5)


def get_queue(connection: Redis | None = None) -> Queue:
    settings = get_settings()
    return Queue(
        settings.QUEUE_NAME,
        connection=connection or get_redis(),
        default_timeout=settings.QUEUE_JOB_TIMEOUT,
    )


def reset_connection() -> None:
    """Forget the cached Redis client (used by tests when env changes)."""
    get_redis.cache_clear()
