from __future__ import annotations

from redis import Redis

from dashboard_api.queue.connection import get_queue, get_redis, reset_connection


def test_get_queue_uses_configured_name():
    queue = get_queue(Redis.from_url("redis://localhost:6399/0"))
    assert queue.name == "bigquery-sync"


def test_redis_client_is_cached(monkeypatch):
    monkeypatch.setenv("REDIS_URL", "redis://cache.internal:6379/3")
    from dashboard_api import config

    config.get_settings.cache_clear()
    reset_connection()
    try:
        first = get_redis()
        assert first is get_redis()
        assert first.connection_pool.connection_kwargs["host"] == "cache.internal"
        assert first.connection_pool.connection_kwargs["db"] == 3
    finally:
        monkeypatch.undo()
        config.get_settings.cache_clear()
        reset_connection()
