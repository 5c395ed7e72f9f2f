"""
Tests for the display cache when Redis misbehaves.
"""

import logging

from redis.exceptions import ConnectionError as RedisConnectionError

from services.redis import RedisCache


class FlakyRedis:
    """Holds a corrupt entry and fails every write."""

    def __init__(self, raw):
        self.raw = raw

    async def get(self, key):
        return self.raw

    async def set(self, key, value, ex=None):
        raise RedisConnectionError("connection reset")

    async def delete(self, key):
        raise RedisConnectionError("connection reset")


def make_cache(raw):
    cache = RedisCache(url="redis://localhost:6379/0", ttl=30)
    cache.redis = FlakyRedis(raw)
    return cache


class TestRedisCache:
    """Cache failures never reach the caller."""

    async def test_corrupt_entry_with_failing_delete(self, caplog):
        cache = make_cache("{not json")

        with caplog.at_level(logging.WARNING):
            assert await cache.get_json("ledger:coins:1") is None

        assert "Cache delete failed" in caplog.text

    async def test_failing_write(self, caplog):
        cache = make_cache(None)

        with caplog.at_level(logging.WARNING):
            await cache.set_json("ledger:coins:1", {"total_balance": 10})

        assert "Cache write failed" in caplog.text
        assert await cache.get_json("ledger:coins:1") is None
