from __future__ import annotations
import json
import logging
import redis.asyncio as aioredis
from redis.exceptions import RedisError
from typing import Any, Optional
from config import ENV

class RedisCache:
    """
    Short-lived JSON cache for display reads (balances, campaign listings).

    Never consulted by anything that mutates the ledger. Keys live under
    `ledger:` and are dropped by pattern whenever the data behind them changes.
    """
    prefix = "ledger"

    def __init__(self, url: str | None = None, ttl: int | None = None):
        self.env = ENV()
        self.url = url or self.env.redis_url
        self.ttl = ttl or self.env.CACHE_TTL_SECONDS
        self.redis = aioredis.from_url(self.url, decode_responses=True)

    def key(self, *parts: Any) -> str:
        return ":".join([self.prefix, *(str(p) for p in parts)])

    async def get_json(self, key: str) -> Optional[Any]:
        try:
            raw = await self.redis.get(key)
        except RedisError as e:
            logging.warning(f"Cache read failed for {key}: {e}")
            return None
        if not raw:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logging.warning(f"Dropping unreadable cache entry {key}")
            try:
                await self.redis.delete(key)
            except RedisError as e:
                logging.warning(f"Cache delete failed for {key}: {e}")
            return None

    async def set_json(self, key: str, value: Any, ttl: int | None = None) -> None:
        try:
            await self.redis.set(key, json.dumps(value), ex=ttl or self.ttl)
        except RedisError as e:
            logging.warning(f"Cache write failed for {key}: {e}")

    async def invalidate(self, pattern: str) -> int:
        removed = 0
        try:
            async for key in self.redis.scan_iter(match=pattern):
                removed += await self.redis.delete(key)
        except RedisError as e:
            logging.warning(f"Cache invalidation failed for {pattern}: {e}")
        return removed

    async def invalidate_seller(self, seller_id) -> None:
        await self.invalidate(self.key("coins", seller_id, "*"))
        await self.invalidate(self.key("campaigns", seller_id))

    async def invalidate_campaigns(self) -> None:
        await self.invalidate(self.key("campaigns", "*"))
        await self.invalidate(self.key("bonus", "*"))

    async def close(self) -> None:
        await self.redis.aclose()


_cache: RedisCache | None = None


def get_cache() -> RedisCache:
    global _cache
    if _cache is None:
        _cache = RedisCache()
    return _cache
