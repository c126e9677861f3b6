"""Redis connection management and the small JSON cache used by the engine."""

import json
from typing import Any

import redis.asyncio as aioredis

from trust_engine.logging_config import get_logger

logger = get_logger(__name__)

_redis: aioredis.Redis | None = None


def get_redis() -> aioredis.Redis:
    """Get the shared Redis connection. Must be initialized first via init_redis()."""
    if _redis is None:
        raise RuntimeError("Redis not initialized, app not started")
    return _redis


async def init_redis(url: str) -> aioredis.Redis:
    """Initialize the global Redis connection."""
    global _redis
    _redis = aioredis.from_url(url, decode_responses=True)
    await _redis.ping()
    return _redis


async def close_redis() -> None:
    """Close the Redis connection."""
    global _redis
    if _redis is not None:
        await _redis.aclose()
        _redis = None


async def cache_get_json(key: str) -> Any | None:
    """Read a cached JSON value; None on miss or when Redis is not running."""
    try:
        cached = await get_redis().get(key)
    except RuntimeError:
        return None
    return json.loads(cached) if cached is not None else None


async def cache_set_json(key: str, value: Any, ttl_seconds: int) -> None:
    """Cache a JSON-serialisable value; a no-op when Redis is not running."""
    try:
        await get_redis().setex(key, ttl_seconds, json.dumps(value))
    except RuntimeError:
        pass


async def cache_delete(key: str) -> None:
    """Invalidate a cached value."""
    try:
        await get_redis().delete(key)
    except RuntimeError:
        pass
    else:
        logger.debug("cache_invalidated", key=key)
