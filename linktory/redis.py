"""Redis connection management.

Redis holds short-lived state only: pending bot actions and rate-limit
windows. Nothing in it has to survive a flush.
"""

import redis.asyncio as aioredis

_redis: aioredis.Redis | None = None


def get_redis() -> aioredis.Redis:
    """Get the shared Redis connection. Must be initialized first via init_redis()."""
    if _redis is None:
        raise RuntimeError("Redis not initialized — app not started")
    return _redis


async def init_redis(url: str) -> aioredis.Redis:
    """Connect to Redis and verify it answers before the app starts serving."""
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
