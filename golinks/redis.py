"""Redis client management for the go-links service.

Redis holds the short-lived ``unique_click:{link_id}:{ip}`` markers that
decide whether a click counts towards ``unique_click_count``.

How to Use
===========
**Step 1 — Use in FastAPI endpoints**::
    @router.get("/health")
    async def health(cache: redis.Redis = Depends(get_redis)):
        await cache.ping()

**Step 2 — Cleanup on shutdown**::
    await close_redis()

Key Behaviours
===============
- Redis client is created lazily on first access.
- Global client is reused across all requests and by the click recorder.
- UTF-8 encoding with decode_responses for string operations.
"""

import redis.asyncio as redis

from golinks.config import get_settings

__all__ = ["close_redis", "get_redis"]

settings = get_settings()

redis_client: redis.Redis | None = None


async def get_redis() -> redis.Redis:
    global redis_client
    if redis_client is None:
        redis_client = redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
        )
    return redis_client


async def close_redis() -> None:
    global redis_client
    if redis_client is not None:
        await redis_client.aclose()
        redis_client = None
