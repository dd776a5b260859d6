"""Redis store for catalog caching.

Handles:
- Cached read payloads with TTL policies
- Tag indexes for explicit invalidation

TTL policies:
- Featured stores: 1 second (debounce, recomputed almost every call)
- Owner store lists: 15 minutes
- Store detail: 15 minutes
- Tag indexes: 1 day (must outlive every tagged entry)
"""

import logging

import redis.asyncio as redis

from app.settings import get_settings

# TTL constants (in seconds)
TTL_FEATURED_STORES = 1
TTL_USER_STORES = 900  # 15 minutes
TTL_STORE_DETAIL = 900  # 15 minutes
TTL_TAG_INDEX = 86400  # 1 day

# Key prefixes
PREFIX_CATALOG = "catalog:"
PREFIX_TAG = "tag:"

# Redis client (initialized on startup)
_redis: redis.Redis | None = None
logger = logging.getLogger("uvicorn.error")


async def init_redis() -> None:
    """Initialize Redis connection."""
    global _redis
    settings = get_settings()
    _redis = redis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
    )
    # Validate connectivity early (especially for `rediss://` in production).
    await _redis.ping()
    logger.info("Redis connected")


async def close_redis() -> None:
    """Close Redis connection."""
    global _redis
    if _redis:
        await _redis.aclose()
        _redis = None


def _get_redis() -> redis.Redis:
    """Get Redis client instance."""
    if _redis is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis


class RedisCacheBackend:
    """Cache backend storing payloads with SETEX and one Redis set per tag.

    A tag set holds the keys written under that tag; invalidating the tag
    deletes those keys and the set itself. Keys that already expired are
    deleted as no-ops.
    """

    def __init__(self, client: redis.Redis) -> None:
        self._client = client

    async def get(self, key: str) -> str | None:
        """Get value from cache.

        Args:
            key: Cache key.

        Returns:
            Cached value or None if not found.
        """
        return await self._client.get(key)

    async def set(self, key: str, value: str, ttl: int, tags: tuple[str, ...] = ()) -> None:
        """Set value in cache with TTL and index it under each tag.

        Args:
            key: Cache key.
            value: Value to cache.
            ttl: Time-to-live in seconds.
            tags: Tags that invalidate this key.
        """
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.setex(key, ttl, value)
            for tag in tags:
                tag_key = f"{PREFIX_TAG}{tag}"
                pipe.sadd(tag_key, key)
                pipe.expire(tag_key, TTL_TAG_INDEX)
            await pipe.execute()

    async def invalidate_tag(self, tag: str) -> None:
        """Delete every key indexed under a tag.

        Args:
            tag: Tag name.
        """
        tag_key = f"{PREFIX_TAG}{tag}"
        keys = await self._client.smembers(tag_key)
        async with self._client.pipeline(transaction=True) as pipe:
            if keys:
                pipe.delete(*keys)
            pipe.delete(tag_key)
            await pipe.execute()
        logger.debug(f"Invalidated tag {tag} ({len(keys)} keys)")


def get_cache_backend() -> RedisCacheBackend:
    """Get a cache backend bound to the shared Redis client."""
    return RedisCacheBackend(_get_redis())
