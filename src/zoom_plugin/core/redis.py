"""Redis-backed plugin key/value store with automatic key prefixing.

Every key is prefixed (``zoom:`` by default) so the plugin state can share a
Redis database with other services. The store holds linked Zoom identities,
the shared superuser token and pending OAuth connections.
"""

from __future__ import annotations

import redis.asyncio as aioredis

from src.zoom_plugin.config import get_settings

# ── Module-level Redis pool (lazy init) ─────────────────────────────────────

_redis_pool: aioredis.Redis | None = None


def get_redis_pool() -> aioredis.Redis:
    """Get or create the Redis connection pool singleton."""
    global _redis_pool
    if _redis_pool is None:
        settings = get_settings()
        _redis_pool = aioredis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
        )
    return _redis_pool


async def close_redis() -> None:
    """Close the Redis connection pool."""
    global _redis_pool
    if _redis_pool:
        await _redis_pool.close()
        _redis_pool = None


# ── Plugin KV Store ─────────────────────────────────────────────────────────


class PluginKVStore:
    """Prefixed key/value wrapper over an async Redis client.

    Values are strings; callers serialize their own records (JSON via
    pydantic). No expiry is applied unless the caller passes ``ex``.
    """

    def __init__(self, redis_client: aioredis.Redis, prefix: str = "zoom:") -> None:
        self._redis = redis_client
        self._prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    async def get(self, key: str) -> str | None:
        """Get a value by prefixed key."""
        return await self._redis.get(self._key(key))

    async def set(self, key: str, value: str, ex: int | None = None) -> None:
        """Set a value with optional TTL (seconds). Last write wins."""
        await self._redis.set(self._key(key), value, ex=ex)

    async def delete(self, key: str) -> int:
        """Delete a key. Returns number of keys deleted."""
        return await self._redis.delete(self._key(key))

    async def get_and_delete(self, key: str) -> str | None:
        """Atomically read and remove a key (Redis GETDEL).

        A second call for the same key returns None.
        """
        return await self._redis.getdel(self._key(key))

    async def ping(self) -> bool:
        return bool(await self._redis.ping())


def get_plugin_kv_store() -> PluginKVStore:
    """Get a PluginKVStore bound to the global Redis pool."""
    return PluginKVStore(get_redis_pool(), prefix=get_settings().KV_KEY_PREFIX)
