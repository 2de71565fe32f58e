"""Redis implementation of CacheStore.

Values are plain strings with a per-key expiry (``SET key value EX ttl``).
Entries are never evicted by the simulator; they only expire.
"""

import redis.asyncio as redis
from redis.exceptions import RedisError

from endpoint_simulator.config import Settings, get_redis_client
from endpoint_simulator.exceptions import CacheUnavailableError


class RedisCacheStore:
    """Redis-backed key/value store with TTL.

    This class satisfies the CacheStore protocol through structural
    typing - no explicit inheritance needed. Every Redis or socket failure
    surfaces as ``CacheUnavailableError`` so callers can bypass the cache.
    """

    def __init__(self, redis_client: redis.Redis) -> None:
        """Initialize the Redis cache store.

        Args:
            redis_client: asyncio Redis client created with ``decode_responses=True``
        """
        self._client = redis_client

    @classmethod
    def create(cls, settings: Settings) -> "RedisCacheStore":
        """Factory method to create RedisCacheStore from settings.

        Args:
            settings: Application settings carrying the Redis URL and timeouts

        Returns:
            Configured RedisCacheStore
        """
        return cls(get_redis_client(settings))

    async def get(self, key: str) -> str | None:
        try:
            return await self._client.get(key)
        except (RedisError, OSError) as e:
            raise CacheUnavailableError(f"Redis GET {key} failed: {e}") from e

    async def set(self, key: str, value: str, ttl: int) -> None:
        try:
            await self._client.set(key, value, ex=ttl)
        except (RedisError, OSError) as e:
            raise CacheUnavailableError(f"Redis SET {key} failed: {e}") from e

    async def health_check(self) -> bool:
        """Check if Redis is accessible.

        Returns:
            True if healthy, False otherwise
        """
        try:
            return bool(await self._client.ping())
        except (RedisError, OSError):
            return False

    async def close(self) -> None:
        """Close the underlying connection pool."""
        await self._client.aclose()

    @property
    def client(self) -> redis.Redis:
        """Get the Redis client."""
        return self._client
