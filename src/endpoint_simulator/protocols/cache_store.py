"""Cache storage protocol.

Defines the key/value-with-TTL interface the repositories use for
cache-aside reads. The store is shared by all sessions; concurrent writes
to the same key are last-writer-wins.

Implementations can include:
- Redis (default)
- Any in-process store for tests
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class CacheStore(Protocol):
    """Protocol for cache storage backends.

    Any type that implements these methods satisfies the protocol, no
    explicit inheritance needed. Implementations raise
    ``CacheUnavailableError`` when the backend cannot be reached.
    """

    async def get(self, key: str) -> str | None:
        """Fetch a value.

        Args:
            key: The fully prefixed cache key

        Returns:
            The serialized value, or None on a miss or after expiry
        """
        ...

    async def set(self, key: str, value: str, ttl: int) -> None:
        """Store a value that expires after ``ttl`` seconds.

        Args:
            key: The fully prefixed cache key
            value: The serialized value
            ttl: Time-to-live in seconds
        """
        ...

    async def health_check(self) -> bool:
        """Check if the store is reachable.

        Returns:
            True if healthy, False otherwise
        """
        ...
