"""Cache-aside reads shared by the response repositories.

The cache is strictly an optimization: any ``CacheUnavailableError`` is
logged and the value is read from the source instead. A cache outage
slows requests down, it never fails them.
"""

from collections.abc import Awaitable, Callable
from typing import TypeVar

from endpoint_simulator.exceptions import CacheUnavailableError, RepositoryError
from endpoint_simulator.logger import get_logger
from endpoint_simulator.protocols import CacheStore

logger = get_logger(__name__)

T = TypeVar("T")


class CacheAside:
    """Prefix-scoped cache-aside helper over a CacheStore.

    Example:
        ```python
        cache = CacheAside(RedisCacheStore.create(settings), prefix="simulator")

        names = await cache.get_or_load(
            cache.key("file_list"),
            ttl=3600,
            load=scan_directory,
            decode=json.loads,
        )
        ```
    """

    def __init__(self, store: CacheStore, prefix: str) -> None:
        """Initialize the helper.

        Args:
            store: Cache backend shared by all sessions
            prefix: Namespace prepended to every key
        """
        self._store = store
        self._prefix = prefix

    def key(self, *parts: str) -> str:
        """Build a prefixed key, e.g. ``key("file", "a.json")`` -> ``prefix:file:a.json``."""
        return ":".join((self._prefix, *parts))

    async def get_or_load(
        self,
        key: str,
        ttl: int,
        load: Callable[[], Awaitable[str]],
        decode: Callable[[str], T],
    ) -> T:
        """Return the cached value for ``key``, loading and caching it on a miss.

        Business logic:
        1. Read the key; a hit that decodes cleanly is returned as-is
        2. On a miss (or unreadable cache, or corrupt entry) call ``load``
        3. Decode the fresh value; malformed source data is never cached
        4. Populate the cache before returning

        Args:
            key: Fully prefixed cache key
            ttl: Expiry for a freshly populated entry, in seconds
            load: Coroutine factory reading the serialized value from the source
            decode: Parser from the serialized value to the returned object

        Returns:
            The decoded value

        Raises:
            RepositoryError: If the source data cannot be decoded
        """
        cached = await self._safe_get(key)
        if cached is not None:
            try:
                value = decode(cached)
            except RepositoryError as e:
                logger.warning("cache_entry_corrupt", key=key, error=str(e))
            else:
                logger.debug("cache_hit", key=key)
                return value

        logger.debug("cache_miss", key=key)
        raw = await load()
        value = decode(raw)
        await self._safe_set(key, raw, ttl)
        return value

    async def _safe_get(self, key: str) -> str | None:
        try:
            return await self._store.get(key)
        except CacheUnavailableError as e:
            logger.warning("cache_bypassed", key=key, operation="get", error=str(e))
            return None

    async def _safe_set(self, key: str, value: str, ttl: int) -> None:
        try:
            await self._store.set(key, value, ttl)
        except CacheUnavailableError as e:
            logger.warning("cache_bypassed", key=key, operation="set", error=str(e))

    async def health_check(self) -> bool:
        """Check if the underlying cache store is reachable."""
        return await self._store.health_check()

    @property
    def store(self) -> CacheStore:
        """Get the underlying cache store (for testing)."""
        return self._store
