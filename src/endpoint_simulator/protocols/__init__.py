"""Protocol interfaces for swappable implementations.

Protocols enable:
- Selecting the File or Database response source once at startup
- Unit testing with in-memory implementations
- Clear separation of concerns

Usage:
    ```python
    from endpoint_simulator.protocols import CacheStore, ResponseSource

    cache: CacheStore = RedisCacheStore(client)
    source: ResponseSource = FileResponseRepository(...)
    source: ResponseSource = DatabaseResponseRepository(...)
    ```
"""

from .cache_store import CacheStore
from .response_source import ResponseSource

__all__ = [
    "CacheStore",
    "ResponseSource",
]
