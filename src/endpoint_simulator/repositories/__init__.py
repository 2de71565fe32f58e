"""Repository layer for data access.

This layer abstracts external dependencies (Redis, the response directory,
the response database) behind protocol-based interfaces. This enables:
- Selecting the File or Database source once at startup
- Unit testing with in-memory implementations
- Clear separation of concerns
"""

from endpoint_simulator.protocols import CacheStore, ResponseSource

from .cache_aside import CacheAside
from .database_repository import DatabaseResponseRepository
from .file_repository import FileResponseRepository
from .redis_cache_store import RedisCacheStore
from .selection import select_record

__all__ = [
    "CacheStore",
    "ResponseSource",
    "CacheAside",
    "DatabaseResponseRepository",
    "FileResponseRepository",
    "RedisCacheStore",
    "select_record",
]
