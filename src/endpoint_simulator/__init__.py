"""Endpoint Simulator - OpenAI-compatible chat completions for load testing.

Answers come from canned records, never from a model. The package is
layered:

Layers:
    - protocols: Interface contracts (CacheStore, ResponseSource)
    - repositories: Redis cache, cache-aside, file and database sources
    - services: Admission gate, chunk streamer, delivery channel, completion service
    - handlers: HTTP endpoint handlers and SSE framing
    - dto: Data transfer objects (API contracts)
    - entities: Domain models (internal)

For HTTP API:
    ```python
    from endpoint_simulator.api.app import create_app

    app = create_app()
    ```
"""

from endpoint_simulator.config import Settings, get_settings
from endpoint_simulator.entities import ResponseRecord, StreamChunk
from endpoint_simulator.exceptions import (
    BusyError,
    CacheUnavailableError,
    ChannelClosedError,
    RepositoryError,
    SimulatorError,
)
from endpoint_simulator.handlers import CompletionHandler
from endpoint_simulator.protocols import CacheStore, ResponseSource
from endpoint_simulator.repositories import (
    CacheAside,
    DatabaseResponseRepository,
    FileResponseRepository,
    RedisCacheStore,
)
from endpoint_simulator.services import (
    AdmissionGate,
    ChunkStreamer,
    CompletionService,
    DeliveryChannel,
)

__all__ = [
    # Configuration
    "Settings",
    "get_settings",
    # Protocols (interfaces)
    "CacheStore",
    "ResponseSource",
    # Repositories (data access)
    "CacheAside",
    "DatabaseResponseRepository",
    "FileResponseRepository",
    "RedisCacheStore",
    # Services (business logic)
    "AdmissionGate",
    "ChunkStreamer",
    "CompletionService",
    "DeliveryChannel",
    # Handlers (HTTP)
    "CompletionHandler",
    # Entities (domain models)
    "ResponseRecord",
    "StreamChunk",
    # Errors
    "BusyError",
    "CacheUnavailableError",
    "ChannelClosedError",
    "RepositoryError",
    "SimulatorError",
]
