"""Dependency injection configuration for FastAPI app.

Uses FastAPI's app.state pattern for storing service instances.

Pattern:
    - Settings (and optional substitutes) stored in app.state by create_app
    - Components built once per process during lifespan
    - Dependency functions retrieve from request.app.state
    - Clean separation, no global mutable state
"""

import random
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Annotated

from fastapi import Depends, FastAPI, Request

from endpoint_simulator.config import Settings, get_random
from endpoint_simulator.exceptions import RepositoryError
from endpoint_simulator.handlers import CompletionHandler
from endpoint_simulator.logger import get_logger, setup_logging
from endpoint_simulator.protocols import ResponseSource
from endpoint_simulator.repositories import (
    CacheAside,
    DatabaseResponseRepository,
    FileResponseRepository,
    RedisCacheStore,
)
from endpoint_simulator.services import CompletionService

logger = get_logger(__name__)


def get_handler(request: Request) -> CompletionHandler:
    """Dependency injection for CompletionHandler from app.state.

    Args:
        request: FastAPI Request object

    Returns:
        The CompletionHandler instance from app.state

    Raises:
        RuntimeError: If handler is not initialized
    """
    handler = getattr(request.app.state, "completion_handler", None)
    if handler is None:
        raise RuntimeError("CompletionHandler not initialized. Check lifespan setup.")
    return handler


def build_repository(settings: Settings, cache: CacheAside, rng: random.Random) -> ResponseSource:
    """Create the response source selected by ``DATA_SOURCE``.

    The choice is made once per process and never changes at runtime.
    """
    if settings.data_source == "database":
        return DatabaseResponseRepository.create(settings, cache=cache, rng=rng)

    return FileResponseRepository(
        directory=Path(settings.response_dir),
        cache=cache,
        list_ttl=settings.file_list_ttl,
        content_ttl=settings.file_content_ttl,
        rng=rng,
        tracking=settings.tracking_enabled,
    )


async def verify_source(repository: ResponseSource) -> None:
    """Fail startup if the source is unreachable, then log how many records it holds.

    Raises:
        RuntimeError: If the source health check fails
    """
    if not await repository.health_check():
        raise RuntimeError(f"Response source '{repository.name}' is not reachable")
    logger.info("source_connected", source=repository.name)

    try:
        logger.info("source_records", source=repository.name, count=await repository.count())
    except RepositoryError as e:
        logger.error("source_count_failed", source=repository.name, error=str(e))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for FastAPI app.

    Initializes all layers and stores in app.state:
    1. Cache store - Redis unless a substitute was passed to create_app
    2. Repository (data access) - file or database, per settings
    3. Service (business logic) - stored in app.state.completion_service
    4. Handler (HTTP endpoints) - stored in app.state.completion_handler

    Args:
        app: The FastAPI application instance

    Yields:
        None

    Cleanup:
        Closes connections this lifespan opened and removes services from app.state
    """
    settings: Settings = app.state.settings
    setup_logging(settings.log_level, settings.log_format)

    cache_store = app.state.cache_store
    owns_cache_store = cache_store is None
    if owns_cache_store:
        cache_store = RedisCacheStore.create(settings)

    cache = CacheAside(cache_store, prefix=settings.cache_prefix)
    repository = build_repository(settings, cache, get_random(settings))
    await verify_source(repository)

    cache_healthy = await cache_store.health_check()
    if cache_healthy:
        logger.info("cache_connected", redis_url=settings.redis_url)
    else:
        logger.warning("cache_unreachable", redis_url=settings.redis_url)

    completion_service = CompletionService.create(settings, repository)
    completion_handler = CompletionHandler(
        completion_service=completion_service,
        cache_store=cache_store,
        default_model=settings.model_name,
        system_fingerprint=settings.system_fingerprint,
    )

    app.state.completion_service = completion_service
    app.state.completion_handler = completion_handler
    app.state.repository = repository

    logger.info(
        "simulator_started",
        source=settings.data_source,
        semaphore_limit=settings.semaphore_limit,
        channel_capacity=settings.channel_capacity,
        stream_delay_ms=settings.stream_delay_ms,
    )

    yield

    del app.state.completion_handler
    del app.state.completion_service
    del app.state.repository

    if isinstance(repository, DatabaseResponseRepository):
        repository.dispose()
    if owns_cache_store:
        await cache_store.close()
    logger.info("simulator_stopped")


# Type aliases for cleaner dependency injection
HandlerDep = Annotated[CompletionHandler, Depends(get_handler)]
