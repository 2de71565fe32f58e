from typing import Any

import uvicorn
from fastapi import APIRouter, FastAPI
from fastapi.responses import Response

from endpoint_simulator.api.dependencies import HandlerDep, lifespan
from endpoint_simulator.config import Settings, get_settings
from endpoint_simulator.dto import ChatCompletionRequest, ChatCompletionResponse, HealthCheckResponse
from endpoint_simulator.protocols import CacheStore

router = APIRouter()


@router.get("/")
async def root() -> dict[str, Any]:
    """Root endpoint with API information."""
    return {
        "name": "Endpoint Simulator",
        "version": "0.1.0",
        "description": "OpenAI-compatible chat completion simulator for load testing",
        "endpoints": {
            "chat_completions": "/v1/chat/completions",
            "test_completion": "/test_completion",
            "health": "/health",
            "docs": "/docs",
        },
    }


@router.get("/health", response_model=HealthCheckResponse)
async def health(handler: HandlerDep) -> HealthCheckResponse:
    """Health check endpoint."""
    return await handler.health_check()


@router.post("/v1/chat/completions", response_model=None)
async def chat_completions(request: ChatCompletionRequest, handler: HandlerDep) -> Response:
    """
    Simulated chat completion.

    Returns a JSON completion, or a Server-Sent Events stream of
    ``chat.completion.chunk`` objects terminated by ``data: [DONE]``
    when ``stream`` is true.
    """
    return await handler.chat_completions(request)


@router.post("/test_completion", response_model=ChatCompletionResponse)
async def test_completion(handler: HandlerDep) -> ChatCompletionResponse:
    """Fixed completion used as a liveness probe."""
    return await handler.test_completion()


def create_app(
    settings: Settings | None = None,
    cache_store: CacheStore | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Process-wide settings; read from the environment when None
        cache_store: Substitute cache backend; Redis is used when None

    Returns:
        The configured FastAPI app
    """
    app = FastAPI(
        title="Endpoint Simulator",
        description="OpenAI-compatible chat completion simulator for load testing",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings or get_settings()
    app.state.cache_store = cache_store
    app.include_router(router)
    return app


app = create_app()


def main() -> None:
    """Run the simulator with uvicorn using ``WORKERS`` worker processes."""
    settings = get_settings()
    uvicorn.run(
        "endpoint_simulator.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        workers=settings.workers,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
