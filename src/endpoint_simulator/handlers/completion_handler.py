"""HTTP handlers for chat completion operations.

Handlers convert between DTOs (API contracts) and service calls.
They handle HTTP concerns like status codes, framing, and error handling.
"""

import time
from collections.abc import AsyncGenerator
from contextlib import aclosing

from fastapi import HTTPException, status
from fastapi.responses import JSONResponse, Response

from endpoint_simulator.dto import (
    ChatCompletionChunk,
    ChatCompletionRequest,
    ChatCompletionResponse,
    ChunkChoice,
    CompletionChoice,
    CompletionMessage,
    HealthCheckResponse,
    UsageInfo,
)
from endpoint_simulator.entities import RequestSession, ResolveCriteria, StreamChunk, Usage
from endpoint_simulator.exceptions import BusyError, RepositoryError
from endpoint_simulator.protocols import CacheStore
from endpoint_simulator.services import CompletionService, generate_completion_id

from .streaming_response import DONE_FRAME, SessionStreamingResponse, sse_frame

TEST_COMPLETION_TEXT = "This is a test completion from the endpoint simulator."


def to_usage_info(usage: Usage) -> UsageInfo:
    return UsageInfo(
        prompt_tokens=usage.prompt_tokens,
        completion_tokens=usage.completion_tokens,
        total_tokens=usage.total_tokens,
    )


def to_chunk_dto(
    chunk: StreamChunk,
    completion_id: str,
    created: int,
    model: str,
    system_fingerprint: str,
) -> ChatCompletionChunk:
    delta = {"content": chunk.delta_content}
    if chunk.role is not None:
        delta = {"role": chunk.role, **delta}

    return ChatCompletionChunk(
        id=completion_id,
        created=created,
        model=model,
        system_fingerprint=system_fingerprint,
        choices=[ChunkChoice(delta=delta, finish_reason=chunk.finish_reason)],
        usage=to_usage_info(chunk.usage) if chunk.usage is not None else None,
    )


class CompletionHandler:
    """HTTP handlers for chat completion operations.

    This handler delegates business logic to CompletionService
    and handles HTTP-specific concerns like:
    - Converting entities to DTOs
    - Server-Sent Event framing
    - Mapping domain errors to status codes

    Example:
        ```python
        handler = CompletionHandler(
            completion_service=service,
            cache_store=cache_store,
            default_model="gpt-4o-2024-08-06",
            system_fingerprint="fp_d28bcae782",
        )

        @app.post("/v1/chat/completions")
        async def chat_completions(request: ChatCompletionRequest):
            return await handler.chat_completions(request)
        ```
    """

    def __init__(
        self,
        completion_service: CompletionService,
        cache_store: CacheStore,
        default_model: str,
        system_fingerprint: str,
    ) -> None:
        """Initialize the completion handler.

        Args:
            completion_service: The completion service for business logic (required)
            cache_store: Cache backend, only probed by the health check
            default_model: Model name used when the request omits one
            system_fingerprint: Fingerprint stamped on every response
        """
        self._service = completion_service
        self._cache_store = cache_store
        self._default_model = default_model
        self._fingerprint = system_fingerprint

    async def chat_completions(self, request: ChatCompletionRequest) -> Response:
        """Handle POST /v1/chat/completions requests.

        Args:
            request: The chat completion request DTO

        Returns:
            A JSON completion, or an SSE stream when ``stream`` is true

        Raises:
            HTTPException: 503 if admission timed out, 500 if no response could be resolved
        """
        session = self._service.new_session(
            prompt_text=request.prompt_text,
            criteria=ResolveCriteria(record_id=request.response_id),
        )
        model = request.model or self._default_model
        created = int(time.time())

        try:
            if not request.stream:
                completion = await self._service.complete(session)
                body = ChatCompletionResponse(
                    id=completion.id,
                    created=created,
                    model=model,
                    system_fingerprint=self._fingerprint,
                    choices=[CompletionChoice(message=CompletionMessage(content=completion.text))],
                    usage=to_usage_info(completion.usage),
                )
                return JSONResponse(body.model_dump())

            await self._service.open_session(session)

        except BusyError as e:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=f"Simulator busy: {e}",
            ) from e
        except RepositoryError as e:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Failed to fetch responses: {e}",
            ) from e

        return SessionStreamingResponse(
            self._frames(session, created, model),
            session=session,
            headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
        )

    async def _frames(
        self,
        session: RequestSession,
        created: int,
        model: str,
    ) -> AsyncGenerator[str, None]:
        async with aclosing(self._service.stream(session)) as chunks:
            async for chunk in chunks:
                dto = to_chunk_dto(chunk, session.id, created, model, self._fingerprint)
                yield sse_frame(dto.model_dump_json())
        yield DONE_FRAME

    async def test_completion(self) -> ChatCompletionResponse:
        """Handle POST /test_completion requests.

        Returns a fixed completion without touching the gate or the sources.
        """
        return ChatCompletionResponse(
            id=generate_completion_id(),
            created=int(time.time()),
            model=self._default_model,
            system_fingerprint=self._fingerprint,
            choices=[CompletionChoice(message=CompletionMessage(content=TEST_COMPLETION_TEXT))],
            usage=UsageInfo(prompt_tokens=0, completion_tokens=9, total_tokens=9),
        )

    async def health_check(self) -> HealthCheckResponse:
        """Handle GET /health requests.

        A cache outage only degrades the service; a source outage makes it unhealthy.
        """
        source_healthy = await self._service.is_healthy()
        cache_healthy = await self._cache_store.health_check()

        if not source_healthy:
            health = "unhealthy"
        elif not cache_healthy:
            health = "degraded"
        else:
            health = "healthy"

        return HealthCheckResponse(
            status=health,
            source=self._service.repository.name,
            source_healthy=source_healthy,
            cache_healthy=cache_healthy,
            permits=self._service.gate.get_stats(),
        )
