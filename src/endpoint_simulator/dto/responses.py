"""Response DTOs for API endpoints."""

from typing import Any, Literal

from pydantic import BaseModel, Field


class PromptTokensDetails(BaseModel):
    cached_tokens: int = 0
    audio_tokens: int = 0


class CompletionTokensDetails(BaseModel):
    reasoning_tokens: int = 0
    audio_tokens: int = 0
    accepted_prediction_tokens: int = 0
    rejected_prediction_tokens: int = 0


class UsageInfo(BaseModel):
    """Token accounting block shared by completions and terminal chunks."""

    prompt_tokens: int = Field(..., ge=0)
    completion_tokens: int = Field(..., ge=0)
    total_tokens: int = Field(..., ge=0)
    prompt_tokens_details: PromptTokensDetails = Field(default_factory=PromptTokensDetails)
    completion_tokens_details: CompletionTokensDetails = Field(
        default_factory=CompletionTokensDetails
    )


class CompletionMessage(BaseModel):
    role: str = "assistant"
    content: str


class CompletionChoice(BaseModel):
    """Single choice of a non-streaming completion."""

    index: int = 0
    message: CompletionMessage
    logprobs: Any | None = None
    finish_reason: str | None = "stop"


class ChatCompletionResponse(BaseModel):
    """Response DTO for a non-streaming chat completion."""

    id: str = Field(..., description="Completion id, e.g. chatcmpl-Ai...")
    object: Literal["chat.completion"] = "chat.completion"
    created: int = Field(..., description="Unix timestamp of creation")
    model: str
    system_fingerprint: str
    choices: list[CompletionChoice]
    usage: UsageInfo


class ChunkChoice(BaseModel):
    """Single choice of a streamed chunk.

    ``delta`` carries ``content`` on every chunk and ``role`` on the first.
    """

    index: int = 0
    delta: dict[str, str]
    logprobs: Any | None = None
    finish_reason: str | None = None


class ChatCompletionChunk(BaseModel):
    """One Server-Sent Event payload of a streamed completion.

    ``usage`` is null on every chunk except the terminal one.
    """

    id: str
    object: Literal["chat.completion.chunk"] = "chat.completion.chunk"
    created: int
    model: str
    system_fingerprint: str
    choices: list[ChunkChoice]
    usage: UsageInfo | None = None


class HealthCheckResponse(BaseModel):
    """Response DTO for health check."""

    status: str = Field(..., description="'healthy', 'degraded' (cache down) or 'unhealthy'")
    source: str = Field(..., description="Active response source: file or database")
    source_healthy: bool
    cache_healthy: bool
    permits: dict[str, int] = Field(default_factory=dict, description="Admission gate counters")
