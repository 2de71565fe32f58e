"""Data Transfer Objects for API contracts.

These Pydantic models define the external, OpenAI-compatible wire
contract. They are used for request/response validation and serialization.

Internal domain logic should use entities from the entities package.
"""

from .requests import ChatCompletionRequest, ChatMessage
from .responses import (
    ChatCompletionChunk,
    ChatCompletionResponse,
    ChunkChoice,
    CompletionChoice,
    CompletionMessage,
    CompletionTokensDetails,
    HealthCheckResponse,
    PromptTokensDetails,
    UsageInfo,
)

__all__ = [
    "ChatMessage",
    "ChatCompletionRequest",
    "ChatCompletionChunk",
    "ChatCompletionResponse",
    "ChunkChoice",
    "CompletionChoice",
    "CompletionMessage",
    "CompletionTokensDetails",
    "HealthCheckResponse",
    "PromptTokensDetails",
    "UsageInfo",
]
