"""Request DTOs for API endpoints."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ChatMessage(BaseModel):
    """One message of the conversation.

    ``content`` may be a plain string or a list of content parts; only the
    ``text`` parts count towards the prompt size.
    """

    model_config = ConfigDict(extra="allow")

    role: str = Field(..., description="Author role: system, user, assistant or tool")
    content: str | list[dict[str, Any]] | None = Field(None, description="Message content")

    @property
    def text(self) -> str:
        if self.content is None:
            return ""
        if isinstance(self.content, str):
            return self.content
        return "".join(str(part.get("text", "")) for part in self.content)


class ChatCompletionRequest(BaseModel):
    """Request DTO for ``POST /v1/chat/completions``.

    Sampling parameters are accepted for compatibility and ignored: the
    answer is always a canned record.
    """

    model_config = ConfigDict(extra="allow")

    model: str | None = Field(None, description="Model name echoed back in the response")
    messages: list[ChatMessage] = Field(..., description="Conversation so far", min_length=1)
    stream: bool | None = Field(False, description="Stream the answer as Server-Sent Events")
    max_tokens: int | None = Field(None, ge=1)
    temperature: float | None = Field(None, ge=0.0, le=2.0)
    top_p: float | None = Field(None, ge=0.0, le=1.0)
    n: int | None = Field(None, ge=1)
    stop: str | list[str] | None = None
    user: str | None = None
    response_id: str | None = Field(
        None,
        description="Simulator extension: answer with this record instead of a random one",
    )

    @property
    def prompt_text(self) -> str:
        """All message texts joined, used for the prompt token estimate."""
        return "\n".join(message.text for message in self.messages)
