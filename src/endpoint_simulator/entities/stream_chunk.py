"""Stream chunk domain entity."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Usage:
    """Synthesized token accounting for a completion."""

    prompt_tokens: int
    completion_tokens: int

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


@dataclass(frozen=True)
class StreamChunk:
    """One incremental unit of a streamed completion.

    Only the terminal chunk of a sequence carries ``finish_reason`` and
    ``usage``; only the first carries ``role``.

    Attributes:
        sequence_index: Zero-based position within the session's sequence
        delta_content: Next fragment of the answer text
        finish_reason: ``"stop"`` on the terminal chunk, None otherwise
        usage: Token accounting on the terminal chunk, None otherwise
        role: ``"assistant"`` on the first chunk, None otherwise
    """

    sequence_index: int
    delta_content: str
    finish_reason: str | None = None
    usage: Usage | None = None
    role: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.finish_reason is not None
