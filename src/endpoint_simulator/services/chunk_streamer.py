"""Splitting answers into paced stream chunks.

Segments keep their leading whitespace, so joining every ``delta_content``
in order reproduces the answer exactly.
"""

import asyncio
import math
import re
from collections.abc import AsyncIterator

from endpoint_simulator.entities import StreamChunk, Usage

# A word with the whitespace before it, or trailing whitespace on its own.
WORD_PATTERN = re.compile(r"\s*\S+|\s+")

CHARS_PER_TOKEN = 4

ASSISTANT_ROLE = "assistant"


def split_segments(text: str, granularity: str = "word", size: int = 1) -> list[str]:
    """Partition ``text`` into segments of ``size`` words or characters.

    Examples:
        >>> split_segments("Hello world")
        ['Hello', ' world']
        >>> split_segments("Hello world", "character", 4)
        ['Hell', 'o wo', 'rld']

    Raises:
        ValueError: If the granularity is unknown or ``size`` is below 1
    """
    if size < 1:
        raise ValueError("size must be at least 1")

    if granularity == "word":
        units = WORD_PATTERN.findall(text)
    elif granularity == "character":
        units = list(text)
    else:
        raise ValueError(f"Unknown granularity: {granularity!r}")

    return ["".join(units[i : i + size]) for i in range(0, len(units), size)]


def estimate_prompt_tokens(prompt_text: str) -> int:
    return math.ceil(len(prompt_text) / CHARS_PER_TOKEN)


def estimate_usage(prompt_text: str, segments: list[str]) -> Usage:
    return Usage(
        prompt_tokens=estimate_prompt_tokens(prompt_text),
        completion_tokens=len(segments),
    )


class ChunkStreamer:
    """Turns one answer into an ordered, paced chunk sequence.

    Emission protocol:
    1. First chunk: ``role="assistant"`` and the first segment (or "")
    2. One chunk per remaining segment
    3. Terminal chunk: empty content, ``finish_reason="stop"`` and usage

    Every emission after the first is preceded by a suspension point
    (``asyncio.sleep``), so cancelling the consuming task stops the sequence
    before the next chunk. With pacing disabled the suspension is
    ``sleep(0)``, which still yields to other sessions.
    """

    def __init__(
        self,
        delay: float = 0.0,
        granularity: str = "word",
        segment_size: int = 1,
    ) -> None:
        """Initialize the streamer.

        Args:
            delay: Seconds between successive chunks; 0 disables pacing
            granularity: ``word`` or ``character``
            segment_size: Units per segment
        """
        if delay < 0:
            raise ValueError("delay must not be negative")
        # Fail on bad granularity here rather than mid-request.
        split_segments("", granularity, segment_size)
        self._delay = delay
        self._granularity = granularity
        self._segment_size = segment_size

    def segments(self, answer_text: str) -> list[str]:
        return split_segments(answer_text, self._granularity, self._segment_size)

    async def stream(self, answer_text: str, prompt_text: str = "") -> AsyncIterator[StreamChunk]:
        """Yield the chunk sequence for ``answer_text``.

        The returned async generator is single-use: once exhausted or
        closed it cannot be restarted, and a partially consumed sequence is
        never replayed.

        Args:
            answer_text: Text to stream
            prompt_text: Request prompt, only used for the usage estimate
        """
        segments = self.segments(answer_text)
        usage = estimate_usage(prompt_text, segments)

        yield StreamChunk(
            sequence_index=0,
            delta_content=segments[0] if segments else "",
            role=ASSISTANT_ROLE,
        )

        index = 1
        for segment in segments[1:]:
            await asyncio.sleep(self._delay)
            yield StreamChunk(sequence_index=index, delta_content=segment)
            index += 1

        await asyncio.sleep(self._delay)
        yield StreamChunk(sequence_index=index, delta_content="", finish_reason="stop", usage=usage)

    @property
    def delay(self) -> float:
        return self._delay
