"""Non-streaming completion result."""

from dataclasses import dataclass

from .stream_chunk import Usage


@dataclass(frozen=True)
class Completion:
    """The full answer of a non-streaming request.

    Attributes:
        id: Completion id shared with the session
        text: Rendered answer text
        usage: Synthesized token accounting
        record_id: Id of the record the answer came from
    """

    id: str
    text: str
    usage: Usage
    record_id: str
