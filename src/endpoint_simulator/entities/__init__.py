"""Domain entities for internal representation.

These are plain dataclasses used internally by services and repositories.
They are NOT used for API contracts - use DTOs from the dto package for that.
"""

from .completion import Completion
from .request_session import RequestSession, SessionState
from .response_record import ResolveCriteria, ResponseRecord
from .stream_chunk import StreamChunk, Usage

__all__ = [
    "Completion",
    "ResolveCriteria",
    "RequestSession",
    "ResponseRecord",
    "SessionState",
    "StreamChunk",
    "Usage",
]
