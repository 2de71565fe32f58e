"""Handler layer for HTTP endpoints.

This layer contains the HTTP request/response handlers.
Handlers depend on services (business logic), not directly on repositories.

Architecture:
    Handler -> Service -> Repository
    (HTTP)  -> (Business) -> (Data Access)
"""

from .completion_handler import CompletionHandler
from .streaming_response import DONE_FRAME, SessionStreamingResponse, sse_frame

__all__ = [
    "CompletionHandler",
    "DONE_FRAME",
    "SessionStreamingResponse",
    "sse_frame",
]
