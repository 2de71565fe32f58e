"""Server-Sent Events framing and the session-aware streaming response."""

from collections.abc import AsyncGenerator

from starlette.responses import StreamingResponse
from starlette.types import Receive, Scope, Send

from endpoint_simulator.entities import RequestSession, SessionState

DONE_FRAME = "data: [DONE]\n\n"


def sse_frame(payload: str) -> str:
    """Frame one JSON payload as a Server-Sent Event."""
    return f"data: {payload}\n\n"


class SessionStreamingResponse(StreamingResponse):
    """StreamingResponse that always ends its session.

    Starlette stops iterating the body when the client disconnects, and may
    do so before the body generator has even started. Closing the generator
    here and finishing the session as cancelled covers both cases; on a
    normal run both calls are no-ops.
    """

    def __init__(
        self,
        content: AsyncGenerator[str, None],
        session: RequestSession,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(content, media_type="text/event-stream", headers=headers)
        self._frames = content
        self._session = session

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            await self._frames.aclose()
            self._session.finish(SessionState.CANCELLED)
