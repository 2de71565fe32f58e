"""Completion service: the per-request state machine.

A request moves through
``Queued -> Admitted -> Resolving -> Streaming -> {Completed | Cancelled | Failed}``.
Every terminal state releases the session's admission permit exactly once.

Streaming runs as two cooperating parts connected by a DeliveryChannel:
a producer task driving the ChunkStreamer, and the consuming async
generator handed to the transport. Cancelling the consumer cancels the
producer at its next suspension point.
"""

import asyncio
import secrets
import string
from collections.abc import AsyncIterator

from endpoint_simulator.config import Settings
from endpoint_simulator.entities import (
    Completion,
    RequestSession,
    ResolveCriteria,
    ResponseRecord,
    SessionState,
    StreamChunk,
)
from endpoint_simulator.exceptions import BusyError, RepositoryError
from endpoint_simulator.logger import bind_session, get_logger, unbind_session
from endpoint_simulator.protocols import ResponseSource

from .admission_gate import AdmissionGate
from .chunk_streamer import ChunkStreamer, estimate_usage
from .delivery_channel import DeliveryChannel

logger = get_logger(__name__)

COMPLETION_ID_PREFIX = "chatcmpl-Ai"
COMPLETION_ID_ALPHABET = string.ascii_letters + string.digits


def generate_completion_id() -> str:
    """Return an id like ``chatcmpl-Ai`` followed by 30 random alphanumerics."""
    suffix = "".join(secrets.choice(COMPLETION_ID_ALPHABET) for _ in range(30))
    return f"{COMPLETION_ID_PREFIX}{suffix}"


def render_answer(record: ResponseRecord, style: str = "answer") -> str:
    """Build the text streamed for a record.

    ``answer`` returns the answer verbatim. ``qa`` renders question, answer
    and references as markdown sections.
    """
    if style == "answer":
        return record.answer_text
    if style != "qa":
        raise ValueError(f"Unknown response style: {style!r}")

    text = f"**Pertanyaan:**\n{record.prompt_text}\n\n**Jawaban:**\n{record.answer_text}"
    if record.references:
        bullets = "\n".join(f"- {reference}" for reference in record.references)
        text += f"\n\n**Referensi:**\n{bullets}"
    return text


class CompletionService:
    """Core orchestration of a completion request.

    This service depends on PROTOCOLS, not concrete implementations:
    - ResponseSource: the file or database backend chosen at startup

    Example:
        ```python
        service = CompletionService(
            repository=repository,
            gate=AdmissionGate(limit=100),
            streamer=ChunkStreamer(delay=0.02),
            channel_capacity=64,
        )

        session = service.new_session(prompt_text="Hi")
        await service.open_session(session)
        async for chunk in service.stream(session):
            ...
        ```
    """

    def __init__(
        self,
        repository: ResponseSource,
        gate: AdmissionGate,
        streamer: ChunkStreamer,
        channel_capacity: int,
        response_style: str = "answer",
        tracking: bool = False,
    ) -> None:
        """Initialize the completion service.

        Args:
            repository: Response source (required)
            gate: Admission gate shared by all sessions (required)
            streamer: Chunk streamer (required)
            channel_capacity: Capacity of each session's delivery channel
            response_style: ``answer`` or ``qa`` rendering of the record
            tracking: Log every chunk handed to the channel at debug level
        """
        if channel_capacity < 1:
            raise ValueError("channel_capacity must be at least 1")
        render_answer(ResponseRecord(id="", prompt_text="", answer_text=""), response_style)

        self._repository = repository
        self._gate = gate
        self._streamer = streamer
        self._channel_capacity = channel_capacity
        self._response_style = response_style
        self._tracking = tracking

    @classmethod
    def create(cls, settings: Settings, repository: ResponseSource) -> "CompletionService":
        """Factory method to create CompletionService from settings.

        Args:
            settings: Application settings
            repository: Response source selected for this process

        Returns:
            Configured CompletionService
        """
        return cls(
            repository=repository,
            gate=AdmissionGate(settings.semaphore_limit, settings.admission_timeout),
            streamer=ChunkStreamer(
                delay=settings.stream_delay,
                granularity=settings.chunk_granularity,
                segment_size=settings.chunk_size,
            ),
            channel_capacity=settings.channel_capacity,
            response_style=settings.response_style,
            tracking=settings.tracking_enabled,
        )

    def new_session(
        self,
        prompt_text: str = "",
        criteria: ResolveCriteria | None = None,
    ) -> RequestSession:
        """Create a session in the ``Queued`` state."""
        return RequestSession(
            id=generate_completion_id(),
            criteria=criteria or ResolveCriteria(),
            prompt_text=prompt_text,
        )

    async def open_session(self, session: RequestSession) -> RequestSession:
        """Admit the session and resolve its record.

        On success the session is ``Resolving`` with a record and a held
        permit. On any failure it is terminal and holds no permit.

        Raises:
            BusyError: If admission timed out
            RepositoryError: If no record could be resolved
        """
        try:
            session.permit = await self._gate.acquire()
            session.advance(SessionState.ADMITTED)
            logger.debug("session_admitted", session_id=session.id, **self._gate.get_stats())

            session.advance(SessionState.RESOLVING)
            session.record = await self._repository.resolve(session.criteria)
        except (BusyError, RepositoryError) as e:
            session.finish(SessionState.FAILED)
            logger.error("session_failed", session_id=session.id, error=str(e))
            raise
        except Exception:
            session.finish(SessionState.FAILED)
            logger.exception("session_failed", session_id=session.id)
            raise
        except asyncio.CancelledError:
            session.finish(SessionState.CANCELLED)
            raise
        return session

    async def complete(self, session: RequestSession) -> Completion:
        """Run a non-streaming request to completion.

        Raises:
            BusyError: If admission timed out
            RepositoryError: If no record could be resolved
        """
        await self.open_session(session)
        try:
            session.advance(SessionState.STREAMING)
            text = render_answer(session.record, self._response_style)
            segments = self._streamer.segments(text)
            completion = Completion(
                id=session.id,
                text=text,
                usage=estimate_usage(session.prompt_text, segments),
                record_id=session.record.id,
            )
            session.emitted_count = len(segments)
        except Exception:
            session.finish(SessionState.FAILED)
            raise
        session.finish(SessionState.COMPLETED)
        return completion

    async def stream(self, session: RequestSession) -> AsyncIterator[StreamChunk]:
        """Stream the chunks of an opened session.

        The generator owns the session from here on: whatever way it ends
        (exhausted, closed, cancelled, or failed), the session reaches a
        terminal state and its permit is released.

        Args:
            session: A session returned by ``open_session``
        """
        if session.state is not SessionState.RESOLVING or session.record is None:
            raise RuntimeError(f"Session {session.id} is not ready to stream")

        bind_session(session.id)
        session.advance(SessionState.STREAMING)
        channel: DeliveryChannel[StreamChunk] = DeliveryChannel(self._channel_capacity)
        producer = asyncio.create_task(self._produce(session, channel))

        outcome = SessionState.CANCELLED
        try:
            async for chunk in channel:
                yield chunk
            await producer
            outcome = SessionState.COMPLETED
        except Exception as e:
            outcome = SessionState.FAILED
            logger.error("session_failed", session_id=session.id, error=str(e))
            raise
        finally:
            producer.cancel()
            unbind_session()
            try:
                await channel.close()
                await asyncio.gather(producer, return_exceptions=True)
            finally:
                # The permit goes back only once the producer has stopped.
                if session.finish(outcome):
                    logger.info(
                        "session_finished",
                        session_id=session.id,
                        state=outcome.value,
                        emitted=session.emitted_count,
                    )

    async def _produce(
        self,
        session: RequestSession,
        channel: DeliveryChannel[StreamChunk],
    ) -> None:
        text = render_answer(session.record, self._response_style)
        try:
            async for chunk in self._streamer.stream(text, session.prompt_text):
                await channel.send(chunk)
                session.emitted_count += 1
                if self._tracking:
                    logger.debug(
                        "chunk_sent",
                        session_id=session.id,
                        index=chunk.sequence_index,
                        content=chunk.delta_content,
                    )
        finally:
            await channel.close()

    @property
    def gate(self) -> AdmissionGate:
        """Get the admission gate (for stats and testing)."""
        return self._gate

    @property
    def repository(self) -> ResponseSource:
        """Get the underlying repository (for testing)."""
        return self._repository

    async def is_healthy(self) -> bool:
        """Check if the response source is reachable."""
        return await self._repository.health_check()
