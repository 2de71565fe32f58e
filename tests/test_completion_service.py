"""
Tests for the per-request state machine and streaming pipeline.
"""

import asyncio

import pytest

from endpoint_simulator.entities import ResolveCriteria, ResponseRecord, SessionState
from endpoint_simulator.exceptions import BusyError, RepositoryError
from endpoint_simulator.services import (
    AdmissionGate,
    ChunkStreamer,
    CompletionService,
    generate_completion_id,
    render_answer,
)

from .conftest import StaticSource


def make_service(source, limit=2, delay=0.0, capacity=4, timeout=None, style="answer"):
    return CompletionService(
        repository=source,
        gate=AdmissionGate(limit, timeout),
        streamer=ChunkStreamer(delay=delay),
        channel_capacity=capacity,
        response_style=style,
    )


async def stream_all(service, session):
    await service.open_session(session)
    return [chunk async for chunk in service.stream(session)]


async def test_stream_completes_and_releases_permit(records):
    service = make_service(StaticSource(records))
    session = service.new_session(prompt_text="hi")

    chunks = await stream_all(service, session)

    assert "".join(c.delta_content for c in chunks) == "Hello world"
    assert session.state is SessionState.COMPLETED
    assert session.emitted_count == len(chunks) == 3
    assert session.permit.released
    assert service.gate.in_flight == 0


async def test_small_channel_still_delivers_everything_in_order(records):
    long_answer = " ".join(f"w{i}" for i in range(50))
    source = StaticSource([ResponseRecord(id="x", prompt_text="", answer_text=long_answer)])
    service = make_service(source, capacity=1)

    chunks = await stream_all(service, service.new_session())

    assert "".join(c.delta_content for c in chunks) == long_answer
    assert [c.sequence_index for c in chunks] == list(range(51))


async def test_resolve_failure_releases_permit():
    service = make_service(StaticSource([], error=RepositoryError("db down")), limit=1)
    session = service.new_session()

    with pytest.raises(RepositoryError):
        await service.open_session(session)

    assert session.state is SessionState.FAILED
    assert service.gate.available == 1


async def test_busy_gate_fails_session_without_permit(records):
    service = make_service(StaticSource(records), limit=1, timeout=0.05)
    holder = service.new_session()
    await service.open_session(holder)

    waiter = service.new_session()
    with pytest.raises(BusyError):
        await service.open_session(waiter)

    assert waiter.state is SessionState.FAILED
    assert waiter.permit is None
    assert service.gate.in_flight == 1


async def test_unexpected_resolve_error_releases_permit():
    service = make_service(StaticSource([], error=ValueError("bad row")), limit=1)
    session = service.new_session()

    with pytest.raises(ValueError):
        await service.open_session(session)

    assert session.state is SessionState.FAILED
    assert service.gate.available == 1

    # The slot is usable again.
    service.repository.error = None
    service.repository.records = [ResponseRecord(id="x", prompt_text="", answer_text="ok")]
    retry = service.new_session()
    await asyncio.wait_for(service.open_session(retry), timeout=1)
    assert retry.state is SessionState.RESOLVING


async def test_concurrency_never_exceeds_limit(records):
    limit, extra = 3, 4
    service = make_service(StaticSource(records), limit=limit, delay=0.01)
    sessions = [service.new_session() for _ in range(limit + extra)]
    live_states = (SessionState.RESOLVING, SessionState.STREAMING)
    observed = []

    def record_live():
        observed.append(sum(s.state in live_states for s in sessions))

    async def run(session):
        await service.open_session(session)
        record_live()
        async for _ in service.stream(session):
            record_live()

    await asyncio.gather(*(run(s) for s in sessions))

    assert max(observed) == limit
    assert service.gate.peak == limit
    assert all(s.state is SessionState.COMPLETED for s in sessions)
    assert service.gate.in_flight == 0


async def test_permit_held_until_producer_stops():
    answer = " ".join(f"w{i}" for i in range(100))
    source = StaticSource([ResponseRecord(id="x", prompt_text="", answer_text=answer)])
    gate = AdmissionGate(limit=1)
    held_at_exit = []

    class RecordingStreamer(ChunkStreamer):
        async def stream(self, answer_text, prompt_text=""):
            try:
                async for chunk in super().stream(answer_text, prompt_text):
                    yield chunk
            finally:
                held_at_exit.append(gate.in_flight)

    service = CompletionService(
        repository=source,
        gate=gate,
        streamer=RecordingStreamer(delay=0.01),
        channel_capacity=4,
    )
    session = service.new_session()
    await service.open_session(session)

    stream = service.stream(session)
    await stream.__anext__()
    await stream.aclose()

    assert held_at_exit == [1]
    assert session.state is SessionState.CANCELLED
    assert gate.in_flight == 0


async def test_cancel_mid_stream_halts_and_frees_permit():
    answer = " ".join(f"w{i}" for i in range(100))
    source = StaticSource([ResponseRecord(id="x", prompt_text="", answer_text=answer)])
    service = make_service(source, limit=1, delay=0.02)
    session = service.new_session()
    received = []

    async def consume():
        await service.open_session(session)
        async for chunk in service.stream(session):
            received.append(chunk)

    task = asyncio.create_task(consume())
    await asyncio.sleep(0.07)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert session.state is SessionState.CANCELLED
    assert service.gate.available == 1
    count = len(received)
    emitted = session.emitted_count
    await asyncio.sleep(0.05)
    assert len(received) == count
    assert session.emitted_count == emitted
    assert 0 < count < 101

    # The freed permit admits a new session immediately.
    next_session = service.new_session()
    await asyncio.wait_for(service.open_session(next_session), timeout=0.01)
    assert next_session.state is SessionState.RESOLVING


async def test_closing_stream_early_cancels_session(records):
    service = make_service(StaticSource(records), limit=1)
    session = service.new_session()
    await service.open_session(session)

    stream = service.stream(session)
    first = await stream.__anext__()
    await stream.aclose()

    assert first.role == "assistant"
    assert session.state is SessionState.CANCELLED
    assert service.gate.available == 1


async def test_non_streaming_completion(records):
    service = make_service(StaticSource(records))
    session = service.new_session(prompt_text="abcd", criteria=ResolveCriteria(record_id="b"))

    completion = await service.complete(session)

    assert completion.text == "Second answer here"
    assert completion.record_id == "b"
    assert completion.usage.prompt_tokens == 1
    assert completion.usage.completion_tokens == 3
    assert session.state is SessionState.COMPLETED
    assert service.gate.available == 2


async def test_stream_requires_opened_session(records):
    service = make_service(StaticSource(records))

    with pytest.raises(RuntimeError):
        async for _ in service.stream(service.new_session()):
            pass


def test_render_answer_styles():
    record = ResponseRecord(id="1", prompt_text="Q?", answer_text="A.", reference_text="r1\nr2")

    assert render_answer(record) == "A."
    assert render_answer(record, "qa") == (
        "**Pertanyaan:**\nQ?\n\n**Jawaban:**\nA.\n\n**Referensi:**\n- r1\n- r2"
    )
    no_refs = ResponseRecord(id="2", prompt_text="Q?", answer_text="A.")
    assert render_answer(no_refs, "qa") == "**Pertanyaan:**\nQ?\n\n**Jawaban:**\nA."


def test_completion_id_format():
    completion_id = generate_completion_id()

    assert completion_id.startswith("chatcmpl-Ai")
    assert len(completion_id) == len("chatcmpl-Ai") + 30
    assert completion_id[len("chatcmpl-Ai") :].isalnum()
