"""
Tests for the endpoint simulator API.
"""

import asyncio
import json

import pytest
from fastapi.testclient import TestClient

from endpoint_simulator.api.app import create_app
from endpoint_simulator.dto import ChatCompletionRequest
from endpoint_simulator.entities import ResponseRecord
from endpoint_simulator.handlers import DONE_FRAME, CompletionHandler
from endpoint_simulator.services import AdmissionGate, ChunkStreamer, CompletionService

from .conftest import InMemoryCacheStore, StaticSource

MESSAGES = [{"role": "user", "content": "Say hello"}]


@pytest.fixture
def cache_store():
    return InMemoryCacheStore()


@pytest.fixture
def client(settings, cache_store):
    """Create a test client backed by the file source and an in-memory cache."""
    app = create_app(settings, cache_store=cache_store)
    with TestClient(app) as client:
        yield client


def parse_sse(body: str) -> list[str]:
    frames = [frame for frame in body.split("\n\n") if frame]
    assert all(frame.startswith("data: ") for frame in frames)
    return [frame[len("data: ") :] for frame in frames]


def test_root(client):
    """Test root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Endpoint Simulator"
    assert data["endpoints"]["chat_completions"] == "/v1/chat/completions"


def test_health(client):
    """Test health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["source"] == "file"
    assert data["permits"]["limit"] == 4


def test_health_degraded_when_cache_down(client, cache_store):
    cache_store.available = False

    data = client.get("/health").json()
    assert data["status"] == "degraded"
    assert data["source_healthy"] is True


def test_non_streaming_completion(client):
    """Test a plain JSON completion."""
    response = client.post(
        "/v1/chat/completions",
        json={"model": "my-model", "messages": MESSAGES, "response_id": "plain"},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["object"] == "chat.completion"
    assert data["id"].startswith("chatcmpl-Ai")
    assert data["model"] == "my-model"
    assert data["choices"][0]["message"] == {"role": "assistant", "content": "Hello world"}
    assert data["choices"][0]["finish_reason"] == "stop"
    assert data["usage"]["prompt_tokens"] == 3
    assert data["usage"]["completion_tokens"] == 2
    assert data["usage"]["total_tokens"] == 5


def test_streaming_completion(client, settings):
    """Test the Server-Sent Events stream."""
    response = client.post(
        "/v1/chat/completions",
        json={"messages": MESSAGES, "stream": True, "response_id": "qa:0"},
    )
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")

    payloads = parse_sse(response.text)
    assert payloads[-1] == "[DONE]"

    chunks = [json.loads(payload) for payload in payloads[:-1]]
    assert len({chunk["id"] for chunk in chunks}) == 1
    assert all(chunk["object"] == "chat.completion.chunk" for chunk in chunks)
    assert chunks[0]["model"] == settings.model_name

    first, terminal = chunks[0], chunks[-1]
    assert first["choices"][0]["delta"]["role"] == "assistant"
    assert all("role" not in chunk["choices"][0]["delta"] for chunk in chunks[1:])
    assert all(chunk["usage"] is None for chunk in chunks[:-1])
    assert terminal["choices"][0]["finish_reason"] == "stop"
    assert terminal["choices"][0]["delta"]["content"] == ""
    assert terminal["usage"]["completion_tokens"] == len(chunks) - 1

    text = "".join(chunk["choices"][0]["delta"]["content"] for chunk in chunks)
    assert text == "Baik,\nterima kasih."


def test_stream_releases_permits(client):
    for _ in range(6):
        response = client.post(
            "/v1/chat/completions", json={"messages": MESSAGES, "stream": True}
        )
        assert response.status_code == 200

    permits = client.get("/health").json()["permits"]
    assert permits["in_flight"] == 0
    assert permits["available"] == 4


def test_unknown_response_id_is_a_server_error(client):
    response = client.post(
        "/v1/chat/completions",
        json={"messages": MESSAGES, "stream": True, "response_id": "nope"},
    )
    assert response.status_code == 500
    assert "Failed to fetch responses" in response.json()["detail"]


def test_empty_messages_rejected(client):
    response = client.post("/v1/chat/completions", json={"messages": []})
    assert response.status_code == 422


def test_cache_outage_still_serves(client, cache_store):
    cache_store.available = False

    response = client.post(
        "/v1/chat/completions", json={"messages": MESSAGES, "response_id": "plain"}
    )
    assert response.status_code == 200
    assert response.json()["choices"][0]["message"]["content"] == "Hello world"


def test_test_completion(client):
    """Test the fixed liveness completion."""
    response = client.post("/test_completion")
    assert response.status_code == 200
    data = response.json()
    assert data["choices"][0]["message"]["content"].startswith("This is a test completion")
    assert data["usage"]["total_tokens"] == 9


async def test_client_disconnect_mid_stream_releases_permit():
    """Dropping the connection stops the stream and frees its admission slot."""
    answer = " ".join(f"w{i}" for i in range(200))
    source = StaticSource([ResponseRecord(id="long", prompt_text="", answer_text=answer)])
    gate = AdmissionGate(limit=1)
    service = CompletionService(
        repository=source,
        gate=gate,
        streamer=ChunkStreamer(delay=0.01),
        channel_capacity=4,
    )
    handler = CompletionHandler(service, InMemoryCacheStore(), "gpt-test", "fp_test")

    response = await handler.chat_completions(
        ChatCompletionRequest(messages=MESSAGES, stream=True)
    )
    assert gate.in_flight == 1

    scope = {
        "type": "http",
        "asgi": {"version": "3.0", "spec_version": "2.0"},
        "http_version": "1.1",
        "method": "POST",
        "path": "/v1/chat/completions",
        "headers": [],
    }
    bodies = []
    first_body = asyncio.Event()

    async def receive():
        await first_body.wait()
        return {"type": "http.disconnect"}

    async def send(message):
        if message["type"] == "http.response.body" and message.get("body"):
            bodies.append(message["body"].decode())
            first_body.set()

    await asyncio.wait_for(response(scope, receive, send), timeout=5)

    assert bodies
    assert bodies[0].startswith("data: ")
    assert DONE_FRAME not in bodies
    assert len(bodies) < 200
    assert gate.in_flight == 0
    assert gate.available == 1
