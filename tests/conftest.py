"""
Shared fixtures for the endpoint simulator tests.
"""

import json
import random

import pytest

from endpoint_simulator.config import Settings
from endpoint_simulator.entities import ResolveCriteria, ResponseRecord
from endpoint_simulator.exceptions import CacheUnavailableError, RepositoryError
from endpoint_simulator.repositories import CacheAside


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self) -> None:
        self.now = 1_000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class InMemoryCacheStore:
    """CacheStore implementation kept in a dict, with an outage switch."""

    def __init__(self, clock: FakeClock | None = None) -> None:
        self.clock = clock or FakeClock()
        self.entries: dict[str, tuple[str, float]] = {}
        self.ttls: dict[str, int] = {}
        self.available = True
        self.gets = 0
        self.sets = 0

    async def get(self, key: str) -> str | None:
        self._check()
        self.gets += 1
        entry = self.entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self.clock() >= expires_at:
            del self.entries[key]
            return None
        return value

    async def set(self, key: str, value: str, ttl: int) -> None:
        self._check()
        self.sets += 1
        self.entries[key] = (value, self.clock() + ttl)
        self.ttls[key] = ttl

    async def health_check(self) -> bool:
        return self.available

    def _check(self) -> None:
        if not self.available:
            raise CacheUnavailableError("cache is down")


class StaticSource:
    """ResponseSource returning fixed records, optionally failing."""

    name = "static"

    def __init__(self, records: list[ResponseRecord], error: Exception | None = None) -> None:
        self.records = records
        self.error = error
        self.resolves = 0

    async def list_candidates(self) -> list[ResponseRecord]:
        if self.error is not None:
            raise self.error
        return list(self.records)

    async def resolve(self, criteria: ResolveCriteria) -> ResponseRecord:
        self.resolves += 1
        candidates = await self.list_candidates()
        if criteria.record_id is not None:
            for record in candidates:
                if record.id == criteria.record_id:
                    return record
            raise RepositoryError(f"Unknown response id {criteria.record_id!r}")
        return candidates[0]

    async def count(self) -> int:
        return len(self.records)

    async def health_check(self) -> bool:
        return self.error is None


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache_store(clock) -> InMemoryCacheStore:
    return InMemoryCacheStore(clock)


@pytest.fixture
def cache(cache_store) -> CacheAside:
    return CacheAside(cache_store, prefix="test")


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def records() -> list[ResponseRecord]:
    return [
        ResponseRecord(id="a", prompt_text="Q1", answer_text="Hello world"),
        ResponseRecord(id="b", prompt_text="Q2", answer_text="Second answer here", reference_text="r1"),
    ]


@pytest.fixture
def response_dir(tmp_path):
    directory = tmp_path / "responses"
    directory.mkdir()
    (directory / "qa.json").write_text(
        json.dumps(
            {
                "response_chat_completion": [
                    {
                        "Pertanyaan": "Apa kabar?",
                        "Jawaban": "Baik,\\nterima kasih.",
                        "Referensi": ["Kamus", "Buku"],
                    },
                    {"question": "How are you?", "answer": "Fine.", "reference": "Manual"},
                ]
            }
        ),
        encoding="utf-8",
    )
    (directory / "plain.txt").write_text("Hello world", encoding="utf-8")
    (directory / "ignored.csv").write_text("not,a,response", encoding="utf-8")
    return directory


@pytest.fixture
def settings(response_dir) -> Settings:
    return Settings(
        data_source="file",
        response_dir=str(response_dir),
        cache_prefix="test",
        cache_ttl=60,
        file_list_ttl=600,
        semaphore_limit=4,
        channel_capacity=8,
        stream_delay_ms=0,
        random_seed=7,
        log_level="warning",
    )
