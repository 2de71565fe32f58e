"""
Tests for the Redis cache adapter, using a mocked asyncio client.
"""

from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from endpoint_simulator.exceptions import CacheUnavailableError
from endpoint_simulator.repositories import CacheAside, RedisCacheStore


@pytest.fixture
def client():
    return AsyncMock()


@pytest.fixture
def store(client):
    return RedisCacheStore(client)


async def test_set_uses_expiry(store, client):
    await store.set("k", "v", 30)

    client.set.assert_awaited_once_with("k", "v", ex=30)


async def test_get_returns_stored_string(store, client):
    client.get.return_value = "cached"

    assert await store.get("k") == "cached"
    client.get.assert_awaited_once_with("k")


@pytest.mark.parametrize("error", [RedisConnectionError("refused"), RedisTimeoutError("slow")])
async def test_failures_become_cache_unavailable(store, client, error):
    client.get.side_effect = error
    client.set.side_effect = error

    with pytest.raises(CacheUnavailableError):
        await store.get("k")
    with pytest.raises(CacheUnavailableError):
        await store.set("k", "v", 1)


async def test_health_check(store, client):
    client.ping.return_value = True
    assert await store.health_check()

    client.ping.side_effect = RedisConnectionError("down")
    assert not await store.health_check()


async def test_close_releases_pool(store, client):
    await store.close()

    client.aclose.assert_awaited_once()


async def test_cache_aside_bypasses_failing_redis(store, client):
    client.get.side_effect = RedisConnectionError("down")
    client.set.side_effect = RedisConnectionError("down")
    cache = CacheAside(store, prefix="sim")
    loads = []

    async def load():
        loads.append(1)
        return "fresh"

    value = await cache.get_or_load(cache.key("file_list"), 60, load, lambda raw: raw)

    assert value == "fresh"
    assert loads == [1]
    client.get.assert_awaited_once_with("sim:file_list")
