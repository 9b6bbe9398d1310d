# (c) Copyright Datacraft, 2026
"""Tests for the Redis cache backend against a mocked client."""
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from gatehouse.core.cache import InMemoryCacheBackend, create_cache_backend
from gatehouse.core.cache.redis_backend import RedisCacheBackend
from gatehouse.core.config import Settings
from gatehouse.core.exceptions import CacheUnavailable


async def _scan(keys):
    for key in keys:
        yield key


@pytest.mark.asyncio
async def test_get_decodes_json():
    """Test that stored JSON is decoded."""
    client = AsyncMock()
    client.get.return_value = json.dumps({"allowed": True})
    backend = RedisCacheBackend(client)

    assert await backend.get("k") == {"allowed": True}
    client.get.return_value = None
    assert await backend.get("k") is None


@pytest.mark.asyncio
async def test_set_uses_ttl():
    """Test that values are written as JSON with an expiry."""
    client = AsyncMock()
    backend = RedisCacheBackend(client)

    await backend.set("k", ["orders:read"], ttl=30)

    client.set.assert_awaited_once_with("k", json.dumps(["orders:read"]), ex=30)


@pytest.mark.asyncio
async def test_errors_become_cache_unavailable():
    """Test that Redis failures surface as CacheUnavailable."""
    client = AsyncMock()
    client.get.side_effect = RedisConnectionError("refused")
    client.delete.side_effect = RedisConnectionError("refused")
    backend = RedisCacheBackend(client)

    with pytest.raises(CacheUnavailable):
        await backend.get("k")
    with pytest.raises(CacheUnavailable):
        await backend.delete("k")


@pytest.mark.asyncio
async def test_corrupt_payload_becomes_cache_unavailable():
    """Test that a payload that is not JSON surfaces as CacheUnavailable."""
    client = AsyncMock()
    client.get.return_value = "not-json{"
    backend = RedisCacheBackend(client)

    with pytest.raises(CacheUnavailable):
        await backend.get("k")


@pytest.mark.asyncio
async def test_delete_prefix_scans_in_batches():
    """Test that prefix deletion walks SCAN results and deletes in batches."""
    client = AsyncMock()
    client.scan_iter = MagicMock(return_value=_scan(["ns:perm:1", "ns:perm:2", "ns:perm:3"]))
    client.delete.side_effect = lambda *keys: len(keys)
    backend = RedisCacheBackend(client, scan_count=2)

    removed = await backend.delete_prefix("ns:perm:")

    assert removed == 3
    client.scan_iter.assert_called_once_with(match="ns:perm:*", count=2)
    assert client.delete.await_count == 2


@pytest.mark.asyncio
async def test_close():
    """Test that closing releases the client."""
    client = AsyncMock()
    await RedisCacheBackend(client).close()
    client.aclose.assert_awaited_once()


def test_factory_memory():
    """Test that the memory backend is the default."""
    assert isinstance(create_cache_backend(Settings(log_config=None)), InMemoryCacheBackend)


def test_factory_redis():
    """Test that the redis backend is built from the configured URL."""
    settings = Settings(cache_backend="redis", redis_url="redis://localhost:6379/0")
    with patch("gatehouse.core.cache.redis_backend.redis.from_url") as from_url:
        backend = create_cache_backend(settings)
    assert isinstance(backend, RedisCacheBackend)
    from_url.assert_called_once_with("redis://localhost:6379/0", decode_responses=True)


def test_factory_redis_requires_url():
    """Test that selecting redis without a URL is a configuration error."""
    with pytest.raises(ValueError):
        create_cache_backend(Settings(cache_backend="redis", redis_url=None))
