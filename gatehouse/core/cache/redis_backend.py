# (c) Copyright Datacraft, 2026
"""Redis cache backend."""
import json
import logging
from typing import Any

import redis.asyncio as redis
from redis.exceptions import RedisError

from gatehouse.core.exceptions import CacheUnavailable

from .base import CacheBackend

logger = logging.getLogger(__name__)


class RedisCacheBackend(CacheBackend):
	"""Cache backed by Redis; prefix deletion uses SCAN so it never blocks the server."""

	def __init__(self, client: redis.Redis, scan_count: int = 100):
		self._client = client
		self._scan_count = scan_count

	@classmethod
	def from_url(cls, url: str) -> "RedisCacheBackend":
		return cls(redis.from_url(url, decode_responses=True))

	async def get(self, key: str) -> Any | None:
		try:
			payload = await self._client.get(key)
		except (RedisError, OSError) as e:
			raise CacheUnavailable(f"Redis GET failed: {e}") from e
		if payload is None:
			return None
		try:
			return json.loads(payload)
		except (ValueError, TypeError) as e:
			logger.warning(f"Unreadable cache entry {key}: {e}")
			raise CacheUnavailable(f"Corrupt payload for {key}") from e

	async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
		try:
			payload = json.dumps(value)
		except (ValueError, TypeError) as e:
			raise CacheUnavailable(f"Value for {key} is not serializable: {e}") from e
		try:
			await self._client.set(key, payload, ex=ttl)
		except (RedisError, OSError) as e:
			raise CacheUnavailable(f"Redis SET failed: {e}") from e

	async def delete(self, key: str) -> None:
		try:
			await self._client.delete(key)
		except (RedisError, OSError) as e:
			raise CacheUnavailable(f"Redis DEL failed: {e}") from e

	async def delete_prefix(self, prefix: str) -> int:
		removed = 0
		try:
			batch = []
			async for key in self._client.scan_iter(match=f"{prefix}*", count=self._scan_count):
				batch.append(key)
				if len(batch) >= self._scan_count:
					removed += await self._client.delete(*batch)
					batch = []
			if batch:
				removed += await self._client.delete(*batch)
		except (RedisError, OSError) as e:
			raise CacheUnavailable(f"Redis prefix delete failed: {e}") from e
		return removed

	async def close(self) -> None:
		await self._client.aclose()
