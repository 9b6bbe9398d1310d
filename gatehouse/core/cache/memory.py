# (c) Copyright Datacraft, 2026
"""
In-process cache backend.

Single-instance only: entries are lost on restart and not shared between
processes. Values are stored serialized so readers never share mutable
structures with writers.
"""
import json
import logging
import time
from typing import Any, Callable

from gatehouse.core.exceptions import CacheUnavailable

from .base import CacheBackend

logger = logging.getLogger(__name__)


class InMemoryCacheBackend(CacheBackend):
	"""
	Dict-backed cache with per-entry expiry.

	Expired entries are dropped when read, and swept from the whole map by
	``set`` at most once every ``sweep_interval`` seconds, so entries that
	are never read again do not accumulate.
	"""

	def __init__(self, clock: Callable[[], float] = time.monotonic, sweep_interval: float = 60.0):
		self._clock = clock
		self._sweep_interval = sweep_interval
		self._next_sweep = clock() + sweep_interval
		self._entries: dict[str, tuple[str, float | None]] = {}

	def _is_expired(self, expires_at: float | None) -> bool:
		if expires_at is None:
			return False
		return self._clock() >= expires_at

	async def get(self, key: str) -> Any | None:
		entry = self._entries.get(key)
		if entry is None:
			return None
		payload, expires_at = entry
		if self._is_expired(expires_at):
			del self._entries[key]
			return None
		try:
			return json.loads(payload)
		except (ValueError, TypeError) as e:
			del self._entries[key]
			raise CacheUnavailable(f"Corrupt payload for {key}") from e

	async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
		try:
			payload = json.dumps(value)
		except (ValueError, TypeError) as e:
			raise CacheUnavailable(f"Value for {key} is not serializable: {e}") from e
		now = self._clock()
		if now >= self._next_sweep:
			removed = self.cleanup_expired()
			self._next_sweep = now + self._sweep_interval
			if removed:
				logger.debug(f"Swept {removed} expired cache entries")
		self._entries[key] = (payload, now + ttl if ttl else None)

	async def delete(self, key: str) -> None:
		self._entries.pop(key, None)

	async def delete_prefix(self, prefix: str) -> int:
		keys = [k for k in self._entries if k.startswith(prefix)]
		for key in keys:
			del self._entries[key]
		return len(keys)

	async def close(self) -> None:
		self._entries.clear()

	def cleanup_expired(self) -> int:
		"""Drop expired entries. Returns the number removed."""
		expired = [k for k, (_, exp) in self._entries.items() if self._is_expired(exp)]
		for key in expired:
			del self._entries[key]
		return len(expired)

	def __len__(self) -> int:
		return len(self._entries)
