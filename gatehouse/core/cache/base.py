# (c) Copyright Datacraft, 2026
"""Abstract cache backend interface."""
from abc import ABC, abstractmethod
from typing import Any


class CacheBackend(ABC):
	"""
	Key-value store behind the decision cache.

	Values are JSON-compatible structures. Implementations raise
	``CacheUnavailable`` on backend failures; callers treat the cache as
	best-effort.
	"""

	@abstractmethod
	async def get(self, key: str) -> Any | None:
		"""Return the value stored under key, or None when absent or expired."""
		...

	@abstractmethod
	async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
		"""Store value under key, expiring after ttl seconds when given."""
		...

	@abstractmethod
	async def delete(self, key: str) -> None:
		"""Remove a single key."""
		...

	@abstractmethod
	async def delete_prefix(self, prefix: str) -> int:
		"""Remove every key starting with prefix. Returns the number removed."""
		...

	async def close(self) -> None:
		"""Release backend resources."""
		return None
