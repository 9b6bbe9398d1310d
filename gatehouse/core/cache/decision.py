# (c) Copyright Datacraft, 2026
"""
Decision cache: memoizes permission sets, active policies and (optionally)
full decisions, with explicit invalidation.

Key layout (below the configured namespace):
	perm:{principal_id}                    effective permission set and stored attributes
	policy:active                          active policy snapshot
	decision:{principal_id}:{fingerprint}  full decision

Reads and writes are best-effort: a backend failure, including an
unreadable payload, is logged and behaves as a miss. Writes carry a
reservation token taken before the authoritative read; if the key was
invalidated in the meantime the write is dropped, so a value computed from
superseded data never lands in this process.
"""
import logging
from collections import OrderedDict
from typing import Any

from gatehouse.core.exceptions import CacheUnavailable

from .base import CacheBackend

logger = logging.getLogger(__name__)

PERMISSION_PREFIX = "perm:"
POLICY_PREFIX = "policy:"
DECISION_PREFIX = "decision:"

# Invalidations remembered for the stale-write guard
MAX_TRACKED_INVALIDATIONS = 10_000


def permission_key(principal_id) -> str:
	return f"{PERMISSION_PREFIX}{principal_id}"


def decision_key(principal_id, fingerprint: str) -> str:
	return f"{DECISION_PREFIX}{principal_id}:{fingerprint}"


class DecisionCache:
	"""
	Namespaced, invalidation-aware wrapper around a CacheBackend.

	Every invalidation advances a generation counter and records the
	generation against the key or prefix it covered. ``reserve`` hands out
	the current generation and ``set`` drops the write if anything covering
	the key was invalidated since. Only the most recent ``max_tracked``
	invalidations are remembered; a token older than the oldest forgotten
	one is treated as stale, so the bookkeeping stays bounded without ever
	letting a superseded value through.

	The guard is per process. With a shared backend such as Redis, a write
	computed in one process can still land after another process has
	invalidated the key; such an entry lives at most until its TTL expires
	or the next invalidation that covers it.
	"""

	def __init__(
		self,
		backend: CacheBackend,
		namespace: str = "gatehouse",
		default_ttl: int = 900,
		max_tracked: int = MAX_TRACKED_INVALIDATIONS,
	):
		self._backend = backend
		self._namespace = namespace
		self.default_ttl = default_ttl
		self._max_tracked = max_tracked
		self._generation = 0
		# ("key" | "prefix", name) -> generation of its latest invalidation
		self._invalidations: OrderedDict[tuple[str, str], int] = OrderedDict()
		self._forgotten_generation = 0
		self._hits = 0
		self._misses = 0
		self._errors = 0

	def _full_key(self, key: str) -> str:
		return f"{self._namespace}:{key}"

	def reserve(self, key: str) -> int:
		"""Token recording the invalidation state of key, to be passed to ``set``."""
		return self._generation

	def _invalidated_since(self, key: str, token: int) -> bool:
		if token < self._forgotten_generation:
			return True
		if self._invalidations.get(("key", key), 0) > token:
			return True
		return any(self._invalidations.get(("prefix", key[:end]), 0) > token for end in range(1, len(key) + 1))

	def _record_invalidation(self, kind: str, name: str):
		self._generation += 1
		mark = (kind, name)
		self._invalidations.pop(mark, None)
		self._invalidations[mark] = self._generation
		while len(self._invalidations) > self._max_tracked:
			_, generation = self._invalidations.popitem(last=False)
			self._forgotten_generation = max(self._forgotten_generation, generation)

	@property
	def tracked_invalidations(self) -> int:
		return len(self._invalidations)

	async def get(self, key: str) -> Any | None:
		try:
			value = await self._backend.get(self._full_key(key))
		except CacheUnavailable as e:
			self._errors += 1
			logger.warning(f"Cache read failed for {key}, falling back to store: {e}")
			return None
		if value is None:
			self._misses += 1
		else:
			self._hits += 1
		return value

	async def set(self, key: str, value: Any, ttl: int | None = None, token: int | None = None) -> bool:
		"""
		Write through. Returns False when the write was skipped, either
		because key was invalidated after ``token`` was reserved or because
		the backend failed.
		"""
		if token is not None and self._invalidated_since(key, token):
			logger.debug(f"Discarding stale cache write for {key}")
			return False
		try:
			await self._backend.set(self._full_key(key), value, ttl or self.default_ttl)
		except CacheUnavailable as e:
			self._errors += 1
			logger.warning(f"Cache write failed for {key}: {e}")
			return False
		return True

	async def invalidate(self, key: str):
		"""
		Remove a key. The invalidation is recorded before the backend
		call so concurrent write-throughs are discarded even if the backend
		delete fails; that failure is re-raised to the mutating caller.
		"""
		self._record_invalidation("key", key)
		try:
			await self._backend.delete(self._full_key(key))
		except CacheUnavailable as e:
			self._errors += 1
			logger.error(f"Cache invalidation failed for {key}: {e}")
			raise

	async def invalidate_prefix(self, prefix: str) -> int:
		self._record_invalidation("prefix", prefix)
		try:
			removed = await self._backend.delete_prefix(self._full_key(prefix))
		except CacheUnavailable as e:
			self._errors += 1
			logger.error(f"Cache invalidation failed for prefix {prefix}: {e}")
			raise
		logger.debug(f"Invalidated {removed} cache entries under {prefix}")
		return removed

	async def invalidate_principal(self, principal_id):
		"""Drop a principal's permission set and cached decisions."""
		await self.invalidate(permission_key(principal_id))
		await self.invalidate_prefix(f"{DECISION_PREFIX}{principal_id}:")

	async def invalidate_permissions(self):
		"""Drop every cached permission set and decision."""
		await self.invalidate_prefix(PERMISSION_PREFIX)
		await self.invalidate_prefix(DECISION_PREFIX)

	async def invalidate_policies(self):
		"""Drop the active policy snapshot and every cached decision."""
		await self.invalidate_prefix(POLICY_PREFIX)
		await self.invalidate_prefix(DECISION_PREFIX)

	async def close(self):
		await self._backend.close()

	def get_stats(self) -> dict:
		total = self._hits + self._misses
		return {
			"hits": self._hits,
			"misses": self._misses,
			"errors": self._errors,
			"hit_rate": self._hits / total if total > 0 else 0,
		}
