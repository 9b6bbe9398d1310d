# (c) Copyright Datacraft, 2026
"""Selection and ordering of the policies applicable to a request."""
import logging
import re
from functools import lru_cache
from typing import TYPE_CHECKING

from gatehouse.core.cache import DecisionCache

from .models import Policy

if TYPE_CHECKING:
	from gatehouse.core.features.authorization.store import AuthorizationStore

logger = logging.getLogger(__name__)

ACTIVE_POLICIES_KEY = "policy:active"


@lru_cache(maxsize=512)
def _segment_regex(pattern: str) -> re.Pattern:
	return re.compile("^" + ".*".join(re.escape(part) for part in pattern.split("*")) + "$")


def matches_segment(value: str, pattern: str) -> bool:
	"""Check if one segment matches pattern (supports * wildcard)."""
	if pattern == "*":
		return True
	if "*" in pattern:
		return bool(_segment_regex(pattern).match(value))
	return value == pattern


def matches_pattern(resource: str, action: str, policy: Policy) -> bool:
	"""
	Segment-wise match of ``resource:action`` against the policy pattern.

	``orders:*`` matches any action on ``orders``; ``*:read`` matches read on
	any single-segment resource; ``reports.*:export`` globs within a segment.
	"""
	value_segments = f"{resource}:{action}".split(":")
	pattern_segments = policy.pattern.split(":")
	if len(value_segments) != len(pattern_segments):
		return False
	return all(matches_segment(v, p) for v, p in zip(value_segments, pattern_segments))


class PolicyResolver:
	"""
	Resolves the ordered candidate policies for a (resource, action) pair.

	The active policy set is read from the store and memoized in the
	decision cache under ``policy:active``; policy mutations invalidate it.
	"""

	def __init__(self, store: "AuthorizationStore", cache: DecisionCache | None = None, ttl: int = 900):
		self._store = store
		self._cache = cache
		self._ttl = ttl

	async def load_active_policies(self) -> list[Policy]:
		if self._cache is not None:
			cached = await self._cache.get(ACTIVE_POLICIES_KEY)
			if cached is not None:
				try:
					return [Policy.from_dict(p) for p in cached]
				except (KeyError, TypeError, ValueError) as e:
					logger.warning(f"Discarding unreadable cached policy snapshot: {e}")
			token = self._cache.reserve(ACTIVE_POLICIES_KEY)

		policies = [p for p in await self._store.load_active_policies() if p.is_active]

		if self._cache is not None:
			await self._cache.set(ACTIVE_POLICIES_KEY, [p.to_dict() for p in policies], self._ttl, token)
		return policies

	async def resolve_applicable(self, resource: str, action: str) -> list[Policy]:
		"""Active matching policies, highest priority first, oldest first on ties."""
		applicable = [
			policy for policy in await self.load_active_policies()
			if policy.is_active and matches_pattern(resource, action, policy)
		]
		applicable.sort(key=lambda p: p.sort_key)
		logger.debug(f"{len(applicable)} policies apply to {resource}:{action}")
		return applicable
