# (c) Copyright Datacraft, 2026
"""Principal → effective permission resolution, cache-first."""
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping
from uuid import UUID

from gatehouse.core.cache import DecisionCache, permission_key
from gatehouse.core.exceptions import ValidationError
from gatehouse.core.features.roles.models import Permission
from gatehouse.core.types import AttributeValue

from .store import AuthorizationStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EffectiveAccess:
	"""A principal's permission set together with its stored attributes."""
	permissions: frozenset[Permission]
	attributes: Mapping[str, AttributeValue] = field(default_factory=lambda: MappingProxyType({}))

	def find_permission(self, resource: str, action: str) -> Permission | None:
		"""The permission granting ``resource:action`` exactly, if any."""
		wanted = f"{resource}:{action}"
		matches = [p for p in self.permissions if p.key == wanted]
		if not matches:
			return None
		return min(matches, key=lambda p: str(p.id))

	def to_dict(self) -> dict:
		return {
			"permissions": [p.to_dict() for p in sorted(self.permissions, key=lambda p: p.key)],
			"attributes": {name: value.to_dict() for name, value in sorted(self.attributes.items())},
		}

	@classmethod
	def from_dict(cls, data: dict) -> "EffectiveAccess":
		return cls(
			permissions=frozenset(Permission.from_dict(p) for p in data["permissions"]),
			attributes=MappingProxyType({
				name: AttributeValue.from_dict(value) for name, value in data["attributes"].items()
			}),
		)


class PermissionIndex:
	"""
	Resolves a principal's roles and unions their permissions.

	Looks up ``perm:{principal_id}`` in the decision cache first; on a miss
	reads the authoritative store and writes the permission set and the
	principal's stored attributes back together with a TTL.
	``PrincipalNotFound`` from the store propagates; a principal without
	roles yields an empty set.
	"""

	def __init__(self, store: AuthorizationStore, cache: DecisionCache | None = None, ttl: int = 900):
		self._store = store
		self._cache = cache
		self._ttl = ttl

	async def get_effective_access(self, principal_id: UUID) -> EffectiveAccess:
		key = permission_key(principal_id)
		token = None
		if self._cache is not None:
			cached = await self._cache.get(key)
			if cached is not None:
				try:
					return EffectiveAccess.from_dict(cached)
				except (KeyError, TypeError, ValueError, AttributeError, ValidationError) as e:
					logger.warning(f"Discarding unreadable cached permissions for {principal_id}: {e}")
			token = self._cache.reserve(key)

		role_ids = await self._store.load_roles(principal_id)
		permissions = await self._store.load_permissions(role_ids) if role_ids else frozenset()
		attributes = await self._store.load_principal_attributes(principal_id)
		access = EffectiveAccess(permissions, MappingProxyType(dict(attributes)))

		if self._cache is not None:
			await self._cache.set(key, access.to_dict(), self._ttl, token)
		return access

	async def get_effective_permissions(self, principal_id: UUID) -> frozenset[Permission]:
		return (await self.get_effective_access(principal_id)).permissions

	async def get_principal_attributes(self, principal_id: UUID) -> Mapping[str, AttributeValue]:
		return (await self.get_effective_access(principal_id)).attributes

	async def get_permission_keys(self, principal_id: UUID) -> list[str]:
		"""Sorted canonical ``resource:action`` strings for a principal."""
		return sorted({p.key for p in await self.get_effective_permissions(principal_id)})

	async def find_permission(self, principal_id: UUID, resource: str, action: str) -> Permission | None:
		"""The permission granting ``resource:action`` exactly, if any."""
		return (await self.get_effective_access(principal_id)).find_permission(resource, action)

	async def has_permission(self, principal_id: UUID, resource: str, action: str) -> bool:
		return await self.find_permission(principal_id, resource, action) is not None
