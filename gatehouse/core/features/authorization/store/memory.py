# (c) Copyright Datacraft, 2026
"""In-memory authoritative store for tests and embedded use."""
from collections.abc import Iterable
from uuid import UUID

from gatehouse.core.exceptions import PrincipalNotFound
from gatehouse.core.features.policies.models import Policy
from gatehouse.core.features.roles.models import Permission, Role
from gatehouse.core.types import AttributeValue

from .base import AuthorizationStore


class InMemoryStore(AuthorizationStore):
	"""Dict-backed store. Reads return copies, writes store copies."""

	def __init__(self):
		self._principals: dict[UUID, set[UUID]] = {}
		self._roles: dict[UUID, Role] = {}
		self._permissions: dict[UUID, Permission] = {}
		self._policies: dict[UUID, Policy] = {}
		self._attributes: dict[UUID, dict[str, AttributeValue]] = {}

	async def load_roles(self, principal_id: UUID) -> frozenset[UUID]:
		if principal_id not in self._principals:
			raise PrincipalNotFound(principal_id)
		return frozenset(self._principals[principal_id])

	async def load_permissions(self, role_ids: Iterable[UUID]) -> frozenset[Permission]:
		permissions = set()
		for role_id in role_ids:
			role = self._roles.get(role_id)
			if role is None or not role.is_active:
				continue
			for permission_id in role.permission_ids:
				permission = self._permissions.get(permission_id)
				if permission is not None:
					permissions.add(permission)
		return frozenset(permissions)

	async def load_active_policies(self) -> list[Policy]:
		return [p.snapshot() for p in self._policies.values() if p.is_active]

	async def load_principal_attributes(self, principal_id: UUID) -> dict[str, AttributeValue]:
		if principal_id not in self._principals:
			raise PrincipalNotFound(principal_id)
		return dict(self._attributes.get(principal_id, {}))

	async def add_principal(self, principal_id: UUID) -> None:
		self._principals.setdefault(principal_id, set())

	async def assign_role(self, principal_id: UUID, role_id: UUID) -> bool:
		roles = self._principals.setdefault(principal_id, set())
		if role_id in roles:
			return False
		roles.add(role_id)
		return True

	async def unassign_role(self, principal_id: UUID, role_id: UUID) -> bool:
		roles = self._principals.get(principal_id)
		if roles is None or role_id not in roles:
			return False
		roles.discard(role_id)
		return True

	async def principals_with_role(self, role_id: UUID) -> frozenset[UUID]:
		return frozenset(pid for pid, roles in self._principals.items() if role_id in roles)

	async def set_principal_attribute(self, principal_id: UUID, name: str, value: AttributeValue) -> None:
		self._principals.setdefault(principal_id, set())
		self._attributes.setdefault(principal_id, {})[name] = value

	async def delete_principal_attribute(self, principal_id: UUID, name: str) -> bool:
		return self._attributes.get(principal_id, {}).pop(name, None) is not None

	async def get_role(self, role_id: UUID) -> Role | None:
		role = self._roles.get(role_id)
		return role.snapshot() if role else None

	async def find_role_by_name(self, name: str) -> Role | None:
		for role in self._roles.values():
			if role.name == name:
				return role.snapshot()
		return None

	async def save_role(self, role: Role) -> None:
		stored = self._roles.get(role.id)
		snapshot = role.snapshot()
		if stored is not None:
			snapshot.permission_ids = set(stored.permission_ids)
		self._roles[role.id] = snapshot

	async def grant_permission(self, role_id: UUID, permission_id: UUID) -> bool:
		role = self._roles.get(role_id)
		return role is not None and role.add_permission(permission_id)

	async def revoke_permission(self, role_id: UUID, permission_id: UUID) -> bool:
		role = self._roles.get(role_id)
		return role is not None and role.remove_permission(permission_id)

	async def delete_role(self, role_id: UUID) -> None:
		self._roles.pop(role_id, None)
		for roles in self._principals.values():
			roles.discard(role_id)

	async def get_permission(self, permission_id: UUID) -> Permission | None:
		return self._permissions.get(permission_id)

	async def find_permission(self, resource: str, action: str) -> Permission | None:
		for permission in self._permissions.values():
			if permission.resource == resource and permission.action == action:
				return permission
		return None

	async def save_permission(self, permission: Permission) -> None:
		self._permissions[permission.id] = permission

	async def delete_permission(self, permission_id: UUID) -> frozenset[UUID]:
		self._permissions.pop(permission_id, None)
		holders = set()
		for role in self._roles.values():
			if permission_id in role.permission_ids:
				role.permission_ids.discard(permission_id)
				holders.add(role.id)
		return frozenset(holders)

	async def get_policy(self, policy_id: UUID) -> Policy | None:
		policy = self._policies.get(policy_id)
		return policy.snapshot() if policy else None

	async def find_policy_by_name(self, name: str) -> Policy | None:
		for policy in self._policies.values():
			if policy.name == name:
				return policy.snapshot()
		return None

	async def save_policy(self, policy: Policy) -> None:
		self._policies[policy.id] = policy.snapshot()

	async def delete_policy(self, policy_id: UUID) -> None:
		self._policies.pop(policy_id, None)
