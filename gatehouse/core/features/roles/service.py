# (c) Copyright Datacraft, 2026
"""Role, permission and principal administration with cache invalidation."""
import logging
from typing import TYPE_CHECKING, Any
from uuid import UUID

from gatehouse.core.cache import DecisionCache
from gatehouse.core.exceptions import Conflict, NotFound, ValidationError
from gatehouse.core.types import AttributeValue

from .models import ATTRIBUTE_NAME_MAX_LENGTH, Permission, Role

if TYPE_CHECKING:
	from gatehouse.core.features.authorization.store import AuthorizationStore

logger = logging.getLogger(__name__)

# Above this many holders a role change drops the whole permission namespace
BULK_INVALIDATION_THRESHOLD = 500


class RoleService:
	"""
	Administrative operations on roles, permissions and assignments.

	Every mutation is persisted first and then invalidates the affected
	cached permission sets before returning, so the next decision for an
	affected principal reads fresh data.

	Usage:
		service = RoleService(store, cache)
		role = await service.create_role("auditor")
		perm = await service.create_permission("orders", "read")
		await service.grant_permission(role.id, perm.id)
		await service.assign_role(user_id, role.id)
	"""

	def __init__(self, store: "AuthorizationStore", cache: DecisionCache | None = None):
		self.store = store
		self.cache = cache

	# --- Invalidation ---

	async def _invalidate_principal(self, principal_id: UUID):
		if self.cache is not None:
			await self.cache.invalidate_principal(principal_id)

	async def _invalidate_role_holders(self, role_id: UUID):
		if self.cache is None:
			return
		holders = await self.store.principals_with_role(role_id)
		if len(holders) > BULK_INVALIDATION_THRESHOLD:
			logger.info(f"Role {role_id} has {len(holders)} holders, invalidating all permission sets")
			await self.cache.invalidate_permissions()
			return
		for principal_id in holders:
			await self.cache.invalidate_principal(principal_id)

	# --- Roles ---

	async def _get_role(self, role_id: UUID) -> Role:
		role = await self.store.get_role(role_id)
		if role is None:
			raise NotFound(f"Role {role_id} not found")
		return role

	async def create_role(self, name: str, description: str | None = None) -> Role:
		role = Role.create(name, description)
		if await self.store.find_role_by_name(role.name) is not None:
			raise Conflict(f"Role '{role.name}' already exists")
		await self.store.save_role(role)
		logger.info(f"Created role {role.name} ({role.id})")
		return role

	async def update_role(self, role_id: UUID, name: str, description: str | None = None) -> Role:
		role = await self._get_role(role_id)
		role.update(name, description)
		existing = await self.store.find_role_by_name(role.name)
		if existing is not None and existing.id != role.id:
			raise Conflict(f"Role '{role.name}' already exists")
		await self.store.save_role(role)
		return role

	async def set_role_active(self, role_id: UUID, active: bool) -> Role:
		"""Activate or deactivate a role; inactive roles grant nothing."""
		role = await self._get_role(role_id)
		if role.is_active == active:
			return role
		if active:
			role.activate()
		else:
			role.deactivate()
		await self.store.save_role(role)
		await self._invalidate_role_holders(role.id)
		logger.info(f"Role {role.name} ({role.id}) {'activated' if active else 'deactivated'}")
		return role

	async def delete_role(self, role_id: UUID, force: bool = False):
		"""
		Delete a role.

		Raises:
			Conflict: If principals still hold the role and ``force`` is not set
		"""
		role = await self._get_role(role_id)
		holders = await self.store.principals_with_role(role_id)
		if holders and not force:
			raise Conflict(f"Role '{role.name}' is assigned to {len(holders)} principal(s)")
		await self.store.delete_role(role_id)
		for principal_id in holders:
			await self._invalidate_principal(principal_id)
		logger.info(f"Deleted role {role.name} ({role.id})")

	# --- Permissions ---

	async def create_permission(self, resource: str, action: str, description: str | None = None) -> Permission:
		permission = Permission.create(resource, action, description)
		if await self.store.find_permission(permission.resource, permission.action) is not None:
			raise Conflict(f"Permission '{permission.key}' already exists")
		await self.store.save_permission(permission)
		return permission

	async def delete_permission(self, permission_id: UUID):
		if await self.store.get_permission(permission_id) is None:
			raise NotFound(f"Permission {permission_id} not found")
		role_ids = await self.store.delete_permission(permission_id)
		for role_id in role_ids:
			await self._invalidate_role_holders(role_id)

	async def grant_permission(self, role_id: UUID, permission_id: UUID) -> Role:
		await self._get_role(role_id)
		if await self.store.get_permission(permission_id) is None:
			raise NotFound(f"Permission {permission_id} not found")
		if await self.store.grant_permission(role_id, permission_id):
			await self._invalidate_role_holders(role_id)
		return await self._get_role(role_id)

	async def revoke_permission(self, role_id: UUID, permission_id: UUID) -> Role:
		await self._get_role(role_id)
		if await self.store.revoke_permission(role_id, permission_id):
			await self._invalidate_role_holders(role_id)
		return await self._get_role(role_id)

	# --- Assignments ---

	async def assign_role(self, principal_id: UUID, role_id: UUID) -> bool:
		await self._get_role(role_id)
		changed = await self.store.assign_role(principal_id, role_id)
		if changed:
			await self._invalidate_principal(principal_id)
		return changed

	async def unassign_role(self, principal_id: UUID, role_id: UUID) -> bool:
		changed = await self.store.unassign_role(principal_id, role_id)
		if changed:
			await self._invalidate_principal(principal_id)
		return changed


class PrincipalService:
	"""
	Stored per-principal attributes.

	Stored attributes are merged under the request context when policies
	are evaluated; a key supplied by the request wins. Mutations invalidate
	the principal's cached permission set and decisions.
	"""

	def __init__(self, store: "AuthorizationStore", cache: DecisionCache | None = None):
		self.store = store
		self.cache = cache

	async def get_attributes(self, principal_id: UUID) -> dict[str, Any]:
		"""Stored attributes as plain values."""
		attributes = await self.store.load_principal_attributes(principal_id)
		return {name: value.to_python() for name, value in attributes.items()}

	async def set_attribute(self, principal_id: UUID, name: str, value: Any):
		name = _validate_attribute_name(name)
		await self.store.set_principal_attribute(principal_id, name, AttributeValue.of(value))
		if self.cache is not None:
			await self.cache.invalidate_principal(principal_id)

	async def remove_attribute(self, principal_id: UUID, name: str) -> bool:
		removed = await self.store.delete_principal_attribute(principal_id, name)
		if removed and self.cache is not None:
			await self.cache.invalidate_principal(principal_id)
		return removed


def _validate_attribute_name(name: str | None) -> str:
	name = (name or "").strip()
	if not name:
		raise ValidationError("Attribute name cannot be empty.")
	if len(name) > ATTRIBUTE_NAME_MAX_LENGTH:
		raise ValidationError(f"Attribute name cannot exceed {ATTRIBUTE_NAME_MAX_LENGTH} characters.")
	return name
