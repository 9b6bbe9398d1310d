# (c) Copyright Datacraft, 2026
"""Database operations for roles, permissions and principal assignments."""
from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

from sqlalchemy import select, delete, insert, update
from sqlalchemy.ext.asyncio import AsyncSession

from gatehouse.core.types import AttributeValue

from .orm import PrincipalModel, PrincipalAttributeModel, RoleModel, PermissionModel, roles_permissions, principal_roles
from ..models import Permission, Role


class RoleDB:
	"""Database operations for RBAC data."""

	def __init__(self, session: AsyncSession):
		self.session = session

	# --- Principals ---

	async def principal_exists(self, principal_id: UUID) -> bool:
		return await self.session.get(PrincipalModel, str(principal_id)) is not None

	async def add_principal(self, principal_id: UUID):
		if not await self.principal_exists(principal_id):
			self.session.add(PrincipalModel(id=str(principal_id)))
			await self.session.flush()

	async def get_principal_role_ids(self, principal_id: UUID) -> set[UUID]:
		result = await self.session.execute(
			select(principal_roles.c.role_id).where(principal_roles.c.principal_id == str(principal_id))
		)
		return {UUID(role_id) for role_id in result.scalars().all()}

	async def assign_role(self, principal_id: UUID, role_id: UUID) -> bool:
		await self.add_principal(principal_id)
		if role_id in await self.get_principal_role_ids(principal_id):
			return False
		await self.session.execute(
			insert(principal_roles).values(principal_id=str(principal_id), role_id=str(role_id))
		)
		return True

	async def unassign_role(self, principal_id: UUID, role_id: UUID) -> bool:
		result = await self.session.execute(
			delete(principal_roles).where(
				principal_roles.c.principal_id == str(principal_id),
				principal_roles.c.role_id == str(role_id),
			)
		)
		return result.rowcount > 0

	async def get_principals_with_role(self, role_id: UUID) -> set[UUID]:
		result = await self.session.execute(
			select(principal_roles.c.principal_id).where(principal_roles.c.role_id == str(role_id))
		)
		return {UUID(pid) for pid in result.scalars().all()}

	async def get_principal_attributes(self, principal_id: UUID) -> list[PrincipalAttributeModel]:
		result = await self.session.execute(
			select(PrincipalAttributeModel).where(PrincipalAttributeModel.principal_id == str(principal_id))
		)
		return list(result.scalars().all())

	async def set_principal_attribute(self, principal_id: UUID, name: str, value: AttributeValue):
		await self.add_principal(principal_id)
		await self.session.merge(PrincipalAttributeModel(
			principal_id=str(principal_id),
			name=name,
			kind=value.kind.value,
			value=value.to_python(),
			updated_at=datetime.utcnow(),
		))
		await self.session.flush()

	async def delete_principal_attribute(self, principal_id: UUID, name: str) -> bool:
		result = await self.session.execute(
			delete(PrincipalAttributeModel).where(
				PrincipalAttributeModel.principal_id == str(principal_id),
				PrincipalAttributeModel.name == name,
			)
		)
		return result.rowcount > 0

	# --- Permissions ---

	async def get_permissions_for_roles(self, role_ids: Iterable[UUID]) -> list[PermissionModel]:
		"""Distinct permissions granted by the given roles, skipping inactive roles."""
		ids = [str(r) for r in role_ids]
		if not ids:
			return []
		query = (
			select(PermissionModel)
			.join(roles_permissions, roles_permissions.c.permission_id == PermissionModel.id)
			.join(RoleModel, RoleModel.id == roles_permissions.c.role_id)
			.where(RoleModel.id.in_(ids), RoleModel.is_active.is_(True))
			.distinct()
		)
		result = await self.session.execute(query)
		return list(result.scalars().all())

	async def get_permission(self, permission_id: UUID) -> PermissionModel | None:
		return await self.session.get(PermissionModel, str(permission_id))

	async def find_permission(self, resource: str, action: str) -> PermissionModel | None:
		result = await self.session.execute(
			select(PermissionModel).where(
				PermissionModel.resource == resource,
				PermissionModel.action == action,
			)
		)
		return result.scalars().first()

	async def save_permission(self, permission: Permission):
		await self.session.merge(PermissionModel(
			id=str(permission.id),
			resource=permission.resource,
			action=permission.action,
			description=permission.description,
			created_at=permission.created_at,
		))
		await self.session.flush()

	async def delete_permission(self, permission_id: UUID) -> set[UUID]:
		result = await self.session.execute(
			select(roles_permissions.c.role_id).where(roles_permissions.c.permission_id == str(permission_id))
		)
		holders = {UUID(r) for r in result.scalars().all()}
		await self.session.execute(
			delete(roles_permissions).where(roles_permissions.c.permission_id == str(permission_id))
		)
		await self.session.execute(delete(PermissionModel).where(PermissionModel.id == str(permission_id)))
		return holders

	# --- Roles ---

	async def get_role(self, role_id: UUID) -> RoleModel | None:
		return await self.session.get(RoleModel, str(role_id))

	async def find_role_by_name(self, name: str) -> RoleModel | None:
		result = await self.session.execute(select(RoleModel).where(RoleModel.name == name))
		return result.scalars().first()

	async def get_role_permission_ids(self, role_id: UUID) -> set[UUID]:
		result = await self.session.execute(
			select(roles_permissions.c.permission_id).where(roles_permissions.c.role_id == str(role_id))
		)
		return {UUID(pid) for pid in result.scalars().all()}

	async def save_role(self, role: Role):
		"""
		Upsert a role's own columns.

		Permission links are written only when the role is new; afterwards
		they change one row at a time through grant_permission and
		revoke_permission, so saving a stale role snapshot cannot drop a
		grant made concurrently.
		"""
		is_new = await self.get_role(role.id) is None
		await self.session.merge(RoleModel(
			id=str(role.id),
			name=role.name,
			description=role.description,
			is_active=role.is_active,
			created_at=role.created_at,
			updated_at=role.updated_at,
		))
		await self.session.flush()
		if is_new and role.permission_ids:
			await self.session.execute(
				insert(roles_permissions),
				[{"role_id": str(role.id), "permission_id": str(pid)} for pid in role.permission_ids],
			)

	async def grant_permission(self, role_id: UUID, permission_id: UUID) -> bool:
		"""Insert a single role-permission link. Returns False when it already existed."""
		result = await self.session.execute(
			select(roles_permissions.c.role_id).where(
				roles_permissions.c.role_id == str(role_id),
				roles_permissions.c.permission_id == str(permission_id),
			)
		)
		if result.first() is not None:
			return False
		await self.session.execute(
			insert(roles_permissions).values(role_id=str(role_id), permission_id=str(permission_id))
		)
		await self._touch_role(role_id)
		return True

	async def revoke_permission(self, role_id: UUID, permission_id: UUID) -> bool:
		"""Delete a single role-permission link. Returns False when there was none."""
		result = await self.session.execute(
			delete(roles_permissions).where(
				roles_permissions.c.role_id == str(role_id),
				roles_permissions.c.permission_id == str(permission_id),
			)
		)
		if result.rowcount == 0:
			return False
		await self._touch_role(role_id)
		return True

	async def _touch_role(self, role_id: UUID):
		await self.session.execute(
			update(RoleModel).where(RoleModel.id == str(role_id)).values(updated_at=datetime.utcnow())
		)

	async def delete_role(self, role_id: UUID):
		await self.session.execute(delete(principal_roles).where(principal_roles.c.role_id == str(role_id)))
		await self.session.execute(delete(roles_permissions).where(roles_permissions.c.role_id == str(role_id)))
		await self.session.execute(delete(RoleModel).where(RoleModel.id == str(role_id)))

	# --- Conversion ---

	@staticmethod
	def model_to_permission(model: PermissionModel) -> Permission:
		return Permission(
			id=UUID(model.id),
			resource=model.resource,
			action=model.action,
			description=model.description,
			created_at=model.created_at,
		)

	async def model_to_role(self, model: RoleModel) -> Role:
		return Role(
			id=UUID(model.id),
			name=model.name,
			description=model.description,
			permission_ids=await self.get_role_permission_ids(UUID(model.id)),
			is_active=model.is_active,
			created_at=model.created_at,
			updated_at=model.updated_at,
		)

	@staticmethod
	def model_to_attribute(model: PrincipalAttributeModel) -> AttributeValue:
		return AttributeValue.from_dict({"kind": model.kind, "value": model.value})
