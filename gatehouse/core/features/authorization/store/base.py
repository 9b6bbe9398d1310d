# (c) Copyright Datacraft, 2026
"""Abstract authoritative store interface."""
from abc import ABC, abstractmethod
from collections.abc import Iterable
from uuid import UUID

from gatehouse.core.features.policies.models import Policy
from gatehouse.core.features.roles.models import Permission, Principal, Role
from gatehouse.core.types import AttributeValue


class AuthorizationStore(ABC):
	"""
	Authoritative role/permission/policy data.

	Every read returns detached value objects (snapshots); callers never
	hold references into store-owned structures. Backend failures surface
	as ``StoreUnavailable``.
	"""

	# --- Decision path ---

	@abstractmethod
	async def load_roles(self, principal_id: UUID) -> frozenset[UUID]:
		"""Role ids assigned to a principal.

		Raises:
			PrincipalNotFound: If the principal does not exist
		"""
		...

	@abstractmethod
	async def load_permissions(self, role_ids: Iterable[UUID]) -> frozenset[Permission]:
		"""Union of the permissions of the given roles, skipping inactive roles."""
		...

	@abstractmethod
	async def load_active_policies(self) -> list[Policy]:
		"""Every active policy, unordered."""
		...

	@abstractmethod
	async def load_principal_attributes(self, principal_id: UUID) -> dict[str, AttributeValue]:
		"""Stored attributes of a principal; empty when it has none."""
		...

	# --- Principals ---

	async def get_principal(self, principal_id: UUID) -> Principal:
		"""Principal snapshot with its assigned role ids.

		Raises:
			PrincipalNotFound: If the principal does not exist
		"""
		return Principal(id=principal_id, role_ids=await self.load_roles(principal_id))

	@abstractmethod
	async def add_principal(self, principal_id: UUID) -> None:
		...

	@abstractmethod
	async def assign_role(self, principal_id: UUID, role_id: UUID) -> bool:
		"""Returns False when the principal already held the role."""
		...

	@abstractmethod
	async def unassign_role(self, principal_id: UUID, role_id: UUID) -> bool:
		"""Returns False when the principal did not hold the role."""
		...

	@abstractmethod
	async def principals_with_role(self, role_id: UUID) -> frozenset[UUID]:
		...

	@abstractmethod
	async def set_principal_attribute(self, principal_id: UUID, name: str, value: AttributeValue) -> None:
		"""Insert or replace one attribute, adding the principal if needed."""
		...

	@abstractmethod
	async def delete_principal_attribute(self, principal_id: UUID, name: str) -> bool:
		"""Returns False when the principal had no such attribute."""
		...

	# --- Roles ---

	@abstractmethod
	async def get_role(self, role_id: UUID) -> Role | None:
		...

	@abstractmethod
	async def find_role_by_name(self, name: str) -> Role | None:
		...

	@abstractmethod
	async def save_role(self, role: Role) -> None:
		"""
		Insert or update a role.

		A new role is stored with its permission set; for an existing role
		only its own fields change and the stored permission set is kept.
		"""
		...

	@abstractmethod
	async def grant_permission(self, role_id: UUID, permission_id: UUID) -> bool:
		"""Link one permission to a role. Returns False when already linked."""
		...

	@abstractmethod
	async def revoke_permission(self, role_id: UUID, permission_id: UUID) -> bool:
		"""Unlink one permission from a role. Returns False when not linked."""
		...

	@abstractmethod
	async def delete_role(self, role_id: UUID) -> None:
		"""Delete a role and every principal assignment of it."""
		...

	# --- Permissions ---

	@abstractmethod
	async def get_permission(self, permission_id: UUID) -> Permission | None:
		...

	@abstractmethod
	async def find_permission(self, resource: str, action: str) -> Permission | None:
		...

	@abstractmethod
	async def save_permission(self, permission: Permission) -> None:
		...

	@abstractmethod
	async def delete_permission(self, permission_id: UUID) -> frozenset[UUID]:
		"""Delete a permission. Returns the ids of roles that held it."""
		...

	# --- Policies ---

	@abstractmethod
	async def get_policy(self, policy_id: UUID) -> Policy | None:
		...

	@abstractmethod
	async def find_policy_by_name(self, name: str) -> Policy | None:
		...

	@abstractmethod
	async def save_policy(self, policy: Policy) -> None:
		...

	@abstractmethod
	async def delete_policy(self, policy_id: UUID) -> None:
		...
