# (c) Copyright Datacraft, 2026
"""SQLAlchemy-backed authoritative store."""
import logging
from collections.abc import Iterable
from contextlib import asynccontextmanager
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from gatehouse.core.exceptions import Conflict, PrincipalNotFound, StoreUnavailable
from gatehouse.core.features.policies.db import PolicyDB
from gatehouse.core.features.policies.models import Policy
from gatehouse.core.features.roles.db import RoleDB
from gatehouse.core.features.roles.models import Permission, Role
from gatehouse.core.types import AttributeValue

from .base import AuthorizationStore

logger = logging.getLogger(__name__)


class SqlAlchemyStore(AuthorizationStore):
	"""
	Store over the ORM models. Each call runs in its own session; writes run
	in a transaction committed before the call returns.

	Usage:
		store = SqlAlchemyStore(get_session_factory())
		roles = await store.load_roles(principal_id)
	"""

	def __init__(self, session_factory: async_sessionmaker):
		self._session_factory = session_factory

	@asynccontextmanager
	async def _session(self, write: bool = False):
		try:
			async with self._session_factory() as session:
				if write:
					async with session.begin():
						yield session
				else:
					yield session
		except IntegrityError as e:
			raise Conflict(f"Constraint violation: {e.orig}") from e
		except (SQLAlchemyError, OSError, TimeoutError) as e:
			logger.error(f"Authoritative store unavailable: {e}")
			raise StoreUnavailable(str(e)) from e

	# --- Decision path ---

	async def load_roles(self, principal_id: UUID) -> frozenset[UUID]:
		async with self._session() as session:
			db = RoleDB(session)
			if not await db.principal_exists(principal_id):
				raise PrincipalNotFound(principal_id)
			return frozenset(await db.get_principal_role_ids(principal_id))

	async def load_permissions(self, role_ids: Iterable[UUID]) -> frozenset[Permission]:
		async with self._session() as session:
			models = await RoleDB(session).get_permissions_for_roles(role_ids)
			return frozenset(RoleDB.model_to_permission(m) for m in models)

	async def load_active_policies(self) -> list[Policy]:
		async with self._session() as session:
			models = await PolicyDB(session).get_active_policies()
			return [PolicyDB.model_to_policy(m) for m in models]

	async def load_principal_attributes(self, principal_id: UUID) -> dict[str, AttributeValue]:
		async with self._session() as session:
			db = RoleDB(session)
			if not await db.principal_exists(principal_id):
				raise PrincipalNotFound(principal_id)
			models = await db.get_principal_attributes(principal_id)
			return {m.name: RoleDB.model_to_attribute(m) for m in models}

	# --- Principals ---

	async def add_principal(self, principal_id: UUID) -> None:
		async with self._session(write=True) as session:
			await RoleDB(session).add_principal(principal_id)

	async def assign_role(self, principal_id: UUID, role_id: UUID) -> bool:
		async with self._session(write=True) as session:
			return await RoleDB(session).assign_role(principal_id, role_id)

	async def unassign_role(self, principal_id: UUID, role_id: UUID) -> bool:
		async with self._session(write=True) as session:
			return await RoleDB(session).unassign_role(principal_id, role_id)

	async def principals_with_role(self, role_id: UUID) -> frozenset[UUID]:
		async with self._session() as session:
			return frozenset(await RoleDB(session).get_principals_with_role(role_id))

	async def set_principal_attribute(self, principal_id: UUID, name: str, value: AttributeValue) -> None:
		async with self._session(write=True) as session:
			await RoleDB(session).set_principal_attribute(principal_id, name, value)

	async def delete_principal_attribute(self, principal_id: UUID, name: str) -> bool:
		async with self._session(write=True) as session:
			return await RoleDB(session).delete_principal_attribute(principal_id, name)

	# --- Roles ---

	async def get_role(self, role_id: UUID) -> Role | None:
		async with self._session() as session:
			db = RoleDB(session)
			model = await db.get_role(role_id)
			return await db.model_to_role(model) if model else None

	async def find_role_by_name(self, name: str) -> Role | None:
		async with self._session() as session:
			db = RoleDB(session)
			model = await db.find_role_by_name(name)
			return await db.model_to_role(model) if model else None

	async def save_role(self, role: Role) -> None:
		async with self._session(write=True) as session:
			await RoleDB(session).save_role(role)

	async def grant_permission(self, role_id: UUID, permission_id: UUID) -> bool:
		async with self._session(write=True) as session:
			return await RoleDB(session).grant_permission(role_id, permission_id)

	async def revoke_permission(self, role_id: UUID, permission_id: UUID) -> bool:
		async with self._session(write=True) as session:
			return await RoleDB(session).revoke_permission(role_id, permission_id)

	async def delete_role(self, role_id: UUID) -> None:
		async with self._session(write=True) as session:
			await RoleDB(session).delete_role(role_id)

	# --- Permissions ---

	async def get_permission(self, permission_id: UUID) -> Permission | None:
		async with self._session() as session:
			model = await RoleDB(session).get_permission(permission_id)
			return RoleDB.model_to_permission(model) if model else None

	async def find_permission(self, resource: str, action: str) -> Permission | None:
		async with self._session() as session:
			model = await RoleDB(session).find_permission(resource, action)
			return RoleDB.model_to_permission(model) if model else None

	async def save_permission(self, permission: Permission) -> None:
		async with self._session(write=True) as session:
			await RoleDB(session).save_permission(permission)

	async def delete_permission(self, permission_id: UUID) -> frozenset[UUID]:
		async with self._session(write=True) as session:
			return frozenset(await RoleDB(session).delete_permission(permission_id))

	# --- Policies ---

	async def get_policy(self, policy_id: UUID) -> Policy | None:
		async with self._session() as session:
			model = await PolicyDB(session).get_policy(policy_id)
			return PolicyDB.model_to_policy(model) if model else None

	async def find_policy_by_name(self, name: str) -> Policy | None:
		async with self._session() as session:
			model = await PolicyDB(session).find_policy_by_name(name)
			return PolicyDB.model_to_policy(model) if model else None

	async def save_policy(self, policy: Policy) -> None:
		async with self._session(write=True) as session:
			await PolicyDB(session).save_policy(policy)

	async def delete_policy(self, policy_id: UUID) -> None:
		async with self._session(write=True) as session:
			await PolicyDB(session).delete_policy(policy_id)
