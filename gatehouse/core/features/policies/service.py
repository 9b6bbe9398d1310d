# (c) Copyright Datacraft, 2026
"""Policy administration with cache invalidation."""
import logging
from typing import TYPE_CHECKING
from uuid import UUID

from gatehouse.core.cache import DecisionCache
from gatehouse.core.exceptions import Conflict, MalformedCondition, NotFound

from .evaluator import validate_condition
from .models import Policy, PolicyEffect

if TYPE_CHECKING:
	from gatehouse.core.features.authorization.store import AuthorizationStore

logger = logging.getLogger(__name__)


class PolicyService:
	"""
	Create, update and retire policies.

	Conditions are validated before a policy is stored, so a malformed
	condition can only reach the engine through a direct store write.
	Every mutation invalidates the cached policy snapshot and decisions
	before returning.
	"""

	def __init__(self, store: "AuthorizationStore", cache: DecisionCache | None = None):
		self.store = store
		self.cache = cache

	async def _invalidate(self):
		if self.cache is not None:
			await self.cache.invalidate_policies()

	async def _get_policy(self, policy_id: UUID) -> Policy:
		policy = await self.store.get_policy(policy_id)
		if policy is None:
			raise NotFound(f"Policy {policy_id} not found")
		return policy

	async def _ensure_unique_name(self, name: str, policy_id: UUID | None = None):
		existing = await self.store.find_policy_by_name(name)
		if existing is not None and existing.id != policy_id:
			raise Conflict(f"Policy '{name}' already exists")

	@staticmethod
	def _check_condition(condition: str | None):
		valid, error = validate_condition(condition)
		if not valid:
			raise MalformedCondition(error)

	async def create_policy(
		self,
		name: str,
		resource: str,
		action: str,
		effect: str | PolicyEffect,
		condition: str | None = "",
		priority: int = 0,
		description: str | None = None,
	) -> Policy:
		policy = Policy.create(name, resource, action, effect, condition, priority, description)
		self._check_condition(policy.condition)
		await self._ensure_unique_name(policy.name)
		await self.store.save_policy(policy)
		await self._invalidate()
		logger.info(f"Created policy {policy.name} ({policy.effect.value} {policy.pattern}, priority {policy.priority})")
		return policy

	async def update_policy(
		self,
		policy_id: UUID,
		name: str,
		resource: str,
		action: str,
		effect: str | PolicyEffect,
		condition: str | None,
		priority: int,
		description: str | None = None,
	) -> Policy:
		policy = await self._get_policy(policy_id)
		policy.update(name, resource, action, effect, condition, priority, description)
		self._check_condition(policy.condition)
		await self._ensure_unique_name(policy.name, policy.id)
		await self.store.save_policy(policy)
		await self._invalidate()
		return policy

	async def set_policy_active(self, policy_id: UUID, active: bool) -> Policy:
		policy = await self._get_policy(policy_id)
		if policy.is_active == active:
			return policy
		if active:
			policy.activate()
		else:
			policy.deactivate()
		await self.store.save_policy(policy)
		await self._invalidate()
		logger.info(f"Policy {policy.name} ({policy.id}) {'activated' if active else 'deactivated'}")
		return policy

	async def delete_policy(self, policy_id: UUID):
		policy = await self._get_policy(policy_id)
		await self.store.delete_policy(policy_id)
		await self._invalidate()
		logger.info(f"Deleted policy {policy.name} ({policy.id})")
