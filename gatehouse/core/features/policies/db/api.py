# (c) Copyright Datacraft, 2026
"""Database operations for policy management."""
from typing import Sequence
from uuid import UUID

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from .orm import PolicyModel
from ..models import Policy, PolicyEffect


class PolicyDB:
	"""Database operations for policies."""

	def __init__(self, session: AsyncSession):
		self.session = session

	async def get_policy(self, policy_id: UUID) -> PolicyModel | None:
		return await self.session.get(PolicyModel, str(policy_id))

	async def find_policy_by_name(self, name: str) -> PolicyModel | None:
		result = await self.session.execute(select(PolicyModel).where(PolicyModel.name == name))
		return result.scalars().first()

	async def get_active_policies(self) -> Sequence[PolicyModel]:
		query = (
			select(PolicyModel)
			.where(PolicyModel.is_active.is_(True))
			.order_by(PolicyModel.priority.desc(), PolicyModel.created_at)
		)
		result = await self.session.execute(query)
		return result.scalars().all()

	async def save_policy(self, policy: Policy):
		await self.session.merge(PolicyModel(
			id=str(policy.id),
			name=policy.name,
			description=policy.description,
			resource=policy.resource,
			action=policy.action,
			effect=policy.effect,
			condition=policy.condition,
			priority=policy.priority,
			is_active=policy.is_active,
			created_at=policy.created_at,
			updated_at=policy.updated_at,
		))
		await self.session.flush()

	async def delete_policy(self, policy_id: UUID):
		await self.session.execute(delete(PolicyModel).where(PolicyModel.id == str(policy_id)))

	@staticmethod
	def model_to_policy(model: PolicyModel) -> Policy:
		return Policy(
			id=UUID(model.id),
			name=model.name,
			description=model.description,
			resource=model.resource,
			action=model.action,
			effect=PolicyEffect(model.effect),
			condition=model.condition or "",
			priority=model.priority or 0,
			is_active=model.is_active,
			created_at=model.created_at,
			updated_at=model.updated_at,
		)
