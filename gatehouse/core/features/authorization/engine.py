# (c) Copyright Datacraft, 2026
"""
Authorization decision engine combining RBAC and ABAC.

Evaluation strategy:
1. RBAC: an exact ``resource:action`` permission held by the principal allows
2. Policies: applicable active policies in priority order (highest first,
   oldest first on ties); the first whose condition holds decides, so a
   matching Deny is never overridden by a lower-priority Allow. Conditions
   see the principal's stored attributes overlaid by the request context
3. Default to deny when nothing matched

Errors fail closed: the engine returns a deny carrying the typed error
instead of raising.
"""
import asyncio
import logging
import time
from dataclasses import replace
from typing import Any, Callable, Mapping
from uuid import UUID

from gatehouse.core.cache import DecisionCache, decision_key
from gatehouse.core.config import Settings, get_settings
from gatehouse.core.exceptions import (
	AuthorizationError, DeadlineExceeded, MalformedCondition, PrincipalNotFound, StoreUnavailable,
)
from gatehouse.core.features.policies.evaluator import evaluate_condition
from gatehouse.core.features.policies.models import Policy, PolicyEffect
from gatehouse.core.features.policies.resolver import PolicyResolver
from gatehouse.core.types import AttributeValue

from .index import PermissionIndex
from .models import Decision, DecisionReason, DecisionRequest
from .store import AuthorizationStore

logger = logging.getLogger(__name__)

MalformedPolicyHook = Callable[[Policy, MalformedCondition], None]


class DecisionEngine:
	"""
	Produces one allow/deny Decision per request.

	Usage:
		engine = DecisionEngine(store, DecisionCache(create_cache_backend()))
		decision = await engine.decide_for(user_id, "orders", "read", {"hour": 10})
		if not decision.allowed:
			raise PermissionDenied(decision.reason)
	"""

	def __init__(
		self,
		store: AuthorizationStore,
		cache: DecisionCache | None = None,
		settings: Settings | None = None,
		on_malformed_policy: MalformedPolicyHook | None = None,
	):
		if settings is None:
			settings = get_settings()
		self._cache = cache
		self._timeout = settings.decision_timeout
		self._decision_cache_enabled = settings.decision_cache_enabled and cache is not None
		self._decision_cache_ttl = settings.decision_cache_ttl
		self._on_malformed_policy = on_malformed_policy
		self.index = PermissionIndex(store, cache, ttl=settings.permission_cache_ttl)
		self.resolver = PolicyResolver(store, cache, ttl=settings.permission_cache_ttl)

	async def decide_for(
		self,
		principal_id: UUID | str,
		resource: str,
		action: str,
		context: Mapping[str, Any] | None = None,
		timeout: float | None = None,
	) -> Decision:
		"""Decision API: build the request from raw values and decide."""
		request = DecisionRequest.build(principal_id, resource, action, context)
		return await self.decide(request, timeout=timeout)

	async def decide(self, request: DecisionRequest, timeout: float | None = None) -> Decision:
		"""
		Evaluate a request.

		Cancellation of the calling task propagates; every other failure
		becomes a deny.
		"""
		start_time = time.perf_counter()
		timeout = timeout if timeout is not None else self._timeout

		try:
			if timeout:
				decision = await asyncio.wait_for(self._decide(request), timeout)
			else:
				decision = await self._decide(request)
		except PrincipalNotFound as e:
			decision = Decision.deny(DecisionReason.PRINCIPAL_NOT_FOUND, error=e)
		except StoreUnavailable as e:
			decision = Decision.deny(DecisionReason.STORE_UNAVAILABLE, error=e, retryable=True)
		except asyncio.TimeoutError:
			logger.warning(f"Decision for {request.principal_id} on {request.permission_key} exceeded {timeout}s")
			decision = Decision.deny(
				DecisionReason.DEADLINE_EXCEEDED,
				error=DeadlineExceeded(f"Decision deadline of {timeout}s exceeded"),
				retryable=True,
			)
		except Exception as e:
			logger.exception(f"Unexpected error deciding {request.permission_key} for {request.principal_id}")
			decision = Decision.deny(DecisionReason.INTERNAL_ERROR, error=AuthorizationError(str(e)))

		elapsed = (time.perf_counter() - start_time) * 1000
		decision = replace(decision, evaluation_time_ms=elapsed)
		logger.info(
			f"Authorization decision: principal={request.principal_id} "
			f"permission={request.permission_key} allowed={decision.allowed} "
			f"reason={decision.reason.value} source={decision.source} time_ms={elapsed:.2f}"
		)
		return decision

	async def _decide(self, request: DecisionRequest) -> Decision:
		if not self._decision_cache_enabled:
			return await self._evaluate(request)

		key = decision_key(request.principal_id, request.fingerprint())
		cached = await self._cache.get(key)
		if cached is not None:
			try:
				return Decision.from_dict(cached)
			except (KeyError, TypeError, ValueError) as e:
				logger.warning(f"Discarding unreadable cached decision: {e}")
		token = self._cache.reserve(key)

		decision = await self._evaluate(request)
		if decision.cacheable:
			await self._cache.set(key, decision.to_dict(), self._decision_cache_ttl, token)
		return decision

	async def _evaluate(self, request: DecisionRequest) -> Decision:
		access = await self.index.get_effective_access(request.principal_id)

		# RBAC phase
		permission = access.find_permission(request.resource, request.action)
		if permission is not None:
			return Decision(allowed=True, reason=DecisionReason.RBAC_MATCH, source=permission.id)

		# Policy phase: stored principal attributes, overridden by the request
		policies = await self.resolver.resolve_applicable(request.resource, request.action)
		context = {**access.attributes, **request.context}
		for policy in policies:
			if not self._condition_holds(policy, context):
				continue
			if policy.effect == PolicyEffect.DENY:
				return Decision(allowed=False, reason=DecisionReason.POLICY_DENY, source=policy.id)
			return Decision(allowed=True, reason=DecisionReason.POLICY_ALLOW, source=policy.id)

		# Default deny
		return Decision(allowed=False, reason=DecisionReason.NO_MATCH)

	def _condition_holds(self, policy: Policy, context: Mapping[str, AttributeValue]) -> bool:
		"""Evaluate a policy condition; a condition that cannot be evaluated never matches."""
		try:
			return evaluate_condition(policy.condition, context)
		except MalformedCondition as e:
			logger.error(f"Skipping policy {policy.name} ({policy.id}): malformed condition: {e}")
			self._report_malformed(policy, e)
		except Exception:
			logger.exception(f"Skipping policy {policy.name} ({policy.id}): condition evaluation failed")
		return False

	def _report_malformed(self, policy: Policy, error: MalformedCondition):
		if self._on_malformed_policy is None:
			return
		try:
			self._on_malformed_policy(policy, error)
		except Exception:
			logger.exception(f"Malformed policy hook failed for {policy.name} ({policy.id})")
