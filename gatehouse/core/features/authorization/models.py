# (c) Copyright Datacraft, 2026
"""Decision request and decision value objects."""
import hashlib
import json
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping
from uuid import UUID

from gatehouse.core.exceptions import AuthorizationError, ValidationError
from gatehouse.core.types import AttributeValue, build_context


class DecisionReason(str, Enum):
	"""Why a decision came out the way it did."""
	RBAC_MATCH = "rbac_match"
	POLICY_ALLOW = "policy_allow"
	POLICY_DENY = "policy_deny"
	NO_MATCH = "no_match"
	PRINCIPAL_NOT_FOUND = "principal_not_found"
	STORE_UNAVAILABLE = "store_unavailable"
	DEADLINE_EXCEEDED = "deadline_exceeded"
	INTERNAL_ERROR = "internal_error"


# Outcomes computed from complete reads; only these may be cached
CACHEABLE_REASONS = frozenset({
	DecisionReason.RBAC_MATCH,
	DecisionReason.POLICY_ALLOW,
	DecisionReason.POLICY_DENY,
	DecisionReason.NO_MATCH,
})


@dataclass(frozen=True)
class DecisionRequest:
	"""Authorization question. Never persisted."""
	principal_id: UUID
	resource: str
	action: str
	context: Mapping[str, AttributeValue] = field(default_factory=dict)

	@classmethod
	def build(
		cls,
		principal_id: UUID | str,
		resource: str,
		action: str,
		context: Mapping[str, Any] | None = None,
	) -> "DecisionRequest":
		"""Validate inputs and wrap raw context values into AttributeValue."""
		if isinstance(principal_id, str):
			try:
				principal_id = UUID(principal_id)
			except ValueError as e:
				raise ValidationError(f"Invalid principal id: {principal_id}") from e
		if not resource or not resource.strip():
			raise ValidationError("Resource cannot be empty.")
		if not action or not action.strip():
			raise ValidationError("Action cannot be empty.")
		return cls(
			principal_id=principal_id,
			resource=resource.strip(),
			action=action.strip(),
			context=MappingProxyType(build_context(context)),
		)

	@property
	def permission_key(self) -> str:
		return f"{self.resource}:{self.action}"

	def fingerprint(self) -> str:
		"""Stable digest of the request, used as a decision cache key."""
		payload = {
			"principal": str(self.principal_id),
			"resource": self.resource,
			"action": self.action,
			"context": {
				key: [value.kind.value, value.to_python()]
				for key, value in self.context.items()
			},
		}
		encoded = json.dumps(payload, sort_keys=True, separators=(",", ":"))
		return hashlib.sha256(encoded.encode()).hexdigest()


@dataclass(frozen=True)
class Decision:
	"""
	Result of an authorization check.

	``error`` carries the typed failure for fail-closed outcomes
	(principal_not_found, store_unavailable, ...); ``retryable`` tells the
	caller whether retrying can change the outcome.
	"""
	allowed: bool
	reason: DecisionReason
	source: UUID | None = None
	retryable: bool = False
	error: AuthorizationError | None = field(default=None, compare=False)
	evaluation_time_ms: float = field(default=0.0, compare=False)

	@classmethod
	def deny(cls, reason: DecisionReason, error: AuthorizationError | None = None, retryable: bool = False) -> "Decision":
		return cls(allowed=False, reason=reason, error=error, retryable=retryable)

	@property
	def cacheable(self) -> bool:
		return self.error is None and self.reason in CACHEABLE_REASONS

	def to_dict(self) -> dict:
		return {
			"allowed": self.allowed,
			"reason": self.reason.value,
			"source": str(self.source) if self.source else None,
			"retryable": self.retryable,
			"error": self.error.code if self.error else None,
			"evaluation_time_ms": self.evaluation_time_ms,
		}

	@classmethod
	def from_dict(cls, data: dict) -> "Decision":
		return cls(
			allowed=bool(data["allowed"]),
			reason=DecisionReason(data["reason"]),
			source=UUID(data["source"]) if data.get("source") else None,
			retryable=data.get("retryable", False),
		)
