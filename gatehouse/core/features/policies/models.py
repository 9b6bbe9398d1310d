# (c) Copyright Datacraft, 2026
"""Policy domain models for ABAC."""
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from uuid import UUID

from uuid_extensions import uuid7

from gatehouse.core.exceptions import ValidationError


class PolicyEffect(str, Enum):
	"""Policy decision effect."""
	ALLOW = "Allow"
	DENY = "Deny"

	@classmethod
	def parse(cls, value: "str | PolicyEffect") -> "PolicyEffect":
		if isinstance(value, PolicyEffect):
			return value
		for member in cls:
			if isinstance(value, str) and member.value.lower() == value.strip().lower():
				return member
		raise ValidationError("Effect must be either 'Allow' or 'Deny'.")


def _utcnow() -> datetime:
	return datetime.utcnow()


def _require(value: str | None, label: str) -> str:
	if value is None or not value.strip():
		raise ValidationError(f"{label} cannot be empty.")
	return value.strip()


@dataclass
class Policy:
	"""
	ABAC rule.

	``resource`` and ``action`` are patterns; ``*`` matches a whole segment
	or acts as a glob inside one. ``condition`` is an expression in the
	condition language (empty means unconditional). Higher ``priority``
	evaluates first.
	"""
	id: UUID
	name: str
	resource: str
	action: str
	effect: PolicyEffect
	condition: str = ""
	priority: int = 0
	description: str | None = None
	is_active: bool = True
	created_at: datetime = field(default_factory=_utcnow)
	updated_at: datetime | None = None

	@classmethod
	def create(
		cls,
		name: str,
		resource: str,
		action: str,
		effect: str | PolicyEffect,
		condition: str | None = "",
		priority: int = 0,
		description: str | None = None,
	) -> "Policy":
		return cls(
			id=uuid7(),
			name=_require(name, "Policy name"),
			resource=_require(resource, "Resource"),
			action=_require(action, "Action"),
			effect=PolicyEffect.parse(effect),
			condition=(condition or "").strip(),
			priority=int(priority),
			description=description,
		)

	def update(
		self,
		name: str,
		resource: str,
		action: str,
		effect: str | PolicyEffect,
		condition: str | None,
		priority: int,
		description: str | None = None,
	):
		self.name = _require(name, "Policy name")
		self.resource = _require(resource, "Resource")
		self.action = _require(action, "Action")
		self.effect = PolicyEffect.parse(effect)
		self.condition = (condition or "").strip()
		self.priority = int(priority)
		self.description = description
		self.updated_at = _utcnow()

	def activate(self):
		self.is_active = True
		self.updated_at = _utcnow()

	def deactivate(self):
		self.is_active = False
		self.updated_at = _utcnow()

	@property
	def pattern(self) -> str:
		return f"{self.resource}:{self.action}"

	@property
	def sort_key(self) -> tuple:
		"""Total evaluation order: priority desc, then oldest first, then id."""
		return (-self.priority, self.created_at, str(self.id))

	def snapshot(self) -> "Policy":
		return replace(self)

	def to_dict(self) -> dict:
		return {
			"id": str(self.id),
			"name": self.name,
			"description": self.description,
			"resource": self.resource,
			"action": self.action,
			"effect": self.effect.value,
			"condition": self.condition,
			"priority": self.priority,
			"is_active": self.is_active,
			"created_at": self.created_at.isoformat() if self.created_at else None,
			"updated_at": self.updated_at.isoformat() if self.updated_at else None,
		}

	@classmethod
	def from_dict(cls, data: dict) -> "Policy":
		return cls(
			id=UUID(data["id"]),
			name=data["name"],
			description=data.get("description"),
			resource=data["resource"],
			action=data["action"],
			effect=PolicyEffect.parse(data["effect"]),
			condition=data.get("condition") or "",
			priority=data.get("priority", 0),
			is_active=data.get("is_active", True),
			created_at=datetime.fromisoformat(data["created_at"]) if data.get("created_at") else _utcnow(),
			updated_at=datetime.fromisoformat(data["updated_at"]) if data.get("updated_at") else None,
		)
