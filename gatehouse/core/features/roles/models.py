# (c) Copyright Datacraft, 2026
"""Role, permission and principal domain models for RBAC."""
from dataclasses import dataclass, field, replace
from datetime import datetime
from uuid import UUID

from uuid_extensions import uuid7

from gatehouse.core.exceptions import ValidationError

ROLE_NAME_MAX_LENGTH = 100
ATTRIBUTE_NAME_MAX_LENGTH = 100


def _utcnow() -> datetime:
	return datetime.utcnow()


@dataclass(frozen=True)
class Permission:
	"""Atomic (resource, action) capability. Immutable once created."""
	id: UUID
	resource: str
	action: str
	description: str | None = None
	created_at: datetime = field(default_factory=_utcnow, compare=False)

	@property
	def key(self) -> str:
		"""Canonical ``resource:action`` string used as index key."""
		return f"{self.resource}:{self.action}"

	@classmethod
	def create(cls, resource: str, action: str, description: str | None = None) -> "Permission":
		if not resource or not resource.strip():
			raise ValidationError("Resource cannot be empty.")
		if not action or not action.strip():
			raise ValidationError("Action cannot be empty.")
		return cls(
			id=uuid7(),
			resource=resource.strip(),
			action=action.strip(),
			description=description,
		)

	def to_dict(self) -> dict:
		return {
			"id": str(self.id),
			"resource": self.resource,
			"action": self.action,
			"description": self.description,
			"created_at": self.created_at.isoformat() if self.created_at else None,
		}

	@classmethod
	def from_dict(cls, data: dict) -> "Permission":
		return cls(
			id=UUID(data["id"]),
			resource=data["resource"],
			action=data["action"],
			description=data.get("description"),
			created_at=datetime.fromisoformat(data["created_at"]) if data.get("created_at") else _utcnow(),
		)


def _validate_role_name(name: str | None) -> str:
	if name is None or not name.strip():
		raise ValidationError("Role name cannot be empty.")
	name = name.strip()
	if len(name) > ROLE_NAME_MAX_LENGTH:
		raise ValidationError(f"Role name cannot exceed {ROLE_NAME_MAX_LENGTH} characters.")
	return name


@dataclass
class Role:
	"""Named, mutable owner of permissions."""
	id: UUID
	name: str
	description: str | None = None
	permission_ids: set[UUID] = field(default_factory=set)
	is_active: bool = True
	created_at: datetime = field(default_factory=_utcnow)
	updated_at: datetime | None = None

	@classmethod
	def create(cls, name: str, description: str | None = None) -> "Role":
		return cls(id=uuid7(), name=_validate_role_name(name), description=description)

	def update(self, name: str, description: str | None = None):
		self.name = _validate_role_name(name)
		self.description = description
		self.updated_at = _utcnow()

	def add_permission(self, permission_id: UUID) -> bool:
		"""Attach a permission. Returns False if it was already attached."""
		if permission_id in self.permission_ids:
			return False
		self.permission_ids.add(permission_id)
		self.updated_at = _utcnow()
		return True

	def remove_permission(self, permission_id: UUID) -> bool:
		"""Detach a permission. Returns False if it was not attached."""
		if permission_id not in self.permission_ids:
			return False
		self.permission_ids.discard(permission_id)
		self.updated_at = _utcnow()
		return True

	def activate(self):
		self.is_active = True
		self.updated_at = _utcnow()

	def deactivate(self):
		self.is_active = False
		self.updated_at = _utcnow()

	def snapshot(self) -> "Role":
		"""Detached copy safe to hand out across concurrent readers."""
		return replace(self, permission_ids=set(self.permission_ids))


@dataclass(frozen=True)
class Principal:
	"""Entity a decision is evaluated for."""
	id: UUID
	role_ids: frozenset[UUID] = frozenset()
