# (c) Copyright Datacraft, 2026
"""SQLAlchemy ORM models for roles, permissions and principals."""
from datetime import datetime
from sqlalchemy import (
	Column, String, Boolean, DateTime, Text, ForeignKey, Table, UniqueConstraint, Index, JSON
)
from uuid_extensions import uuid7str

from gatehouse.core.db.base import Base


roles_permissions = Table(
	"roles_permissions",
	Base.metadata,
	Column("role_id", String(36), ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
	Column("permission_id", String(36), ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True),
)

principal_roles = Table(
	"principal_roles",
	Base.metadata,
	Column("principal_id", String(36), ForeignKey("principals.id", ondelete="CASCADE"), primary_key=True),
	Column("role_id", String(36), ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
	Index("ix_principal_roles_role_id", "role_id"),
)


class PrincipalModel(Base):
	"""Authorization subject; profile data lives elsewhere."""
	__tablename__ = "principals"

	id = Column(String(36), primary_key=True, default=uuid7str)
	created_at = Column(DateTime, default=datetime.utcnow)


class PrincipalAttributeModel(Base):
	"""Stored attribute of a principal, merged under the request context."""
	__tablename__ = "principal_attributes"

	principal_id = Column(String(36), ForeignKey("principals.id", ondelete="CASCADE"), primary_key=True)
	name = Column(String(100), primary_key=True)
	kind = Column(String(20), nullable=False)
	value = Column(JSON, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class RoleModel(Base):
	__tablename__ = "roles"

	id = Column(String(36), primary_key=True, default=uuid7str)
	name = Column(String(100), nullable=False, unique=True)
	description = Column(Text, nullable=True)
	is_active = Column(Boolean, default=True, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow)
	updated_at = Column(DateTime, nullable=True)


class PermissionModel(Base):
	__tablename__ = "permissions"

	id = Column(String(36), primary_key=True, default=uuid7str)
	resource = Column(String(255), nullable=False)
	action = Column(String(100), nullable=False)
	description = Column(Text, nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow)

	__table_args__ = (
		UniqueConstraint("resource", "action", name="uq_permissions_resource_action"),
	)
