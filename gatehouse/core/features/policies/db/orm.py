# (c) Copyright Datacraft, 2026
"""SQLAlchemy ORM models for the policy system."""
from datetime import datetime
from sqlalchemy import (
	Column, String, Integer, Boolean, DateTime, Text, Enum, Index
)
from uuid_extensions import uuid7str

from gatehouse.core.db.base import Base
from ..models import PolicyEffect


class PolicyModel(Base):
	"""Persisted policy definition."""
	__tablename__ = "policies"

	id = Column(String(36), primary_key=True, default=uuid7str)
	name = Column(String(255), nullable=False, unique=True)
	description = Column(Text, nullable=True)
	resource = Column(String(255), nullable=False)  # Pattern, may contain *
	action = Column(String(100), nullable=False)  # Pattern, may contain *
	effect = Column(Enum(PolicyEffect), nullable=False)
	condition = Column(Text, default="")
	priority = Column(Integer, default=0)
	is_active = Column(Boolean, default=True, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow)
	updated_at = Column(DateTime, nullable=True)

	__table_args__ = (
		Index("ix_policies_active_priority", "is_active", "priority"),
	)
