# (c) Copyright Datacraft, 2026
"""Declarative base for ORM models."""
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
	pass
