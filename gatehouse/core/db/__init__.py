# (c) Copyright Datacraft, 2026
"""Database engine, sessions and declarative base."""
from .base import Base
from .engine import create_engine, dispose_engine, get_engine, get_session_factory

__all__ = [
	"Base",
	"create_engine",
	"dispose_engine",
	"get_engine",
	"get_session_factory",
]
