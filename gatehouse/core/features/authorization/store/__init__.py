# (c) Copyright Datacraft, 2026
"""Authoritative store contract and implementations."""
from .base import AuthorizationStore
from .memory import InMemoryStore
from .sql import SqlAlchemyStore

__all__ = [
	"AuthorizationStore",
	"InMemoryStore",
	"SqlAlchemyStore",
]
