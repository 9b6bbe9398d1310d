# (c) Copyright Datacraft, 2026
"""
Authorization decisions.

The decision engine answers "may principal P perform action A on resource
R given context C?" by checking RBAC permissions first, then ABAC policies
in priority order, and denying by default. Failures never allow.
"""
from .models import Decision, DecisionReason, DecisionRequest, CACHEABLE_REASONS
from .index import EffectiveAccess, PermissionIndex
from .engine import DecisionEngine
from .store import AuthorizationStore, InMemoryStore, SqlAlchemyStore

__all__ = [
	# Models
	"Decision",
	"DecisionReason",
	"DecisionRequest",
	"CACHEABLE_REASONS",
	# Index
	"EffectiveAccess",
	"PermissionIndex",
	# Engine
	"DecisionEngine",
	# Stores
	"AuthorizationStore",
	"InMemoryStore",
	"SqlAlchemyStore",
]
