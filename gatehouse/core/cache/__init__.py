# (c) Copyright Datacraft, 2026
"""Cache backends and the decision cache."""
from .base import CacheBackend
from .memory import InMemoryCacheBackend
from .factory import create_cache_backend
from .decision import DecisionCache, permission_key, decision_key

__all__ = [
	"CacheBackend",
	"InMemoryCacheBackend",
	"create_cache_backend",
	"DecisionCache",
	"permission_key",
	"decision_key",
]
