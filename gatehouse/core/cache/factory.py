# (c) Copyright Datacraft, 2026
"""Cache backend factory."""
from gatehouse.core.config import Settings, get_settings
from gatehouse.core.types import CacheBackendType

from .base import CacheBackend


def create_cache_backend(settings: Settings | None = None) -> CacheBackend:
	"""Create the cache backend selected in settings.

	The caller owns the returned backend and must ``close()`` it at shutdown.
	"""
	if settings is None:
		settings = get_settings()

	if settings.cache_backend == CacheBackendType.MEMORY:
		from .memory import InMemoryCacheBackend
		return InMemoryCacheBackend()

	elif settings.cache_backend == CacheBackendType.REDIS:
		if settings.redis_url is None:
			raise ValueError("redis_url is required for the redis cache backend")
		from .redis_backend import RedisCacheBackend
		return RedisCacheBackend.from_url(str(settings.redis_url))

	else:
		raise ValueError(f"Unknown cache backend: {settings.cache_backend}")
