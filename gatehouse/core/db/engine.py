# (c) Copyright Datacraft, 2026
"""Async database engine and session factory."""
import logging
import ssl

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from gatehouse.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker | None = None


def create_engine(settings: Settings | None = None) -> AsyncEngine:
	if settings is None:
		settings = get_settings()
	if settings.async_db_url is None:
		raise ValueError("db_url is not configured")

	connect_args = {}
	if settings.db_ssl:
		# asyncpg requires an SSL context, not sslmode
		ssl_context = ssl.create_default_context()
		ssl_context.check_hostname = False
		ssl_context.verify_mode = ssl.CERT_NONE
		connect_args["ssl"] = ssl_context

	return create_async_engine(
		settings.async_db_url,
		poolclass=NullPool,
		connect_args=connect_args,
	)


def get_engine() -> AsyncEngine:
	global _engine
	if _engine is None:
		_engine = create_engine()
	return _engine


def get_session_factory() -> async_sessionmaker:
	global _session_factory
	if _session_factory is None:
		_session_factory = async_sessionmaker(get_engine(), expire_on_commit=False)
	return _session_factory


async def dispose_engine():
	"""Close pooled connections at shutdown."""
	global _engine, _session_factory
	if _engine is not None:
		await _engine.dispose()
		logger.debug("Database engine disposed")
	_engine = None
	_session_factory = None
