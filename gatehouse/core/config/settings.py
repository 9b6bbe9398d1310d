# (c) Copyright Datacraft, 2026
"""Application settings configuration."""
from pathlib import Path

from pydantic import PostgresDsn, RedisDsn, Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

from gatehouse.core.types import CacheBackendType


class Settings(BaseSettings):
	db_url: PostgresDsn | None = None
	db_ssl: bool = False
	log_config: Path | None = Path("/etc/gatehouse/logging.yaml")

	# Decision cache
	cache_backend: CacheBackendType = CacheBackendType.MEMORY
	redis_url: RedisDsn | None = None
	cache_namespace: str = "gatehouse"
	permission_cache_ttl: int = Field(gt=0, default=900)  # seconds
	decision_cache_enabled: bool = False
	decision_cache_ttl: int = Field(gt=0, default=60)

	# Engine
	decision_timeout: float | None = None  # seconds

	@computed_field
	@property
	def async_db_url(self) -> str | None:
		if self.db_url is None:
			return None
		url = str(self.db_url)
		if "postgresql+psycopg://" in url:
			return url.replace("postgresql+psycopg://", "postgresql+asyncpg://", 1)
		elif "postgresql://" in url:
			return url.replace("postgresql://", "postgresql+asyncpg://", 1)
		return url

	model_config = SettingsConfigDict(
		env_prefix='gh_',
		env_file='.env',
		env_file_encoding='utf-8',
		extra='ignore',
	)


_settings: Settings | None = None


def get_settings() -> Settings:
	global _settings
	if _settings is None:
		_settings = Settings()
	return _settings


def reset_settings() -> None:
	"""Drop the memoized settings (for testing)."""
	global _settings
	_settings = None
