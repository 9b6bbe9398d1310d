# (c) Copyright Datacraft, 2026
"""Shared fixtures for the authorization test suite."""
import pytest
from uuid_extensions import uuid7

from gatehouse.core.cache import DecisionCache, InMemoryCacheBackend
from gatehouse.core.config import Settings, reset_settings
from gatehouse.core.features.authorization.store import InMemoryStore


@pytest.fixture(autouse=True)
def _fresh_settings():
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def settings():
    return Settings(
        log_config=None,
        permission_cache_ttl=900,
        decision_cache_enabled=False,
        decision_timeout=None,
    )


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def cache():
    return DecisionCache(InMemoryCacheBackend(), namespace="test")


@pytest.fixture
def principal_id():
    return uuid7()
