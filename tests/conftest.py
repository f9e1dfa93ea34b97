"""
Bitrix Cache - Test Configuration and Shared Fixtures

Provides pytest configuration and shared fixtures for unit and integration tests.
"""

import os
from collections.abc import Generator
from datetime import datetime, timezone
from typing import Any

import pytest

from bitrix_cache.cache.backends.memory import MemoryCacheEngine
from bitrix_cache.cache.facade import Cache

# Set test environment; the global config must never point at the working tree
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "DEBUG"
os.environ["CACHE_ENGINE"] = "memory"


FIXED_NOW = datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def fixed_now() -> datetime:
    """A fixed reference instant for calendar TTLs."""
    return FIXED_NOW


@pytest.fixture
def memory_engine() -> MemoryCacheEngine:
    """Fresh in-memory engine."""
    return MemoryCacheEngine(max_size=100)


@pytest.fixture
def cache(memory_engine: MemoryCacheEngine) -> Cache:
    """Cache facade over a fresh memory engine with a fixed clock."""
    return Cache(
        default_ttl=3600,
        engine=memory_engine,
        base_dir="/bitrix/cache",
        init_dir="test",
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def test_redis_url() -> str:
    """Get Redis URL for testing (database 15 for isolation)."""
    return os.environ.get("TEST_REDIS_URL", "redis://localhost:6379/15")


@pytest.fixture
def mock_env_memory(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set environment variables for the memory engine."""
    monkeypatch.setenv("CACHE_ENGINE", "memory")
    monkeypatch.setenv("CACHE_MAX_SIZE", "100")
    monkeypatch.setenv("CACHE_DEFAULT_TTL", "3600")
    monkeypatch.setenv("CACHE_INIT_DIR", "test")


@pytest.fixture
def sample_cache_data() -> dict[str, Any]:
    """Sample data for cache testing."""
    return {
        "simple_string": "hello",
        "simple_int": 42,
        "simple_float": 3.14,
        "simple_bool": True,
        "complex_dict": {
            "nested": {
                "key": "value",
                "number": 123,
                "list": [1, 2, 3],
            }
        },
        "complex_list": [
            {"id": 1, "name": "Alice"},
            {"id": 2, "name": "Bob"},
        ],
    }


@pytest.fixture(autouse=True)
def reset_global_state() -> Generator[None, None, None]:
    """Reset cache factory and config singleton after each test."""
    yield
    from bitrix_cache.cache.factory import reset_cache_factory
    from bitrix_cache.config import reset_config

    reset_cache_factory()
    reset_config()
