"""
Cashbox — Test Configuration and Shared Fixtures

Provides pytest configuration and shared fixtures for unit and integration tests.
"""

import itertools
import os
from collections.abc import AsyncGenerator, Callable, Generator
from typing import Any

import pytest
import pytest_asyncio
from redis.asyncio import Redis

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "DEBUG"


@pytest.fixture
def test_redis_url() -> str:
    """Get Redis URL for testing (database 15 for isolation)."""
    return os.environ.get("TEST_REDIS_URL", "redis://localhost:6379/15")


@pytest_asyncio.fixture
async def redis_client(test_redis_url: str) -> AsyncGenerator[Redis, None]:
    """
    Create a Redis client for testing.

    Automatically skips tests if Redis is not available.
    Clears the test database before and after each test.
    """
    client: Redis = Redis.from_url(test_redis_url, decode_responses=True)

    # Ensure we can connect
    try:
        await client.ping()
    except Exception as e:
        await client.aclose()
        pytest.skip(f"Redis not available for testing: {e}")

    # Clear test database before test
    await client.flushdb()

    yield client

    # Cleanup after test
    try:
        await client.flushdb()
    finally:
        await client.aclose()


@pytest.fixture
def make_key() -> Callable[[], str]:
    """Unique cache keys per call."""
    counter = itertools.count(1)
    return lambda: f"testkey:{next(counter)}"


@pytest.fixture
def mock_env_memory(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set environment variables for the memory store."""
    monkeypatch.setenv("CACHE_STORE", "memory")


@pytest.fixture
def mock_env_redis(monkeypatch: pytest.MonkeyPatch, test_redis_url: str) -> None:
    """Set environment variables for the Redis store."""
    monkeypatch.setenv("CACHE_STORE", "redis")
    monkeypatch.setenv("REDIS_URL", test_redis_url)
    monkeypatch.setenv("REDIS_MAX_CONNECTIONS", "5")
    monkeypatch.setenv("REDIS_SOCKET_TIMEOUT", "2")


@pytest.fixture
def sample_cache_data() -> dict[str, Any]:
    """Sample data for cache testing, including falsy values."""
    return {
        "simple_string": "hello",
        "empty_string": "",
        "simple_int": 42,
        "zero": 0,
        "simple_float": 3.14,
        "simple_bool": True,
        "false": False,
        "simple_none": None,
        "non_ascii": {"name": "Zoë", "city": "Zürich", "greeting": "こんにちは"},
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
def reset_config() -> Generator[None, None, None]:
    """Drop the loaded configuration after each test to prevent state leakage."""
    yield
    from cashbox.config import loader

    loader._config_instance = None
