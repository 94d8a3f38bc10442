from __future__ import annotations

import os
import uuid
from collections.abc import Iterator

import pytest
from redis import Redis

from parsekit.config import StorageConfig

DEFAULT_TEST_REDIS_URL = "redis://127.0.0.1:6379/0"


@pytest.fixture(scope="session")
def redis_url() -> str:
    """
    Redis connection URL for storage tests.

    Set PARSEKIT_TEST_REDIS_URL to point at another server.
    """
    return os.environ.get("PARSEKIT_TEST_REDIS_URL", DEFAULT_TEST_REDIS_URL)


@pytest.fixture(scope="session")
def redis_client(redis_url: str) -> Iterator[Redis]:
    """
    Session-scoped Redis client.

    Tests using it are skipped when Redis is unreachable; the rest of the
    suite needs no external services.
    """
    client = Redis.from_url(redis_url, decode_responses=False)
    try:
        client.ping()
    except Exception as exc:  # pragma: no cover
        pytest.skip(f"Redis test server is not reachable at {redis_url!r}: {exc}")

    yield client

    client.close()


@pytest.fixture
def storage_config(redis_client: Redis, request: pytest.FixtureRequest) -> Iterator[StorageConfig]:
    """A StorageConfig with a per-test hash key, deleted afterwards."""
    key_prefix = f"parsekit_test:{request.node.name[:30]}:{uuid.uuid4().hex[:10]}"

    yield StorageConfig(key_prefix=key_prefix)

    redis_client.delete(key_prefix)
