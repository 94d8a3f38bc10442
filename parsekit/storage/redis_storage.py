from __future__ import annotations

import json
import logging
from typing import Any, Optional

from redis import Redis
from redis.exceptions import RedisError

from ..config import StorageConfig
from ..errors import StorageError

logger = logging.getLogger(__name__)


class RedisStorage:
    """
    Storage shared across processes, kept in a single Redis hash.

    Each key is a hash field holding a JSON document. Writes go straight to
    Redis, so ``save()`` has nothing to flush. When ``ttl_s`` is configured
    the hash expiry is refreshed on every write.

    Usage:
        storage = RedisStorage(Redis.from_url("redis://localhost:6379/0"),
                               StorageConfig(key_prefix="myapp:parse"))
        parsekit.initialize(config, storage=storage)
    """

    def __init__(self, redis: Redis, config: Optional[StorageConfig] = None) -> None:
        self.redis = redis
        self.config = config or StorageConfig()

    @property
    def hash_key(self) -> str:
        return self.config.key_prefix

    def set(self, key: str, value: Any) -> None:
        try:
            payload = json.dumps(value)
        except (TypeError, ValueError) as exc:
            raise StorageError(f"Value for {key!r} is not JSON-serializable: {exc}") from exc

        try:
            pipe = self.redis.pipeline()
            pipe.hset(self.hash_key, key, payload)
            if self.config.ttl_s is not None:
                pipe.expire(self.hash_key, self.config.ttl_s)
            pipe.execute()
        except RedisError as exc:
            raise StorageError(f"Failed to store {key!r}: {exc}") from exc

    def get(self, key: str) -> Any:
        try:
            raw = self.redis.hget(self.hash_key, key)
        except RedisError as exc:
            raise StorageError(f"Failed to read {key!r}: {exc}") from exc
        if raw is None:
            return None
        return self._loads(key, raw)

    def remove(self, key: str) -> None:
        try:
            self.redis.hdel(self.hash_key, key)
        except RedisError as exc:
            raise StorageError(f"Failed to remove {key!r}: {exc}") from exc

    def clear(self) -> None:
        try:
            self.redis.delete(self.hash_key)
        except RedisError as exc:
            raise StorageError(f"Failed to clear storage: {exc}") from exc

    def save(self) -> None:
        # write-through
        return None

    def keys(self) -> list[str]:
        try:
            raw_keys = self.redis.hkeys(self.hash_key)
        except RedisError as exc:
            raise StorageError(f"Failed to list keys: {exc}") from exc
        return [k.decode() if isinstance(k, bytes) else k for k in raw_keys]

    def all(self) -> dict[str, Any]:
        try:
            raw = self.redis.hgetall(self.hash_key)
        except RedisError as exc:
            raise StorageError(f"Failed to read storage: {exc}") from exc
        result: dict[str, Any] = {}
        for k, v in raw.items():
            key = k.decode() if isinstance(k, bytes) else k
            result[key] = self._loads(key, v)
        return result

    def _loads(self, key: str, raw: Any) -> Any:
        if isinstance(raw, bytes):
            raw = raw.decode()
        try:
            return json.loads(raw)
        except ValueError as exc:
            logger.warning("Undecodable storage entry %r in %s", key, self.hash_key)
            raise StorageError(f"Stored value for {key!r} is not valid JSON") from exc
