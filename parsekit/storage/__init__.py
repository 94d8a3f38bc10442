from .base import StorageBackend
from .memory import MemoryStorage
from .redis_storage import RedisStorage

__all__ = ["StorageBackend", "MemoryStorage", "RedisStorage"]
