from __future__ import annotations

from typing import Any


class MemoryStorage:
    """Process-local storage; contents are lost when the process exits."""

    def __init__(self) -> None:
        self._storage: dict[str, Any] = {}

    def set(self, key: str, value: Any) -> None:
        self._storage[key] = value

    def get(self, key: str) -> Any:
        return self._storage.get(key)

    def remove(self, key: str) -> None:
        self._storage.pop(key, None)

    def clear(self) -> None:
        self._storage = {}

    def save(self) -> None:
        # writes are immediate
        return None

    def keys(self) -> list[str]:
        return list(self._storage)

    def all(self) -> dict[str, Any]:
        return dict(self._storage)
