from __future__ import annotations

from typing import Any, Protocol


class StorageBackend(Protocol):
    """
    Protocol for client-side key/value storage (current user, session data).

    Values must be JSON-serializable.
    """

    def set(self, key: str, value: Any) -> None:
        ...

    def get(self, key: str) -> Any:
        """Return the stored value, or None when the key is missing."""
        ...

    def remove(self, key: str) -> None:
        ...

    def clear(self) -> None:
        ...

    def save(self) -> None:
        """Flush pending writes, for backends that buffer them."""
        ...

    def keys(self) -> list[str]:
        ...

    def all(self) -> dict[str, Any]:
        ...
