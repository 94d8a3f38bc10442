from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Iterable, Optional


class FieldOperation(ABC):
    """
    A pending mutation to one field of a remote-backed object.

    Operations are immutable values. The owning object keeps at most one
    pending operation per key: every new mutation is folded onto the pending
    one with ``merge_with_previous`` and the result replaces it. When the
    server confirms a save, ``apply`` replays the operation on the
    authoritative value.
    """

    @abstractmethod
    def encode(self) -> Any:
        """Wire representation sent in the save request body."""

    @abstractmethod
    def apply(self, old_value: Any, obj: Any, key: Optional[str]) -> Any:
        """
        Compute the field's new value from its previous value.

        Args:
            old_value: Previous value of the field, None when absent
            obj: Object owning the field (may be None outside an object)
            key: Field name (may be None outside an object)

        Returns:
            The new value; None means the key is absent afterwards
        """

    @abstractmethod
    def merge_with_previous(self, previous: Optional["FieldOperation"]) -> "FieldOperation":
        """
        Fold this operation onto the operation already pending for the key.

        ``previous`` is never modified; a new operation (or ``self``) is returned.

        Raises:
            InvalidMergeError: If this operation cannot follow ``previous``
        """


def merge_operations(operations: Iterable[FieldOperation]) -> Optional[FieldOperation]:
    """Fold ``operations`` left to right into the single operation they amount to."""
    merged: Optional[FieldOperation] = None
    for operation in operations:
        merged = operation.merge_with_previous(merged)
    return merged
