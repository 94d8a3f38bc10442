from __future__ import annotations

import numbers
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Optional

from ..encoding import encode
from ..errors import ConstructionError, InvalidMergeError, TypeConflictError
from .base import FieldOperation


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Number) and not isinstance(value, bool)


def _add_amount(value: Any, amount: Any) -> Any:
    if value is None:
        return amount
    if not _is_number(value):
        raise TypeConflictError("Cannot increment a non-number type.")
    return value + amount


@dataclass(frozen=True, eq=True)
class SetOperation(FieldOperation):
    """Overwrite the field. Always wins a merge."""

    value: Any
    associative: bool = False

    def encode(self) -> Any:
        if self.associative:
            if isinstance(self.value, Mapping):
                items = self.value.items()
            elif isinstance(self.value, Sequence) and not isinstance(self.value, (str, bytes)):
                items = ((str(i), item) for i, item in enumerate(self.value))
            else:
                raise TypeError(
                    f"associative SetOperation needs a mapping or sequence, got {type(self.value).__name__}"
                )
            return {str(k): encode(v, True) for k, v in items}
        return encode(self.value, True)

    def apply(self, old_value: Any, obj: Any, key: Optional[str]) -> Any:
        return self.value

    def merge_with_previous(self, previous: Optional[FieldOperation]) -> FieldOperation:
        return self


@dataclass(frozen=True, eq=True)
class DeleteOperation(FieldOperation):
    """Remove the field. Always wins a merge."""

    def encode(self) -> Any:
        return {"__op": "Delete"}

    def apply(self, old_value: Any, obj: Any, key: Optional[str]) -> Any:
        return None

    def merge_with_previous(self, previous: Optional[FieldOperation]) -> FieldOperation:
        return self


@dataclass(frozen=True, eq=True)
class IncrementOperation(FieldOperation):
    """Add ``amount`` to a numeric field (absent counts as 0)."""

    amount: Any = 1

    def __post_init__(self) -> None:
        if not _is_number(self.amount):
            raise ConstructionError(
                f"IncrementOperation requires a number, got {type(self.amount).__name__}."
            )

    def encode(self) -> Any:
        return {"__op": "Increment", "amount": self.amount}

    def apply(self, old_value: Any, obj: Any, key: Optional[str]) -> Any:
        return _add_amount(old_value, self.amount)

    def merge_with_previous(self, previous: Optional[FieldOperation]) -> FieldOperation:
        if previous is None:
            return self
        if isinstance(previous, DeleteOperation):
            return SetOperation(self.amount)
        if isinstance(previous, SetOperation):
            return SetOperation(_add_amount(previous.value, self.amount))
        if isinstance(previous, IncrementOperation):
            return IncrementOperation(previous.amount + self.amount)
        raise InvalidMergeError()
