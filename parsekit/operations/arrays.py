from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Optional

from ..encoding import encode
from ..errors import ConstructionError, InvalidMergeError
from .base import FieldOperation
from .matching import contains, removal_match, unique_match
from .simple import DeleteOperation, SetOperation


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


@dataclass(frozen=True, eq=True)
class _ListOperation(FieldOperation):
    op_name: ClassVar[str] = ""

    objects: tuple[Any, ...]

    def __post_init__(self) -> None:
        if not isinstance(self.objects, (list, tuple)):
            raise ConstructionError(f"{type(self).__name__} requires a list.")
        object.__setattr__(self, "objects", tuple(self.objects))

    def encode(self) -> Any:
        return {"__op": self.op_name, "objects": encode(list(self.objects), True)}


class AddOperation(_ListOperation):
    """Append values to an array field, duplicates kept."""

    op_name = "Add"

    def apply(self, old_value: Any, obj: Any, key: Optional[str]) -> Any:
        if not old_value:
            return list(self.objects)
        return _as_list(old_value) + list(self.objects)

    def merge_with_previous(self, previous: Optional[FieldOperation]) -> FieldOperation:
        if previous is None:
            return self
        if isinstance(previous, DeleteOperation):
            return SetOperation(list(self.objects))
        if isinstance(previous, SetOperation):
            return SetOperation(_as_list(previous.value) + list(self.objects))
        if isinstance(previous, AddOperation):
            return SetOperation(list(previous.objects) + list(self.objects))
        raise InvalidMergeError()


class AddUniqueOperation(_ListOperation):
    """Append values to an array field unless already present."""

    op_name = "AddUnique"

    def apply(self, old_value: Any, obj: Any, key: Optional[str]) -> Any:
        if not old_value:
            return list(self.objects)
        result = _as_list(old_value)
        for candidate in self.objects:
            if not contains(result, candidate, unique_match):
                result.append(candidate)
        return result

    def merge_with_previous(self, previous: Optional[FieldOperation]) -> FieldOperation:
        if previous is None:
            return self
        if isinstance(previous, DeleteOperation):
            return SetOperation(list(self.objects))
        if isinstance(previous, SetOperation):
            return SetOperation(self.apply(previous.value, None, None))
        if isinstance(previous, AddUniqueOperation):
            return AddUniqueOperation(self.apply(list(previous.objects), None, None))
        raise InvalidMergeError()


class RemoveOperation(_ListOperation):
    """Drop every matching value from an array field."""

    op_name = "Remove"

    def apply(self, old_value: Any, obj: Any, key: Optional[str]) -> Any:
        if not old_value:
            return []
        return [
            existing
            for existing in _as_list(old_value)
            if not any(removal_match(existing, candidate) for candidate in self.objects)
        ]

    def merge_with_previous(self, previous: Optional[FieldOperation]) -> FieldOperation:
        if previous is None:
            return self
        if isinstance(previous, DeleteOperation):
            return previous
        if isinstance(previous, SetOperation):
            return SetOperation(self.apply(previous.value, None, None))
        if isinstance(previous, RemoveOperation):
            return RemoveOperation(list(previous.objects) + list(self.objects))
        raise InvalidMergeError()
