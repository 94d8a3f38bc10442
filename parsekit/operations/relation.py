from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Optional

from ..encoding import encode
from ..errors import InvalidMergeError, RelationConfigurationError
from .base import FieldOperation


def _as_list(objects: Any) -> list[Any]:
    if objects is None:
        return []
    if isinstance(objects, (list, tuple)):
        return list(objects)
    return [objects]


@dataclass(frozen=True)
class RelationBuckets:
    """
    Objects on one side of a relation operation.

    Saved objects are keyed by object id; unsaved objects have no id yet and
    are kept apart in ``pending`` until a later save gives them one.
    """

    identified: Mapping[str, Any] = field(default_factory=dict)
    pending: tuple[Any, ...] = ()

    def adding(self, objects: Iterable[Any]) -> "RelationBuckets":
        identified = dict(self.identified)
        pending = list(self.pending)
        for obj in objects:
            if obj.object_id is None:
                if not any(existing is obj for existing in pending):
                    pending.append(obj)
            else:
                identified[obj.object_id] = obj
        return RelationBuckets(identified, tuple(pending))

    def removing(self, objects: Iterable[Any]) -> "RelationBuckets":
        identified = dict(self.identified)
        pending = list(self.pending)
        for obj in objects:
            if obj.object_id is None:
                pending = [existing for existing in pending if existing is not obj]
            else:
                identified.pop(obj.object_id, None)
        return RelationBuckets(identified, tuple(pending))

    def flatten(self) -> list[Any]:
        return list(self.identified.values()) + list(self.pending)

    def __bool__(self) -> bool:
        return bool(self.identified) or bool(self.pending)


class ParseRelationOperation(FieldOperation):
    """
    Add objects to and/or remove objects from a relation field.

    All objects must share one class, which becomes ``target_class``.
    """

    def __init__(self, objects_to_add: Any = None, objects_to_remove: Any = None) -> None:
        to_add = _as_list(objects_to_add)
        to_remove = _as_list(objects_to_remove)

        target_class: Optional[str] = None
        for obj in to_add + to_remove:
            if target_class is None:
                target_class = obj.class_name
            elif obj.class_name != target_class:
                raise RelationConfigurationError(
                    "All objects in a relation must be of the same class."
                )
        if target_class is None:
            raise RelationConfigurationError(
                "Cannot create a ParseRelationOperation with no objects."
            )

        self._target_class = target_class
        self._to_add = RelationBuckets().adding(to_add)
        self._to_remove = RelationBuckets().adding(to_remove)

    @property
    def target_class(self) -> str:
        return self._target_class

    @property
    def objects_to_add(self) -> list[Any]:
        return self._to_add.flatten()

    @property
    def objects_to_remove(self) -> list[Any]:
        return self._to_remove.flatten()

    def encode(self) -> Any:
        add_op = None
        remove_op = None
        if self._to_add:
            add_op = {"__op": "AddRelation", "objects": encode(self._to_add.flatten(), True)}
        if self._to_remove:
            remove_op = {"__op": "RemoveRelation", "objects": encode(self._to_remove.flatten(), True)}
        if add_op is not None and remove_op is not None:
            return {"__op": "Batch", "ops": [add_op, remove_op]}
        return add_op if add_op is not None else remove_op

    def apply(self, old_value: Any, obj: Any, key: Optional[str]) -> Any:
        from ..models.relation import ParseRelation

        if old_value is None:
            return ParseRelation(obj, key, self._target_class)
        if isinstance(old_value, ParseRelation):
            if old_value.target_class is not None and old_value.target_class != self._target_class:
                raise RelationConfigurationError(
                    f"Related object must be of class {self._target_class}, "
                    f"but {old_value.target_class} was passed in."
                )
            return old_value
        raise InvalidMergeError()

    def merge_with_previous(self, previous: Optional[FieldOperation]) -> FieldOperation:
        if previous is None:
            return self
        if not isinstance(previous, ParseRelationOperation):
            raise InvalidMergeError()
        if previous.target_class != self._target_class:
            raise RelationConfigurationError(
                f"Related object must be of class {self._target_class}, "
                f"but {previous.target_class} was passed in."
            )

        added = self._to_add.flatten()
        removed = self._to_remove.flatten()
        to_add = previous._to_add.adding(added).removing(removed)
        to_remove = previous._to_remove.removing(added).adding(removed)
        return ParseRelationOperation(to_add.flatten(), to_remove.flatten())

    def __repr__(self) -> str:
        return (
            f"ParseRelationOperation(target_class={self._target_class!r}, "
            f"to_add={self.objects_to_add!r}, to_remove={self.objects_to_remove!r})"
        )
