from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from ..operations.relation import ParseRelationOperation

if TYPE_CHECKING:
    from ..query import ParseQuery
    from .object import ParseObject


class ParseRelation:
    """
    Many-to-many link from ``parent[key]`` to objects of ``target_class``.

    Adds and removes are recorded as relation operations on the parent and
    sent when the parent is saved; the members themselves are only reachable
    through ``query()``.
    """

    def __init__(self, parent: Optional["ParseObject"], key: Optional[str], target_class: Optional[str] = None) -> None:
        self.parent = parent
        self.key = key
        self.target_class = target_class

    def add(self, objects: Any) -> None:
        op = ParseRelationOperation(objects, None)
        self._parent()._perform_operation(self.key, op)
        self.target_class = op.target_class

    def remove(self, objects: Any) -> None:
        op = ParseRelationOperation(None, objects)
        self._parent()._perform_operation(self.key, op)
        self.target_class = op.target_class

    def query(self) -> "ParseQuery":
        from ..query import ParseQuery

        query = ParseQuery(self.target_class)
        query.related_to("object", self._parent().to_pointer())
        query.related_to("key", self.key)
        return query

    def encode(self) -> dict[str, Any]:
        return {"__type": "Relation", "className": self.target_class}

    def _parent(self) -> "ParseObject":
        if self.parent is None or self.key is None:
            raise ValueError("Relation is not bound to a parent object and key.")
        return self.parent

    def __repr__(self) -> str:
        return f"ParseRelation(key={self.key!r}, target_class={self.target_class!r})"
