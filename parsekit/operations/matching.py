"""
Comparison strategies used by the array operations.

Two distinct notions of "the same element" exist: the same remote record
(matched by object id) and the same local value (matched strictly). Callers
pick one explicitly instead of relying on ``==``.
"""
from __future__ import annotations

from typing import Any, Callable, Optional, Protocol, runtime_checkable

MatchStrategy = Callable[[Any, Any], bool]


@runtime_checkable
class RemoteObject(Protocol):
    """Local proxy for a server-side record."""

    @property
    def object_id(self) -> Optional[str]: ...

    @property
    def class_name(self) -> str: ...

    def is_dirty(self) -> bool: ...


def is_remote_object(value: Any) -> bool:
    return isinstance(value, RemoteObject)


def same_instance(existing: Any, candidate: Any) -> bool:
    return existing is candidate


def strict_equal(existing: Any, candidate: Any) -> bool:
    """Same instance, or same type and equal value (``1`` never matches ``1.0`` or ``True``)."""
    if existing is candidate:
        return True
    return type(existing) is type(candidate) and existing == candidate


def same_object_id(existing: Any, candidate: Any) -> bool:
    """Both are remote objects carrying the same non-null object id."""
    if not (is_remote_object(existing) and is_remote_object(candidate)):
        return False
    if existing.object_id is None or candidate.object_id is None:
        return False
    return existing.object_id == candidate.object_id


def unique_match(existing: Any, candidate: Any) -> bool:
    """Duplicate check for add-unique: by id for saved remote objects, strictly otherwise."""
    if is_remote_object(candidate) and candidate.object_id is not None:
        return same_object_id(existing, candidate)
    return strict_equal(existing, candidate)


def removal_match(existing: Any, candidate: Any) -> bool:
    """
    Whether ``existing`` should be dropped for removal ``candidate``.

    A remote object is only removable when it has no local modifications and
    its id equals the candidate's id.
    """
    if is_remote_object(existing):
        return (
            is_remote_object(candidate)
            and not existing.is_dirty()
            and existing.object_id == candidate.object_id
        )
    return strict_equal(existing, candidate)


def contains(values: list[Any], candidate: Any, match: MatchStrategy) -> bool:
    return any(match(existing, candidate) for existing in values)
