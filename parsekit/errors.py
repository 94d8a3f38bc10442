from __future__ import annotations

from typing import Any


class ParseError(Exception):
    """Base exception for parsekit errors."""

    def __init__(self, message: str, code: int = 0) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class InvalidOperationError(ParseError):
    """A field operation was used in a way it does not support."""


class ConstructionError(InvalidOperationError):
    """A list-typed field operation was built from something that is not a list."""


class InvalidMergeError(InvalidOperationError):
    """A field operation cannot be folded onto the pending operation before it."""

    def __init__(self, message: str = "Operation is invalid after previous operation.") -> None:
        super().__init__(message)


class TypeConflictError(InvalidOperationError):
    """An operation was applied to a value of an incompatible type."""


class RelationConfigurationError(InvalidOperationError):
    """Objects in a relation operation disagree on their class, or there are none."""


class NotInitializedError(ParseError):
    """The SDK was used before initialize() was called."""


class ObjectStateError(ParseError):
    """An object was asked to do something its current local state does not allow."""


class ApiError(ParseError):
    """The server answered with an error payload."""


class TransportError(ParseError):
    """The HTTP request could not be completed."""


class StorageError(ParseError):
    """Failure in a storage backend."""


class AggregateError(ParseError):
    """
    Several entries of a batch request failed.

    Each entry of ``errors`` is a dict with ``error`` and ``code`` keys, plus
    ``object`` for batch saves.
    """

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message, 600)
        self.errors = list(errors or [])
