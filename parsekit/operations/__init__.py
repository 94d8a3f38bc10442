from typing import Union

from .arrays import AddOperation, AddUniqueOperation, RemoveOperation
from .base import FieldOperation, merge_operations
from .relation import ParseRelationOperation, RelationBuckets
from .simple import DeleteOperation, IncrementOperation, SetOperation

# Closed set of operation variants; every merge_with_previous handles each
# of these explicitly or raises InvalidMergeError.
AnyFieldOperation = Union[
    SetOperation,
    DeleteOperation,
    IncrementOperation,
    AddOperation,
    AddUniqueOperation,
    RemoveOperation,
    ParseRelationOperation,
]

__all__ = [
    "AnyFieldOperation",
    "FieldOperation",
    "SetOperation",
    "DeleteOperation",
    "IncrementOperation",
    "AddOperation",
    "AddUniqueOperation",
    "RemoveOperation",
    "ParseRelationOperation",
    "RelationBuckets",
    "merge_operations",
]
