from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from contextlib import ExitStack
from datetime import datetime
from typing import Any, Callable, ClassVar, Iterable, Optional

from ..client import ParseClient, get_client
from ..encoding import decode, encode, format_date, parse_date
from ..errors import AggregateError, InvalidOperationError, ObjectStateError
from ..metrics import observe_batch
from ..operations.arrays import AddOperation, AddUniqueOperation, RemoveOperation
from ..operations.base import FieldOperation
from ..operations.relation import ParseRelationOperation
from ..operations.simple import DeleteOperation, IncrementOperation, SetOperation
from .acl import ParseACL
from .file import ParseFile
from .relation import ParseRelation

logger = logging.getLogger(__name__)

MAX_BATCH_SIZE = 40
PROTECTED_KEYS = frozenset({"objectId", "createdAt", "updatedAt", "className"})

_registered_subclasses: dict[str, type["ParseObject"]] = {}


class ParseObject:
    """
    Local proxy for one record of a remote class.

    Mutators never touch the network. Each one builds a field operation,
    applies it to the locally estimated data and folds it into the pending
    operation for that key. ``save()`` sends the pending operations; once the
    server confirms, they are replayed on the server snapshot.

    Pending operations live in a queue of maps. Mutators always fold into the
    last map. A save freezes the last map and opens a new one, so mutations
    made while the request is in flight are kept apart and survive both
    success and failure of that save.

    Usage:
        score = ParseObject("GameScore")
        score.set("playerName", "Sean Plott")
        score.increment("score", 1337)
        score.add_unique("skills", ["flying", "kungfu"])
        score.save()
    """

    parse_class_name: ClassVar[Optional[str]] = None

    def __init__(self, class_name: Optional[str] = None, object_id: Optional[str] = None, is_pointer: bool = False) -> None:
        subclass_name = type(self).parse_class_name
        if class_name is None:
            class_name = subclass_name
        if class_name is None:
            raise ObjectStateError(
                "You must specify a class name or register the appropriate subclass "
                "when creating a new object."
            )
        if subclass_name is not None and class_name != subclass_name:
            raise ObjectStateError(
                f"{type(self).__name__} objects must have class {subclass_name!r}, got {class_name!r}. "
                "Use ParseObject.create() to build objects of other classes."
            )

        self._class_name = class_name
        self._object_id = object_id
        self._created_at: Optional[datetime] = None
        self._updated_at: Optional[datetime] = None
        self._server_data: dict[str, Any] = {}
        self._operation_queue: list[dict[str, FieldOperation]] = [{}]
        self._estimated_data: dict[str, Any] = {}
        self._data_availability: set[str] = set()
        self._has_been_fetched = not (object_id or is_pointer)
        # guards the operation queue and derived data
        self._lock = threading.RLock()
        # held for the duration of a save request
        self._save_lock = threading.Lock()

    # -- subclass registry ---------------------------------------------------

    @classmethod
    def register_subclass(cls, subclass: Optional[type["ParseObject"]] = None) -> type["ParseObject"]:
        """
        Register ``subclass`` (or ``cls``) under its ``parse_class_name``.

        Can be used as a class decorator.
        """
        target = subclass if subclass is not None else cls
        if not target.parse_class_name:
            raise ObjectStateError("Cannot register a subclass that does not have a parse_class_name")
        _registered_subclasses[target.parse_class_name] = target
        return target

    @classmethod
    def unregister_subclass(cls, class_name: str) -> None:
        _registered_subclasses.pop(class_name, None)

    @classmethod
    def has_registered_subclass(cls, class_name: str) -> bool:
        return class_name in _registered_subclasses

    @classmethod
    def create(cls, class_name: str, object_id: Optional[str] = None, is_pointer: bool = False) -> "ParseObject":
        subclass = _registered_subclasses.get(class_name)
        if subclass is not None:
            return subclass(class_name, object_id, is_pointer)
        return ParseObject(class_name, object_id, is_pointer)

    @classmethod
    def query(cls) -> Any:
        from ..query import ParseQuery

        if not cls.parse_class_name or cls.parse_class_name not in _registered_subclasses:
            raise ObjectStateError("Cannot create a query for an unregistered subclass.")
        return ParseQuery(cls.parse_class_name)

    # -- identity ------------------------------------------------------------

    @property
    def class_name(self) -> str:
        return self._class_name

    @property
    def object_id(self) -> Optional[str]:
        return self._object_id

    @property
    def created_at(self) -> Optional[datetime]:
        return self._created_at

    @property
    def updated_at(self) -> Optional[datetime]:
        return self._updated_at

    def to_pointer(self) -> dict[str, Any]:
        if not self._object_id:
            raise ObjectStateError("Can't serialize an unsaved ParseObject")
        return {"__type": "Pointer", "className": self._class_name, "objectId": self._object_id}

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._class_name}:{self._object_id or '(unsaved)'}>"

    # -- reading -------------------------------------------------------------

    def get(self, key: str, default: Any = None) -> Any:
        if not self._is_data_available(key):
            raise ObjectStateError("ParseObject has no data for this key. Call fetch() to get the data.")
        return self._estimated_data.get(key, default)

    def __getitem__(self, key: str) -> Any:
        return self.get(key)

    def __setitem__(self, key: str, value: Any) -> None:
        self.set(key, value)

    def __delitem__(self, key: str) -> None:
        self.unset(key)

    def __contains__(self, key: object) -> bool:
        return key in self._estimated_data

    def has(self, key: str) -> bool:
        return key in self._estimated_data and self._estimated_data[key] is not None

    def keys(self) -> list[str]:
        return list(self._estimated_data)

    def is_data_available(self) -> bool:
        return self._has_been_fetched

    def _is_data_available(self, key: str) -> bool:
        return self._has_been_fetched or key in self._data_availability

    def is_key_dirty(self, key: str) -> bool:
        return any(key in ops for ops in self._operation_queue)

    def is_dirty(self) -> bool:
        """Unsaved, or carrying pending operations here or in any referenced object."""
        return self._is_dirty(True)

    def _is_dirty(self, consider_children: bool) -> bool:
        if self._object_id is None or any(self._operation_queue):
            return True
        return consider_children and self._has_dirty_children()

    def _has_dirty_children(self) -> bool:
        dirty = False

        def visit(value: Any) -> None:
            nonlocal dirty
            if isinstance(value, ParseObject) and value is not self and value._is_dirty(False):
                dirty = True

        _traverse(self._children_snapshot(), visit, deep=True, seen={id(self)})
        return dirty

    # -- mutators ------------------------------------------------------------

    def set(self, key: str, value: Any) -> None:
        _check_key(key)
        if isinstance(value, tuple):
            value = list(value)
        self._perform_operation(key, SetOperation(value))

    def set_mapping(self, key: str, value: Mapping[str, Any]) -> None:
        """Set ``value`` so that it is always sent as a JSON object, even when empty."""
        _check_key(key)
        self._perform_operation(key, SetOperation(dict(value), associative=True))

    def unset(self, key: str) -> None:
        _check_key(key)
        self._perform_operation(key, DeleteOperation())

    delete = unset

    def increment(self, key: str, amount: Any = 1) -> None:
        _check_key(key)
        self._perform_operation(key, IncrementOperation(amount))

    def decrement(self, key: str, amount: Any = 1) -> None:
        self.increment(key, -amount)

    def add(self, key: str, values: Any) -> None:
        _check_key(key)
        self._perform_operation(key, AddOperation(values))

    def add_unique(self, key: str, values: Any) -> None:
        _check_key(key)
        self._perform_operation(key, AddUniqueOperation(values))

    def remove(self, key: str, values: Any) -> None:
        _check_key(key)
        if not isinstance(values, (list, tuple)):
            values = [values]
        self._perform_operation(key, RemoveOperation(values))

    def relation(self, key: str, target_class: Optional[str] = None) -> ParseRelation:
        relation = ParseRelation(self, key, target_class)
        existing = self._estimated_data.get(key)
        if target_class is None and isinstance(existing, ParseRelation):
            relation.target_class = existing.target_class
        return relation

    def get_acl(self) -> Optional[ParseACL]:
        acl = self._estimated_data.get("ACL")
        return acl.copy() if acl is not None else None

    def set_acl(self, acl: ParseACL) -> None:
        self._perform_operation("ACL", SetOperation(acl))

    def revert(self) -> None:
        """Discard every pending operation not yet handed to a save."""
        with self._lock:
            self._operation_queue[-1] = {}
            self._rebuild_estimated_data()

    def clear(self) -> None:
        for key in list(self._estimated_data):
            self.unset(key)

    def _perform_operation(self, key: str, operation: FieldOperation) -> None:
        with self._lock:
            pending = self._operation_queue[-1]
            new_value = operation.apply(self._estimated_data.get(key), self, key)
            merged = operation.merge_with_previous(pending.get(key))

            if new_value is not None:
                self._estimated_data[key] = new_value
            else:
                self._estimated_data.pop(key, None)
            pending[key] = merged
            self._data_availability.add(key)

    def pending_operations(self) -> dict[str, FieldOperation]:
        """Operations that the next save would send."""
        with self._lock:
            return dict(self._operation_queue[-1])

    # -- local state ---------------------------------------------------------

    def _apply_operations(self, operations: Mapping[str, FieldOperation], target: dict[str, Any]) -> None:
        for key, operation in operations.items():
            new_value = operation.apply(target.get(key), self, key)
            if new_value is None:
                target.pop(key, None)
            else:
                target[key] = new_value
            self._data_availability.add(key)

    def _rebuild_estimated_data(self, operation_queue: Optional[list[dict[str, FieldOperation]]] = None) -> None:
        if operation_queue is None:
            operation_queue = self._operation_queue
        estimated = dict(self._server_data)
        for operations in operation_queue:
            self._apply_operations(operations, estimated)
        self._estimated_data = estimated

    def _merge_magic_fields(self, data: dict[str, Any]) -> None:
        if "objectId" in data:
            self._object_id = data.pop("objectId")
        if "createdAt" in data:
            self._created_at = _to_datetime(data.pop("createdAt"))
        if "updatedAt" in data:
            self._updated_at = _to_datetime(data.pop("updatedAt"))

    def _merge_from_server(self, data: Mapping[str, Any], complete_data: bool = True) -> None:
        self._has_been_fetched = self._has_been_fetched or complete_data
        data = dict(data)
        self._merge_magic_fields(data)
        for key, value in data.items():
            if key in ("__type", "className"):
                continue
            decoded = decode(value)
            if isinstance(decoded, dict) and decoded.get("__type") == "Relation":
                decoded = ParseRelation(self, key, decoded.get("className"))
            elif key == "ACL" and isinstance(decoded, Mapping):
                decoded = ParseACL.from_json(decoded)
            self._server_data[key] = decoded
            self._data_availability.add(key)
        if self._updated_at is None and self._created_at is not None:
            self._updated_at = self._created_at

    def _merge_after_fetch(self, result: Mapping[str, Any], complete_data: bool = True) -> None:
        """Replace the server snapshot; server keys win over pending operations."""
        with self._lock:
            for key in result:
                for operations in self._operation_queue:
                    operations.pop(key, None)
            self._server_data = {}
            self._data_availability = set()
            self._merge_from_server(result, complete_data)
            self._rebuild_estimated_data()

    def _merge_after_fetch_with_selected_keys(self, result: Mapping[str, Any], selected_keys: Iterable[str]) -> None:
        selected_keys = list(selected_keys)
        self._merge_after_fetch(result, not selected_keys)
        self._data_availability.update(selected_keys)

    def _merge_from_object(self, other: "ParseObject") -> None:
        with self._lock:
            self._object_id = other.object_id
            self._created_at = other.created_at
            self._updated_at = other.updated_at
            self._server_data = dict(other._server_data)
            self._operation_queue = [{}]
            self._has_been_fetched = True
            self._rebuild_estimated_data()

    # -- save protocol -------------------------------------------------------

    def _begin_save(self) -> dict[str, FieldOperation]:
        with self._lock:
            frozen = self._operation_queue[-1]
            self._operation_queue.append({})
            return frozen

    def _finish_save(self, result: Mapping[str, Any]) -> None:
        """Commit the oldest frozen map; if this raises, the queue is left as it was."""
        with self._lock:
            previous = self._server_data
            server_data = dict(previous)
            self._apply_operations(self._operation_queue[0], server_data)
            self._server_data = server_data
            try:
                self._merge_from_server(result)
                self._rebuild_estimated_data(self._operation_queue[1:])
            except Exception:
                self._server_data = previous
                raise
            del self._operation_queue[0]

    def _rollback_save(self) -> None:
        """Put the operations of a failed save back underneath any newer ones."""
        with self._lock:
            frozen = self._operation_queue.pop(0)
            newer = self._operation_queue[0]
            merged = dict(frozen)
            for key, operation in newer.items():
                previous = frozen.get(key)
                try:
                    merged[key] = operation.merge_with_previous(previous)
                except InvalidOperationError:
                    logger.warning(
                        "Dropping unsaved %s on %s.%s: cannot merge with newer %s",
                        type(previous).__name__,
                        self._class_name,
                        key,
                        type(operation).__name__,
                    )
                    merged[key] = operation
            self._operation_queue[0] = merged
            self._rebuild_estimated_data()

    def _save_request(self, operations: Mapping[str, FieldOperation]) -> tuple[str, str, dict[str, Any]]:
        body = {key: operation.encode() for key, operation in operations.items()}
        if self._object_id:
            return "PUT", f"classes/{self._class_name}/{self._object_id}", body
        return "POST", f"classes/{self._class_name}", body

    def _pending_relation_objects(self) -> list[Any]:
        objects: list[Any] = []
        for operations in self._operation_queue:
            for operation in operations.values():
                if isinstance(operation, ParseRelationOperation):
                    objects.extend(operation.objects_to_add)
                    objects.extend(operation.objects_to_remove)
        return objects

    def _children_snapshot(self) -> list[Any]:
        """Values that may reference other objects, copied under the lock."""
        with self._lock:
            return [dict(self._estimated_data), self._pending_relation_objects()]

    def _can_be_serialized(self) -> bool:
        serializable = True

        def visit(value: Any) -> None:
            nonlocal serializable
            if isinstance(value, ParseObject) and value.object_id is None:
                serializable = False

        _traverse(self._children_snapshot(), visit, deep=False)
        return serializable

    # -- network -------------------------------------------------------------

    def save(self, use_master_key: bool = False) -> None:
        """
        Save this object and every unsaved object it references.

        Raises:
            ApiError: If the server rejects the save
            AggregateError: If some objects of a batch failed
            ObjectStateError: If the references form a cycle of unsaved objects
        """
        if not self.is_dirty():
            return
        self._deep_save(self, use_master_key)

    @classmethod
    def save_all(cls, objects: Iterable["ParseObject"], use_master_key: bool = False) -> None:
        cls._deep_save(list(objects), use_master_key)

    @classmethod
    def _deep_save(cls, target: Any, use_master_key: bool) -> None:
        client = get_client()
        session_token = current_session_token()
        children, files = _find_unsaved_children(target)

        for file in files:
            file.save()

        remaining: list[ParseObject] = []
        for child in children:
            if not any(child is existing for existing in remaining):
                remaining.append(child)

        while remaining:
            batch: list[ParseObject] = []
            deferred: list[ParseObject] = []
            for obj in remaining:
                if len(batch) < MAX_BATCH_SIZE and obj._can_be_serialized():
                    batch.append(obj)
                else:
                    deferred.append(obj)
            remaining = deferred

            if not batch:
                raise ObjectStateError("Tried to save a batch with a cycle.")
            _save_batch(client, batch, session_token, use_master_key)

    def fetch(self, use_master_key: bool = False) -> "ParseObject":
        if not self._object_id:
            raise ObjectStateError("Cannot fetch an object that has not been saved.")
        result = get_client().request(
            "GET",
            f"classes/{self._class_name}/{self._object_id}",
            session_token=current_session_token(),
            use_master_key=use_master_key,
        )
        self._merge_after_fetch(result)
        return self

    @classmethod
    def fetch_all(cls, objects: list["ParseObject"], use_master_key: bool = False) -> list["ParseObject"]:
        from ..query import ParseQuery

        if not objects:
            return objects
        class_name = objects[0].class_name
        object_ids = []
        for obj in objects:
            if obj.class_name != class_name:
                raise ObjectStateError("All objects should be of the same class.")
            if not obj.object_id:
                raise ObjectStateError("All objects must have an ID.")
            object_ids.append(obj.object_id)

        query = ParseQuery(class_name)
        query.contained_in("objectId", object_ids)
        query.limit(len(object_ids))
        fetched = {result.object_id: result for result in query.find(use_master_key)}

        for obj in objects:
            if obj.object_id not in fetched:
                raise ObjectStateError("All objects must exist on the server.")
            obj._merge_from_object(fetched[obj.object_id])
        return objects

    def destroy(self, use_master_key: bool = False) -> None:
        if not self._object_id:
            return
        get_client().request(
            "DELETE",
            f"classes/{self._class_name}/{self._object_id}",
            session_token=current_session_token(),
            use_master_key=use_master_key,
        )

    @classmethod
    def destroy_all(cls, objects: Iterable["ParseObject"], use_master_key: bool = False) -> None:
        objects = list(objects)
        if not objects:
            return
        client = get_client()
        session_token = current_session_token()
        errors: list[dict[str, Any]] = []
        for start in range(0, len(objects), MAX_BATCH_SIZE):
            errors.extend(_destroy_batch(client, objects[start:start + MAX_BATCH_SIZE], session_token, use_master_key))
        if errors:
            raise AggregateError("Errors during batch destroy.", errors)

    # -- serialization -------------------------------------------------------

    def encode(self) -> dict[str, Any]:
        """Full JSON snapshot, readable back with ``from_json``."""
        out: dict[str, Any] = {"__type": "Object", "className": self._class_name}
        if self._object_id:
            out["objectId"] = self._object_id
        if self._created_at:
            out["createdAt"] = format_date(self._created_at)
        if self._updated_at:
            out["updatedAt"] = format_date(self._updated_at)
        for key, value in self._estimated_data.items():
            out[key] = encode(value, True)
        return out

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "ParseObject":
        obj = ParseObject.create(data["className"])
        obj._merge_after_fetch({k: v for k, v in data.items() if k not in ("__type", "className")})
        return obj


def _check_key(key: str) -> None:
    if not key:
        raise ObjectStateError("key may not be empty.")
    if key in PROTECTED_KEYS:
        raise ObjectStateError(f"Protected field {key!r} could not be set.")


def _to_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    if isinstance(value, Mapping):
        return parse_date(value["iso"])
    return parse_date(value)


def current_session_token() -> Optional[str]:
    from .user import ParseUser

    user = ParseUser.current_user()
    return user.session_token if user is not None else None


def _traverse(value: Any, visit: Callable[[Any], None], deep: bool, seen: Optional[set[int]] = None) -> None:
    """Visit ``value`` and everything nested in it, children before parents."""
    if seen is None:
        seen = set()
    if isinstance(value, ParseObject):
        if id(value) in seen:
            return
        seen.add(id(value))
        if deep:
            _traverse(value._children_snapshot(), visit, deep, seen)
        visit(value)
        return
    if isinstance(value, (ParseRelation, ParseFile)):
        visit(value)
        return
    if isinstance(value, Mapping):
        for item in value.values():
            _traverse(item, visit, deep, seen)
    elif isinstance(value, (list, tuple)):
        for item in value:
            _traverse(item, visit, deep, seen)
    visit(value)


def _find_unsaved_children(target: Any) -> tuple[list[ParseObject], list[ParseFile]]:
    children: list[ParseObject] = []
    files: list[ParseFile] = []

    def visit(value: Any) -> None:
        if isinstance(value, ParseObject):
            if value._is_dirty(False):
                children.append(value)
        elif isinstance(value, ParseFile):
            if not value.is_saved():
                files.append(value)

    _traverse(target, visit, deep=True)
    return children, files


def _save_batch(
    client: ParseClient,
    batch: list[ParseObject],
    session_token: Optional[str],
    use_master_key: bool,
) -> None:
    # locks are taken in a fixed order so concurrent batches cannot deadlock
    with ExitStack() as stack:
        for obj in sorted(batch, key=id):
            stack.enter_context(obj._save_lock)

        begun = 0
        settled: set[int] = set()
        try:
            requests = []
            for obj in batch:
                frozen = obj._begin_save()
                begun += 1
                method, path, body = obj._save_request(frozen)
                requests.append({"method": method, "path": path, "body": body})

            if len(batch) == 1:
                req = requests[0]
                result = client.request(req["method"], req["path"], req["body"], session_token, use_master_key)
                if result is None:
                    raise ObjectStateError(f"Save of {batch[0]!r} returned no result.")
                batch[0]._finish_save(result)
                settled.add(0)
                return

            for req in requests:
                req["path"] = client.batch_path(req["path"])
            results = client.request("POST", "batch", {"requests": requests}, session_token, use_master_key)
            results = results or []

            errors: list[dict[str, Any]] = []
            for index, obj in enumerate(batch):
                entry = results[index] if index < len(results) else {}
                if "success" in entry:
                    obj._finish_save(entry["success"])
                elif "error" in entry:
                    obj._rollback_save()
                    errors.append({
                        "error": entry["error"].get("error"),
                        "code": entry["error"].get("code", -1),
                        "object": obj,
                    })
                else:
                    obj._rollback_save()
                    errors.append({"error": "Unknown error in batch save.", "code": -1, "object": obj})
                settled.add(index)

            observe_batch("save", len(batch) - len(errors), len(errors))
            if errors:
                logger.warning("Batch save: %d of %d objects failed", len(errors), len(batch))
                raise AggregateError("Errors during batch save.", errors)
        finally:
            for index, obj in enumerate(batch[:begun]):
                if index not in settled:
                    obj._rollback_save()


def _destroy_batch(
    client: ParseClient,
    objects: list[ParseObject],
    session_token: Optional[str],
    use_master_key: bool,
) -> list[dict[str, Any]]:
    requests = [
        {"method": "DELETE", "path": client.batch_path(f"classes/{obj.class_name}/{obj.object_id}")}
        for obj in objects
    ]
    results = client.request("POST", "batch", {"requests": requests}, session_token, use_master_key) or []

    errors = []
    for index, obj in enumerate(objects):
        entry = results[index] if index < len(results) else {}
        if "error" in entry:
            errors.append({
                "error": entry["error"].get("error"),
                "code": entry["error"].get("code", -1),
                "object": obj,
            })
    observe_batch("destroy", len(objects) - len(errors), len(errors))
    if errors:
        logger.warning("Batch destroy: %d of %d objects failed", len(errors), len(objects))
    return errors
