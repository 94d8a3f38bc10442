from __future__ import annotations

import copy
import logging
from typing import Any, Callable, Iterable, Optional, Union

from .client import get_client
from .encoding import encode
from .errors import ApiError, ObjectStateError
from .models.object import ParseObject, current_session_token

logger = logging.getLogger(__name__)

OBJECT_NOT_FOUND = 101

KeyOrKeys = Union[str, Iterable[str]]


def _as_keys(keys: KeyOrKeys) -> list[str]:
    if isinstance(keys, str):
        return [keys]
    return list(keys)


def _quote(value: str) -> str:
    return "\\Q" + value.replace("\\E", "\\E\\\\E\\Q") + "\\E"


class ParseQuery:
    """
    Builds ``where`` constraints for one class and runs them against the server.

    Every constraint method returns the query so calls can be chained.

    Usage:
        query = ParseQuery("GameScore")
        query.greater_than("score", 1000).descending("score").limit(10)
        for score in query.find():
            print(score.get("playerName"))
    """

    def __init__(self, class_name: str) -> None:
        if not class_name:
            raise ObjectStateError("A query requires a class name.")
        self.class_name = class_name
        self._where: dict[str, Any] = {}
        self._order_by: list[str] = []
        self._includes: list[str] = []
        self._selected_keys: list[str] = []
        self._skip = 0
        self._limit = -1
        self._count = False

    # -- constraints ---------------------------------------------------------

    def _add_condition(self, key: str, condition: str, value: Any) -> "ParseQuery":
        existing = self._where.get(key)
        if not isinstance(existing, dict):
            existing = {}
            self._where[key] = existing
        existing[condition] = encode(value, True)
        return self

    def equal_to(self, key: str, value: Any) -> "ParseQuery":
        if value is None:
            return self.does_not_exist(key)
        self._where[key] = encode(value, True)
        return self

    def not_equal_to(self, key: str, value: Any) -> "ParseQuery":
        return self._add_condition(key, "$ne", value)

    def less_than(self, key: str, value: Any) -> "ParseQuery":
        return self._add_condition(key, "$lt", value)

    def less_than_or_equal_to(self, key: str, value: Any) -> "ParseQuery":
        return self._add_condition(key, "$lte", value)

    def greater_than(self, key: str, value: Any) -> "ParseQuery":
        return self._add_condition(key, "$gt", value)

    def greater_than_or_equal_to(self, key: str, value: Any) -> "ParseQuery":
        return self._add_condition(key, "$gte", value)

    def starts_with(self, key: str, value: str) -> "ParseQuery":
        return self._add_condition(key, "$regex", "^" + _quote(value))

    def contained_in(self, key: str, values: Iterable[Any]) -> "ParseQuery":
        return self._add_condition(key, "$in", list(values))

    def not_contained_in(self, key: str, values: Iterable[Any]) -> "ParseQuery":
        return self._add_condition(key, "$nin", list(values))

    def contains_all(self, key: str, values: Iterable[Any]) -> "ParseQuery":
        return self._add_condition(key, "$all", list(values))

    def exists(self, key: str) -> "ParseQuery":
        return self._add_condition(key, "$exists", True)

    def does_not_exist(self, key: str) -> "ParseQuery":
        return self._add_condition(key, "$exists", False)

    def matches_query(self, key: str, query: "ParseQuery") -> "ParseQuery":
        return self._add_condition(key, "$inQuery", query._subquery())

    def does_not_match_query(self, key: str, query: "ParseQuery") -> "ParseQuery":
        return self._add_condition(key, "$notInQuery", query._subquery())

    def matches_key_in_query(self, key: str, query_key: str, query: "ParseQuery") -> "ParseQuery":
        """Match objects whose ``key`` equals ``query_key`` of some result of ``query``."""
        return self._add_condition(key, "$select", {"key": query_key, "query": query._subquery()})

    def does_not_match_key_in_query(self, key: str, query_key: str, query: "ParseQuery") -> "ParseQuery":
        return self._add_condition(key, "$dontSelect", {"key": query_key, "query": query._subquery()})

    def related_to(self, key: str, value: Any) -> "ParseQuery":
        return self._add_condition("$relatedTo", key, value)

    def near(self, key: str, point: Any) -> "ParseQuery":
        return self._add_condition(key, "$nearSphere", point)

    def within_radians(self, key: str, point: Any, max_distance: float) -> "ParseQuery":
        self.near(key, point)
        return self._add_condition(key, "$maxDistance", max_distance)

    def within_miles(self, key: str, point: Any, max_distance: float) -> "ParseQuery":
        return self.within_radians(key, point, max_distance / 3958.8)

    def within_kilometers(self, key: str, point: Any, max_distance: float) -> "ParseQuery":
        return self.within_radians(key, point, max_distance / 6371.0)

    def within_geo_box(self, key: str, southwest: Any, northeast: Any) -> "ParseQuery":
        return self._add_condition(key, "$within", {"$box": [southwest, northeast]})

    def _subquery(self) -> dict[str, Any]:
        params = self._options()
        params["className"] = self.class_name
        return params

    @classmethod
    def or_queries(cls, queries: list["ParseQuery"]) -> "ParseQuery":
        if not queries:
            raise ObjectStateError("or_queries requires at least one query.")
        class_name = queries[0].class_name
        if any(query.class_name != class_name for query in queries):
            raise ObjectStateError("All queries must be for the same class.")
        combined = cls(class_name)
        combined._where["$or"] = [dict(query._where) for query in queries]
        return combined

    # -- shaping -------------------------------------------------------------

    def select(self, keys: KeyOrKeys) -> "ParseQuery":
        self._selected_keys.extend(_as_keys(keys))
        return self

    def include_key(self, keys: KeyOrKeys) -> "ParseQuery":
        self._includes.extend(_as_keys(keys))
        return self

    def skip(self, n: int) -> "ParseQuery":
        self._skip = n
        return self

    def limit(self, n: int) -> "ParseQuery":
        self._limit = n
        return self

    def ascending(self, keys: KeyOrKeys) -> "ParseQuery":
        self._order_by = []
        return self.add_ascending(keys)

    def add_ascending(self, keys: KeyOrKeys) -> "ParseQuery":
        self._order_by.extend(_as_keys(keys))
        return self

    def descending(self, keys: KeyOrKeys) -> "ParseQuery":
        self._order_by = []
        return self.add_descending(keys)

    def add_descending(self, keys: KeyOrKeys) -> "ParseQuery":
        self._order_by.extend("-" + key for key in _as_keys(keys))
        return self

    def _options(self) -> dict[str, Any]:
        opts: dict[str, Any] = {}
        if self._where:
            opts["where"] = self._where
        if self._includes:
            opts["include"] = ",".join(self._includes)
        if self._selected_keys:
            opts["keys"] = ",".join(self._selected_keys)
        if self._limit >= 0:
            opts["limit"] = self._limit
        if self._skip > 0:
            opts["skip"] = self._skip
        if self._order_by:
            opts["order"] = ",".join(self._order_by)
        if self._count:
            opts["count"] = 1
        return opts

    # -- execution -----------------------------------------------------------

    def find(self, use_master_key: bool = False) -> list[ParseObject]:
        result = get_client().request(
            "GET",
            f"classes/{self.class_name}",
            self._options(),
            session_token=current_session_token(),
            use_master_key=use_master_key,
        )
        rows = result.get("results", []) if result else []
        output = []
        for row in rows:
            obj = ParseObject.create(self.class_name, row.get("objectId"))
            obj._merge_after_fetch_with_selected_keys(row, self._selected_keys)
            output.append(obj)
        logger.debug("Query on %s returned %d objects", self.class_name, len(output))
        return output

    def first(self, use_master_key: bool = False) -> Optional[ParseObject]:
        self._limit = 1
        results = self.find(use_master_key)
        return results[0] if results else None

    def count(self, use_master_key: bool = False) -> int:
        self._limit = 0
        self._count = True
        try:
            result = get_client().request(
                "GET",
                f"classes/{self.class_name}",
                self._options(),
                session_token=current_session_token(),
                use_master_key=use_master_key,
            )
        finally:
            self._count = False
            self._limit = -1
        return int(result["count"]) if result else 0

    def get(self, object_id: str, use_master_key: bool = False) -> ParseObject:
        """
        Fetch one object by id.

        Raises:
            ApiError: With code 101 if no such object is visible
        """
        self.equal_to("objectId", object_id)
        result = self.first(use_master_key)
        if result is None:
            raise ApiError("Object not found.", OBJECT_NOT_FOUND)
        return result

    def each(self, callback: Callable[[ParseObject], Any], use_master_key: bool = False, batch_size: int = 100) -> None:
        """
        Call ``callback`` for every matching object, paging by ``objectId``.

        Raises:
            ObjectStateError: If the query has an order, skip or limit
        """
        if self._order_by or self._skip or self._limit >= 0:
            raise ObjectStateError("Cannot iterate on a query with sort, skip, or limit.")

        query = ParseQuery(self.class_name)
        query._where = copy.deepcopy(self._where)
        query._includes = list(self._includes)
        query.limit(batch_size)
        query.ascending("objectId")

        while True:
            results = query.find(use_master_key)
            for obj in results:
                callback(obj)
            if len(results) < batch_size:
                return
            query.greater_than("objectId", results[-1].object_id)
