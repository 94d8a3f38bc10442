"""
Wire codec between application values and the REST API's JSON.

Tagged objects (``{"__type": ...}``) carry dates, bytes, pointers, files,
geo points and relations.
"""
from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime, time, timezone
from typing import Any

from .errors import ObjectStateError


def format_date(value: date) -> str:
    """ISO-8601 in UTC with millisecond precision, e.g. ``2015-01-02T03:04:05.006Z``."""
    if not isinstance(value, datetime):
        value = datetime.combine(value, time(), tzinfo=timezone.utc)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


def parse_date(iso: str) -> datetime:
    if iso.endswith("Z"):
        iso = iso[:-1] + "+00:00"
    parsed = datetime.fromisoformat(iso)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def encode(value: Any, allow_objects: bool = True) -> Any:
    """
    Convert an application value to its JSON wire form.

    Args:
        value: Value to encode
        allow_objects: Whether object references may be encoded as pointers

    Raises:
        ObjectStateError: If an object reference is not allowed here, or is unsaved
        TypeError: If the value has no wire representation
    """
    if isinstance(value, date):
        return {"__type": "Date", "iso": format_date(value)}

    # object references become pointers; they also expose encode() for their full state
    if callable(getattr(value, "to_pointer", None)):
        if not allow_objects:
            raise ObjectStateError("ParseObjects not allowed here.")
        return value.to_pointer()

    if callable(getattr(value, "encode", None)) and not isinstance(value, (str, bytes)):
        return value.encode()

    if isinstance(value, Mapping):
        return {str(k): encode(v, allow_objects) for k, v in value.items()}

    if isinstance(value, (list, tuple)):
        return [encode(item, allow_objects) for item in value]

    if value is None or isinstance(value, (bool, int, float, str)):
        return value

    raise TypeError(f"Invalid type encountered: {type(value).__name__}")


def decode(data: Any) -> Any:
    """Convert a JSON value from the server into application values."""
    if isinstance(data, list):
        return [decode(item) for item in data]

    if not isinstance(data, Mapping):
        return data

    type_string = data.get("__type")

    if type_string == "Date":
        return parse_date(data["iso"])

    if type_string == "Bytes":
        from .models.values import ParseBytes

        return ParseBytes.from_base64(data["base64"])

    if type_string == "Pointer":
        from .models.object import ParseObject

        return ParseObject.create(data["className"], data["objectId"])

    if type_string == "File":
        from .models.file import ParseFile

        return ParseFile.from_server(data["name"], data["url"])

    if type_string == "GeoPoint":
        from .models.values import ParseGeoPoint

        return ParseGeoPoint(data["latitude"], data["longitude"])

    if type_string == "Object":
        from .models.object import ParseObject

        obj = ParseObject.create(data["className"])
        obj._merge_after_fetch({k: v for k, v in data.items() if k not in ("__type", "className")})
        return obj

    if type_string == "Relation":
        # the owning object binds relations to itself when merging server data
        return dict(data)

    return {key: decode(value) for key, value in data.items()}
