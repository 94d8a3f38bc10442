from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from parsekit.encoding import decode, encode, format_date, parse_date
from parsekit.errors import ObjectStateError
from parsekit.models.file import ParseFile
from parsekit.models.object import ParseObject
from parsekit.models.values import ParseBytes, ParseGeoPoint
from parsekit.operations import IncrementOperation


class TestDates:
    """Date formatting and parsing."""

    def test_format_naive_datetime_as_utc(self) -> None:
        assert format_date(datetime(2015, 1, 2, 3, 4, 5, 6000)) == "2015-01-02T03:04:05.006Z"

    def test_format_converts_aware_datetime_to_utc(self) -> None:
        value = datetime(2015, 1, 2, 5, 4, 5, tzinfo=timezone(timedelta(hours=2)))
        assert format_date(value) == "2015-01-02T03:04:05.000Z"

    def test_format_plain_date(self) -> None:
        assert format_date(date(2015, 1, 2)) == "2015-01-02T00:00:00.000Z"

    def test_parse_is_timezone_aware(self) -> None:
        parsed = parse_date("2015-01-02T03:04:05.006Z")
        assert parsed == datetime(2015, 1, 2, 3, 4, 5, 6000, tzinfo=timezone.utc)


class TestEncode:
    """encode() of application values."""

    def test_primitives_unchanged(self) -> None:
        assert encode([None, True, 1, 2.5, "s"]) == [None, True, 1, 2.5, "s"]

    def test_nested_containers(self) -> None:
        assert encode({"a": (1, {"b": [2]})}) == {"a": [1, {"b": [2]}]}

    def test_datetime(self) -> None:
        assert encode(datetime(2015, 1, 2, tzinfo=timezone.utc)) == {
            "__type": "Date",
            "iso": "2015-01-02T00:00:00.000Z",
        }

    def test_saved_object_becomes_pointer(self) -> None:
        obj = ParseObject("Player", "abc")
        assert encode({"player": obj}) == {
            "player": {"__type": "Pointer", "className": "Player", "objectId": "abc"}
        }

    def test_objects_not_allowed(self) -> None:
        with pytest.raises(ObjectStateError, match="not allowed"):
            encode(ParseObject("Player", "abc"), allow_objects=False)

    def test_unsaved_object_fails(self) -> None:
        with pytest.raises(ObjectStateError):
            encode(ParseObject("Player"))

    def test_encodable_values(self) -> None:
        assert encode(IncrementOperation(2)) == {"__op": "Increment", "amount": 2}
        assert encode(ParseGeoPoint(10.0, 20.0)) == {"__type": "GeoPoint", "latitude": 10.0, "longitude": 20.0}
        assert encode(ParseBytes(b"hi")) == {"__type": "Bytes", "base64": "aGk="}

    def test_unknown_type_fails(self) -> None:
        with pytest.raises(TypeError):
            encode(object())


class TestDecode:
    """decode() of server JSON."""

    def test_plain_values(self) -> None:
        assert decode({"a": [1, "b"]}) == {"a": [1, "b"]}

    def test_date(self) -> None:
        decoded = decode({"__type": "Date", "iso": "2015-01-02T03:04:05.000Z"})
        assert decoded == datetime(2015, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

    def test_bytes(self) -> None:
        decoded = decode({"__type": "Bytes", "base64": "aGk="})
        assert decoded == ParseBytes(b"hi")
        assert encode(decoded) == {"__type": "Bytes", "base64": "aGk="}

    def test_pointer(self) -> None:
        obj = decode({"__type": "Pointer", "className": "Player", "objectId": "abc"})
        assert isinstance(obj, ParseObject)
        assert (obj.class_name, obj.object_id) == ("Player", "abc")
        assert not obj.is_data_available()

    def test_full_object(self) -> None:
        obj = decode({
            "__type": "Object",
            "className": "Player",
            "objectId": "abc",
            "createdAt": "2015-01-02T03:04:05.000Z",
            "name": "Sean",
        })
        assert obj.object_id == "abc"
        assert obj.get("name") == "Sean"
        assert obj.updated_at == obj.created_at
        assert not obj.is_dirty()

    def test_file(self) -> None:
        file = decode({"__type": "File", "name": "a.txt", "url": "https://files.example.com/a.txt"})
        assert isinstance(file, ParseFile)
        assert file.is_saved()

    def test_geo_point(self) -> None:
        assert decode({"__type": "GeoPoint", "latitude": 1.5, "longitude": -2.0}) == ParseGeoPoint(1.5, -2.0)

    def test_relation_left_for_owner(self) -> None:
        data = {"__type": "Relation", "className": "Player"}
        assert decode(data) == data

    def test_nested_in_list(self) -> None:
        decoded = decode([{"__type": "Date", "iso": "2015-01-02T00:00:00.000Z"}])
        assert isinstance(decoded[0], datetime)
