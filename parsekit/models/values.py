from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Any


@dataclass
class ParseGeoPoint:
    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError("Latitude must be within range [-90.0, 90.0]")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError("Longitude must be within range [-180.0, 180.0]")

    def encode(self) -> dict[str, Any]:
        return {"__type": "GeoPoint", "latitude": self.latitude, "longitude": self.longitude}


@dataclass
class ParseBytes:
    data: bytes

    @classmethod
    def from_bytes(cls, data: bytes | bytearray | list[int]) -> "ParseBytes":
        return cls(bytes(data))

    @classmethod
    def from_base64(cls, encoded: str) -> "ParseBytes":
        return cls(base64.b64decode(encoded))

    def encode(self) -> dict[str, Any]:
        return {"__type": "Bytes", "base64": base64.b64encode(self.data).decode("ascii")}
