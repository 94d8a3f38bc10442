from __future__ import annotations

import html
from typing import Any, Mapping, Optional

from .client import get_client
from .encoding import decode, encode
from .models.object import current_session_token


def run(name: str, params: Optional[Mapping[str, Any]] = None, use_master_key: bool = False) -> Any:
    """
    Call the cloud function ``name`` and return its decoded result.

    Params are encoded like object fields, except that saved objects are not
    allowed inside them.
    """
    response = get_client().request(
        "POST",
        f"functions/{name}",
        encode(dict(params or {}), False),
        session_token=current_session_token(),
        use_master_key=use_master_key,
    )
    if not response:
        return None
    return decode(response.get("result"))


class ParseConfig:
    """Snapshot of the application's remote config parameters."""

    def __init__(self, params: Optional[Mapping[str, Any]] = None) -> None:
        self._params = dict(params or {})

    @classmethod
    def fetch(cls) -> "ParseConfig":
        result = get_client().request("GET", "config")
        return cls(decode((result or {}).get("params", {})))

    def get(self, key: str, default: Any = None) -> Any:
        return self._params.get(key, default)

    def escape(self, key: str) -> Optional[str]:
        """HTML-escaped string form of ``key``, or None when unset."""
        value = self._params.get(key)
        return html.escape(str(value)) if value is not None else None

    def keys(self) -> list[str]:
        return list(self._params)
