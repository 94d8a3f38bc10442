from __future__ import annotations

import logging
import mimetypes
from typing import Any, Optional
from urllib.parse import quote

from ..client import get_client
from ..errors import ObjectStateError

logger = logging.getLogger(__name__)


class ParseFile:
    """
    A file stored by the server, referenced from objects by name and url.

    Local files (``from_data``) have no url until ``save()`` uploads them.
    """

    def __init__(
        self,
        name: str,
        data: Optional[bytes] = None,
        url: Optional[str] = None,
        mime_type: Optional[str] = None,
    ) -> None:
        self._name = name
        self._data = data
        self._url = url
        self._mime_type = mime_type or mimetypes.guess_type(name)[0] or "application/octet-stream"

    @classmethod
    def from_data(cls, data: bytes | str, name: str, mime_type: Optional[str] = None) -> "ParseFile":
        if isinstance(data, str):
            data = data.encode()
        return cls(name, data=data, mime_type=mime_type)

    @classmethod
    def from_server(cls, name: str, url: str) -> "ParseFile":
        return cls(name, url=url)

    @property
    def name(self) -> str:
        return self._name

    @property
    def url(self) -> Optional[str]:
        return self._url

    @property
    def mime_type(self) -> str:
        return self._mime_type

    def is_saved(self) -> bool:
        return self._url is not None

    def get_data(self) -> bytes:
        if self._data is not None:
            return self._data
        if self._url is None:
            raise ObjectStateError("Cannot retrieve data for unsaved ParseFile.")
        self._data = get_client().download(self._url)
        return self._data

    def save(self, use_master_key: bool = False) -> None:
        if self._url is not None:
            return
        if self._data is None:
            raise ObjectStateError("Cannot save a ParseFile without data.")
        result = get_client().request_raw(
            "POST",
            "files/" + quote(self._name),
            self._data,
            self._mime_type,
            use_master_key=use_master_key,
        )
        self._name = result["name"]
        self._url = result["url"]
        logger.debug("Uploaded file %s (%d bytes)", self._name, len(self._data))

    def delete(self) -> None:
        """Delete the file on the server. Requires the master key."""
        if self._url is None:
            raise ObjectStateError("Cannot delete file that has not been saved.")
        get_client().request("DELETE", "files/" + quote(self._name), use_master_key=True)

    def encode(self) -> dict[str, Any]:
        if self._url is None:
            raise ObjectStateError("Tried to encode an unsaved file.")
        return {"__type": "File", "name": self._name, "url": self._url}

    def __repr__(self) -> str:
        return f"ParseFile(name={self._name!r}, url={self._url!r})"
