from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Optional, Protocol


@dataclass
class HttpResponse:
    status_code: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def content_type(self) -> str:
        for name, value in self.headers.items():
            if name.lower() == "content-type":
                return value
        return ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class HttpClient(Protocol):
    """
    Protocol for the transport used by ParseClient.

    Implementations send one request and return the raw response. They raise
    TransportError when no response could be obtained at all; HTTP error
    statuses are returned, not raised.
    """

    def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: Optional[bytes] = None,
        timeout: float | tuple[Optional[float], Optional[float]] | None = None,
    ) -> HttpResponse:
        """Send a request and return status, headers and body."""
        ...

    def close(self) -> None:
        """Release pooled connections."""
        ...
