from __future__ import annotations

from typing import Mapping, Optional

import requests

from ..errors import TransportError
from .base import HttpResponse


class RequestsHttpClient:
    """
    HttpClient backed by a pooled ``requests.Session``.

    Usage:
        http = RequestsHttpClient()
        resp = http.send("GET", "https://api.parse.com/1/config", headers)
        http.close()
    """

    def __init__(self, session: Optional[requests.Session] = None) -> None:
        self._session = session or requests.Session()

    def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: Optional[bytes] = None,
        timeout: float | tuple[Optional[float], Optional[float]] | None = None,
    ) -> HttpResponse:
        try:
            resp = self._session.request(
                method,
                url,
                headers=dict(headers),
                data=body,
                timeout=timeout,
            )
        except requests.RequestException as exc:
            raise TransportError(f"{method} {url} failed: {exc}") from exc
        return HttpResponse(
            status_code=resp.status_code,
            headers=dict(resp.headers),
            body=resp.content,
        )

    def close(self) -> None:
        self._session.close()
