from __future__ import annotations

import json
import logging
import time
from typing import Any, Mapping, Optional
from urllib.parse import urlencode

from .config import ClientConfig
from .errors import ApiError, NotInitializedError
from .http.base import HttpClient, HttpResponse
from .http.requests_client import RequestsHttpClient
from .metrics import endpoint_label, observe_request
from .storage.base import StorageBackend
from .storage.memory import MemoryStorage

logger = logging.getLogger(__name__)

VERSION_STRING = "python0.1.0"


class ParseClient:
    """
    Signs requests for one Parse application and decodes the responses.

    Usage:
        client = ParseClient(ClientConfig(application_id="app", rest_key="key"))
        result = client.request("GET", "classes/GameScore/xWMyZ4YEGZ")
    """

    def __init__(
        self,
        config: ClientConfig,
        http_client: Optional[HttpClient] = None,
        storage: Optional[StorageBackend] = None,
    ) -> None:
        self.config = config
        self.http = http_client if http_client is not None else RequestsHttpClient()
        self.storage = storage if storage is not None else MemoryStorage()

    def build_headers(self, session_token: Optional[str] = None, use_master_key: bool = False) -> dict[str, str]:
        headers = {
            "X-Parse-Application-Id": self.config.application_id,
            "X-Parse-Client-Version": VERSION_STRING,
        }
        if session_token:
            headers["X-Parse-Session-Token"] = session_token
        if use_master_key:
            if not self.config.master_key:
                raise NotInitializedError("use_master_key requires a master_key in ClientConfig")
            headers["X-Parse-Master-Key"] = self.config.master_key
        elif self.config.rest_key:
            headers["X-Parse-REST-API-Key"] = self.config.rest_key
        if self.config.revocable_sessions:
            headers["X-Parse-Revocable-Session"] = "1"
        return headers

    def url_for(self, path: str) -> str:
        return self.config.api_url + path.lstrip("/")

    def batch_path(self, path: str) -> str:
        """Path of a sub-request inside a ``batch`` body, e.g. ``/1/classes/Foo``."""
        prefix = f"/{self.config.mount_path}" if self.config.mount_path else ""
        return f"{prefix}/{path.lstrip('/')}"

    def request(
        self,
        method: str,
        path: str,
        data: Any = None,
        session_token: Optional[str] = None,
        use_master_key: bool = False,
    ) -> Any:
        """
        Send a JSON request and return the decoded response body.

        GET data is sent as query parameters; POST/PUT data as a JSON body.

        Returns:
            The decoded JSON response, or None for a non-2xx response when
            ``raise_http_errors`` is disabled

        Raises:
            ApiError: If the server answers with an error payload or HTML
            TransportError: If the request could not be sent
        """
        headers = self.build_headers(session_token, use_master_key)
        url = self.url_for(path)
        body: Optional[bytes] = None

        if method == "GET" and data:
            url += "?" + _query_string(data)
        elif method in ("POST", "PUT"):
            headers["Content-Type"] = "application/json"
            body = json.dumps(data if data else {}).encode()

        resp = self._send(method, path, url, headers, body)
        return self._decode_response(resp)

    def request_raw(
        self,
        method: str,
        path: str,
        body: bytes,
        content_type: str,
        session_token: Optional[str] = None,
        use_master_key: bool = False,
    ) -> Any:
        """Send a non-JSON body (file uploads) and decode the JSON response."""
        headers = self.build_headers(session_token, use_master_key)
        headers["Content-Type"] = content_type
        resp = self._send(method, path, self.url_for(path), headers, body)
        return self._decode_response(resp)

    def download(self, url: str) -> bytes:
        resp = self._send("GET", "files", url, {}, None)
        if not resp.ok:
            raise ApiError(f"Download of {url} failed with HTTP {resp.status_code}", -1)
        return resp.body

    def close(self) -> None:
        self.http.close()

    def _send(
        self,
        method: str,
        path: str,
        url: str,
        headers: Mapping[str, str],
        body: Optional[bytes],
    ) -> HttpResponse:
        endpoint = endpoint_label(path)
        start_time = time.monotonic()
        status = "success"
        try:
            resp = self.http.send(method, url, headers, body, timeout=self.config.request_timeout)
            if not resp.ok:
                status = "error"
            return resp
        except Exception:
            status = "error"
            raise
        finally:
            latency = time.monotonic() - start_time
            logger.debug("%s %s -> %s in %.3fs", method, path, status, latency)
            observe_request(method, endpoint, status, latency)

    def _decode_response(self, resp: HttpResponse) -> Any:
        if "text/html" in resp.content_type:
            raise ApiError("Bad Request", -1)

        decoded: Any = None
        if resp.body:
            try:
                decoded = json.loads(resp.body)
            except ValueError as exc:
                if resp.ok or self.config.raise_http_errors:
                    raise ApiError(f"Invalid JSON in response (HTTP {resp.status_code})", -1) from exc

        if not resp.ok:
            if not self.config.raise_http_errors:
                return None
            if isinstance(decoded, dict) and "error" in decoded:
                raise ApiError(str(decoded["error"]), int(decoded.get("code", resp.status_code)))
            raise ApiError(f"HTTP {resp.status_code}", resp.status_code)

        if isinstance(decoded, dict) and "error" in decoded:
            raise ApiError(str(decoded["error"]), int(decoded.get("code", 0)))
        return decoded


def _query_string(data: Mapping[str, Any]) -> str:
    params = {}
    for key, value in data.items():
        if isinstance(value, (dict, list)):
            params[key] = json.dumps(value, separators=(",", ":"))
        elif isinstance(value, bool):
            params[key] = "true" if value else "false"
        else:
            params[key] = value
    return urlencode(params)


_default_client: Optional[ParseClient] = None


def set_client(client: Optional[ParseClient]) -> None:
    global _default_client
    _default_client = client


def get_client() -> ParseClient:
    if _default_client is None:
        raise NotInitializedError(
            "You must call parsekit.initialize() before making any requests."
        )
    return _default_client
