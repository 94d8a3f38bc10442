from __future__ import annotations

import json
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional
from urllib.parse import parse_qsl, urlsplit

import pytest

import parsekit
from parsekit.client import ParseClient, set_client
from parsekit.config import ClientConfig
from parsekit.http.base import HttpResponse
from parsekit.models.user import clear_current_user
from parsekit.storage.memory import MemoryStorage


@dataclass
class RecordedRequest:
    method: str
    url: str
    headers: dict[str, str]
    body: Optional[bytes]

    @property
    def path(self) -> str:
        return urlsplit(self.url).path

    @property
    def query(self) -> dict[str, str]:
        return dict(parse_qsl(urlsplit(self.url).query))

    @property
    def json(self) -> Any:
        return json.loads(self.body) if self.body else None


@dataclass
class FakeHttpClient:
    """
    Scripted HttpClient.

    Responses are replayed in the order they were queued; every request is
    recorded. Sending with an empty queue fails the test.

    Usage:
        fake_http.queue_json({"objectId": "abc", "createdAt": "..."})
        obj.save()
        assert fake_http.requests[0].method == "POST"
    """

    responses: list[HttpResponse] = field(default_factory=list)
    requests: list[RecordedRequest] = field(default_factory=list)
    closed: bool = False
    before_send: Optional[Callable[[RecordedRequest], None]] = None

    def queue(self, status_code: int, body: bytes, content_type: str = "application/json") -> None:
        self.responses.append(HttpResponse(status_code, {"Content-Type": content_type}, body))

    def queue_json(self, payload: Any, status_code: int = 200) -> None:
        self.queue(status_code, json.dumps(payload).encode())

    def send(
        self,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: Optional[bytes] = None,
        timeout: Any = None,
    ) -> HttpResponse:
        request = RecordedRequest(method, url, dict(headers), body)
        self.requests.append(request)
        if self.before_send is not None:
            self.before_send(request)
        if not self.responses:
            pytest.fail(f"Unexpected request: {method} {url}", pytrace=False)
        return self.responses.pop(0)

    def close(self) -> None:
        self.closed = True

    @property
    def last(self) -> RecordedRequest:
        return self.requests[-1]


@pytest.fixture
def fake_http() -> FakeHttpClient:
    return FakeHttpClient()


@pytest.fixture
def client_config() -> ClientConfig:
    return ClientConfig(
        application_id="test-app",
        rest_key="test-rest-key",
        master_key="test-master-key",
        server_url="https://parse.example.com",
    )


@pytest.fixture
def client(client_config: ClientConfig, fake_http: FakeHttpClient) -> Iterator[ParseClient]:
    """
    Process-wide client wired to the scripted transport.

    The default client and the cached current user are reset afterwards so
    tests stay independent.
    """
    parse_client = parsekit.initialize(client_config, http_client=fake_http, storage=MemoryStorage())
    yield parse_client
    clear_current_user()
    set_client(None)
