from __future__ import annotations

from typing import Optional

from .client import ParseClient, get_client, set_client
from .cloud import ParseConfig, run
from .config import ClientConfig, StorageConfig
from .errors import AggregateError, ApiError, ParseError
from .http.base import HttpClient
from .models import (
    ParseACL,
    ParseBytes,
    ParseFile,
    ParseGeoPoint,
    ParseObject,
    ParseRelation,
    ParseRole,
    ParseSession,
    ParseUser,
)
from .models.user import clear_current_user
from .query import ParseQuery
from .storage.base import StorageBackend


def initialize(
    config: ClientConfig,
    http_client: Optional[HttpClient] = None,
    storage: Optional[StorageBackend] = None,
) -> ParseClient:
    """
    Build the process-wide client used by every model and query.

    Usage:
        parsekit.initialize(ClientConfig(application_id="app", rest_key="key"))
    """
    client = ParseClient(config, http_client, storage)
    set_client(client)
    ParseObject.register_subclass(ParseUser)
    ParseObject.register_subclass(ParseRole)
    ParseObject.register_subclass(ParseSession)
    clear_current_user()
    return client


__all__ = [
    "AggregateError",
    "ApiError",
    "ClientConfig",
    "ParseACL",
    "ParseBytes",
    "ParseClient",
    "ParseConfig",
    "ParseError",
    "ParseFile",
    "ParseGeoPoint",
    "ParseObject",
    "ParseQuery",
    "ParseRelation",
    "ParseRole",
    "ParseSession",
    "ParseUser",
    "StorageConfig",
    "get_client",
    "initialize",
    "run",
]
