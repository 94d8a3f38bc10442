from __future__ import annotations

from .registry import (
    PARSE_BATCH_OBJECTS_TOTAL,
    PARSE_REQUEST_LATENCY_SECONDS,
    PARSE_REQUESTS_TOTAL,
)


def endpoint_label(path: str) -> str:
    """
    Bounded label for a request path: its first segment.

    ``classes/GameScore/abc`` -> ``classes``; ``batch`` -> ``batch``.
    """
    segment = path.strip("/").split("?", 1)[0].split("/", 1)[0]
    return segment or "root"


def observe_request(method: str, endpoint: str, status: str, latency_s: float) -> None:
    PARSE_REQUESTS_TOTAL.labels(method=method, endpoint=endpoint, status=status).inc()
    PARSE_REQUEST_LATENCY_SECONDS.labels(method=method, endpoint=endpoint).observe(latency_s)


def observe_batch(kind: str, succeeded: int, failed: int) -> None:
    if succeeded:
        PARSE_BATCH_OBJECTS_TOTAL.labels(kind=kind, status="success").inc(succeeded)
    if failed:
        PARSE_BATCH_OBJECTS_TOTAL.labels(kind=kind, status="error").inc(failed)


__all__ = [
    "PARSE_BATCH_OBJECTS_TOTAL",
    "PARSE_REQUEST_LATENCY_SECONDS",
    "PARSE_REQUESTS_TOTAL",
    "endpoint_label",
    "observe_batch",
    "observe_request",
]
