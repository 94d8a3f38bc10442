from __future__ import annotations

from prometheus_client import Counter, Histogram

PARSE_REQUESTS_TOTAL = Counter(
    "parsekit_requests_total",
    "REST API requests sent by the SDK",
    ["method", "endpoint", "status"],
)

PARSE_REQUEST_LATENCY_SECONDS = Histogram(
    "parsekit_request_latency_seconds",
    "Latency of REST API round trips",
    ["method", "endpoint"],
)

PARSE_BATCH_OBJECTS_TOTAL = Counter(
    "parsekit_batch_objects_total",
    "Objects sent in batch save/destroy requests, by outcome",
    ["kind", "status"],
)
