"""
Prometheus metrics for the message wall API.

- http_requests_total{method,path,status}
- request_latency_seconds{method,path}
- message_create_total{result}: "created" or the error code sent back
- identities_issued_total: uid cookies handed to first-time clients

Metrics live in the default prometheus-client registry, so they are shared
by every app built in the process.
"""

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    labelnames=["method", "path", "status"],
)

request_latency_seconds = Histogram(
    "request_latency_seconds",
    "Request latency in seconds",
    labelnames=["method", "path"],
)

message_create_total = Counter(
    "message_create_total",
    "Outcomes of POST /api/messages",
    labelnames=["result"],
)

identities_issued_total = Counter(
    "identities_issued_total",
    "New anonymous identities issued via the uid cookie",
)


def record_http_request(method: str, path: str, status: int, latency_seconds: float) -> None:
    """
    Count a finished request and observe its latency.

    Only the path is used as a label; query strings would explode cardinality.
    """
    path = path.split("?", 1)[0]
    http_requests_total.labels(method=method, path=path, status=str(status)).inc()
    request_latency_seconds.labels(method=method, path=path).observe(latency_seconds)


def record_create_outcome(result: str) -> None:
    message_create_total.labels(result=result).inc()


def record_identity_issued() -> None:
    identities_issued_total.inc()


def get_metrics() -> bytes:
    return generate_latest()


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
