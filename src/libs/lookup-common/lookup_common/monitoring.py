# src/libs/lookup-common/lookup_common/monitoring.py
import logging
from prometheus_client import Counter, Gauge, Histogram

logger = logging.getLogger(__name__)

# --------------------------------------------------------------------------------------
# Lookup fetch metrics (used by the orchestrator and the transport adapter)
# --------------------------------------------------------------------------------------
LOOKUP_FETCH_TOTAL = Counter(
    "lookup_fetch_total",
    "Number of completed lookup fetches by entity and outcome",
    labelnames=("entity", "outcome"),
)

LOOKUP_FETCH_LATENCY_SECONDS = Histogram(
    "lookup_fetch_latency_seconds",
    "Latency of lookup transport calls in seconds",
    labelnames=("entity", "method"),
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10),
)

LOOKUP_CACHE_ITEMS = Gauge(
    "lookup_cache_items",
    "Number of items currently retained in a lookup cache",
    labelnames=("entity",),
)

LOOKUP_SUPERSEDED_TOTAL = Counter(
    "lookup_superseded_requests_total",
    "Number of in-flight lookup requests cancelled by a newer request",
    labelnames=("entity",),
)

LOOKUP_COALESCED_TOTAL = Counter(
    "lookup_coalesced_requests_total",
    "Number of lookup requests joined to an identical in-flight request",
    labelnames=("entity",),
)

def observe_fetch(entity: str, outcome: str) -> None:
    LOOKUP_FETCH_TOTAL.labels(entity, outcome).inc()

def set_cache_items(entity: str, count: int) -> None:
    LOOKUP_CACHE_ITEMS.labels(entity).set(count)

def observe_superseded(entity: str) -> None:
    LOOKUP_SUPERSEDED_TOTAL.labels(entity).inc()

def observe_fetch_latency(entity: str, method: str, seconds: float) -> None:
    LOOKUP_FETCH_LATENCY_SECONDS.labels(entity, method).observe(seconds)

def observe_coalesced(entity: str) -> None:
    LOOKUP_COALESCED_TOTAL.labels(entity).inc()

# --------------------------------------------------------------------------------------
# Reliability primitives
# --------------------------------------------------------------------------------------
RETRY_ATTEMPTS_TOTAL = Counter(
    "retry_attempts_total",
    "Number of failed attempts that were followed by a retry",
    labelnames=("operation",),
)

RETRY_EXHAUSTED_TOTAL = Counter(
    "retry_exhausted_total",
    "Number of retried operations that ran out of attempts",
    labelnames=("operation",),
)

ERRORS_HANDLED_TOTAL = Counter(
    "errors_handled_total",
    "Number of errors routed through the central error handler, by kind",
    labelnames=("kind",),
)

BOUNDARY_TRANSITIONS_TOTAL = Counter(
    "error_boundary_transitions_total",
    "Number of error boundary state transitions",
    labelnames=("from_state", "to_state", "trigger"),
)

def observe_retry(operation: str) -> None:
    RETRY_ATTEMPTS_TOTAL.labels(operation).inc()

def observe_retry_exhausted(operation: str) -> None:
    RETRY_EXHAUSTED_TOTAL.labels(operation).inc()

def observe_error_handled(kind: str) -> None:
    ERRORS_HANDLED_TOTAL.labels(kind).inc()

def observe_boundary_transition(from_state: str, to_state: str, trigger: str) -> None:
    BOUNDARY_TRANSITIONS_TOTAL.labels(from_state, to_state, trigger).inc()

# --------------------------------------------------------------------------------------
# Generic HTTP metrics for the gateway service
# --------------------------------------------------------------------------------------
HTTP_REQUESTS_TOTAL = Counter(
    "http_requests_total",
    "HTTP requests total",
    labelnames=("service", "method", "path", "status"),
)

HTTP_REQUEST_LATENCY_SECONDS = Histogram(
    "http_request_latency_seconds",
    "HTTP request latency in seconds",
    labelnames=("service", "method", "path"),
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10),
)
