"""
Metrics instrumentation for observability.
Exposes Prometheus-compatible metrics at the /metrics endpoint.
"""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

registration_attempts = Counter(
    'registration_attempts_total',
    'Total registration attempts',
    ['outcome']  # admitted, event_full, already_registered, event_expired, ...
)

registration_latency = Histogram(
    'registration_latency_seconds',
    'Registration decision latency, lock wait included',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 5.0]
)

cancellations = Counter(
    'registration_cancellations_total',
    'Registration cancellations',
    ['outcome']  # cancelled, not_found, error
)

cache_operations = Counter(
    'cache_operations_total',
    'Cache operations',
    ['operation', 'result']  # get/set, hit/miss
)


def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


def record_registration(outcome: str):
    registration_attempts.labels(outcome=outcome).inc()


def record_cancellation(outcome: str):
    cancellations.labels(outcome=outcome).inc()


def record_cache_operation(operation: str, hit: bool):
    result = "hit" if hit else "miss"
    cache_operations.labels(operation=operation, result=result).inc()
