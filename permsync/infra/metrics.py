"""Prometheus metrics export."""

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi import Response

# Request metrics
request_count = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

# Reconciliation metrics
reconciliations_total = Counter(
    "permission_reconciliations_total",
    "Total tenant permission reconciliations",
    ["status"],  # success | failure
)

reconciliation_duration = Histogram(
    "permission_reconciliation_duration_seconds",
    "Tenant permission reconciliation duration in seconds",
)

consent_grants_total = Counter(
    "permission_consent_grants_total",
    "Total consent grants issued to tenants",
)

# Queue metrics
queue_jobs_total = Counter(
    "queue_jobs_total",
    "Total queued jobs",
    ["queue", "status"],
)


def get_metrics_response() -> Response:
    """Get Prometheus metrics as HTTP response."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
