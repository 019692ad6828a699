"""Prometheus metrics definitions and helpers."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests processed",
    ("method", "route", "status"),
)

REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ("method", "route"),
    buckets=(
        0.005,
        0.01,
        0.025,
        0.05,
        0.1,
        0.25,
        0.5,
        1.0,
        2.5,
        5.0,
        10.0,
        30.0,
    ),
)

ERROR_COUNTER = Counter(
    "app_internal_errors_total",
    "Number of requests ending in internal server error responses",
    ("method", "route"),
)

CONVERSATION_COUNTER = Counter(
    "conversation_requests_total",
    "Conversation pipeline invocations by use case and outcome",
    ("kind", "outcome"),
)

GENERATION_FAILURES = Counter(
    "generation_failures_total",
    "Failed text generation attempts per provider",
    ("provider",),
)

ORDER_ALERTS = Counter(
    "order_alerts_total",
    "Business alerts raised while reviewing extracted orders",
    ("alert_type",),
)

GROUNDING_MISSES = Counter(
    "grounding_misses_total",
    "Extracted product names that matched no active, in-stock catalog entry",
)


def observe_request(
    method: str,
    route: str,
    status_code: int,
    duration_seconds: float,
) -> None:
    """Record metrics for a completed HTTP request."""

    safe_route = route or "unknown"
    safe_method = method or "UNKNOWN"
    status_label = str(status_code)
    observed_duration = duration_seconds if duration_seconds >= 0 else 0

    REQUEST_COUNT.labels(
        method=safe_method,
        route=safe_route,
        status=status_label,
    ).inc()
    REQUEST_LATENCY.labels(
        method=safe_method,
        route=safe_route,
    ).observe(observed_duration)

    if status_code >= 500:
        ERROR_COUNTER.labels(
            method=safe_method,
            route=safe_route,
        ).inc()


def record_conversation(kind: str, outcome: str) -> None:
    """Count one orchestrator run (`outcome` is "ok" or an error code)."""

    CONVERSATION_COUNTER.labels(kind=kind, outcome=outcome).inc()


def record_generation_failure(provider: str) -> None:
    GENERATION_FAILURES.labels(provider=provider).inc()


def record_alert(alert_type: str) -> None:
    ORDER_ALERTS.labels(alert_type=alert_type).inc()


def record_grounding_miss() -> None:
    GROUNDING_MISSES.inc()
