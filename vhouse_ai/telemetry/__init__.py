"""Telemetry helpers and metrics."""

from .metrics import (
    CONVERSATION_COUNTER,
    ERROR_COUNTER,
    GENERATION_FAILURES,
    GROUNDING_MISSES,
    ORDER_ALERTS,
    REQUEST_COUNT,
    REQUEST_LATENCY,
    observe_request,
    record_alert,
    record_conversation,
    record_generation_failure,
    record_grounding_miss,
)

__all__ = [
    "CONVERSATION_COUNTER",
    "ERROR_COUNTER",
    "GENERATION_FAILURES",
    "GROUNDING_MISSES",
    "ORDER_ALERTS",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "observe_request",
    "record_alert",
    "record_conversation",
    "record_generation_failure",
    "record_grounding_miss",
]
