"""Tracing and analytics events."""

from .config import add_span_event, configure_telemetry, get_tracer, record_exception_on_span
from .events import GENERATION_DELETED, USAGE_LIMIT_HIT, AnalyticsClient, get_analytics

__all__ = [
    "GENERATION_DELETED",
    "USAGE_LIMIT_HIT",
    "AnalyticsClient",
    "add_span_event",
    "configure_telemetry",
    "get_analytics",
    "get_tracer",
    "record_exception_on_span",
]
