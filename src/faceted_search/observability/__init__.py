"""Observability module for OpenTelemetry-aligned tracing, metrics, and logging."""

from faceted_search.observability.context import bind_partition, get_trace_context, set_trace_context, trace_context
from faceted_search.observability.logging import JsonFormatter, configure_logging
from faceted_search.observability.metrics import (
    COMPILE_LATENCY,
    DOCUMENTS_BUILT,
    SEARCH_ERRORS,
    SEARCH_LATENCY,
    get_metrics,
    get_metrics_content_type,
    init_metrics,
    track_latency,
)
from faceted_search.observability.tracing import create_span, get_tracer, init_tracing


__all__ = [
    "COMPILE_LATENCY",
    "DOCUMENTS_BUILT",
    "SEARCH_ERRORS",
    "SEARCH_LATENCY",
    "JsonFormatter",
    "bind_partition",
    "configure_logging",
    "create_span",
    "get_metrics",
    "get_metrics_content_type",
    "get_trace_context",
    "get_tracer",
    "init_metrics",
    "init_tracing",
    "set_trace_context",
    "trace_context",
    "track_latency",
]
