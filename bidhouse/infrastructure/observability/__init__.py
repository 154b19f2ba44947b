"""Observability and logging facades."""

from .logging import (LogContext, configure_logging, current_log_context,
                      get_logger, log_context, log_exception)
from .metrics import (Timer, format_prometheus, get_metrics_summary,
                      get_registry, increment_counter, observe_histogram,
                      record_api_request, record_bid, record_bid_conflict,
                      record_broadcast, record_decision, record_notification,
                      record_settlement)
from .tracing import (add_span_event, configure_tracing, get_trace_context,
                      is_tracing_enabled, record_exception,
                      set_span_attribute, trace_span, traced)

__all__ = [
    # Logging
    "LogContext",
    "configure_logging",
    "current_log_context",
    "get_logger",
    "log_context",
    "log_exception",
    # Metrics
    "Timer",
    "format_prometheus",
    "get_metrics_summary",
    "get_registry",
    "increment_counter",
    "observe_histogram",
    "record_api_request",
    "record_bid",
    "record_bid_conflict",
    "record_broadcast",
    "record_decision",
    "record_notification",
    "record_settlement",
    # Tracing
    "add_span_event",
    "configure_tracing",
    "get_trace_context",
    "is_tracing_enabled",
    "record_exception",
    "set_span_attribute",
    "trace_span",
    "traced",
]
