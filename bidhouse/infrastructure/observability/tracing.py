"""OpenTelemetry tracing support for Bidhouse.

Tracing is disabled by default. ``configure_tracing`` turns it on when the
``opentelemetry-sdk`` package (the ``tracing`` extra) is installed; until
then every helper here is a no-op.

Usage::

    configure_tracing(service_name="bidhouse-api", endpoint="http://localhost:4317")

    with trace_span("bid_admission", auction_id=auction_id):
        ...
"""

from __future__ import annotations

import functools
import inspect
import os
from contextvars import ContextVar
from typing import Any, Callable, TypeVar

from .logging import get_logger

logger = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

_tracer: Any = None
_tracing_enabled: bool = False

# trace/span ids of the active span, for log correlation
_trace_context: ContextVar[dict[str, str]] = ContextVar("trace_context", default={})


def is_tracing_enabled() -> bool:
    return _tracing_enabled


def get_trace_context() -> dict[str, str]:
    return _trace_context.get()


def configure_tracing(
    *,
    service_name: str = "bidhouse",
    endpoint: str | None = None,
    enable: bool = True,
    sample_rate: float = 1.0,
) -> bool:
    """Configure OpenTelemetry tracing.

    Args:
        service_name: Name of this service in traces.
        endpoint: OTLP endpoint URL. Without one, spans are only printed when
            ``OTEL_TRACES_CONSOLE=true``.
        enable: Whether to enable tracing at all.
        sample_rate: Fraction of traces to sample (0.0 to 1.0).

    Returns:
        True if tracing was configured, False otherwise.
    """
    global _tracer, _tracing_enabled

    if not enable:
        _tracing_enabled = False
        logger.info("Tracing disabled by configuration")
        return False

    try:
        from opentelemetry import trace
        from opentelemetry.sdk.resources import SERVICE_NAME, Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.sampling import TraceIdRatioBased
    except ImportError as exc:
        logger.debug("OpenTelemetry not available: %s", exc)
        _tracing_enabled = False
        return False

    provider = TracerProvider(
        resource=Resource.create({SERVICE_NAME: service_name}),
        sampler=TraceIdRatioBased(sample_rate),
    )
    if endpoint:
        try:
            from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import \
                OTLPSpanExporter
            from opentelemetry.sdk.trace.export import BatchSpanProcessor
        except ImportError:
            logger.warning(
                "opentelemetry-exporter-otlp not installed; traces won't be exported"
            )
        else:
            provider.add_span_processor(
                BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint))
            )
            logger.info("Tracing exporter configured for %s", endpoint)
    elif os.environ.get("OTEL_TRACES_CONSOLE", "").lower() == "true":
        from opentelemetry.sdk.trace.export import (ConsoleSpanExporter,
                                                    SimpleSpanProcessor)

        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
        logger.info("Console trace exporter enabled")

    trace.set_tracer_provider(provider)
    _tracer = trace.get_tracer(service_name)
    _tracing_enabled = True
    logger.info("Tracing enabled for service '%s'", service_name)
    return True


class trace_span:
    """Context manager opening a span when tracing is enabled.

    Yields the span, or None when tracing is off.
    """

    _KINDS = ("internal", "server", "client", "producer", "consumer")

    def __init__(self, name: str, *, kind: str = "internal", **attributes: Any) -> None:
        self.name = name
        self.kind = kind if kind in self._KINDS else "internal"
        self.attributes = attributes
        self._span_cm: Any = None
        self._ctx_token: Any = None

    def __enter__(self) -> Any:
        if not _tracing_enabled or _tracer is None:
            return None
        from opentelemetry.trace import SpanKind

        self._span_cm = _tracer.start_as_current_span(
            self.name, kind=getattr(SpanKind, self.kind.upper())
        )
        span = self._span_cm.__enter__()
        for key, value in self.attributes.items():
            if value is not None:
                span.set_attribute(key, str(value))
        ctx = span.get_span_context()
        if ctx.is_valid:
            self._ctx_token = _trace_context.set(
                {
                    "trace_id": format(ctx.trace_id, "032x"),
                    "span_id": format(ctx.span_id, "016x"),
                }
            )
        return span

    def __exit__(self, exc_type, exc_value, traceback) -> bool:
        if self._ctx_token is not None:
            _trace_context.reset(self._ctx_token)
            self._ctx_token = None
        if self._span_cm is not None:
            self._span_cm.__exit__(exc_type, exc_value, traceback)
            self._span_cm = None
        return False


def traced(name: str | None = None, *, kind: str = "internal") -> Callable[[F], F]:
    """Decorator tracing a sync or async function."""

    def decorator(func: F) -> F:
        span_name = name or func.__name__

        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                with trace_span(span_name, kind=kind):
                    return await func(*args, **kwargs)

            return async_wrapper  # type: ignore[return-value]

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            with trace_span(span_name, kind=kind):
                return func(*args, **kwargs)

        return sync_wrapper  # type: ignore[return-value]

    return decorator


def _current_span() -> Any:
    if not _tracing_enabled:
        return None
    from opentelemetry import trace

    span = trace.get_current_span()
    return span if span is not None and span.is_recording() else None


def add_span_event(name: str, **attributes: Any) -> None:
    span = _current_span()
    if span is not None:
        span.add_event(name, attributes={k: str(v) for k, v in attributes.items()})


def set_span_attribute(key: str, value: Any) -> None:
    span = _current_span()
    if span is not None:
        span.set_attribute(key, str(value))


def record_exception(exception: BaseException) -> None:
    span = _current_span()
    if span is not None:
        from opentelemetry import trace

        span.record_exception(exception)
        span.set_status(trace.Status(trace.StatusCode.ERROR))
