"""OpenTelemetry tracing for the web app and its backend calls.

Every backend call runs inside an ``api.request`` span and every credential
renewal inside an ``auth.refresh`` span, so a retried call shows up as two
``api.request`` spans around one ``auth.refresh``.
"""

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import httpx
from opentelemetry import trace
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased

from rentacar import __version__
from rentacar.config import settings

logger = logging.getLogger(__name__)

_tracer: Optional[trace.Tracer] = None


def _build_provider() -> TracerProvider:
    resource = Resource(
        attributes={
            SERVICE_NAME: settings.OTEL_SERVICE_NAME,
            SERVICE_VERSION: __version__,
            "environment": settings.ENVIRONMENT,
        }
    )
    provider = TracerProvider(
        resource=resource,
        sampler=TraceIdRatioBased(settings.OTEL_TRACE_SAMPLE_RATE),
    )
    if settings.OTEL_EXPORT_CONSOLE:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    return provider


def setup_telemetry() -> None:
    """Install the tracer provider. Call once at startup."""
    global _tracer

    trace.set_tracer_provider(_build_provider())
    _tracer = trace.get_tracer(__name__, __version__)

    logger.info(
        "OpenTelemetry initialized",
        extra={
            "service_name": settings.OTEL_SERVICE_NAME,
            "sample_rate": settings.OTEL_TRACE_SAMPLE_RATE,
            "export_console": settings.OTEL_EXPORT_CONSOLE,
        },
    )


def instrument_app(app: Any) -> None:
    """Add server spans for every route of the FastAPI app."""
    try:
        FastAPIInstrumentor.instrument_app(app)
        logger.info("FastAPI instrumented with OpenTelemetry")
    except Exception as e:
        logger.warning(f"Failed to instrument FastAPI: {e}")


def get_tracer() -> trace.Tracer:
    """Tracer of this app, or of the global provider before setup."""
    global _tracer

    if _tracer is None:
        _tracer = trace.get_tracer(__name__, __version__)
    return _tracer


@contextmanager
def trace_operation(name: str, attributes: Optional[dict] = None) -> Iterator[trace.Span]:
    """Run the block inside a new span, marking it failed if the block raises.

    Attributes with a None value are skipped.
    """
    with get_tracer().start_as_current_span(name) as span:
        for key, value in (attributes or {}).items():
            if value is not None:
                span.set_attribute(key, value)

        try:
            yield span
        except Exception as e:
            span.record_exception(e)
            span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
            raise


def api_request_span(method: str, url: str, attempt: str):
    """Span around one backend call; attempt is "first" or "retry"."""
    return trace_operation(
        "api.request",
        {"http.method": method, "http.url": url, "api.attempt": attempt},
    )


def renewal_span(runtime: str):
    """Span around one credential renewal; runtime is "browser" or "server"."""
    return trace_operation("auth.refresh", {"auth.runtime": runtime})


def record_response(response: httpx.Response) -> None:
    """Put the answer's status code on the current span."""
    add_span_attributes(**{"http.status_code": response.status_code})


def record_failure(error: BaseException) -> None:
    """Attach a handled exception to the current span."""
    span = trace.get_current_span()
    if span.is_recording():
        span.record_exception(error)


def add_span_attributes(**attributes) -> None:
    """Set attributes on the current span, skipping None values."""
    span = trace.get_current_span()
    if span.is_recording():
        for key, value in attributes.items():
            if value is not None:
                span.set_attribute(key, value)


def add_span_event(name: str, attributes: Optional[dict] = None) -> None:
    """Add an event to the current span, e.g. ``auth.refreshed``."""
    span = trace.get_current_span()
    if span.is_recording():
        span.add_event(name, attributes or {})
