"""
OpenTelemetry tracing for the WebDAV client.

This module provides:
- OpenTelemetry SDK initialization with an optional OTLP exporter
- A span helper wrapping each WebDAV request
- Trace context lookup for log correlation
"""

import logging
from contextlib import contextmanager
from typing import Any

from importlib_metadata import PackageNotFoundError, version
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace import Status, StatusCode, Tracer

logger = logging.getLogger(__name__)

# Global tracer instance (initialized in setup_tracing)
_tracer: Tracer | None = None


def setup_tracing(
    service_name: str = "webdav-core",
    otlp_endpoint: str | None = None,
    otlp_verify_ssl: bool = False,
) -> Tracer:
    """
    Initialize OpenTelemetry tracing.

    Args:
        service_name: Service name for traces (default: "webdav-core")
        otlp_endpoint: OTLP gRPC endpoint (e.g., "http://otel-collector:4317").
                      If None, spans are created but not exported
        otlp_verify_ssl: Enable TLS verification for otlp_endpoint

    Returns:
        Tracer instance for creating custom spans
    """
    global _tracer

    try:
        service_version = version("webdav-core")
    except PackageNotFoundError:
        service_version = "unknown"

    resource = Resource.create(
        {
            "service.name": service_name,
            "service.version": service_version,
        }
    )

    provider = TracerProvider(resource=resource)

    if otlp_endpoint:
        try:
            otlp_exporter = OTLPSpanExporter(
                endpoint=otlp_endpoint, insecure=not otlp_verify_ssl
            )
            provider.add_span_processor(BatchSpanProcessor(otlp_exporter))
            logger.info(
                f"OpenTelemetry tracing enabled with OTLP endpoint: {otlp_endpoint}"
            )
        except Exception as e:
            logger.warning(
                f"Failed to initialize OTLP exporter: {e}. Continuing without trace export."
            )
    else:
        logger.info(
            "OpenTelemetry tracing initialized without OTLP exporter (traces will be generated but not exported)"
        )

    trace.set_tracer_provider(provider)

    # Auto-instrument logging to inject trace context
    LoggingInstrumentor().instrument(set_logging_format=True)

    _tracer = trace.get_tracer(__name__)

    logger.info(f"OpenTelemetry tracing initialized for service: {service_name}")
    return _tracer


def get_tracer() -> Tracer | None:
    """Return the global tracer, or None if setup_tracing() was never called."""
    return _tracer


@contextmanager
def trace_operation(
    operation_name: str,
    attributes: dict[str, Any] | None = None,
    record_exception: bool = True,
):
    """
    Context manager for tracing an operation with automatic error handling.

    Usage:
        with trace_operation("webdav.stat", {"webdav.path": "/docs"}):
            ...

    Yields:
        Span instance (or None if tracing is disabled)
    """
    tracer = get_tracer()

    if tracer is None:
        yield None
        return

    with tracer.start_as_current_span(operation_name) as span:
        if attributes:
            for key, value in attributes.items():
                span.set_attribute(key, value)

        try:
            yield span
            span.set_status(Status(StatusCode.OK))
        except Exception as e:
            if record_exception:
                span.record_exception(e)
            span.set_status(Status(StatusCode.ERROR, str(e)))
            raise


def trace_webdav_request(method: str, path: str | None = None):
    """
    Create a span for one WebDAV request.

    Args:
        method: HTTP method (GET, PROPFIND, MOVE, ...)
        path: Optional resource path

    Returns:
        Context manager for the span
    """
    attributes = {"http.method": method}

    if path:
        attributes["webdav.path"] = path

    return trace_operation(f"webdav.{method}", attributes)


def get_trace_context() -> dict[str, str]:
    """
    Get current trace context as a dictionary.

    Returns:
        Dictionary with trace_id and span_id (empty if tracing is disabled or no span is active)
    """
    if _tracer is None:
        return {}

    span = trace.get_current_span()
    if span.is_recording():
        span_context = span.get_span_context()
        return {
            "trace_id": format(span_context.trace_id, "032x"),
            "span_id": format(span_context.span_id, "016x"),
        }
    return {}
