"""
Observability for the WebDAV client.

This module provides:
- Prometheus metrics collection
- OpenTelemetry distributed tracing
- Structured logging with trace correlation
"""

from webdav_core.observability.logging_config import setup_logging
from webdav_core.observability.metrics import setup_metrics
from webdav_core.observability.tracing import setup_tracing

__all__ = [
    "setup_logging",
    "setup_metrics",
    "setup_tracing",
]
