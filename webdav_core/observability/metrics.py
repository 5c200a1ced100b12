"""
Prometheus metrics for the WebDAV client.

Metrics are organized by category:

- WebDAV Request Metrics (rate, errors, duration per method)
- Transfer Metrics (bytes sent/received)
- Classified Error Metrics
"""

import logging

from prometheus_client import (
    Counter,
    Histogram,
    start_http_server,
)

logger = logging.getLogger(__name__)

# =============================================================================
# WebDAV Request Metrics
# =============================================================================

webdav_requests_total = Counter(
    "webdav_requests_total",
    "Total WebDAV requests issued",
    ["method", "status_code"],  # status_code 0: no response received
)

webdav_request_duration_seconds = Histogram(
    "webdav_request_duration_seconds",
    "WebDAV request duration in seconds",
    ["method"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

# =============================================================================
# Transfer Metrics
# =============================================================================

webdav_bytes_sent_total = Counter(
    "webdav_bytes_sent_total",
    "Total request body bytes sent (in-memory bodies only)",
    ["method"],
)

webdav_bytes_received_total = Counter(
    "webdav_bytes_received_total",
    "Total buffered response body bytes received",
    ["method"],
)

# =============================================================================
# Classified Error Metrics
# =============================================================================

webdav_errors_total = Counter(
    "webdav_errors_total",
    "Total classified WebDAV errors",
    ["method", "error_type"],
)


def setup_metrics(port: int = 9090) -> None:
    """
    Start a dedicated HTTP server exposing the metrics.

    Args:
        port: Port to serve metrics on (default: 9090)
    """
    try:
        start_http_server(port)
        logger.info(f"Prometheus metrics server started on port {port}")
    except OSError as e:
        if "Address already in use" in str(e):
            logger.warning(
                f"Metrics port {port} already in use (metrics server likely already running)"
            )
        else:
            logger.error(f"Failed to start metrics server on port {port}: {e}")
            raise


def record_webdav_request(method: str, status_code: int, duration: float) -> None:
    """
    Record metrics for one WebDAV request.

    Args:
        method: HTTP method (GET, PUT, PROPFIND, MKCOL, ...)
        status_code: HTTP status code, 0 when no response was received
        duration: Request duration in seconds
    """
    webdav_requests_total.labels(method=method, status_code=str(status_code)).inc()
    webdav_request_duration_seconds.labels(method=method).observe(duration)


def record_webdav_transfer(method: str, sent: int = 0, received: int = 0) -> None:
    if sent:
        webdav_bytes_sent_total.labels(method=method).inc(sent)
    if received:
        webdav_bytes_received_total.labels(method=method).inc(received)


def record_webdav_error(method: str, error_type: str) -> None:
    """
    Record a classified error.

    Args:
        method: HTTP method
        error_type: Error class name (e.g., "NotFoundError", "TransportError")
    """
    webdav_errors_total.labels(method=method, error_type=error_type).inc()
