"""
Logging configuration for the WebDAV client.

This module provides:
- Structured JSON logging with python-json-logger
- Trace context injection (trace_id, span_id) for correlation with traces
- Configurable log formats (JSON or text)
"""

import logging
import sys
from typing import Any

from pythonjsonlogger.json import JsonFormatter

from webdav_core.observability.tracing import get_trace_context


class TraceContextFormatter(JsonFormatter):
    """JSON formatter that injects OpenTelemetry trace context into log records."""

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        trace_context = get_trace_context()
        if trace_context:
            log_record["trace_id"] = trace_context.get("trace_id")
            log_record["span_id"] = trace_context.get("span_id")

        log_record["timestamp"] = self.formatTime(record)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["message"] = record.getMessage()

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)


class TraceContextTextFormatter(logging.Formatter):
    """
    Text formatter that includes OpenTelemetry trace context.

    Format: LEVEL [timestamp] logger - message [trace_id=xxx span_id=yyy]
    """

    def format(self, record: logging.LogRecord) -> str:
        base_message = super().format(record)

        trace_context = get_trace_context()
        if trace_context:
            trace_id = trace_context.get("trace_id", "")
            span_id = trace_context.get("span_id", "")
            return f"{base_message} [trace_id={trace_id} span_id={span_id}]"

        return base_message


def setup_logging(
    log_format: str = "text",
    log_level: str = "INFO",
    include_trace_context: bool = True,
    stream=None,
) -> None:
    """
    Configure root logging.

    Args:
        log_format: "json" for JSON logging, "text" for human-readable text (default: "text")
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        include_trace_context: Whether to include trace context in logs
        stream: Output stream (default: sys.stderr, keeping stdout for command output)
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(stream or sys.stderr)
    console_handler.setLevel(level)

    if log_format.lower() == "json":
        if include_trace_context:
            formatter = TraceContextFormatter(
                "%(timestamp)s %(level)s %(name)s %(message)s",
                datefmt="%Y-%m-%dT%H:%M:%S",
            )
        else:
            formatter = JsonFormatter(
                "%(asctime)s %(levelname)s %(name)s %(message)s",
                datefmt="%Y-%m-%dT%H:%M:%S",
            )
    else:
        formatter_class = (
            TraceContextTextFormatter if include_trace_context else logging.Formatter
        )
        formatter = formatter_class(
            "%(levelname)s [%(asctime)s] %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    configure_component_loggers(log_level)

    root_logger.debug(
        f"Logging configured: format={log_format}, level={log_level}, "
        f"trace_context={include_trace_context}"
    )


def configure_component_loggers(default_level: str = "INFO") -> None:
    """Set log levels for the client and its (noisier) dependencies."""
    logger_levels = {
        "webdav_core": default_level,
        "webdav_core.client": default_level,
        "webdav_core.observability": default_level,
        # HTTP client loggers (less verbose by default)
        "httpx": "WARNING",
        "httpcore": "WARNING",
        "opentelemetry": "WARNING",
    }

    for logger_name, level in logger_levels.items():
        logging.getLogger(logger_name).setLevel(
            getattr(logging, level.upper(), logging.INFO)
        )
