"""
Structured JSON logging infrastructure for HashCertify.

This module provides standardized JSON logging with run and request
tracking, compatible with log aggregation services like CloudWatch, ELK,
and DataDog.

Example usage:
    >>> from core.logging import get_logger, setup_logging
    >>> setup_logging()
    >>> logger = get_logger(__name__)
    >>> logger.info("Reconciliation started", extra={"run_id": "abc123"})
"""

import json
import logging
import sys
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

# Attributes every LogRecord carries; anything else came in through ``extra``
_RESERVED_ATTRS = frozenset([
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname',
    'filename', 'module', 'lineno', 'funcName', 'created',
    'msecs', 'relativeCreated', 'thread', 'threadName',
    'processName', 'process', 'getMessage', 'exc_info',
    'exc_text', 'stack_info', 'taskName', 'message', 'asctime',
    'request_id', 'run_id', 'path', 'method', 'status', 'duration_ms',
    'client_ip'
])


class JSONFormatter(logging.Formatter):
    """
    Custom JSON formatter for structured logging.

    Formats log records as JSON with consistent fields for log aggregation.
    Includes timestamp, level, message, and additional context fields.

    Example:
        >>> formatter = JSONFormatter()
        >>> handler = logging.StreamHandler()
        >>> handler.setFormatter(formatter)
    """

    def format(self, record: logging.LogRecord) -> str:
        """
        Format log record as JSON string.

        Args:
            record: Python logging record to format

        Returns:
            JSON formatted log string
        """
        log_entry: Dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }

        # Add run/request context if available
        for field in ('run_id', 'request_id', 'path', 'method', 'status', 'duration_ms', 'client_ip'):
            if hasattr(record, field):
                log_entry[field] = getattr(record, field)

        # Add any extra fields from the log record
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_entry[key] = value

        # Handle exception information
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, ensure_ascii=False, default=str)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    FastAPI middleware for automatic request/response logging.

    Logs all incoming requests with response status and timing.
    Generates unique request IDs for request correlation.

    Example:
        >>> from fastapi import FastAPI
        >>> app = FastAPI()
        >>> app.add_middleware(RequestLoggingMiddleware)
    """

    def __init__(self, app, logger_name: str = "hashcertify.requests"):
        super().__init__(app)
        self.logger = logging.getLogger(logger_name)

    async def dispatch(self, request: Request, call_next) -> Response:
        """
        Process request and log details with timing.

        Args:
            request: Incoming HTTP request
            call_next: Next middleware or route handler

        Returns:
            HTTP response with logging context
        """
        request_id = new_run_id()
        request.state.request_id = request_id
        client_ip = request.client.host if request.client else "unknown"
        start_time = time.time()

        self.logger.info(
            f"Request started: {request.method} {request.url.path}",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "client_ip": client_ip
            }
        )

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = int((time.time() - start_time) * 1000)
            self.logger.error(
                f"Request failed: {request.method} {request.url.path}",
                extra={
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "status": 500,
                    "duration_ms": duration_ms,
                    "client_ip": client_ip,
                    "error": str(e)
                },
                exc_info=True
            )
            raise

        duration_ms = int((time.time() - start_time) * 1000)
        self.logger.info(
            f"Request completed: {request.method} {request.url.path}",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "duration_ms": duration_ms,
                "client_ip": client_ip
            }
        )

        # Add request ID to response headers for debugging
        response.headers["X-Request-ID"] = request_id
        return response


def new_run_id() -> str:
    """Short random identifier used to correlate log lines of one run or request."""
    return str(uuid.uuid4())[:8]


def setup_logging(
    level: str = "INFO",
    format_type: str = "json",
    logger_name: Optional[str] = None,
    stream=None
) -> None:
    """
    Configure application-wide logging.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_type: Log format type ("json" or "text")
        logger_name: Specific logger to configure (None for root)
        stream: Output stream (defaults to stderr so CLI output stays clean)

    Example:
        >>> setup_logging(level="DEBUG", format_type="json")
        >>> logger = get_logger(__name__)
        >>> logger.info("Application started")
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    if format_type.lower() == "json":
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(formatter)
    handler.setLevel(numeric_level)

    if logger_name:
        logger = logging.getLogger(logger_name)
    else:
        logger = logging.getLogger()

    # Clear existing handlers to avoid duplicates
    logger.handlers.clear()

    logger.addHandler(handler)
    logger.setLevel(numeric_level)

    if logger_name:
        logger.propagate = False


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a specific module.

    Args:
        name: Logger name (typically __name__ from calling module)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    request: Optional[Request] = None,
    **kwargs
) -> None:
    """
    Log message with run or request context.

    Args:
        logger: Logger instance to use
        level: Log level (info, warning, error, etc.)
        message: Log message
        request: FastAPI request object for context
        **kwargs: Additional context fields (run_id, archive, counts, ...)

    Example:
        >>> logger = get_logger(__name__)
        >>> log_with_context(logger, "info", "Digested archive", run_id="ab12cd34", files=12)
    """
    extra_fields = dict(kwargs)

    if request is not None:
        if hasattr(request.state, 'request_id'):
            extra_fields['request_id'] = request.state.request_id
        extra_fields['path'] = request.url.path
        extra_fields['method'] = request.method

    log_method = getattr(logger, level.lower(), logger.info)
    log_method(message, extra=extra_fields)
