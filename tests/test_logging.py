"""
HashCertify Logging Tests

Test suite for structured JSON logging functionality including:
- JSON formatting with run and request context
- Extra fields and exception details
- Logger setup for the CLI and the API
- Request logging middleware with request IDs

Example usage:
    pytest tests/test_logging.py -v
"""

import json
import logging
import sys
from datetime import datetime, timezone
from io import StringIO
from pathlib import PurePosixPath
from unittest.mock import Mock

from fastapi import FastAPI
from fastapi.testclient import TestClient

from core.logging import (
    JSONFormatter,
    RequestLoggingMiddleware,
    get_logger,
    log_with_context,
    new_run_id,
    setup_logging,
)


def _record(msg="Test message", level=logging.INFO, exc_info=None):
    return logging.LogRecord(
        name="test.logger",
        level=level,
        pathname="/test/path.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=exc_info
    )


class TestJSONFormatter:
    """Test JSON log formatting functionality."""

    def test_basic_formatting(self):
        """Test basic log record formatting as JSON."""
        log_data = json.loads(JSONFormatter().format(_record()))

        assert log_data["level"] == "INFO"
        assert log_data["logger"] == "test.logger"
        assert log_data["msg"] == "Test message"

        timestamp = datetime.fromisoformat(log_data["time"])
        assert timestamp.tzinfo == timezone.utc

    def test_run_context_fields(self):
        """Test run and request context fields in log formatting."""
        record = _record("Verification completed")
        record.run_id = "ab12cd34"
        record.request_id = "req-1"
        record.status = 200

        log_data = json.loads(JSONFormatter().format(record))

        assert log_data["run_id"] == "ab12cd34"
        assert log_data["request_id"] == "req-1"
        assert log_data["status"] == 200

    def test_extra_fields(self):
        """Test additional fields, including non-JSON types, in log records."""
        record = _record("Counts")
        record.counts = {"matched": 3}
        record.archive = PurePosixPath("evidence.zip")

        log_data = json.loads(JSONFormatter().format(record))

        assert log_data["counts"] == {"matched": 3}
        assert log_data["archive"] == "evidence.zip"

    def test_exception_formatting(self):
        """Test exception information in log formatting."""
        try:
            raise ValueError("Test exception")
        except ValueError:
            record = _record("Error occurred", logging.ERROR, sys.exc_info())

        log_data = json.loads(JSONFormatter().format(record))

        assert "ValueError: Test exception" in log_data["exception"]


class TestUtilityFunctions:
    """Test setup and helper functions."""

    def test_setup_logging_json_format(self):
        stream = StringIO()
        setup_logging(level="DEBUG", format_type="json", logger_name="core", stream=stream)

        get_logger("core.example").debug("Digest computed")

        log_data = json.loads(stream.getvalue().strip())
        assert log_data["msg"] == "Digest computed"
        assert log_data["logger"] == "core.example"
        assert logging.getLogger("core").propagate is False

    def test_setup_logging_text_format(self):
        stream = StringIO()
        setup_logging(level="INFO", format_type="text", logger_name="core", stream=stream)

        get_logger("core.example").info("Plain message")
        get_logger("core.example").debug("Hidden")

        output = stream.getvalue()
        assert "INFO - Plain message" in output
        assert "Hidden" not in output

    def test_setup_logging_replaces_handlers(self):
        setup_logging(logger_name="core", stream=StringIO())
        setup_logging(logger_name="core", stream=StringIO())

        assert len(logging.getLogger("core").handlers) == 1

    def test_log_with_context_no_request(self):
        stream = StringIO()
        setup_logging(level="INFO", logger_name="core", stream=stream)

        log_with_context(get_logger("core.verify"), "warning", "Run finished", run_id="ab12cd34", files=3)

        log_data = json.loads(stream.getvalue().strip())
        assert log_data["level"] == "WARNING"
        assert log_data["run_id"] == "ab12cd34"
        assert log_data["files"] == 3

    def test_log_with_context_with_request(self):
        stream = StringIO()
        setup_logging(level="INFO", logger_name="core", stream=stream)
        request = Mock()
        request.state.request_id = "req-42"
        request.url.path = "/api/reconcile"
        request.method = "POST"

        log_with_context(get_logger("core.api"), "info", "Handled", request=request)

        log_data = json.loads(stream.getvalue().strip())
        assert log_data["request_id"] == "req-42"
        assert log_data["path"] == "/api/reconcile"
        assert log_data["method"] == "POST"

    def test_new_run_id(self):
        run_id = new_run_id()

        assert len(run_id) == 8
        assert run_id != new_run_id()


class TestRequestLoggingMiddleware:
    """Test request logging on a minimal app."""

    def _client(self, stream):
        setup_logging(level="INFO", logger_name="core.test_requests", stream=stream)
        app = FastAPI()
        app.add_middleware(RequestLoggingMiddleware, logger_name="core.test_requests")

        @app.get("/ping")
        async def ping():
            return {"ok": True}

        return TestClient(app)

    def test_request_id_header_and_logs(self):
        stream = StringIO()
        response = self._client(stream).get("/ping")

        assert response.status_code == 200
        request_id = response.headers["X-Request-ID"]
        lines = [json.loads(line) for line in stream.getvalue().strip().splitlines()]
        assert [line["msg"] for line in lines] == [
            "Request started: GET /ping",
            "Request completed: GET /ping",
        ]
        assert all(line["request_id"] == request_id for line in lines)
        assert lines[1]["status"] == 200
        assert "duration_ms" in lines[1]
