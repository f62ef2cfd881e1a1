"""Tests for JSON logging, trace context and log storm filtering."""

import json
import logging
from io import StringIO

import pytest

from folioguard.app.logging import (
    CustomJsonFormatter,
    RateLimitFilter,
    clear_trace_context,
    get_trace_id,
    set_trace_id,
)


@pytest.fixture
def capture():
    """Attach a JSON handler to a throwaway logger."""
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(CustomJsonFormatter())
    logger = logging.getLogger("folioguard.test.logging")
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    logger.propagate = False
    yield logger, stream
    logger.removeHandler(handler)
    clear_trace_context()


def _last(stream: StringIO) -> dict:
    return json.loads(stream.getvalue().strip().splitlines()[-1])


class TestCustomJsonFormatter:
    def test_standard_fields(self, capture):
        logger, stream = capture

        logger.info("Login failed", extra={"event": "login_failed", "ip": "10.0.0.1"})

        data = _last(stream)
        assert data["message"] == "Login failed"
        assert data["level"] == "INFO"
        assert data["logger"] == "folioguard.test.logging"
        assert data["service"] == "folioguard"
        assert data["schema_version"] == "1.0"
        assert data["event"] == "login_failed"
        assert data["ip"] == "10.0.0.1"
        assert "timestamp" in data
        assert "trace_id" not in data

    def test_trace_id_included_when_set(self, capture):
        logger, stream = capture
        set_trace_id("trace-123")

        logger.info("With trace")

        assert _last(stream)["trace_id"] == "trace-123"

    def test_exception_included(self, capture):
        logger, stream = capture
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            logger.exception("Failed")

        assert "RuntimeError: boom" in _last(stream)["exception"]

    def test_credential_fields_redacted(self, capture):
        logger, stream = capture

        logger.error(
            "Audit write failed",
            extra={
                "password": "hunter2",
                "audit_entry": {
                    "action": "admin_login_failed",
                    "details": {"identifier": "admin", "session_token": "abc"},
                },
            },
        )

        data = _last(stream)
        assert data["password"] == "[REDACTED]"
        assert data["audit_entry"]["action"] == "admin_login_failed"
        assert data["audit_entry"]["details"] == {
            "identifier": "admin",
            "session_token": "[REDACTED]",
        }
        assert "hunter2" not in stream.getvalue()


class TestTraceContext:
    def test_generates_id(self):
        trace_id = set_trace_id()
        assert get_trace_id() == trace_id
        assert len(trace_id) == 36
        clear_trace_context()
        assert get_trace_id() is None


class TestRateLimitFilter:
    def _record(self, level: int, msg: str = "same message") -> logging.LogRecord:
        return logging.LogRecord("x", level, __file__, 10, msg, None, None)

    def test_suppresses_repeated_messages(self):
        log_filter = RateLimitFilter(rate_per_minute=3)

        results = [log_filter.filter(self._record(logging.WARNING)) for _ in range(6)]

        # 3 allowed, one marker line, then suppressed
        assert results == [True, True, True, True, False, False]

    def test_errors_always_pass(self):
        log_filter = RateLimitFilter(rate_per_minute=1)

        assert all(log_filter.filter(self._record(logging.ERROR)) for _ in range(10))
