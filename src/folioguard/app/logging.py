"""Process logging for folioguard.

Every line is a JSON object carrying the service name, schema version and,
inside a request, the trace id set by ``LoggingMiddleware``. Structured
``extra`` fields pass through credential redaction before they are written,
because the process log is also the fallback channel for audit entries that
could not be stored.
"""

import logging
import sys
import time
from collections import defaultdict, deque
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from pythonjsonlogger.json import JsonFormatter

from folioguard.app.config import get_settings
from folioguard.core.security import redact_sensitive

trace_id_ctx: ContextVar[str | None] = ContextVar("trace_id", default=None)

# Fields produced by the formatter itself, never redacted
_STANDARD_FIELDS = frozenset({
    "message",
    "timestamp",
    "level",
    "logger",
    "pid",
    "filename",
    "lineno",
    "schema_version",
    "service",
    "trace_id",
    "exception",
})


def get_trace_id() -> str | None:
    return trace_id_ctx.get()


def set_trace_id(trace_id: str | None = None) -> str:
    """Bind a trace id to the current request context.

    An incoming ``X-Trace-ID`` is reused; otherwise a UUID4 is generated.
    """
    tid = trace_id or str(uuid4())
    trace_id_ctx.set(tid)
    return tid


def clear_trace_context() -> None:
    trace_id_ctx.set(None)


class RateLimitFilter(logging.Filter):
    """Drop identical log lines beyond ``rate_per_minute``.

    A burst of failed logins from a single client would otherwise flood the
    log with the same warning. The first suppressed line is kept with a
    ``[RATE LIMITED]`` marker. ERROR and above always pass, so audit
    fallback entries are never dropped.
    """

    def __init__(self, rate_per_minute: int = 100) -> None:
        super().__init__()
        self.rate_per_minute = rate_per_minute
        self._seen: dict[str, deque[float]] = defaultdict(deque)
        self._marked: set[str] = set()

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno >= logging.ERROR:
            return True

        key = f"{record.name}:{record.lineno}:{record.msg}"
        now = time.monotonic()
        seen = self._seen[key]
        while seen and now - seen[0] >= 60:
            seen.popleft()

        if len(seen) < self.rate_per_minute:
            if len(seen) < self.rate_per_minute // 2:
                self._marked.discard(key)
            seen.append(now)
            return True

        if key in self._marked:
            return False
        self._marked.add(key)
        seen.append(now)
        record.msg = f"[RATE LIMITED] {record.msg} (max {self.rate_per_minute}/min)"
        return True


class CustomJsonFormatter(JsonFormatter):
    """JSON formatter adding service metadata, trace id and redaction."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        settings = get_settings()
        self._schema_version = settings.logging.schema_version
        self._service = settings.logging.service_name

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        for key in list(log_record):
            if key not in _STANDARD_FIELDS:
                log_record[key] = redact_sensitive({key: log_record[key]})[key]

        log_record.update(
            timestamp=datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            level=record.levelname,
            logger=record.name,
            pid=record.process,
            filename=record.filename,
            lineno=record.lineno,
            schema_version=self._schema_version,
            service=self._service,
        )

        if trace_id := get_trace_id():
            log_record["trace_id"] = trace_id

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)

        log_record.pop("color_message", None)


def setup_logging(level: int | None = None) -> None:
    """Route the root, uvicorn and library loggers through one JSON handler.

    Args:
        level: Log level. If None, uses LOGGING_LEVEL from settings.
    """
    settings = get_settings()

    if level is None:
        level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(CustomJsonFormatter())
    handler.addFilter(RateLimitFilter(settings.logging.rate_limit_per_minute))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in ("uvicorn", "uvicorn.error"):
        uv_logger = logging.getLogger(name)
        uv_logger.handlers.clear()
        uv_logger.propagate = False
        uv_logger.addHandler(handler)

    # LoggingMiddleware writes the per-request line
    logging.getLogger("uvicorn.access").disabled = True

    for noisy in ("sqlalchemy.engine", "aiosqlite", "slowapi"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
