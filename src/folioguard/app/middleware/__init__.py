"""HTTP middleware."""

from folioguard.app.middleware.logging import TRACE_ID_HEADER, LoggingMiddleware
from folioguard.app.middleware.security import SecurityHeadersMiddleware

__all__ = ["LoggingMiddleware", "SecurityHeadersMiddleware", "TRACE_ID_HEADER"]
