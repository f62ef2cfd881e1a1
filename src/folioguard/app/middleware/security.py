"""Security response headers.

Applied to every response, API and pages alike. HSTS is only sent in
production, where the service sits behind TLS.
"""

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from folioguard.app.config import get_settings

CONTENT_SECURITY_POLICY = "; ".join([
    "default-src 'self'",
    # Pages carry small inline scripts
    "script-src 'self' 'unsafe-inline'",
    "style-src 'self' 'unsafe-inline'",
    "img-src 'self' data:",
    "object-src 'none'",
    "base-uri 'self'",
    "form-action 'self'",
    "frame-ancestors 'none'",
])

STRICT_TRANSPORT_SECURITY = "max-age=31536000; includeSubDomains; preload"

SECURITY_HEADERS: dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Content-Security-Policy": CONTENT_SECURITY_POLICY,
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Set hardening headers without overriding ones a route already set."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await call_next(request)

        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        if get_settings().app.is_production:
            response.headers.setdefault(
                "Strict-Transport-Security", STRICT_TRANSPORT_SECURITY
            )

        return response
