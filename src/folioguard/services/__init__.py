"""Services module."""

from folioguard.services.audit_service import AuditService
from folioguard.services.credentials import AdminCredentials, CredentialStore
from folioguard.services.identity_service import IdentityService
from folioguard.services.login_attempt_service import LoginAttemptService
from folioguard.services.maintenance import MaintenanceReport, MaintenanceService
from folioguard.services.rate_limiter import (
    LoginRateLimiter,
    RateLimitDecision,
    build_api_limiter,
)
from folioguard.services.session_service import (
    SessionService,
    sign_session_id,
    unsign_session_cookie,
)

__all__ = [
    "AdminCredentials",
    "AuditService",
    "CredentialStore",
    "IdentityService",
    "LoginAttemptService",
    "LoginRateLimiter",
    "MaintenanceReport",
    "MaintenanceService",
    "RateLimitDecision",
    "SessionService",
    "build_api_limiter",
    "sign_session_id",
    "unsign_session_cookie",
]
