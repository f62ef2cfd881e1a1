"""Database models."""

from folioguard.core.models.audit import (
    AuditAction,
    AuditLog,
    FailedLoginAttempt,
    Severity,
)
from folioguard.core.models.auth import Role, Session, User, utc_now

__all__ = [
    "AuditAction",
    "AuditLog",
    "FailedLoginAttempt",
    "Role",
    "Session",
    "Severity",
    "User",
    "utc_now",
]
