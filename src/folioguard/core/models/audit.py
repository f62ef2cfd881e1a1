"""Audit trail models (AuditLog, FailedLoginAttempt).

Both tables are append-only for normal operation. Rows are removed only by
the age-based retention routines in the maintenance service.
"""

from datetime import datetime
from enum import StrEnum
from typing import Any

from sqlalchemy import JSON, Column, DateTime, Index
from sqlmodel import Field, SQLModel

from folioguard.core.models.auth import generate_ulid, utc_now


class AuditAction(StrEnum):
    """Closed vocabulary of audited security events."""

    ADMIN_LOGIN_SUCCESS = "admin_login_success"
    ADMIN_LOGIN_FAILED = "admin_login_failed"
    ADMIN_ACCESS_DENIED = "admin_access_denied"
    ADMIN_LOGOUT = "admin_logout"
    SUSPICIOUS_LOGIN_ACTIVITY = "suspicious_login_activity"


class Severity(StrEnum):
    """Audit entry severity."""

    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class AuditLog(SQLModel, table=True):
    """Immutable fact about a security-relevant event."""

    __tablename__ = "audit_logs"
    __table_args__ = (Index("ix_audit_logs_actor_created", "actor_id", "created_at"),)

    id: str = Field(default_factory=generate_ulid, primary_key=True)
    actor_id: str | None = Field(default=None, index=True)
    action: str = Field(index=True)
    resource: str
    details: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON))
    severity: str = Field(default=Severity.INFO.value)
    ip_address: str | None = Field(default=None)
    user_agent: str | None = Field(default=None)
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True),
    )


class FailedLoginAttempt(SQLModel, table=True):
    """Denormalized failed-login record for rolling-window threat queries."""

    __tablename__ = "failed_login_attempts"

    id: str = Field(default_factory=generate_ulid, primary_key=True)
    identifier: str = Field(index=True)
    ip_address: str
    user_agent: str | None = Field(default=None)
    provider: str = Field(default="admin")
    attempted_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True),
    )
