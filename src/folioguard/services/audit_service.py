"""Audit log service.

Appends security events to the audit_logs table in their own transaction.
A failed append never propagates to the operation being documented: the
entry is written to the process log at ERROR instead.
"""

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import col

from folioguard.app.metrics.collector import (
    AUDIT_ENTRIES_TOTAL,
    AUDIT_WRITE_FAILURES_TOTAL,
)
from folioguard.core.logging_schema import Component, LogEvent
from folioguard.core.models import AuditAction, AuditLog, Severity
from folioguard.core.security import redact_sensitive

logger = logging.getLogger(__name__)

DEFAULT_QUERY_LIMIT = 100
MAX_QUERY_LIMIT = 500

SEVERITY_MAP: dict[AuditAction, Severity] = {
    AuditAction.ADMIN_LOGIN_SUCCESS: Severity.INFO,
    AuditAction.ADMIN_LOGIN_FAILED: Severity.WARNING,
    AuditAction.ADMIN_ACCESS_DENIED: Severity.WARNING,
    AuditAction.ADMIN_LOGOUT: Severity.INFO,
    AuditAction.SUSPICIOUS_LOGIN_ACTIVITY: Severity.CRITICAL,
}


def sanitize_details(details: dict[str, Any] | None) -> dict[str, Any] | None:
    """Mask values whose key looks like a credential."""
    if not details:
        return None
    return redact_sensitive(details)


class AuditService:
    """Append-only audit trail with newest-first queries."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def record(
        self,
        action: AuditAction,
        resource: str,
        *,
        actor_id: str | None = None,
        details: dict[str, Any] | None = None,
        severity: Severity | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AuditLog | None:
        """Append an audit entry.

        Returns the stored entry, or None if the write failed. Never raises
        on store errors.
        """
        entry = AuditLog(
            actor_id=actor_id,
            action=AuditAction(action).value,
            resource=resource,
            details=sanitize_details(details),
            severity=(severity or SEVERITY_MAP[AuditAction(action)]).value,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        payload = entry.model_dump(mode="json")
        try:
            async with self._session_factory() as db:
                db.add(entry)
                await db.commit()
                await db.refresh(entry)
        except SQLAlchemyError as exc:
            AUDIT_WRITE_FAILURES_TOTAL.inc()
            logger.error(
                "Audit write failed",
                extra={
                    "event": LogEvent.AUDIT_WRITE_FAILED,
                    "component": Component.AUDIT,
                    "audit_entry": payload,
                    "error": str(exc),
                },
            )
            return None

        AUDIT_ENTRIES_TOTAL.labels(
            action=payload["action"], severity=payload["severity"]
        ).inc()
        return entry

    async def query(
        self,
        *,
        actor_id: str | None = None,
        since: datetime | None = None,
        limit: int = DEFAULT_QUERY_LIMIT,
    ) -> list[AuditLog]:
        """Look up entries by actor and/or recency window, newest first."""
        limit = max(1, min(limit, MAX_QUERY_LIMIT))
        stmt = select(AuditLog)
        if actor_id is not None:
            stmt = stmt.where(col(AuditLog.actor_id) == actor_id)
        if since is not None:
            stmt = stmt.where(col(AuditLog.created_at) >= since)
        stmt = stmt.order_by(
            col(AuditLog.created_at).desc(), col(AuditLog.id).desc()
        ).limit(limit)

        async with self._session_factory() as db:
            result = await db.execute(stmt)
            return list(result.scalars().all())

    async def purge_older_than(self, cutoff: datetime) -> int:
        """Delete entries created before cutoff. Maintenance only."""
        async with self._session_factory() as db:
            result = await db.execute(
                delete(AuditLog).where(col(AuditLog.created_at) < cutoff)
            )
            await db.commit()
            return result.rowcount or 0
