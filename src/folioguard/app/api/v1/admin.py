"""Admin API endpoints. Every route requires the authorized admin session.

Endpoints:
- GET /api/v1/admin/status - Current admin session and service status
- GET /api/v1/admin/audit-logs - Audit entries, newest first
- GET /api/v1/admin/failed-logins - Failed login attempts in a window
- GET /api/v1/admin/maintenance - Maintenance loop status
- POST /api/v1/admin/maintenance/run - Run one maintenance cycle now
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from fastapi import APIRouter, Query
from pydantic import BaseModel, ConfigDict, Field

from folioguard import __version__
from folioguard.app.api.dependencies import AdminAuth, DbSession, Services
from folioguard.core.models import AuditLog, FailedLoginAttempt
from folioguard.services.audit_service import DEFAULT_QUERY_LIMIT, MAX_QUERY_LIMIT
from folioguard.services.login_attempt_service import LoginAttemptService

router = APIRouter(prefix="/admin", tags=["admin"])


class AuditLogResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    actor_id: str | None = Field(alias="actorId")
    action: str
    resource: str
    details: dict[str, Any] | None
    severity: str
    ip_address: str | None = Field(alias="ipAddress")
    user_agent: str | None = Field(alias="userAgent")
    created_at: datetime = Field(alias="createdAt")

    @classmethod
    def from_model(cls, entry: AuditLog) -> "AuditLogResponse":
        return cls(
            id=entry.id,
            actor_id=entry.actor_id,
            action=entry.action,
            resource=entry.resource,
            details=entry.details,
            severity=entry.severity,
            ip_address=entry.ip_address,
            user_agent=entry.user_agent,
            created_at=entry.created_at,
        )


class FailedLoginResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    identifier: str
    ip_address: str = Field(alias="ipAddress")
    user_agent: str | None = Field(alias="userAgent")
    attempted_at: datetime = Field(alias="attemptedAt")

    @classmethod
    def from_model(cls, attempt: FailedLoginAttempt) -> "FailedLoginResponse":
        return cls(
            id=attempt.id,
            identifier=attempt.identifier,
            ip_address=attempt.ip_address,
            user_agent=attempt.user_agent,
            attempted_at=attempt.attempted_at,
        )


class FailedLoginsResponse(BaseModel):
    hours: int
    count: int
    attempts: list[FailedLoginResponse]


@router.get("/status")
async def admin_status(auth: AdminAuth, services: Services) -> dict[str, Any]:
    return {
        "success": True,
        "version": __version__,
        "environment": services.settings.app.environment,
        "user": auth.public_user(),
        "sessionExpiresAt": auth.expires_at.isoformat(),
        "maintenance": services.maintenance.status(),
    }


@router.get("/audit-logs")
async def list_audit_logs(
    _auth: AdminAuth,
    services: Services,
    actor_id: str | None = None,
    since_hours: int | None = Query(default=None, gt=0),
    limit: int = Query(default=DEFAULT_QUERY_LIMIT, ge=1, le=MAX_QUERY_LIMIT),
) -> list[AuditLogResponse]:
    """Audit entries filtered by actor and/or recency, newest first."""
    since = None
    if since_hours is not None:
        since = datetime.now(UTC) - timedelta(hours=since_hours)
    entries = await services.audit.query(actor_id=actor_id, since=since, limit=limit)
    return [AuditLogResponse.from_model(e) for e in entries]


@router.get("/failed-logins")
async def list_failed_logins(
    _auth: AdminAuth,
    db: DbSession,
    hours: int = Query(default=24, gt=0, le=24 * 90),
) -> FailedLoginsResponse:
    """Failed attempts in the window. The list is capped; count is not."""
    since = datetime.now(UTC) - timedelta(hours=hours)
    attempts = await LoginAttemptService.recent(db, hours=hours)
    total = await LoginAttemptService.count_since(db, since)
    return FailedLoginsResponse(
        hours=hours,
        count=total,
        attempts=[FailedLoginResponse.from_model(a) for a in attempts],
    )


@router.get("/maintenance")
async def maintenance_status(_auth: AdminAuth, services: Services) -> dict[str, Any]:
    return services.maintenance.status()


@router.post("/maintenance/run")
async def run_maintenance(_auth: AdminAuth, services: Services) -> dict[str, Any]:
    report = await services.maintenance.run_once()
    return {"success": True, "report": report.to_dict()}
