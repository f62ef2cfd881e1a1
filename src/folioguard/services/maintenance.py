"""Periodic retention and security review.

Each cycle:
1. Purge audit entries older than the audit retention horizon
2. Purge failed login attempts older than their retention horizon
3. Purge expired sessions
4. Count failed logins in the review window and raise a critical audit
   entry when the count exceeds the suspicious threshold

The loop runs as an asyncio task owned by the application lifespan.
"""

import asyncio
import logging
import time
from dataclasses import asdict, dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from folioguard.app.config import AuditConfig, MaintenanceConfig
from folioguard.app.metrics.collector import MAINTENANCE_PURGED_TOTAL
from folioguard.core.logging_schema import Component, LogEvent
from folioguard.core.models import AuditAction, Severity
from folioguard.services.audit_service import AuditService
from folioguard.services.login_attempt_service import LoginAttemptService
from folioguard.services.session_service import SessionService

logger = logging.getLogger(__name__)

SYSTEM_RESOURCE = "system/security"


@dataclass
class MaintenanceReport:
    started_at: datetime
    duration_ms: float = 0.0
    audit_logs_purged: int = 0
    failed_logins_purged: int = 0
    sessions_purged: int = 0
    failed_logins_in_window: int = 0
    suspicious: bool = False

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["started_at"] = self.started_at.isoformat()
        return data


class MaintenanceService:
    """Owns the maintenance loop. Constructed once per application."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        audit: AuditService,
        sessions: SessionService,
        audit_config: AuditConfig,
        config: MaintenanceConfig,
    ) -> None:
        self._session_factory = session_factory
        self._audit = audit
        self._sessions = sessions
        self._audit_config = audit_config
        self._config = config
        self._task: asyncio.Task[None] | None = None
        self._lock = asyncio.Lock()
        self.last_run_at: datetime | None = None
        self.last_report: MaintenanceReport | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if not self._config.enabled:
            logger.info("Maintenance disabled", extra={"component": Component.MAINT})
            return
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="folioguard-maintenance")
        logger.info(
            "Maintenance started",
            extra={
                "event": LogEvent.MAINTENANCE_STARTED,
                "component": Component.MAINT,
                "interval_seconds": self._config.interval_seconds,
            },
        )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _loop(self) -> None:
        while True:
            try:
                await self.run_once()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.exception(
                    "Maintenance cycle failed: %s",
                    e,
                    extra={
                        "event": LogEvent.MAINTENANCE_FAILED,
                        "component": Component.MAINT,
                    },
                )
            await asyncio.sleep(self._config.interval_seconds)

    async def run_once(self) -> MaintenanceReport:
        """Run one cycle. Concurrent calls are serialized."""
        async with self._lock:
            return await self._run()

    async def _run(self) -> MaintenanceReport:
        now = datetime.now(UTC)
        start = time.monotonic()
        report = MaintenanceReport(started_at=now)

        report.audit_logs_purged = await self._audit.purge_older_than(
            now - timedelta(days=self._audit_config.retention_days)
        )
        async with self._session_factory() as db:
            report.failed_logins_purged = await LoginAttemptService.purge_older_than(
                db, now - timedelta(days=self._audit_config.failed_login_retention_days)
            )
            report.sessions_purged = await self._sessions.purge_expired(db)
            report.failed_logins_in_window = await LoginAttemptService.count_since(
                db, now - timedelta(hours=self._audit_config.review_window_hours)
            )

        MAINTENANCE_PURGED_TOTAL.labels(table="audit_logs").inc(report.audit_logs_purged)
        MAINTENANCE_PURGED_TOTAL.labels(table="failed_login_attempts").inc(
            report.failed_logins_purged
        )
        MAINTENANCE_PURGED_TOTAL.labels(table="sessions").inc(report.sessions_purged)

        if report.failed_logins_in_window > self._audit_config.suspicious_threshold:
            report.suspicious = True
            await self._flag_suspicious(report)

        report.duration_ms = (time.monotonic() - start) * 1000
        self.last_run_at = now
        self.last_report = report

        logger.info(
            "Maintenance complete",
            extra={
                "event": LogEvent.MAINTENANCE_COMPLETE,
                "component": Component.MAINT,
                "duration_ms": round(report.duration_ms, 2),
                "audit_logs_purged": report.audit_logs_purged,
                "failed_logins_purged": report.failed_logins_purged,
                "sessions_purged": report.sessions_purged,
            },
        )
        return report

    async def _flag_suspicious(self, report: MaintenanceReport) -> None:
        window = self._audit_config.review_window_hours
        logger.warning(
            "High number of failed login attempts",
            extra={
                "event": LogEvent.SUSPICIOUS_ACTIVITY,
                "component": Component.MAINT,
                "failed_logins": report.failed_logins_in_window,
                "window_hours": window,
            },
        )
        await self._audit.record(
            AuditAction.SUSPICIOUS_LOGIN_ACTIVITY,
            SYSTEM_RESOURCE,
            severity=Severity.CRITICAL,
            details={
                "failed_logins": report.failed_logins_in_window,
                "window_hours": window,
                "threshold": self._audit_config.suspicious_threshold,
            },
        )

    def status(self) -> dict[str, Any]:
        return {
            "enabled": self._config.enabled,
            "running": self.running,
            "intervalSeconds": self._config.interval_seconds,
            "lastRunAt": self.last_run_at.isoformat() if self.last_run_at else None,
            "lastReport": self.last_report.to_dict() if self.last_report else None,
        }
