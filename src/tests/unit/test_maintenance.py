"""Tests for MaintenanceService."""

import asyncio
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import update
from sqlmodel import col

from folioguard.app.config import AuditConfig, MaintenanceConfig
from folioguard.core.models import AuditAction, AuditLog, FailedLoginAttempt, Session
from folioguard.services.maintenance import MaintenanceService


def _service(services, **audit_overrides) -> MaintenanceService:
    return MaintenanceService(
        services.session_factory,
        services.audit,
        services.sessions,
        AuditConfig(**audit_overrides),
        MaintenanceConfig(enabled=True, interval_seconds=0.05),
    )


async def _add_failed(db_session, count: int, age: timedelta) -> None:
    at = datetime.now(UTC) - age
    for i in range(count):
        db_session.add(
            FailedLoginAttempt(identifier=f"user{i}", ip_address="10.0.0.1", attempted_at=at)
        )
    await db_session.commit()


async def test_run_once_purges_by_age(db_session, services):
    now = datetime.now(UTC)
    db_session.add(AuditLog(action="admin_logout", resource="x", created_at=now - timedelta(days=91)))
    db_session.add(AuditLog(action="admin_logout", resource="x", created_at=now - timedelta(days=1)))
    await db_session.commit()
    await _add_failed(db_session, 2, timedelta(days=31))
    await _add_failed(db_session, 1, timedelta(hours=1))

    user = await services.identities.upsert_admin(db_session, "admin")
    stale = await services.sessions.create(db_session, user)
    live = await services.sessions.create(db_session, user)
    await db_session.execute(
        update(Session)
        .where(col(Session.id) == stale.id)
        .values(expires_at=now - timedelta(minutes=1))
    )
    await db_session.commit()

    report = await _service(services).run_once()

    assert report.audit_logs_purged == 1
    assert report.failed_logins_purged == 2
    assert report.sessions_purged == 1
    assert report.failed_logins_in_window == 1
    assert report.suspicious is False
    assert await services.sessions.get_valid(db_session, live.id) is not None


async def test_suspicious_activity_is_audited(db_session, services):
    await _add_failed(db_session, 4, timedelta(hours=1))

    report = await _service(services, suspicious_threshold=3).run_once()

    assert report.suspicious is True
    entries = await services.audit.query()
    assert len(entries) == 1
    assert entries[0].action == AuditAction.SUSPICIOUS_LOGIN_ACTIVITY
    assert entries[0].severity == "critical"
    assert entries[0].details["failed_logins"] == 4


async def test_threshold_is_exclusive(db_session, services):
    await _add_failed(db_session, 3, timedelta(hours=1))

    report = await _service(services, suspicious_threshold=3).run_once()

    assert report.suspicious is False
    assert await services.audit.query() == []


async def test_start_and_stop(services):
    maintenance = _service(services)

    maintenance.start()
    assert maintenance.running is True
    await asyncio.sleep(0.1)
    await maintenance.stop()

    assert maintenance.running is False
    assert maintenance.last_run_at is not None


async def test_disabled_does_not_start(services):
    maintenance = MaintenanceService(
        services.session_factory,
        services.audit,
        services.sessions,
        AuditConfig(),
        MaintenanceConfig(enabled=False),
    )

    maintenance.start()

    assert maintenance.running is False
    await maintenance.stop()


async def test_status(services):
    maintenance = _service(services)
    assert maintenance.status()["lastReport"] is None

    await maintenance.run_once()

    status = maintenance.status()
    assert status["enabled"] is True
    assert status["running"] is False
    assert status["intervalSeconds"] == pytest.approx(0.05)
    assert status["lastReport"]["sessions_purged"] == 0
