"""Tests for the authentication and admin gates."""

from unittest.mock import AsyncMock, patch

from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from folioguard.core.models import AuditLog, Role, User
from folioguard.services.session_service import sign_session_id


ADMIN_ROUTE = "/api/v1/admin/status"


def use_session_cookie(client, settings, value: str) -> None:
    client.cookies.clear()
    client.cookies.set(settings.session.cookie_name, value)


async def _audit_rows(db_session) -> list[AuditLog]:
    result = await db_session.execute(select(AuditLog).order_by(AuditLog.created_at))
    return list(result.scalars().all())


async def _audit_count(db_session) -> int:
    result = await db_session.execute(select(func.count()).select_from(AuditLog))
    return result.scalar_one()


class TestRequireAuth:
    async def test_no_cookie(self, client, db_session):
        response = await client.get(ADMIN_ROUTE)

        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["code"] == "UNAUTHENTICATED"
        assert body["redirectTo"] == "/admin-login"
        assert await _audit_count(db_session) == 0

    async def test_unsigned_cookie_rejected(self, client, settings, services, db_session):
        user = await services.identities.upsert_admin(db_session, "admin")
        session = await services.sessions.create(db_session, user)
        use_session_cookie(client, settings, session.id)

        response = await client.get("/api/v1/session")

        assert response.status_code == 401

    async def test_forged_signature_rejected(self, client, settings, services, db_session):
        user = await services.identities.upsert_admin(db_session, "admin")
        session = await services.sessions.create(db_session, user)
        use_session_cookie(client, settings, sign_session_id(session.id, "guess"))

        response = await client.get("/api/v1/session")

        assert response.status_code == 401

    async def test_store_failure_fails_closed(self, admin_client, services):
        failure = OperationalError("SELECT", {}, Exception("db down"))
        with patch.object(
            services.sessions, "get_valid", AsyncMock(side_effect=failure)
        ):
            response = await admin_client.get(ADMIN_ROUTE)

        assert response.status_code == 500
        assert response.json()["code"] == "STORE_UNAVAILABLE"


class TestRequireAdmin:
    async def test_admin_passes(self, admin_client):
        response = await admin_client.get(ADMIN_ROUTE)

        assert response.status_code == 200
        assert response.json()["user"]["isAdmin"] is True

    async def test_viewer_forbidden_with_one_audit_entry(self, viewer_client, db_session):
        before = await _audit_count(db_session)

        response = await viewer_client.get(ADMIN_ROUTE)

        assert response.status_code == 403
        body = response.json()
        assert body["code"] == "FORBIDDEN_ADMIN"
        assert body["redirectTo"] == "/"

        rows = await _audit_rows(db_session)
        assert len(rows) == before + 1
        entry = rows[-1]
        assert entry.action == "admin_access_denied"
        assert entry.severity == "warning"
        assert entry.actor_id == "viewer-1"
        assert entry.details["identifier"] == "reader"
        assert entry.details["role"] == "viewer"
        assert entry.details["path"] == ADMIN_ROUTE
        assert entry.details["reason"] == "insufficient_role"

    async def test_admin_role_with_foreign_identity(
        self, client, settings, services, db_session
    ):
        impostor = User(id="other-admin", username="other", role=Role.ADMIN.value)
        db_session.add(impostor)
        await db_session.commit()
        session = await services.sessions.create(db_session, impostor)
        use_session_cookie(
            client, settings, sign_session_id(session.id, services.session_secret)
        )

        response = await client.get(ADMIN_ROUTE)

        assert response.status_code == 403
        rows = await _audit_rows(db_session)
        assert rows[-1].details["reason"] == "unauthorized_identity"

    async def test_audit_failure_does_not_change_outcome(self, viewer_client, services):
        with patch.object(services.audit, "record", AsyncMock(return_value=None)):
            response = await viewer_client.get(ADMIN_ROUTE)

        assert response.status_code == 403


class TestPageRedirects:
    async def test_admin_page_redirects_to_login(self, client):
        response = await client.get("/admin")

        assert response.status_code == 303
        assert response.headers["location"] == "/admin-login"

    async def test_admin_page_redirects_viewer_to_forbidden_path(self, viewer_client):
        response = await viewer_client.get("/admin")

        assert response.status_code == 303
        assert response.headers["location"] == "/"

    async def test_admin_page_served_to_admin(self, admin_client):
        response = await admin_client.get("/admin")

        assert response.status_code == 200
        assert "Admin console" in response.text
