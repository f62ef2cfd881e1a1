"""Request dependencies: service access and the authentication gates.

``require_auth`` resolves the signed session cookie into an AuthContext or
raises UnauthenticatedError. ``require_admin`` builds on it and admits only
sessions whose admin flag was set at login; every rejection is audited.
A session store failure raises StoreUnavailableError, never a 401.
"""

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from datetime import datetime
from typing import Annotated, Any

from fastapi import Depends, Request
from slowapi.util import get_remote_address
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from folioguard.app.container import ServiceContainer
from folioguard.app.metrics.collector import AUTH_ACCESS_DENIED_TOTAL
from folioguard.core.errors import (
    StoreUnavailableError,
    UnauthenticatedError,
    UnauthorizedAdminError,
)
from folioguard.core.logging_schema import Component, LogEvent
from folioguard.core.models import AuditAction, Session
from folioguard.services.identity_service import IdentityService
from folioguard.services.session_service import as_utc, unsign_session_cookie

logger = logging.getLogger(__name__)


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


Services = Annotated[ServiceContainer, Depends(get_services)]


async def get_db(services: Services) -> AsyncIterator[AsyncSession]:
    async with services.session_factory() as session:
        yield session


DbSession = Annotated[AsyncSession, Depends(get_db)]


def client_ip(request: Request) -> str:
    return get_remote_address(request)


def client_user_agent(request: Request) -> str | None:
    return request.headers.get("user-agent")


@dataclass(frozen=True)
class SessionIdentity:
    """Identity snapshot carried by a session."""

    user_id: str
    username: str
    display_name: str | None
    email: str | None
    role: str

    def to_public(self, is_admin: bool) -> dict[str, Any]:
        """Safe view for clients. Never includes internal ids or digests."""
        return {
            "username": self.username,
            "displayName": self.display_name,
            "email": self.email,
            "role": self.role,
            "isAdmin": is_admin,
        }


@dataclass(frozen=True)
class AuthContext:
    session_id: str
    identity: SessionIdentity
    is_admin: bool
    expires_at: datetime

    @classmethod
    def from_session(cls, session: Session) -> "AuthContext":
        return cls(
            session_id=session.id,
            identity=SessionIdentity(
                user_id=session.user_id,
                username=session.username,
                display_name=session.display_name,
                email=session.email,
                role=session.role,
            ),
            is_admin=session.is_admin,
            expires_at=as_utc(session.expires_at),
        )

    def public_user(self) -> dict[str, Any]:
        return self.identity.to_public(self.is_admin)


async def load_session(
    request: Request, services: ServiceContainer, db: AsyncSession
) -> Session | None:
    """Resolve the session cookie to a live session.

    Raises:
        StoreUnavailableError: The session store could not be read
    """
    cookie = request.cookies.get(services.settings.session.cookie_name)
    session_id = unsign_session_cookie(cookie, services.session_secret)
    if session_id is None:
        return None

    try:
        return await services.sessions.get_valid(db, session_id)
    except SQLAlchemyError as e:
        logger.error(
            "Session store unavailable",
            extra={
                "event": LogEvent.STORE_UNAVAILABLE,
                "component": Component.AUTH,
                "error": str(e),
            },
        )
        raise StoreUnavailableError() from e


async def optional_auth(
    request: Request, services: Services, db: DbSession
) -> AuthContext | None:
    session = await load_session(request, services, db)
    return AuthContext.from_session(session) if session else None


async def require_auth(
    request: Request, services: Services, db: DbSession
) -> AuthContext:
    session = await load_session(request, services, db)
    if session is None:
        logger.debug(
            "No valid session",
            extra={
                "event": LogEvent.SESSION_REJECTED,
                "component": Component.AUTH,
                "path": request.url.path,
            },
        )
        raise UnauthenticatedError(redirect_to=services.settings.redirect.login_path)
    return AuthContext.from_session(session)


CurrentAuth = Annotated[AuthContext, Depends(require_auth)]


async def require_admin(
    request: Request, services: Services, auth: CurrentAuth
) -> AuthContext:
    if auth.is_admin:
        return auth

    reason = IdentityService.denial_reason(auth.identity.role)
    ip_address = client_ip(request)
    AUTH_ACCESS_DENIED_TOTAL.labels(reason=reason).inc()
    logger.warning(
        "Admin access denied",
        extra={
            "event": LogEvent.ADMIN_ACCESS_DENIED,
            "component": Component.AUTH,
            "user_id": auth.identity.user_id,
            "identifier": auth.identity.username,
            "role": auth.identity.role,
            "path": request.url.path,
            "reason": reason,
            "ip": ip_address,
        },
    )
    await services.audit.record(
        AuditAction.ADMIN_ACCESS_DENIED,
        request.url.path,
        actor_id=auth.identity.user_id,
        details={
            "identifier": auth.identity.username,
            "user_id": auth.identity.user_id,
            "role": auth.identity.role,
            "path": request.url.path,
            "method": request.method,
            "reason": reason,
        },
        ip_address=ip_address,
        user_agent=client_user_agent(request),
    )
    raise UnauthorizedAdminError(
        redirect_to=services.settings.redirect.forbidden, reason=reason
    )


AdminAuth = Annotated[AuthContext, Depends(require_admin)]
