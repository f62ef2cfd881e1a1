"""Authentication API endpoints.

Endpoints:
- POST /api/v1/login - Login with admin identifier/password
- POST /api/v1/logout - Logout (destroy session)
- GET /api/v1/session - Get current session identity
- GET /api/v1/auth/status - Authentication state, never 401
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Request, Response
from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from sqlalchemy.exc import SQLAlchemyError

from folioguard.app.api.dependencies import (
    AuthContext,
    CurrentAuth,
    DbSession,
    Services,
    client_ip,
    client_user_agent,
    load_session,
    optional_auth,
)
from folioguard.app.metrics.collector import AUTH_LOGIN_TOTAL, RATE_LIMITED_TOTAL
from folioguard.core.errors import (
    InvalidCredentialsError,
    RateLimitedError,
    StoreUnavailableError,
)
from folioguard.core.logging_schema import Component, LogEvent
from folioguard.core.models import AuditAction
from folioguard.services.login_attempt_service import LoginAttemptService
from folioguard.services.rate_limiter import login_key
from folioguard.services.session_service import sign_session_id

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])

LOGIN_RESOURCE = "admin/login"
LOGOUT_RESOURCE = "admin/logout"
MAX_IDENTIFIER_LENGTH = 255


class LoginRequest(BaseModel):
    """Request schema for login.

    Missing fields are treated as empty strings so that they fail
    credential validation (401) rather than request validation (422).
    """

    identifier: str = Field(
        default="", validation_alias=AliasChoices("identifier", "username")
    )
    password: str = Field(default="")


class PublicUser(BaseModel):
    """Safe identity view."""

    model_config = ConfigDict(populate_by_name=True)

    username: str
    display_name: str | None = Field(default=None, alias="displayName")
    email: str | None = None
    role: str
    is_admin: bool = Field(alias="isAdmin")


class LoginResponse(BaseModel):
    success: bool = True
    redirect: str
    user: PublicUser


class LogoutResponse(BaseModel):
    success: bool = True
    redirect: str


class SessionResponse(BaseModel):
    """Response schema for session info."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    user: PublicUser
    expires_at: datetime = Field(alias="expiresAt")


class AuthStatusResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_authenticated: bool = Field(alias="isAuthenticated")
    is_admin: bool = Field(alias="isAdmin")
    user: PublicUser | None = None


def _public_user(auth: AuthContext) -> PublicUser:
    return PublicUser.model_validate(auth.public_user())


@router.post("/login")
async def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    services: Services,
    db: DbSession,
) -> LoginResponse:
    """Login with the admin identifier and password.

    On success, sets a signed session cookie and returns the safe identity.
    On failure, records a failed attempt plus an audit entry and returns 401.
    On too many attempts from the same client and identifier, returns 429.
    """
    settings = services.settings
    identifier = body.identifier.strip()[:MAX_IDENTIFIER_LENGTH]
    ip_address = client_ip(request)
    user_agent = client_user_agent(request)
    limiter_key = login_key(ip_address, identifier)

    decision = await services.login_limiter.allow(limiter_key)
    if not decision.allowed:
        AUTH_LOGIN_TOTAL.labels(outcome="rate_limited").inc()
        RATE_LIMITED_TOTAL.labels(scope="login").inc()
        logger.warning(
            "Login rate limited",
            extra={
                "event": LogEvent.LOGIN_RATE_LIMITED,
                "component": Component.AUTH,
                "identifier": identifier,
                "ip": ip_address,
                "retry_after": decision.retry_after,
            },
        )
        raise RateLimitedError(retry_after=decision.retry_after)

    if not services.credentials.validate(body.identifier, body.password):
        AUTH_LOGIN_TOTAL.labels(outcome="failure").inc()
        logger.warning(
            "Login failed",
            extra={
                "event": LogEvent.LOGIN_FAILED,
                "component": Component.AUTH,
                "identifier": identifier,
                "ip": ip_address,
            },
        )
        try:
            await LoginAttemptService.record(db, identifier, ip_address, user_agent)
        except SQLAlchemyError as e:
            raise StoreUnavailableError() from e
        await services.audit.record(
            AuditAction.ADMIN_LOGIN_FAILED,
            LOGIN_RESOURCE,
            details={"identifier": identifier, "reason": "invalid_credentials"},
            ip_address=ip_address,
            user_agent=user_agent,
        )
        raise InvalidCredentialsError()

    try:
        user = await services.identities.upsert_admin(db, identifier)
        session = await services.sessions.create(db, user, ip_address, user_agent)
    except SQLAlchemyError as e:
        logger.error(
            "Session store unavailable during login",
            extra={
                "event": LogEvent.STORE_UNAVAILABLE,
                "component": Component.AUTH,
                "error": str(e),
            },
        )
        raise StoreUnavailableError() from e

    auth = AuthContext.from_session(session)
    AUTH_LOGIN_TOTAL.labels(outcome="success").inc()
    logger.info(
        "Login succeeded",
        extra={
            "event": LogEvent.LOGIN_SUCCEEDED,
            "component": Component.AUTH,
            "user_id": user.id,
            "is_admin": auth.is_admin,
            "ip": ip_address,
        },
    )
    await services.audit.record(
        AuditAction.ADMIN_LOGIN_SUCCESS,
        LOGIN_RESOURCE,
        actor_id=user.id,
        details={"identifier": user.username, "is_admin": auth.is_admin},
        ip_address=ip_address,
        user_agent=user_agent,
    )
    await services.login_limiter.reset(limiter_key)

    response.set_cookie(
        key=settings.session.cookie_name,
        value=sign_session_id(session.id, services.session_secret),
        httponly=True,
        samesite=settings.session.same_site,
        secure=settings.cookie_secure,
        path="/",
        max_age=settings.session.ttl,
    )

    return LoginResponse(
        redirect=settings.redirect.after_login, user=_public_user(auth)
    )


@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    services: Services,
    db: DbSession,
) -> LogoutResponse:
    """Logout by destroying the session and clearing the cookie.

    Always succeeds (even if no session cookie present). Only a live
    session produces an audit entry.
    """
    settings = services.settings
    session = await load_session(request, services, db)

    if session is not None:
        auth = AuthContext.from_session(session)
        try:
            await services.sessions.destroy(db, auth.session_id)
        except SQLAlchemyError as e:
            raise StoreUnavailableError() from e
        logger.info(
            "Logout",
            extra={
                "event": LogEvent.LOGOUT,
                "component": Component.AUTH,
                "user_id": auth.identity.user_id,
            },
        )
        await services.audit.record(
            AuditAction.ADMIN_LOGOUT,
            LOGOUT_RESOURCE,
            actor_id=auth.identity.user_id,
            details={"identifier": auth.identity.username},
            ip_address=client_ip(request),
            user_agent=client_user_agent(request),
        )

    response.delete_cookie(
        key=settings.session.cookie_name,
        path="/",
        httponly=True,
        samesite=settings.session.same_site,
        secure=settings.cookie_secure,
    )
    return LogoutResponse(redirect=settings.redirect.after_logout)


@router.get("/session")
async def get_session_info(auth: CurrentAuth) -> SessionResponse:
    """Get current session identity.

    Returns 401 if not authenticated or session is invalid.
    """
    return SessionResponse(user=_public_user(auth), expires_at=auth.expires_at)


@router.get("/auth/status")
async def auth_status(
    request: Request, services: Services, db: DbSession
) -> AuthStatusResponse:
    auth = await optional_auth(request, services, db)
    if auth is None:
        return AuthStatusResponse(is_authenticated=False, is_admin=False)
    return AuthStatusResponse(
        is_authenticated=True, is_admin=auth.is_admin, user=_public_user(auth)
    )
