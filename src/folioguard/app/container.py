"""Service wiring.

All services are built once per application by ``build_container`` and
stored on ``app.state.services``.
"""

import logging
from dataclasses import dataclass

from slowapi import Limiter
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from folioguard.app.config import Settings
from folioguard.core.errors import ConfigurationError
from folioguard.services import (
    AuditService,
    CredentialStore,
    IdentityService,
    LoginAttemptService,
    LoginRateLimiter,
    MaintenanceService,
    SessionService,
    build_api_limiter,
)

logger = logging.getLogger(__name__)

DEV_SESSION_SECRET = "folioguard-development-secret-do-not-use-in-production"


@dataclass
class ServiceContainer:
    settings: Settings
    session_factory: async_sessionmaker[AsyncSession]
    session_secret: str
    credentials: CredentialStore
    identities: IdentityService
    sessions: SessionService
    audit: AuditService
    login_attempts: LoginAttemptService
    login_limiter: LoginRateLimiter
    api_limiter: Limiter
    maintenance: MaintenanceService


def resolve_session_secret(settings: Settings) -> str:
    """Configured secret, or the development fallback outside production."""
    if settings.session.secret:
        return settings.session.secret
    if settings.app.is_production:
        raise ConfigurationError("SESSION_SECRET is required in production")
    logger.warning(
        "SESSION_SECRET not set, using development secret",
        extra={"environment": settings.app.environment},
    )
    return DEV_SESSION_SECRET


def build_container(
    settings: Settings, session_factory: async_sessionmaker[AsyncSession]
) -> ServiceContainer:
    """Build every service. Raises ConfigurationError on unusable config."""
    credentials = CredentialStore.from_settings(settings.admin)
    session_secret = resolve_session_secret(settings)

    identities = IdentityService(settings.admin)
    sessions = SessionService(identities, ttl_seconds=settings.session.ttl)
    audit = AuditService(session_factory)

    return ServiceContainer(
        settings=settings,
        session_factory=session_factory,
        session_secret=session_secret,
        credentials=credentials,
        identities=identities,
        sessions=sessions,
        audit=audit,
        login_attempts=LoginAttemptService(),
        login_limiter=LoginRateLimiter.from_config(settings.rate_limit),
        api_limiter=build_api_limiter(settings.rate_limit),
        maintenance=MaintenanceService(
            session_factory,
            audit,
            sessions,
            settings.audit,
            settings.maintenance,
        ),
    )
