"""Session management service.

Provides session lifecycle management:
- Create: Snapshot the identity into a new session with TTL
- Get valid: Retrieve and validate session
- Destroy: Delete session (never revivable)
- Purge expired: Maintenance cleanup

Session ids travel in a cookie signed with itsdangerous: ``<id>.<signature>``.
"""

from datetime import UTC, datetime, timedelta

from itsdangerous import BadSignature, Signer
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import col

from folioguard.core.models import Session, User
from folioguard.services.identity_service import IdentityService

SESSION_COOKIE_SALT = "folioguard-session"


def _signer(secret: str) -> Signer:
    return Signer(secret, salt=SESSION_COOKIE_SALT)


def sign_session_id(session_id: str, secret: str) -> str:
    """Build the cookie value for a session id."""
    return _signer(secret).sign(session_id).decode("utf-8")


def unsign_session_cookie(value: str | None, secret: str) -> str | None:
    """Return the session id from a signed cookie, or None if tampered."""
    if not value:
        return None
    try:
        session_id = _signer(secret).unsign(value).decode("utf-8")
    except BadSignature:
        return None
    return session_id or None


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes read back from the store."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def is_expired(session: Session, now: datetime | None = None) -> bool:
    """Check if a session has reached its expiry.

    Database may return naive or aware datetimes depending on driver, so
    both sides are normalized to aware UTC.
    """
    current = as_utc(now or datetime.now(UTC))
    return as_utc(session.expires_at) <= current


class SessionService:
    """Service for managing login sessions."""

    def __init__(self, identities: IdentityService, ttl_seconds: int) -> None:
        self._identities = identities
        self.ttl_seconds = ttl_seconds

    async def create(
        self,
        db: AsyncSession,
        user: User,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> Session:
        """Create a new session for an identity.

        Concurrent sessions for the same identity are allowed. The admin
        flag is decided here once and never recomputed.

        Args:
            db: Database session
            user: Identity that just authenticated
            ip_address: Client address for audit context
            user_agent: Client user agent for audit context

        Returns:
            Created session with expires_at set based on TTL
        """
        now = datetime.now(UTC)
        session = Session(
            user_id=user.id,
            username=user.username,
            display_name=user.display_name,
            email=user.email,
            role=user.role,
            is_admin=self._identities.is_authorized_admin(user),
            ip_address=ip_address,
            user_agent=user_agent,
            created_at=now,
            expires_at=now + timedelta(seconds=self.ttl_seconds),
        )
        db.add(session)
        await db.commit()
        await db.refresh(session)
        return session

    async def get_valid(self, db: AsyncSession, session_id: str) -> Session | None:
        """Get a valid session by ID.

        Returns None if the session doesn't exist or is expired.
        """
        result = await db.execute(
            select(Session).where(Session.id == session_id)  # type: ignore[arg-type]
        )
        session = result.scalar_one_or_none()

        if session is None or is_expired(session):
            return None

        return session

    async def destroy(self, db: AsyncSession, session_id: str) -> bool:
        """Delete a session.

        Returns:
            True if a session was deleted, False if none existed
        """
        result = await db.execute(
            delete(Session).where(col(Session.id) == session_id)
        )
        await db.commit()
        return (result.rowcount or 0) > 0

    async def purge_expired(self, db: AsyncSession) -> int:
        """Delete every expired session. Returns the number removed."""
        result = await db.execute(
            delete(Session).where(col(Session.expires_at) <= datetime.now(UTC))
        )
        await db.commit()
        return result.rowcount or 0
