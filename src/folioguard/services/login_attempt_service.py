"""Failed login attempt store.

Denormalized rows kept separately from the audit trail so that rolling
window counts stay a single indexed query.
"""

from datetime import UTC, datetime, timedelta

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import col

from folioguard.core.models import FailedLoginAttempt

UNKNOWN_IP = "unknown"


class LoginAttemptService:
    """Service for recording and counting failed logins."""

    @staticmethod
    async def record(
        db: AsyncSession,
        identifier: str,
        ip_address: str | None,
        user_agent: str | None = None,
        provider: str = "admin",
    ) -> FailedLoginAttempt:
        attempt = FailedLoginAttempt(
            identifier=identifier,
            ip_address=ip_address or UNKNOWN_IP,
            user_agent=user_agent,
            provider=provider,
        )
        db.add(attempt)
        await db.commit()
        await db.refresh(attempt)
        return attempt

    @staticmethod
    async def recent(
        db: AsyncSession, hours: int = 24, limit: int = 500
    ) -> list[FailedLoginAttempt]:
        """Attempts within the last ``hours``, newest first."""
        since = datetime.now(UTC) - timedelta(hours=hours)
        result = await db.execute(
            select(FailedLoginAttempt)
            .where(col(FailedLoginAttempt.attempted_at) >= since)
            .order_by(col(FailedLoginAttempt.attempted_at).desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    @staticmethod
    async def count_since(
        db: AsyncSession, since: datetime, identifier: str | None = None
    ) -> int:
        stmt = (
            select(func.count())
            .select_from(FailedLoginAttempt)
            .where(col(FailedLoginAttempt.attempted_at) >= since)
        )
        if identifier is not None:
            stmt = stmt.where(col(FailedLoginAttempt.identifier) == identifier)
        result = await db.execute(stmt)
        return int(result.scalar_one())

    @staticmethod
    async def purge_older_than(db: AsyncSession, cutoff: datetime) -> int:
        result = await db.execute(
            delete(FailedLoginAttempt).where(
                col(FailedLoginAttempt.attempted_at) < cutoff
            )
        )
        await db.commit()
        return result.rowcount or 0
