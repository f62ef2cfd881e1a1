"""Identity record repository.

The users table holds the admin identity, created lazily on the first
successful login and bumped on every later one.
"""

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from folioguard.app.config import AdminConfig
from folioguard.core.models import Role, User, utc_now

logger = logging.getLogger(__name__)

REASON_INSUFFICIENT_ROLE = "insufficient_role"
REASON_UNAUTHORIZED_IDENTITY = "unauthorized_identity"


def _insert_for(db: AsyncSession) -> Any:
    """Pick the dialect-native INSERT construct (both support ON CONFLICT)."""
    if db.bind is not None and db.bind.dialect.name == "sqlite":
        return sqlite_insert
    return pg_insert


class IdentityService:
    """Reads and upserts identity records.

    Admin authorization is decided against one configured reference id:
    an identity is the authorized admin only if its role is ``admin`` AND
    its id equals ``AdminConfig.reference_id`` AND it is active.
    """

    def __init__(self, config: AdminConfig) -> None:
        self._config = config

    @property
    def reference_id(self) -> str:
        return self._config.reference_id

    def is_authorized_admin(self, user: User) -> bool:
        return (
            user.role == Role.ADMIN
            and user.id == self._config.reference_id
            and user.is_active
        )

    @staticmethod
    def denial_reason(role: str | None) -> str:
        """Why an identity failed the admin check."""
        if role != Role.ADMIN:
            return REASON_INSUFFICIENT_ROLE
        return REASON_UNAUTHORIZED_IDENTITY

    async def get(self, db: AsyncSession, user_id: str) -> User | None:
        result = await db.execute(
            select(User).where(User.id == user_id)  # type: ignore[arg-type]
        )
        return result.scalar_one_or_none()

    async def upsert_admin(self, db: AsyncSession, username: str) -> User:
        """Create the admin identity or bump its last login.

        Single INSERT ... ON CONFLICT (id) DO UPDATE statement. An existing
        record keeps its role and active flag, so a demoted or deactivated
        identity stays non-admin after logging in.

        Args:
            db: Database session
            username: The identifier that just passed credential validation

        Returns:
            The stored identity
        """
        now = utc_now()
        insert = _insert_for(db)
        stmt = insert(User).values(
            id=self._config.reference_id,
            username=username,
            email=self._config.email,
            display_name=self._config.display_name,
            role=Role.ADMIN.value,
            provider="admin",
            is_active=True,
            last_login_at=now,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["id"],
            set_={
                "username": stmt.excluded.username,
                "last_login_at": stmt.excluded.last_login_at,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        await db.execute(stmt)
        await db.commit()

        result = await db.execute(
            select(User)
            .where(User.id == self._config.reference_id)  # type: ignore[arg-type]
            .execution_options(populate_existing=True)
        )
        user = result.scalar_one()
        logger.debug("Admin identity upserted", extra={"user_id": user.id})
        return user
