"""Identity and session models (User, Session).

Models are defined using SQLModel (SQLAlchemy + Pydantic).
"""

import secrets
from datetime import UTC, datetime
from enum import StrEnum

from sqlalchemy import Column, DateTime
from sqlmodel import Field, SQLModel
from ulid import ULID


def generate_ulid() -> str:
    """Generate a new ULID string."""
    return str(ULID())


def generate_session_id() -> str:
    """Generate an opaque, unguessable session ID."""
    return secrets.token_urlsafe(32)


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(UTC)


class Role(StrEnum):
    """Identity roles. Only ADMIN is privileged."""

    ADMIN = "admin"
    VIEWER = "viewer"


class User(SQLModel, table=True):
    """Identity record.

    Created lazily on the first successful admin login (upsert by id) and
    bumped on every later one. Never hard-deleted by the auth core.
    """

    __tablename__ = "users"

    id: str = Field(default_factory=generate_ulid, primary_key=True)
    username: str = Field(unique=True, index=True)
    email: str | None = Field(default=None, unique=True)
    display_name: str | None = Field(default=None)
    role: str = Field(default=Role.VIEWER.value)
    provider: str = Field(default="admin")
    is_active: bool = Field(default=True)
    last_login_at: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True))
    )
    created_at: datetime = Field(
        default_factory=utc_now, sa_column=Column(DateTime(timezone=True))
    )
    updated_at: datetime = Field(
        default_factory=utc_now, sa_column=Column(DateTime(timezone=True))
    )


class Session(SQLModel, table=True):
    """Server-side login session.

    Carries a snapshot of the identity taken at login time. ``is_admin`` is
    computed once by SessionService.create and is the only authority the
    admin gate consults; ``role`` is kept for display and audit context.
    """

    __tablename__ = "sessions"

    id: str = Field(default_factory=generate_session_id, primary_key=True)
    user_id: str = Field(foreign_key="users.id", index=True)

    # Identity snapshot
    username: str
    display_name: str | None = Field(default=None)
    email: str | None = Field(default=None)
    role: str

    is_admin: bool = Field(default=False)
    ip_address: str | None = Field(default=None)
    user_agent: str | None = Field(default=None)
    created_at: datetime = Field(
        default_factory=utc_now, sa_column=Column(DateTime(timezone=True))
    )
    expires_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True)
    )
