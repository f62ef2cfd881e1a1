"""Infrastructure connections (DB)."""

from folioguard.infra.database import close_db, init_db

__all__ = [
    "init_db",
    "close_db",
]
