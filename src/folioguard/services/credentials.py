"""Admin credential store.

Holds the one admin identity read from configuration. Built once at startup;
missing configuration raises ConfigurationError so the service refuses to
start instead of accepting any password.
"""

import hmac
from dataclasses import dataclass

from folioguard.app.config import AdminConfig
from folioguard.core.errors import ConfigurationError
from folioguard.core.security import hash_password, verify_password


@dataclass(frozen=True)
class AdminCredentials:
    """Configured admin identifier and its password verifier."""

    identifier: str
    password_hash: str

    def __repr__(self) -> str:
        return f"AdminCredentials(identifier={self.identifier!r}, password_hash='***')"


class CredentialStore:
    """Validates submitted credentials against the configured admin account."""

    def __init__(self, credentials: AdminCredentials) -> None:
        self._credentials = credentials

    @classmethod
    def from_settings(cls, config: AdminConfig) -> "CredentialStore":
        """Build the store from ADMIN_* settings.

        Raises:
            ConfigurationError: If the username, or both password and
                password hash, are missing.
        """
        username = (config.username or "").strip()
        if not username:
            raise ConfigurationError("ADMIN_USERNAME must be set")

        if config.password_hash:
            password_hash = config.password_hash.strip()
        elif config.password:
            password_hash = hash_password(config.password)
        else:
            raise ConfigurationError(
                "ADMIN_PASSWORD or ADMIN_PASSWORD_HASH must be set"
            )

        return cls(AdminCredentials(identifier=username, password_hash=password_hash))

    def get_admin_credentials(self) -> AdminCredentials:
        return self._credentials

    def validate(self, identifier: str, password: str) -> bool:
        """Check an identifier/password pair.

        Empty or whitespace-only input returns False without raising. The
        password is always verified, even for an unknown identifier, so the
        response time does not reveal which part was wrong.
        """
        if not identifier or not identifier.strip() or not password or not password.strip():
            return False

        password_ok = verify_password(password, self._credentials.password_hash)
        identifier_ok = hmac.compare_digest(
            identifier.encode("utf-8"), self._credentials.identifier.encode("utf-8")
        )
        return identifier_ok and password_ok
