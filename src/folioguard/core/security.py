"""Password verification for the admin credential.

Two verifier formats are accepted:

- SHA-512 hex digest: the default for the single static admin secret that
  comes from deployment configuration. Comparison is constant-time.
- Argon2id PHC string (``$argon2id$...``): a salted, slow KDF. Required if the
  identity model ever grows beyond the one configured admin account.

Also masks credential-bearing keys before payloads reach the audit trail or
the process log.
"""

import hashlib
import hmac
import re
from typing import Any

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

_hasher = PasswordHasher()

ARGON2_PREFIX = "$argon2"

REDACTED = "[REDACTED]"

_SENSITIVE_KEY = re.compile(r"password|secret|token|session_id|cookie", re.IGNORECASE)


def hash_password(password: str) -> str:
    """Hash a password to a deterministic SHA-512 hex digest."""
    return hashlib.sha512(password.encode("utf-8")).hexdigest()


def argon2_hash_password(password: str) -> str:
    """Hash a password using Argon2id."""
    return _hasher.hash(password)


def is_argon2_hash(password_hash: str) -> bool:
    """Check whether a stored verifier is an Argon2 PHC string."""
    return password_hash.startswith(ARGON2_PREFIX)


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its stored verifier.

    Never short-circuits on the first differing byte: SHA-512 digests are
    compared with ``hmac.compare_digest`` and Argon2 verification is
    constant-time inside argon2-cffi.
    """
    if is_argon2_hash(password_hash):
        try:
            return _hasher.verify(password_hash, password)
        except (VerificationError, InvalidHashError):
            return False

    candidate = hash_password(password)
    return hmac.compare_digest(
        candidate.encode("ascii"), password_hash.strip().lower().encode("utf-8")
    )


def is_sensitive_key(key: object) -> bool:
    return isinstance(key, str) and bool(_SENSITIVE_KEY.search(key))


def redact_sensitive(value: Any) -> Any:
    """Mask values under credential-looking keys at any nesting depth."""
    if isinstance(value, dict):
        return {
            key: REDACTED if is_sensitive_key(key) else redact_sensitive(item)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [redact_sensitive(item) for item in value]
    return value
