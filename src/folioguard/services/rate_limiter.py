"""Rate limiting for authentication and general API traffic.

Login attempts use a moving window counter from ``limits`` keyed by client
IP plus the attempted identifier. General API traffic goes through a
slowapi ``Limiter`` keyed by client IP.
"""

import logging
import math
import time
from dataclasses import dataclass

from limits import RateLimitItemPerSecond
from limits.aio.strategies import MovingWindowRateLimiter
from limits.storage import storage_from_string
from slowapi import Limiter
from slowapi.util import get_remote_address

from folioguard.app.config import RateLimitConfig

logger = logging.getLogger(__name__)

LOGIN_NAMESPACE = "login"


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    retry_after: int = 0


def _async_storage_uri(uri: str) -> str:
    return uri if uri.startswith("async+") else f"async+{uri}"


def login_key(ip_address: str | None, identifier: str | None) -> str:
    return f"{ip_address or 'unknown'}:{(identifier or '').strip().lower()}"


class LoginRateLimiter:
    """Per-key attempt counter for the admin login endpoint.

    Every attempt counts, valid or not. A successful login resets its key.
    When disabled, every attempt is allowed.
    """

    def __init__(
        self,
        max_attempts: int,
        window_seconds: int,
        storage_uri: str = "memory://",
        enabled: bool = True,
    ) -> None:
        self.enabled = enabled
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self._item = RateLimitItemPerSecond(max_attempts, window_seconds)
        self._storage = storage_from_string(_async_storage_uri(storage_uri))
        self._limiter = MovingWindowRateLimiter(self._storage)

    @classmethod
    def from_config(cls, config: RateLimitConfig) -> "LoginRateLimiter":
        return cls(
            max_attempts=config.login_max_attempts,
            window_seconds=config.login_window_seconds,
            storage_uri=config.storage_uri,
            enabled=config.enabled,
        )

    async def allow(self, key: str) -> RateLimitDecision:
        """Count one attempt for key and decide whether it may proceed."""
        if not self.enabled:
            return RateLimitDecision(allowed=True)

        if await self._limiter.hit(self._item, LOGIN_NAMESPACE, key):
            return RateLimitDecision(allowed=True)

        stats = await self._limiter.get_window_stats(self._item, LOGIN_NAMESPACE, key)
        retry_after = max(1, math.ceil(stats.reset_time - time.time()))
        return RateLimitDecision(allowed=False, retry_after=retry_after)

    async def reset(self, key: str) -> None:
        if not self.enabled:
            return
        await self._limiter.clear(self._item, LOGIN_NAMESPACE, key)


def build_api_limiter(config: RateLimitConfig) -> Limiter:
    """slowapi limiter applied to every route via SlowAPIMiddleware."""
    if not config.enabled:
        logger.warning("API rate limiting disabled")
    return Limiter(
        key_func=get_remote_address,
        default_limits=[config.api_limit],
        storage_uri=config.storage_uri,
        enabled=config.enabled,
    )
