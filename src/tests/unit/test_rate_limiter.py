"""Tests for login and API rate limiting."""

import asyncio

from slowapi import Limiter

from folioguard.app.config import RateLimitConfig
from folioguard.services.rate_limiter import (
    LoginRateLimiter,
    RateLimitDecision,
    build_api_limiter,
    login_key,
)


async def test_rejects_attempt_over_limit():
    limiter = LoginRateLimiter(max_attempts=3, window_seconds=60)

    decisions = [await limiter.allow("k") for _ in range(4)]

    assert [d.allowed for d in decisions] == [True, True, True, False]
    assert 0 < decisions[-1].retry_after <= 60


async def test_keys_are_independent():
    limiter = LoginRateLimiter(max_attempts=1, window_seconds=60)

    assert (await limiter.allow("a")).allowed is True
    assert (await limiter.allow("a")).allowed is False
    assert (await limiter.allow("b")).allowed is True


async def test_allows_again_after_window():
    limiter = LoginRateLimiter(max_attempts=2, window_seconds=1)

    await limiter.allow("k")
    await limiter.allow("k")
    assert (await limiter.allow("k")).allowed is False

    await asyncio.sleep(1.2)

    assert (await limiter.allow("k")).allowed is True


async def test_reset_clears_key():
    limiter = LoginRateLimiter(max_attempts=1, window_seconds=60)
    await limiter.allow("k")

    await limiter.reset("k")

    assert (await limiter.allow("k")).allowed is True


async def test_disabled_always_allows():
    limiter = LoginRateLimiter(max_attempts=1, window_seconds=60, enabled=False)

    for _ in range(5):
        assert await limiter.allow("k") == RateLimitDecision(allowed=True)


def test_from_config():
    limiter = LoginRateLimiter.from_config(
        RateLimitConfig(login_max_attempts=7, login_window_seconds=120)
    )

    assert limiter.max_attempts == 7
    assert limiter.window_seconds == 120
    assert limiter.enabled is True


def test_login_key_normalizes_identifier():
    assert login_key("10.0.0.1", "  Admin ") == "10.0.0.1:admin"
    assert login_key(None, None) == "unknown:"


def test_build_api_limiter():
    limiter = build_api_limiter(RateLimitConfig(api_limit="5/minute"))

    assert isinstance(limiter, Limiter)
    assert limiter.enabled is True
