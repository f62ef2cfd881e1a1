"""Tests for configuration module.

Testing approach:
- Use direct constructor arguments instead of mocking
- Use monkeypatch for environment-driven values
"""

import pytest
from pydantic import ValidationError

from folioguard.app.config import (
    AdminConfig,
    AppConfig,
    RateLimitConfig,
    SessionConfig,
    Settings,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Start each test from defaults."""
    for key in (
        "APP_ENVIRONMENT",
        "RATE_LIMIT_ENABLED",
        "SESSION_SECURE",
        "SESSION_SECRET",
        "ADMIN_USERNAME",
        "ADMIN_PASSWORD",
    ):
        monkeypatch.delenv(key, raising=False)


class TestDefaults:
    def test_app(self):
        assert AppConfig().environment == "development"
        assert AppConfig().is_production is False

    def test_session(self):
        config = SessionConfig()
        assert config.cookie_name == "folioguard.sid"
        assert config.ttl == 86400
        assert config.same_site == "lax"
        assert config.secure is None

    def test_rate_limit(self):
        config = RateLimitConfig()
        assert config.enabled is True
        assert config.login_max_attempts == 4
        assert config.login_window_seconds == 900
        assert config.api_limit == "100/15minutes"

    def test_admin(self):
        config = AdminConfig()
        assert config.username is None
        assert config.reference_id == "admin_user"


class TestEnvironmentLoading:
    def test_section_prefixes(self, monkeypatch):
        monkeypatch.setenv("ADMIN_USERNAME", "owner")
        monkeypatch.setenv("SESSION_TTL", "600")
        monkeypatch.setenv("RATE_LIMIT_LOGIN_MAX_ATTEMPTS", "9")

        settings = Settings()

        assert settings.admin.username == "owner"
        assert settings.session.ttl == 600
        assert settings.rate_limit.login_max_attempts == 9

    def test_invalid_environment(self, monkeypatch):
        monkeypatch.setenv("APP_ENVIRONMENT", "staging")
        with pytest.raises(ValidationError):
            AppConfig()


class TestValidation:
    def test_rate_limit_cannot_be_disabled_in_production(self):
        with pytest.raises(ValidationError) as exc_info:
            Settings(
                app=AppConfig(environment="production"),
                rate_limit=RateLimitConfig(enabled=False),
            )
        assert "rate limiting cannot be disabled" in str(exc_info.value)

    def test_rate_limit_can_be_disabled_in_development(self):
        settings = Settings(rate_limit=RateLimitConfig(enabled=False))
        assert settings.rate_limit.enabled is False

    def test_reference_id_cannot_be_blank(self):
        with pytest.raises(ValidationError) as exc_info:
            AdminConfig(reference_id="   ")
        assert "reference_id cannot be empty" in str(exc_info.value)

    def test_ttl_must_be_positive(self):
        with pytest.raises(ValidationError):
            SessionConfig(ttl=0)

    def test_same_site_none_rejected(self):
        with pytest.raises(ValidationError):
            SessionConfig(same_site="none")


class TestCookieSecure:
    def test_auto_true_in_production(self):
        settings = Settings(app=AppConfig(environment="production"))
        assert settings.cookie_secure is True

    def test_auto_false_in_development(self):
        assert Settings().cookie_secure is False

    def test_explicit_override(self):
        settings = Settings(
            app=AppConfig(environment="production"),
            session=SessionConfig(secure=False),
        )
        assert settings.cookie_secure is False
