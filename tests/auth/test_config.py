"""Tests for auth/config.py - Auth configuration with validation."""

import pytest
from pydantic import ValidationError

from auth.config import AuthConfig, MfaConfig


class TestAuthConfigDefaults:
    """Tests that AuthConfig has sensible defaults."""

    def test_token_expiry_default_is_one_day(self):
        config = AuthConfig()
        assert config.token_expiry_days == 1

    def test_signup_requires_confirmation_by_default(self):
        config = AuthConfig()
        assert config.auto_validate_signup is False

    def test_session_expiry_default(self):
        config = AuthConfig()
        assert config.session_expiry_hours == 24


class TestAuthConfigValidation:
    """Tests that AuthConfig enforces validation bounds."""

    def test_token_expiry_min_bound(self):
        with pytest.raises(ValidationError):
            AuthConfig(token_expiry_days=0)

    def test_token_expiry_max_bound(self):
        with pytest.raises(ValidationError):
            AuthConfig(token_expiry_days=8)

    def test_session_expiry_min_bound(self):
        with pytest.raises(ValidationError):
            AuthConfig(session_expiry_hours=0)

    def test_session_expiry_max_bound(self):
        with pytest.raises(ValidationError):
            AuthConfig(session_expiry_hours=2161)


class TestMfaConfig:
    """MFA settings are required and immutable once loaded."""

    def test_requires_credentials(self):
        with pytest.raises(ValidationError):
            MfaConfig(site_url="https://mfa.example.com", app_uid="", app_secret="s")

    def test_default_timeout_is_bounded(self):
        config = MfaConfig(site_url="https://mfa.example.com", app_uid="uid", app_secret="s")
        assert 0 < config.timeout_seconds <= 60

    def test_rejects_zero_timeout(self):
        with pytest.raises(ValidationError):
            MfaConfig(
                site_url="https://mfa.example.com",
                app_uid="uid",
                app_secret="s",
                timeout_seconds=0,
            )

    def test_is_frozen(self):
        config = MfaConfig(site_url="https://mfa.example.com", app_uid="uid", app_secret="s")
        with pytest.raises(ValidationError):
            config.app_secret = "other"

    def test_secret_not_in_repr(self):
        config = MfaConfig(site_url="https://mfa.example.com", app_uid="uid", app_secret="hunter2")
        assert "hunter2" not in repr(config)
