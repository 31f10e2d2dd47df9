"""Tests for settings validation and TTL parsing."""

import pytest
from pydantic import ValidationError

from disease_report.auth.durations import parse_duration
from disease_report.config import Settings

ACCESS_SECRET = "a" * 32
REFRESH_SECRET = "b" * 32


def _settings(**overrides):
    values = {
        "database_url": "sqlite+aiosqlite://",
        "jwt_secret": ACCESS_SECRET,
        "jwt_refresh_secret": REFRESH_SECRET,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestParseDuration:
    """Tests for parse_duration."""

    @pytest.mark.parametrize(
        "value, seconds",
        [
            ("15m", 900),
            ("7d", 604800),
            ("1h", 3600),
            ("30s", 30),
            ("2w", 1209600),
            ("45", 45),
            ("1500ms", 1),
            (" 10M ", 600),
        ],
    )
    def test_valid(self, value, seconds):
        assert parse_duration(value) == seconds

    @pytest.mark.parametrize("value", ["", "abc", "15 minutes", "-5m", "0s", "500ms"])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_duration(value)


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self):
        settings = _settings()

        assert settings.jwt_expires_in == "15m"
        assert settings.jwt_refresh_expires_in == "7d"
        assert settings.access_ttl_seconds == 900
        assert settings.refresh_ttl_seconds == 604800
        assert settings.expose_tokens_in_body is False
        assert not settings.is_production

    def test_production_flag(self):
        assert _settings(environment="production").is_production

    def test_secrets_must_differ(self):
        with pytest.raises(ValidationError):
            _settings(jwt_refresh_secret=ACCESS_SECRET)

    def test_secrets_minimum_length(self):
        with pytest.raises(ValidationError):
            _settings(jwt_secret="too-short")

    def test_access_must_be_shorter_than_refresh(self):
        with pytest.raises(ValidationError):
            _settings(jwt_expires_in="7d", jwt_refresh_expires_in="1d")

    def test_bad_duration(self):
        with pytest.raises(ValidationError):
            _settings(jwt_expires_in="soon")

    def test_bcrypt_rounds_bounds(self):
        with pytest.raises(ValidationError):
            _settings(bcrypt_rounds=3)

    def test_unknown_environment(self):
        with pytest.raises(ValidationError):
            _settings(environment="staging")
