"""Tests for settings validation."""

import ssl

import pytest
from pydantic import ValidationError

from src.accessgrant.core.config import Settings
from src.accessgrant.core.db.engine import engine_options

pytestmark = pytest.mark.unit

SECRET = "s" * 32


def make(**overrides):
    values = {
        "database_url": "sqlite+aiosqlite:///:memory:",
        "jwt_secret_key": SECRET,
        "invite_token_secret": SECRET,
    }
    values.update(overrides)
    return Settings(**values)


def test_defaults():
    settings = make()
    assert settings.invite_expire_days == 7
    assert settings.invite_max_uses == 1
    assert settings.invite_rate_limit_max == 20
    assert settings.invite_rate_limit_window_minutes == 60


def test_short_invite_secret_rejected():
    with pytest.raises(ValidationError, match="INVITE_TOKEN_SECRET"):
        make(invite_token_secret="short")


def test_default_jwt_secret_rejected():
    with pytest.raises(ValidationError, match="must be changed"):
        make(jwt_secret_key="change-this-to-a-secure-random-string")


def test_app_url_trailing_slash_stripped():
    assert make(app_url="http://localhost:3000/").app_url == "http://localhost:3000"


def test_app_url_domain_must_be_allowed():
    with pytest.raises(ValidationError, match="not in allowed list"):
        make(app_url="https://evil.example.net")


def test_app_url_subdomain_of_allowed_domain():
    settings = make(
        allowed_app_url_domains=["example.org"], app_url="https://app.example.org"
    )
    assert settings.app_url == "https://app.example.org"


@pytest.mark.parametrize(
    "field",
    ["invite_expire_days", "invite_max_uses", "invite_rate_limit_max", "email_send_timeout_seconds"],
)
def test_invitation_limits_must_be_positive(field):
    with pytest.raises(ValidationError):
        make(**{field: 0})


class TestEngineOptions:
    def test_sqlite_uses_driver_defaults(self):
        assert engine_options(make()) == {}

    def test_postgres_pool_and_tls(self):
        options = engine_options(
            make(
                database_url="postgresql+asyncpg://app@db/accessgrant",
                database_ssl_mode="verify-full",
            )
        )
        assert options["pool_size"] == 5
        context = options["connect_args"]["ssl"]
        assert context.check_hostname is True
        assert context.verify_mode == ssl.CERT_REQUIRED

    def test_postgres_without_tls(self):
        options = engine_options(
            make(database_url="postgresql+asyncpg://app@db/accessgrant", database_ssl_mode="disable")
        )
        assert "ssl" not in options["connect_args"]
