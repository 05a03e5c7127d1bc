from functools import lru_cache
from urllib.parse import urlparse

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    app_name: str = "Tenant Access Grants"
    app_env: str = "development"  # development, testing, production
    debug: bool = False
    enable_openapi: bool = True
    cors_origins: list[str] = ["http://localhost:3000"]

    # Security
    log_user_emails: bool = False  # Masked addresses are logged when False (GDPR)
    allowed_app_url_domains: list[str] = ["localhost", "127.0.0.1"]  # Allowed domains for APP_URL

    # Database
    database_url: str
    database_migrations_url: str | None = None  # Owner role for DDL, if different
    database_pool_size: int = 5
    database_max_overflow: int = 10
    database_ssl_mode: str = "prefer"  # disable, prefer, require, verify-ca, verify-full
    database_statement_cache_size: int = 100

    # Auth (identity is issued elsewhere; we only verify it)
    jwt_secret_key: str
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 30
    argon2_time_cost: int = 3
    argon2_memory_cost: int = 65536
    argon2_parallelism: int = 1

    # Email (Resend)
    resend_api_key: str | None = None  # If not set, emails are logged but not sent
    email_from: str = "noreply@example.com"
    email_send_timeout_seconds: float = Field(default=5.0, gt=0)
    app_url: str = "http://localhost:3000"  # Base URL for invitation links

    # Invitations
    invite_token_secret: str
    invite_expire_days: int = Field(default=7, ge=1)
    invite_max_uses: int = Field(default=1, ge=1)
    invite_rate_limit_max: int = Field(default=20, ge=1)  # Per inviter per window
    invite_rate_limit_window_minutes: int = Field(default=60, ge=1)
    invite_accept_retry_attempts: int = Field(default=1, ge=0)  # After a transient storage error
    invite_expiry_sweep_interval_minutes: int = Field(default=0, ge=0)  # 0 disables the sweep

    @field_validator("jwt_secret_key")
    @classmethod
    def validate_jwt_secret(cls, v: str) -> str:
        if v == "change-this-to-a-secure-random-string":
            raise ValueError(
                "JWT_SECRET_KEY must be changed from default value. "
                "Generate a secure secret with: openssl rand -hex 32"
            )
        if len(v) < 32:
            raise ValueError("JWT_SECRET_KEY must be at least 32 characters")
        return v

    @field_validator("invite_token_secret")
    @classmethod
    def validate_invite_token_secret(cls, v: str) -> str:
        """The HMAC key keeps a leaked invitations table from yielding usable tokens."""
        if len(v) < 32:
            raise ValueError(
                "INVITE_TOKEN_SECRET must be at least 32 characters. "
                "Generate one with: openssl rand -hex 32"
            )
        return v

    @field_validator("app_url")
    @classmethod
    def validate_app_url(cls, v: str, info: ValidationInfo) -> str:
        """Validate APP_URL is from allowed domain list to prevent link spoofing in emails."""
        allowed = info.data.get("allowed_app_url_domains", ["localhost", "127.0.0.1"])
        parsed = urlparse(v)
        hostname = parsed.hostname or ""

        if not any(hostname == domain or hostname.endswith(f".{domain}") for domain in allowed):
            raise ValueError(
                f"APP_URL domain '{hostname}' not in allowed list. "
                f"Add it to ALLOWED_APP_URL_DOMAINS or use: {allowed}"
            )
        return v.rstrip("/")


@lru_cache
def get_settings() -> Settings:
    return Settings()
