"""Password hashing for accounts created at accept time, and bearer-token checks."""

from datetime import UTC, datetime, timedelta
from functools import lru_cache
from typing import Any
from uuid import UUID

import argon2
from jose import JWTError, jwt

from src.accessgrant.core.config import get_settings

ACCESS_TOKEN_TYPE = "access"


@lru_cache
def _password_hasher() -> argon2.PasswordHasher:
    settings = get_settings()
    return argon2.PasswordHasher(
        time_cost=settings.argon2_time_cost,
        memory_cost=settings.argon2_memory_cost,
        parallelism=settings.argon2_parallelism,
    )


def hash_password(password: str) -> str:
    """Argon2id hash with the configured cost parameters."""
    return _password_hasher().hash(password)


def verify_password(password: str, hashed: str) -> bool:
    try:
        return _password_hasher().verify(hashed, password)
    except (argon2.exceptions.VerificationError, argon2.exceptions.InvalidHashError):
        return False


def create_access_token(subject: str | UUID, expires_delta: timedelta | None = None) -> str:
    """Sign an access token in the identity service's format.

    The identity service owns sign-in; this is used where both sides must
    agree on the format, chiefly the test suite.
    """
    settings = get_settings()
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    claims = {
        "sub": str(subject),
        "exp": datetime.now(UTC) + lifetime,
        "type": ACCESS_TOKEN_TYPE,
    }
    return jwt.encode(  # type: ignore[no-any-return]
        claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm
    )


def decode_token(token: str) -> dict[str, Any] | None:
    """Verified claims, or None for a bad signature, expiry or malformed token."""
    settings = get_settings()
    try:
        return jwt.decode(  # type: ignore[no-any-return]
            token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm]
        )
    except JWTError:
        return None


def access_token_subject(token: str) -> UUID | None:
    """User id of a valid access token; None for anything else."""
    claims = decode_token(token)
    if claims is None or claims.get("type") != ACCESS_TOKEN_TYPE:
        return None
    try:
        return UUID(str(claims.get("sub", "")))
    except ValueError:
        return None
