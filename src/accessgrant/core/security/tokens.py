"""Invitation token codec.

Tokens are 32 random bytes (256 bits) encoded as unpadded URL-safe base64,
which is always 43 characters from ``[A-Za-z0-9_-]``. Only an HMAC-SHA256
digest of the token is stored, keyed with ``INVITE_TOKEN_SECRET``, so a copy
of the invitations table alone cannot be turned back into working links.
"""

import hmac
import re
import secrets
from hashlib import sha256
from typing import Final

from src.accessgrant.core.config import get_settings

TOKEN_BYTES: Final[int] = 32
TOKEN_LENGTH: Final[int] = 43
_TOKEN_PATTERN: Final[re.Pattern[str]] = re.compile(rf"^[A-Za-z0-9_-]{{{TOKEN_LENGTH}}}$")


def hash_invite_token(token: str) -> str:
    """Derive the storage/lookup key for a raw invitation token."""
    key = get_settings().invite_token_secret.encode()
    return hmac.new(key, token.encode(), sha256).hexdigest()


def generate_invite_token() -> tuple[str, str]:
    """Generate a fresh invitation token.

    Returns (token, token_hash). The token goes into the invitation link and
    nowhere else; only the hash is persisted.
    """
    token = secrets.token_urlsafe(TOKEN_BYTES)
    return token, hash_invite_token(token)


def is_valid_invite_token_format(token: str | None) -> bool:
    """Cheap structural check run before any hashing or storage lookup."""
    if not token or len(token) != TOKEN_LENGTH:
        return False
    return _TOKEN_PATTERN.fullmatch(token) is not None
