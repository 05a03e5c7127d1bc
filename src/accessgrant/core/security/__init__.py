"""Security utilities - crypto, invitation tokens, roles and validators.

Re-exports all security-related functions for convenience.
"""

from src.accessgrant.core.security.crypto import (
    access_token_subject,
    create_access_token,
    decode_token,
    hash_password,
    verify_password,
)
from src.accessgrant.core.security.roles import (
    ASSIGNABLE_ROLES,
    can_invite,
    can_leave,
    can_manage_members,
    can_modify,
    can_remove,
    is_assignable,
    parse_role,
)
from src.accessgrant.core.security.tokens import (
    generate_invite_token,
    hash_invite_token,
    is_valid_invite_token_format,
)
from src.accessgrant.core.security.validators import (
    mask_email,
    normalize_email,
    validate_invite_email,
)

__all__ = [
    # Crypto
    "access_token_subject",
    "create_access_token",
    "decode_token",
    "hash_password",
    "verify_password",
    # Invitation tokens
    "generate_invite_token",
    "hash_invite_token",
    "is_valid_invite_token_format",
    # Roles
    "ASSIGNABLE_ROLES",
    "can_invite",
    "can_leave",
    "can_manage_members",
    "can_modify",
    "can_remove",
    "is_assignable",
    "parse_role",
    # Validators
    "mask_email",
    "normalize_email",
    "validate_invite_email",
]
