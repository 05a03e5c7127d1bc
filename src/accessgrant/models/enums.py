"""Shared enums for models."""

from enum import Enum


class TenantKind(str, Enum):
    """Kind of tenant; decides which roles can be granted."""

    TEAM = "team"
    NONPROFIT = "nonprofit"


class MembershipRole(str, Enum):
    """User role within a tenant."""

    OWNER = "owner"
    ADMIN = "admin"
    EDITOR = "editor"
    MEMBER = "member"
    VIEWER = "viewer"


class InviteStatus(str, Enum):
    """Invitation lifecycle status.

    Only PENDING is non-terminal.
    """

    PENDING = "pending"
    ACCEPTED = "accepted"
    REVOKED = "revoked"
    CANCELED = "canceled"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        return self is not InviteStatus.PENDING
