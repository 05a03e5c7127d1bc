"""Invitation model - a pending, single-use grant of a tenant role."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, DateTime, Index
from sqlmodel import Field, SQLModel

from src.accessgrant.models.base import utc_now
from src.accessgrant.models.enums import InviteStatus, MembershipRole


class Invitation(SQLModel, table=True):
    """Invitation storage.

    Only the token hash is stored. Rows are never deleted; terminal states
    (accepted, revoked, canceled, expired) are kept for audit.
    """

    __tablename__ = "invitations"
    __table_args__ = (
        Index("ix_invitations_tenant_status", "tenant_id", "status"),
        Index("ix_invitations_email_tenant_status", "email", "tenant_id", "status"),
        Index("ix_invitations_inviter_created", "invited_by_user_id", "created_at"),
        CheckConstraint(
            "status IN ('pending', 'accepted', 'revoked', 'canceled', 'expired')",
            name="ck_invitations_status",
        ),
        CheckConstraint(
            "status <> 'accepted' OR (accepted_at IS NOT NULL "
            "AND accepted_by_user_id IS NOT NULL AND use_count >= 1)",
            name="ck_invitations_accepted_fields",
        ),
        CheckConstraint("use_count <= max_uses", name="ck_invitations_use_count"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    tenant_id: UUID = Field(foreign_key="tenants.id")
    email: str = Field(max_length=255)
    role: str = Field(default=MembershipRole.MEMBER.value, max_length=50)
    token_hash: str = Field(max_length=255, unique=True, index=True)
    status: str = Field(default=InviteStatus.PENDING.value, max_length=20)
    expires_at: datetime = Field(sa_type=DateTime)
    invited_by_user_id: UUID = Field(foreign_key="users.id")
    created_from_ip: str | None = Field(default=None, max_length=45)
    use_count: int = Field(default=0)
    max_uses: int = Field(default=1)
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime)
    accepted_at: datetime | None = Field(default=None, sa_type=DateTime)
    accepted_by_user_id: UUID | None = Field(foreign_key="users.id", default=None)
    accepted_from_ip: str | None = Field(default=None, max_length=45)
    canceled_at: datetime | None = Field(default=None, sa_type=DateTime)
    canceled_by_user_id: UUID | None = Field(foreign_key="users.id", default=None)
    revoked_at: datetime | None = Field(default=None, sa_type=DateTime)
    revoked_by_user_id: UUID | None = Field(foreign_key="users.id", default=None)

    @property
    def status_enum(self) -> InviteStatus:
        """Get status as InviteStatus enum."""
        return InviteStatus(self.status)

    @property
    def role_enum(self) -> MembershipRole:
        return MembershipRole(self.role)

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at
