"""User and membership models."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from src.accessgrant.models.base import utc_now
from src.accessgrant.models.enums import MembershipRole


class User(SQLModel, table=True):
    """User account, shared across tenants."""

    __tablename__ = "users"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    email: str = Field(max_length=255, unique=True, index=True)
    hashed_password: str = Field(max_length=255)
    full_name: str = Field(max_length=100)
    is_active: bool = Field(default=True)
    email_verified: bool = Field(default=False)
    email_verified_at: datetime | None = Field(default=None, sa_type=DateTime)
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime)
    updated_at: datetime = Field(default_factory=utc_now, sa_type=DateTime)


class Membership(SQLModel, table=True):
    """Grant of a role in a tenant.

    The composite primary key allows at most one membership per (tenant, user).
    """

    __tablename__ = "memberships"

    tenant_id: UUID = Field(foreign_key="tenants.id", primary_key=True)
    user_id: UUID = Field(foreign_key="users.id", primary_key=True, index=True)
    role: str = Field(default=MembershipRole.MEMBER.value, max_length=50)
    invited_by_user_id: UUID | None = Field(foreign_key="users.id", default=None)
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime)

    @property
    def role_enum(self) -> MembershipRole:
        return MembershipRole(self.role)
