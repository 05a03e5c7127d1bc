"""Tenant model - organization teams and nonprofit portals."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from src.accessgrant.models.base import utc_now
from src.accessgrant.models.enums import TenantKind


class Tenant(SQLModel, table=True):
    """A team or nonprofit portal that owns memberships and invitations."""

    __tablename__ = "tenants"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    name: str = Field(max_length=100, index=True)
    slug: str = Field(max_length=56, unique=True, index=True)
    kind: str = Field(default=TenantKind.TEAM.value, max_length=20)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime)
    deleted_at: datetime | None = Field(default=None, sa_type=DateTime)

    @property
    def kind_enum(self) -> TenantKind:
        """Get kind as TenantKind enum."""
        return TenantKind(self.kind)

    @property
    def is_deleted(self) -> bool:
        """Check if tenant is soft-deleted."""
        return self.deleted_at is not None
