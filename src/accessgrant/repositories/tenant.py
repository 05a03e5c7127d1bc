"""Repository for Tenant entity."""

from uuid import UUID

from sqlmodel import select

from src.accessgrant.models import Tenant
from src.accessgrant.repositories.base import BaseRepository


class TenantRepository(BaseRepository[Tenant]):
    """Repository for Tenant entity."""

    model = Tenant

    async def get_by_slug(self, slug: str) -> Tenant | None:
        """Get tenant by slug."""
        result = await self.session.execute(select(Tenant).where(Tenant.slug == slug))
        return result.scalar_one_or_none()

    async def get_available(self, tenant_id: UUID) -> Tenant | None:
        """Get a tenant that is active and not soft-deleted."""
        tenant = await self.get_by_id(tenant_id)
        if tenant is None or tenant.is_deleted or not tenant.is_active:
            return None
        return tenant
