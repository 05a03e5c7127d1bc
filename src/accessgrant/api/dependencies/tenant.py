"""Tenant resolution from the X-Tenant-ID header."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status

from src.accessgrant.api.dependencies.repositories import TenantRepo
from src.accessgrant.models import Tenant


def _parse_uuid(value: str) -> UUID | None:
    try:
        return UUID(value)
    except ValueError:
        return None


async def get_validated_tenant(
    tenant_repo: TenantRepo,
    x_tenant_id: Annotated[str | None, Header()] = None,
) -> Tenant:
    """Resolve the tenant named by X-Tenant-ID (its id or its slug).

    Deleted and paused tenants are indistinguishable from unknown ones to
    callers: none of them accepts tenant-scoped operations.
    """
    if not x_tenant_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Tenant-ID header is required",
        )

    tenant_id = _parse_uuid(x_tenant_id)
    if tenant_id is not None:
        tenant = await tenant_repo.get_available(tenant_id)
    else:
        tenant = await tenant_repo.get_by_slug(x_tenant_id)
        if tenant is not None and (tenant.is_deleted or not tenant.is_active):
            tenant = None

    if tenant is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tenant not found")
    return tenant


ValidatedTenant = Annotated[Tenant, Depends(get_validated_tenant)]
