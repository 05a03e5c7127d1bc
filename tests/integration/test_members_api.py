"""End-to-end tests for the /api/v1/members endpoints."""

import pytest

from src.accessgrant.models import MembershipRole
from tests.factories import TenantFactory
from tests.helpers import auth_headers

pytestmark = pytest.mark.integration

BASE = "/api/v1/members"


async def test_list_members(client, tenant, owner, admin):
    response = await client.get(BASE, headers=auth_headers(admin, tenant))

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    assert {m["role"] for m in body["members"]} == {"owner", "admin"}


async def test_change_role(client, tenant, owner, admin):
    response = await client.patch(
        f"{BASE}/{admin.id}", json={"role": "member"}, headers=auth_headers(owner, tenant)
    )

    assert response.status_code == 200
    assert response.json()["role"] == "member"


async def test_admin_cannot_change_owner(client, tenant, owner, admin):
    response = await client.patch(
        f"{BASE}/{owner.id}", json={"role": "member"}, headers=auth_headers(admin, tenant)
    )

    assert response.status_code == 403
    assert response.json()["detail"]["code"] == "forbidden"


async def test_remove_member(client, tenant, owner, add_member):
    member, _ = await add_member(tenant, MembershipRole.MEMBER)

    response = await client.delete(f"{BASE}/{member.id}", headers=auth_headers(owner, tenant))
    assert response.status_code == 200

    # The removed member has lost access
    listing = await client.get(BASE, headers=auth_headers(member, tenant))
    assert listing.status_code == 403


async def test_leave(client, tenant, owner, add_member):
    member, _ = await add_member(tenant, MembershipRole.VIEWER)

    response = await client.post(f"{BASE}/leave", headers=auth_headers(member, tenant))

    assert response.status_code == 200
    assert response.json()["user_id"] == str(member.id)


async def test_sole_owner_cannot_leave(client, tenant, owner):
    response = await client.post(f"{BASE}/leave", headers=auth_headers(owner, tenant))
    assert response.status_code == 403


async def test_tenant_header_accepts_id(client, tenant, owner):
    headers = auth_headers(owner) | {"X-Tenant-ID": str(tenant.id)}
    response = await client.get(BASE, headers=headers)
    assert response.status_code == 200


async def test_unavailable_tenant_is_not_found(client, owner, add_rows):
    paused = TenantFactory.build(is_active=False)
    await add_rows(paused)

    for header in (paused.slug, str(paused.id), "no-such-tenant"):
        response = await client.get(BASE, headers=auth_headers(owner) | {"X-Tenant-ID": header})
        assert response.status_code == 404


async def test_missing_tenant_header(client, owner):
    response = await client.get(BASE, headers=auth_headers(owner))
    assert response.status_code == 400
