"""End-to-end tests for the /api/v1/invites endpoints."""

import pytest

from src.accessgrant.models import InviteStatus, MembershipRole
from tests.factories import STRONG_PASSWORD, InvitationFactory, UserFactory
from tests.helpers import auth_headers, find_user, list_memberships, load_invitation, naive

pytestmark = pytest.mark.integration

BASE = "/api/v1/invites"


async def create_invite(client, user, tenant, email, role="member"):
    return await client.post(
        BASE, json={"email": email, "role": role}, headers=auth_headers(user, tenant)
    )


class TestCreateInvite:
    async def test_created(self, client, session_factory, tenant, owner, sent_emails):
        response = await create_invite(client, owner, tenant, "Newbie@Example.com", "admin")

        assert response.status_code == 201
        body = response.json()
        assert body["email"] == "newbie@example.com"
        assert body["role"] == "admin"
        assert body["status"] == "pending"
        assert body["email_sent"] is True
        assert body["invite_url"] is None
        assert "token" not in body
        assert "token_hash" not in body

        stored = await load_invitation(session_factory, body["id"])
        assert naive(body["expires_at"]) == stored.expires_at

    async def test_email_failure_is_soft(self, client, tenant, owner, failing_email):
        response = await create_invite(client, owner, tenant, "nomail@example.com")

        assert response.status_code == 201
        body = response.json()
        assert body["email_sent"] is False
        assert body["invite_url"].endswith(failing_email[0]["token"])
        assert "could not be delivered" in body["message"]

    async def test_forbidden_role(self, client, tenant, admin, sent_emails):
        response = await create_invite(client, admin, tenant, "x@example.com", "admin")

        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "forbidden"

    async def test_invalid_email(self, client, tenant, owner, sent_emails):
        response = await create_invite(client, owner, tenant, "not-an-email")

        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "invalid_input"

    async def test_conflict(self, client, tenant, owner, sent_emails):
        await create_invite(client, owner, tenant, "twice@example.com")
        response = await create_invite(client, owner, tenant, "twice@example.com")

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "conflict"

    async def test_rate_limited_sets_retry_after(self, client, tenant, owner, add_rows, sent_emails):
        await add_rows(
            *[
                InvitationFactory.build(tenant_id=tenant.id, invited_by_user_id=owner.id)
                for _ in range(20)
            ]
        )

        response = await create_invite(client, owner, tenant, "late@example.com")

        assert response.status_code == 429
        assert int(response.headers["Retry-After"]) >= 1
        assert response.json()["detail"]["code"] == "rate_limited"

    async def test_requires_auth(self, client, tenant):
        response = await client.post(
            BASE, json={"email": "a@example.com"}, headers={"X-Tenant-ID": tenant.slug}
        )
        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    async def test_requires_tenant_header(self, client, owner):
        response = await client.post(
            BASE, json={"email": "a@example.com"}, headers=auth_headers(owner)
        )
        assert response.status_code == 400

    async def test_non_member_forbidden(self, client, tenant, add_rows):
        stranger = UserFactory.build()
        await add_rows(stranger)

        response = await create_invite(client, stranger, tenant, "a@example.com")
        assert response.status_code == 403


class TestAdminInviteViews:
    async def test_list_and_get(self, client, tenant, owner, sent_emails):
        for email in ("one@example.com", "two@example.com", "three@example.com"):
            await create_invite(client, owner, tenant, email)

        page = await client.get(f"{BASE}?limit=2", headers=auth_headers(owner, tenant))
        assert page.status_code == 200
        body = page.json()
        assert len(body["items"]) == 2
        assert body["has_more"] is True

        rest = await client.get(
            BASE, params={"cursor": body["next_cursor"]}, headers=auth_headers(owner, tenant)
        )
        emails = {i["email"] for i in body["items"]} | {i["email"] for i in rest.json()["items"]}
        assert emails == {"one@example.com", "two@example.com", "three@example.com"}

        bad = await client.get(
            BASE, params={"cursor": "not-a-cursor"}, headers=auth_headers(owner, tenant)
        )
        assert bad.status_code == 422
        assert bad.json()["detail"]["message"] == "Invalid cursor"

        invite_id = body["items"][0]["id"]
        single = await client.get(f"{BASE}/{invite_id}", headers=auth_headers(owner, tenant))
        assert single.status_code == 200
        assert single.json()["id"] == invite_id
        assert "token_hash" not in single.json()

    async def test_cancel_then_cancel_again(self, client, tenant, owner, sent_emails):
        created = (await create_invite(client, owner, tenant, "c@example.com")).json()

        first = await client.delete(f"{BASE}/{created['id']}", headers=auth_headers(owner, tenant))
        second = await client.delete(f"{BASE}/{created['id']}", headers=auth_headers(owner, tenant))

        assert first.status_code == 200
        assert first.json()["invite"]["status"] == "canceled"
        assert second.status_code == 410
        assert second.json()["detail"]["code"] == "canceled"

    async def test_revoke(self, client, session_factory, tenant, owner, sent_emails):
        created = (await create_invite(client, owner, tenant, "r@example.com")).json()

        response = await client.post(
            f"{BASE}/{created['id']}/revoke", headers=auth_headers(owner, tenant)
        )

        assert response.status_code == 200
        stored = await load_invitation(session_factory, created["id"])
        assert stored.status == InviteStatus.REVOKED.value
        assert stored.revoked_by_user_id == owner.id

    async def test_resend(self, client, tenant, owner, sent_emails):
        created = (await create_invite(client, owner, tenant, "s@example.com")).json()
        old_token = sent_emails[0]["token"]

        response = await client.post(
            f"{BASE}/{created['id']}/resend", headers=auth_headers(owner, tenant)
        )

        assert response.status_code == 200
        assert response.json()["email_sent"] is True
        assert (await client.get(f"{BASE}/t/{old_token}")).status_code == 404
        assert (await client.get(f"{BASE}/t/{sent_emails[1]['token']}")).status_code == 200

    async def test_unknown_invitation(self, client, tenant, owner):
        response = await client.get(
            f"{BASE}/00000000-0000-0000-0000-000000000000", headers=auth_headers(owner, tenant)
        )
        assert response.status_code == 404


class TestPublicTokenEndpoints:
    @pytest.fixture
    async def invitation(self, tenant, owner, add_rows):
        row, token = InvitationFactory.build_with_token(
            tenant_id=tenant.id,
            invited_by_user_id=owner.id,
            email="john.doe@company.com",
            role=MembershipRole.VIEWER.value,
        )
        await add_rows(row)
        return row, token

    async def test_info_masks_email(self, client, tenant, invitation):
        _, token = invitation

        response = await client.get(f"{BASE}/t/{token}")

        assert response.status_code == 200
        body = response.json()
        assert body["email"] == "j***e@c***y.com"
        assert body["tenant_name"] == "Acme Team"
        assert body["tenant_slug"] == tenant.slug
        assert body["tenant_kind"] == "team"
        assert body["role"] == "viewer"

    async def test_token_responses_are_not_cached(self, client, invitation):
        _, token = invitation

        response = await client.get(f"{BASE}/t/{token}")

        assert response.headers["Cache-Control"] == "no-store"
        assert response.headers["Referrer-Policy"] == "no-referrer"

    async def test_malformed_and_unknown_look_the_same(self, client):
        malformed = await client.get(f"{BASE}/t/garbage")
        _, unknown_token = InvitationFactory.build_with_token()
        unknown = await client.get(f"{BASE}/t/{unknown_token}")

        assert malformed.status_code == unknown.status_code == 404
        assert malformed.json()["detail"] == unknown.json()["detail"]

    async def test_expired_is_gone(self, client, tenant, owner, add_rows):
        row, token = InvitationFactory.expired(tenant_id=tenant.id, invited_by_user_id=owner.id)
        await add_rows(row)

        response = await client.get(f"{BASE}/t/{token}")

        assert response.status_code == 410
        assert response.json()["detail"]["code"] == "expired"

    async def test_accept_signed_in(self, client, session_factory, tenant, invitation, add_rows):
        _, token = invitation
        user = UserFactory.build(email="john.doe@company.com")
        await add_rows(user)

        response = await client.post(f"{BASE}/t/{token}/accept", headers=auth_headers(user))

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Successfully joined"
        assert body["tenant_slug"] == tenant.slug
        assert body["role"] == "viewer"
        assert body["already_member"] is False

        again = await client.post(f"{BASE}/t/{token}/accept", headers=auth_headers(user))
        assert again.status_code == 200
        assert again.json()["already_member"] is True
        assert again.json()["message"] == "You are already a member"

    async def test_accept_wrong_account(self, client, invitation, add_rows):
        _, token = invitation
        other = UserFactory.build(email="other@example.com")
        await add_rows(other)

        response = await client.post(f"{BASE}/t/{token}/accept", headers=auth_headers(other))

        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "email_mismatch"

    async def test_accept_requires_verified_email(self, client, invitation, add_rows):
        _, token = invitation
        user = UserFactory.unverified(email="john.doe@company.com")
        await add_rows(user)

        response = await client.post(f"{BASE}/t/{token}/accept", headers=auth_headers(user))
        assert response.status_code == 403

    async def test_accept_with_new_account(self, client, session_factory, tenant, invitation):
        _, token = invitation

        response = await client.post(
            f"{BASE}/t/{token}/accept",
            json={"full_name": "John Doe", "password": STRONG_PASSWORD},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["account_created"] is True
        assert body["message"] == "Account created and joined successfully"
        user = await find_user(session_factory, "john.doe@company.com")
        assert user is not None
        assert user.id in {m.user_id for m in await list_memberships(session_factory, tenant.id)}

    async def test_accept_weak_password_not_echoed(self, client, invitation):
        _, token = invitation

        response = await client.post(
            f"{BASE}/t/{token}/accept",
            json={"full_name": "John Doe", "password": "password123"},
        )

        assert response.status_code == 422
        assert "password123" not in response.text

    async def test_accept_without_identity_or_body(self, client, invitation):
        _, token = invitation

        response = await client.post(f"{BASE}/t/{token}/accept")

        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "invalid_input"
