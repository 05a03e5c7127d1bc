"""Tests for invitation issuance (InvitationIssuer.issue)."""

from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import select
from structlog.testing import capture_logs

from src.accessgrant.core.security import hash_invite_token
from src.accessgrant.models import Invitation, InviteStatus, MembershipRole
from src.accessgrant.models.base import utc_now
from src.accessgrant.repositories import TenantRepository
from src.accessgrant.services import InviteOutcome, TenantActor
from tests.factories import InvitationFactory
from tests.helpers import load_invitation, make_issuer

pytestmark = pytest.mark.integration


def as_actor(user, role):
    return TenantActor(user_id=user.id, role=role)


async def issue(session_factory, actor, tenant, email, role="member", **kwargs):
    async with session_factory() as session:
        return await make_issuer(session).issue(actor, tenant, email, role, **kwargs)


async def test_issue_creates_pending_invitation(session_factory, tenant, owner, sent_emails):
    before = utc_now()
    result = await issue(
        session_factory,
        as_actor(owner, MembershipRole.OWNER),
        tenant,
        "  New.Person@Example.com ",
        "admin",
        client_ip="203.0.113.7",
    )

    assert result.outcome == InviteOutcome.OK
    assert result.email_sent
    assert result.invite_url is None

    stored = await load_invitation(session_factory, result.invitation.id)
    assert stored.email == "new.person@example.com"
    assert stored.role == "admin"
    assert stored.status == InviteStatus.PENDING.value
    assert stored.use_count == 0
    assert stored.max_uses == 1
    assert stored.invited_by_user_id == owner.id
    assert stored.created_from_ip == "203.0.113.7"
    assert before + timedelta(days=7) <= stored.expires_at <= utc_now() + timedelta(days=7)

    # Only the hash of the emailed token is stored
    token = sent_emails[0]["token"]
    assert stored.token_hash == hash_invite_token(token)
    assert token not in stored.token_hash
    assert sent_emails[0]["to"] == "new.person@example.com"
    assert sent_emails[0]["inviter_name"] == "Olivia Owner"
    assert sent_emails[0]["tenant_name"] == "Acme Team"


async def test_issue_never_logs_token(session_factory, tenant, owner, sent_emails):
    with capture_logs() as logs:
        await issue(session_factory, as_actor(owner, MembershipRole.OWNER), tenant, "a@example.com")

    assert any(entry["event"] == "Invitation issued" for entry in logs)
    assert sent_emails[0]["token"] not in repr(logs)
    assert "a@example.com" not in repr(logs)


async def test_admin_invites_below_admin(session_factory, tenant, admin, sent_emails):
    result = await issue(
        session_factory, as_actor(admin, MembershipRole.ADMIN), tenant, "b@example.com", "viewer"
    )
    assert result.outcome == InviteOutcome.OK


@pytest.mark.parametrize("role", ["owner", "admin"])
async def test_admin_cannot_invite_admin_or_owner(session_factory, tenant, admin, sent_emails, role):
    result = await issue(
        session_factory, as_actor(admin, MembershipRole.ADMIN), tenant, "c@example.com", role
    )
    assert result.outcome == InviteOutcome.FORBIDDEN
    assert sent_emails == []


async def test_owner_cannot_invite_owner(session_factory, tenant, owner, sent_emails):
    result = await issue(
        session_factory, as_actor(owner, MembershipRole.OWNER), tenant, "d@example.com", "owner"
    )
    assert result.outcome == InviteOutcome.FORBIDDEN


async def test_member_cannot_invite(session_factory, tenant, add_member, sent_emails):
    member, _ = await add_member(tenant, MembershipRole.MEMBER)
    result = await issue(
        session_factory, as_actor(member, MembershipRole.MEMBER), tenant, "e@example.com", "viewer"
    )
    assert result.outcome == InviteOutcome.FORBIDDEN


async def test_role_outside_tenant_kind_rejected(session_factory, tenant, owner, sent_emails):
    result = await issue(
        session_factory, as_actor(owner, MembershipRole.OWNER), tenant, "f@example.com", "editor"
    )
    assert result.outcome == InviteOutcome.INVALID_INPUT
    assert "editor" in result.detail


async def test_nonprofit_accepts_editor(session_factory, nonprofit, add_member, sent_emails):
    owner, _ = await add_member(nonprofit, MembershipRole.OWNER)
    result = await issue(
        session_factory, as_actor(owner, MembershipRole.OWNER), nonprofit, "g@example.com", "editor"
    )
    assert result.outcome == InviteOutcome.OK


@pytest.mark.parametrize("email", ["not-an-email", "", "x@"])
async def test_invalid_email(session_factory, tenant, owner, sent_emails, email):
    result = await issue(session_factory, as_actor(owner, MembershipRole.OWNER), tenant, email)
    assert result.outcome == InviteOutcome.INVALID_INPUT
    assert result.detail


async def test_unknown_role(session_factory, tenant, owner, sent_emails):
    result = await issue(
        session_factory, as_actor(owner, MembershipRole.OWNER), tenant, "h@example.com", "boss"
    )
    assert result.outcome == InviteOutcome.INVALID_INPUT


async def test_existing_member_conflicts(session_factory, tenant, owner, add_member, sent_emails):
    await add_member(tenant, MembershipRole.MEMBER, email="already@example.com")
    result = await issue(
        session_factory, as_actor(owner, MembershipRole.OWNER), tenant, "Already@Example.com"
    )
    assert result.outcome == InviteOutcome.CONFLICT
    assert result.detail == "This person is already a member"


async def test_open_invitation_conflicts(session_factory, tenant, owner, sent_emails):
    actor = as_actor(owner, MembershipRole.OWNER)
    first = await issue(session_factory, actor, tenant, "dup@example.com")
    second = await issue(session_factory, actor, tenant, "dup@example.com", "viewer")

    assert first.outcome == InviteOutcome.OK
    assert second.outcome == InviteOutcome.CONFLICT
    assert len(sent_emails) == 1


async def test_expired_invitation_does_not_block_reissue(
    session_factory, tenant, owner, add_rows, sent_emails
):
    stale, _ = InvitationFactory.expired(
        tenant_id=tenant.id, invited_by_user_id=owner.id, email="again@example.com"
    )
    await add_rows(stale)

    result = await issue(
        session_factory, as_actor(owner, MembershipRole.OWNER), tenant, "again@example.com"
    )
    assert result.outcome == InviteOutcome.OK


async def test_same_email_in_other_tenant_allowed(
    session_factory, tenant, nonprofit, owner, add_member, sent_emails
):
    await add_member(nonprofit, MembershipRole.VIEWER, email="shared@example.com")
    result = await issue(
        session_factory, as_actor(owner, MembershipRole.OWNER), tenant, "shared@example.com"
    )
    assert result.outcome == InviteOutcome.OK


async def test_email_failure_keeps_invitation(session_factory, tenant, owner, failing_email):
    result = await issue(
        session_factory, as_actor(owner, MembershipRole.OWNER), tenant, "nomail@example.com"
    )

    assert result.outcome == InviteOutcome.OK
    assert not result.email_sent
    assert result.email_error == "provider down"
    token = failing_email[0]["token"]
    assert result.invite_url.endswith(f"/invite/{token}")

    stored = await load_invitation(session_factory, result.invitation.id)
    assert stored.status == InviteStatus.PENDING.value


async def test_storage_failure_is_transient(session_factory, tenant, owner, sent_emails):
    async with session_factory() as session:
        issuer = make_issuer(session)
        # Session-bound, as the request dependency hands it over
        scoped_tenant = await TenantRepository(session).get_by_id(tenant.id)

        async def lookup_fails(*args, **kwargs):
            raise OperationalError("SELECT users", {}, Exception("connection reset"))

        issuer.user_repo.get_by_id = lookup_fails
        with capture_logs() as logs:
            result = await issuer.issue(
                as_actor(owner, MembershipRole.OWNER), scoped_tenant, "lost@example.com"
            )

    assert result.outcome == InviteOutcome.TRANSIENT_ERROR
    assert result.invitation is None
    assert sent_emails == []
    failure = next(entry for entry in logs if entry["event"] == "Failed to create invitation")
    assert failure["tenant_id"] == str(tenant.id)
    assert failure["error_type"] == "OperationalError"

    async with session_factory() as session:
        rows = (await session.execute(select(Invitation))).scalars().all()
        await session.commit()
    assert rows == []


async def test_rate_limit_blocks_twenty_first(session_factory, tenant, owner, add_rows, sent_emails):
    now = utc_now()
    # 20 invitations spread over the last 59 minutes, every status counts
    rows = [
        InvitationFactory.build(
            tenant_id=tenant.id,
            invited_by_user_id=owner.id,
            status=InviteStatus.CANCELED.value if i % 2 else InviteStatus.PENDING.value,
            created_at=now - timedelta(minutes=59) + timedelta(minutes=2 * i),
        )
        for i in range(20)
    ]
    await add_rows(*rows)

    result = await issue(
        session_factory, as_actor(owner, MembershipRole.OWNER), tenant, "limit@example.com"
    )

    assert result.outcome == InviteOutcome.RATE_LIMITED
    assert 1 <= result.retry_after_seconds <= 60
    assert sent_emails == []
    async with session_factory() as session:
        found = await session.execute(select(Invitation).where(Invitation.email == "limit@example.com"))
        assert found.scalar_one_or_none() is None


async def test_rate_limit_window_slides(session_factory, tenant, owner, add_rows, sent_emails):
    now = utc_now()
    rows = [
        InvitationFactory.build(
            tenant_id=tenant.id,
            invited_by_user_id=owner.id,
            created_at=now - timedelta(minutes=61) if i == 0 else now - timedelta(minutes=i),
        )
        for i in range(20)
    ]
    await add_rows(*rows)

    result = await issue(
        session_factory, as_actor(owner, MembershipRole.OWNER), tenant, "slide@example.com"
    )
    assert result.outcome == InviteOutcome.OK


async def test_rate_limit_is_per_inviter(
    session_factory, tenant, owner, admin, add_rows, sent_emails
):
    now = utc_now()
    await add_rows(
        *[
            InvitationFactory.build(
                tenant_id=tenant.id, invited_by_user_id=owner.id, created_at=now
            )
            for _ in range(20)
        ]
    )

    result = await issue(
        session_factory, as_actor(admin, MembershipRole.ADMIN), tenant, "other@example.com"
    )
    assert result.outcome == InviteOutcome.OK
