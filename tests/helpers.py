"""Test helper functions shared by integration tests."""

from datetime import datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from src.accessgrant.core.security import create_access_token
from src.accessgrant.models import Invitation, Membership, Tenant, User
from src.accessgrant.repositories import (
    InvitationRepository,
    MembershipRepository,
    TenantRepository,
    UserRepository,
)
from src.accessgrant.services import (
    AcceptanceService,
    InvitationIssuer,
    InvitationValidator,
    MembershipService,
)


def auth_headers(user: User, tenant: Tenant | None = None) -> dict[str, str]:
    """Bearer header for ``user``, plus the tenant header when given."""
    headers = {"Authorization": f"Bearer {create_access_token(user.id)}"}
    if tenant is not None:
        headers["X-Tenant-ID"] = tenant.slug
    return headers


def naive(value: str) -> datetime:
    """Parse an API timestamp for comparison with stored (naive UTC) values."""
    return datetime.fromisoformat(value).replace(tzinfo=None)


async def load_invitation(
    session_factory: async_sessionmaker[AsyncSession], invitation_id
) -> Invitation:
    """Fresh copy of an invitation row, read in its own session."""
    async with session_factory() as session:
        invitation = await session.get(Invitation, UUID(str(invitation_id)))
        await session.commit()
    assert invitation is not None
    return invitation


async def list_memberships(
    session_factory: async_sessionmaker[AsyncSession], tenant_id
) -> list[Membership]:
    async with session_factory() as session:
        result = await session.execute(select(Membership).where(Membership.tenant_id == tenant_id))
        rows = list(result.scalars().all())
        await session.commit()
    return rows


async def find_user(session_factory: async_sessionmaker[AsyncSession], email: str) -> User | None:
    async with session_factory() as session:
        result = await session.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()
        await session.commit()
    return user


def make_issuer(session: AsyncSession) -> InvitationIssuer:
    return InvitationIssuer(
        session,
        InvitationRepository(session),
        MembershipRepository(session),
        UserRepository(session),
    )


def make_validator(session: AsyncSession) -> InvitationValidator:
    return InvitationValidator(session, InvitationRepository(session), TenantRepository(session))


def make_acceptance(session: AsyncSession) -> AcceptanceService:
    return AcceptanceService(
        session,
        InvitationRepository(session),
        MembershipRepository(session),
        UserRepository(session),
        make_validator(session),
    )


def make_membership_service(session: AsyncSession) -> MembershipService:
    return MembershipService(session, MembershipRepository(session))
