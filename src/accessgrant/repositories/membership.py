"""Repository for Membership entity."""

from uuid import UUID

from sqlalchemy import delete, func, update
from sqlmodel import select

from src.accessgrant.models import Membership, MembershipRole, User
from src.accessgrant.repositories.base import BaseRepository


class MembershipRepository(BaseRepository[Membership]):
    """Repository for tenant memberships."""

    model = Membership

    async def get_membership(self, user_id: UUID, tenant_id: UUID) -> Membership | None:
        """Get membership for a user in a tenant."""
        result = await self.session.execute(
            select(Membership).where(
                Membership.user_id == user_id,
                Membership.tenant_id == tenant_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_membership_by_email(self, email: str, tenant_id: UUID) -> Membership | None:
        """Get the membership of whichever account owns ``email`` in a tenant."""
        result = await self.session.execute(
            select(Membership)
            .join(User, User.id == Membership.user_id)  # type: ignore[arg-type]
            .where(
                User.email == email,
                Membership.tenant_id == tenant_id,
            )
        )
        return result.scalar_one_or_none()

    async def count_owners(self, tenant_id: UUID) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(Membership)
            .where(
                Membership.tenant_id == tenant_id,
                Membership.role == MembershipRole.OWNER.value,
            )
        )
        return int(result.scalar_one())

    async def list_by_tenant(self, tenant_id: UUID) -> list[tuple[Membership, User]]:
        """List memberships of a tenant with their users, oldest first."""
        result = await self.session.execute(
            select(Membership, User)
            .join(User, User.id == Membership.user_id)  # type: ignore[arg-type]
            .where(Membership.tenant_id == tenant_id)
            .order_by(Membership.created_at)  # type: ignore[arg-type]
        )
        return [(membership, user) for membership, user in result.all()]

    def create_membership(
        self,
        user_id: UUID,
        tenant_id: UUID,
        role: str = MembershipRole.MEMBER.value,
        invited_by_user_id: UUID | None = None,
    ) -> Membership:
        """Create a new membership (add to session, no commit)."""
        membership = Membership(
            user_id=user_id,
            tenant_id=tenant_id,
            role=role,
            invited_by_user_id=invited_by_user_id,
        )
        self.session.add(membership)
        return membership

    async def update_role(
        self, user_id: UUID, tenant_id: UUID, expected_role: str, new_role: str
    ) -> bool:
        """Change a member's role if it still holds ``expected_role``."""
        result = await self.session.execute(
            update(Membership)
            .where(
                Membership.user_id == user_id,  # type: ignore[arg-type]
                Membership.tenant_id == tenant_id,  # type: ignore[arg-type]
                Membership.role == expected_role,  # type: ignore[arg-type]
            )
            .values(role=new_role)
            .execution_options(synchronize_session=False)
        )
        return (result.rowcount or 0) == 1  # type: ignore[attr-defined]

    async def delete_membership(self, user_id: UUID, tenant_id: UUID) -> bool:
        result = await self.session.execute(
            delete(Membership)
            .where(
                Membership.user_id == user_id,  # type: ignore[arg-type]
                Membership.tenant_id == tenant_id,  # type: ignore[arg-type]
            )
            .execution_options(synchronize_session=False)
        )
        return (result.rowcount or 0) == 1  # type: ignore[attr-defined]
