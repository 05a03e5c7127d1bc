"""Member management inside a tenant, gated by the role hierarchy."""

from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.accessgrant.core.logging import get_logger
from src.accessgrant.core.security import (
    can_leave,
    can_modify,
    can_remove,
    is_assignable,
    parse_role,
)
from src.accessgrant.models import MembershipRole, Tenant, TenantKind
from src.accessgrant.repositories import MembershipRepository
from src.accessgrant.services.outcomes import (
    InviteOutcome,
    MemberListResult,
    MemberResult,
    TenantActor,
)

logger = get_logger(__name__)


class MembershipService:
    """List, re-role and remove tenant members."""

    def __init__(self, session: AsyncSession, membership_repo: MembershipRepository):
        self.session = session
        self.membership_repo = membership_repo

    async def list_members(self, actor: TenantActor, tenant: Tenant) -> MemberListResult:
        """Any member may see who else belongs to the tenant."""
        try:
            if await self.membership_repo.get_membership(actor.user_id, tenant.id) is None:
                return MemberListResult(outcome=InviteOutcome.FORBIDDEN)
            members = await self.membership_repo.list_by_tenant(tenant.id)
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Failed to list members", error_type=type(e).__name__)
            return MemberListResult(outcome=InviteOutcome.TRANSIENT_ERROR)
        return MemberListResult(outcome=InviteOutcome.OK, members=members)

    async def change_role(
        self,
        actor: TenantActor,
        tenant: Tenant,
        target_user_id: UUID,
        new_role: str,
    ) -> MemberResult:
        """Change a member's role.

        ``owner`` can be granted by an owner of a team tenant (ownership
        transfer); nonprofit portals have no separately assignable owner.
        """
        role = parse_role(new_role)
        if role is None:
            return MemberResult(outcome=InviteOutcome.INVALID_INPUT)
        owner_grant = role == MembershipRole.OWNER and tenant.kind_enum == TenantKind.TEAM
        if not owner_grant and not is_assignable(role, tenant.kind_enum):
            return MemberResult(outcome=InviteOutcome.INVALID_INPUT)

        try:
            target = await self.membership_repo.get_membership(target_user_id, tenant.id)
            if target is None:
                return MemberResult(outcome=InviteOutcome.NOT_FOUND)

            owner_count = await self.membership_repo.count_owners(tenant.id)
            allowed = can_modify(
                actor.role,
                target.role_enum,
                is_target_self=target_user_id == actor.user_id,
                remaining_owner_count=owner_count,
                new_role=role,
            )
            if not allowed:
                logger.warning(
                    "Role change forbidden by role hierarchy",
                    tenant_id=str(tenant.id),
                    actor_role=actor.role.value,
                    target_role=target.role,
                    new_role=role.value,
                )
                return MemberResult(outcome=InviteOutcome.FORBIDDEN)

            if target.role == role.value:
                return MemberResult(outcome=InviteOutcome.OK, membership=target)

            previous_role = target.role
            updated = await self.membership_repo.update_role(
                target_user_id, tenant.id, expected_role=previous_role, new_role=role.value
            )
            await self.session.commit()
            await self.session.refresh(target)
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Failed to change member role", error_type=type(e).__name__)
            return MemberResult(outcome=InviteOutcome.TRANSIENT_ERROR)

        if not updated:
            # Someone else changed the role between our read and write
            return MemberResult(outcome=InviteOutcome.CONFLICT, membership=target)

        logger.info(
            "Member role changed",
            tenant_id=str(tenant.id),
            user_id=str(target_user_id),
            from_role=previous_role,
            to_role=role.value,
            actor_id=str(actor.user_id),
        )
        return MemberResult(outcome=InviteOutcome.OK, membership=target)

    async def remove_member(
        self, actor: TenantActor, tenant: Tenant, target_user_id: UUID
    ) -> MemberResult:
        """Remove another member. Removing yourself goes through ``leave``."""
        try:
            target = await self.membership_repo.get_membership(target_user_id, tenant.id)
            if target is None:
                return MemberResult(outcome=InviteOutcome.NOT_FOUND)

            if not can_remove(actor.role, target.role_enum, target_user_id == actor.user_id):
                return MemberResult(outcome=InviteOutcome.FORBIDDEN)

            removed = await self.membership_repo.delete_membership(target_user_id, tenant.id)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Failed to remove member", error_type=type(e).__name__)
            return MemberResult(outcome=InviteOutcome.TRANSIENT_ERROR)

        if not removed:
            return MemberResult(outcome=InviteOutcome.NOT_FOUND)

        logger.info(
            "Member removed",
            tenant_id=str(tenant.id),
            user_id=str(target_user_id),
            actor_id=str(actor.user_id),
        )
        return MemberResult(outcome=InviteOutcome.OK, membership=target)

    async def leave(self, actor: TenantActor, tenant: Tenant) -> MemberResult:
        """Remove the actor's own membership. The last owner cannot leave."""
        try:
            membership = await self.membership_repo.get_membership(actor.user_id, tenant.id)
            if membership is None:
                return MemberResult(outcome=InviteOutcome.NOT_FOUND)

            owner_count = await self.membership_repo.count_owners(tenant.id)
            if not can_leave(membership.role_enum, owner_count):
                return MemberResult(outcome=InviteOutcome.FORBIDDEN)

            await self.membership_repo.delete_membership(actor.user_id, tenant.id)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Failed to leave tenant", error_type=type(e).__name__)
            return MemberResult(outcome=InviteOutcome.TRANSIENT_ERROR)

        logger.info("Member left tenant", tenant_id=str(tenant.id), user_id=str(actor.user_id))
        return MemberResult(outcome=InviteOutcome.OK, membership=membership)
