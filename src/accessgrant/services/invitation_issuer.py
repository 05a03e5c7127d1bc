"""Invitation issuance and admin-side lifecycle operations."""

from datetime import timedelta
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.accessgrant.core.config import get_settings
from src.accessgrant.core.logging import get_logger, log_email
from src.accessgrant.core.notifications import build_invite_url, send_invite_email
from src.accessgrant.core.rate_limit import InviteRateLimiter
from src.accessgrant.core.security import (
    can_invite,
    can_manage_members,
    generate_invite_token,
    is_assignable,
    parse_role,
    validate_invite_email,
)
from src.accessgrant.models import Invitation, InviteStatus, Tenant
from src.accessgrant.models.base import utc_now
from src.accessgrant.repositories import (
    InvitationRepository,
    MembershipRepository,
    UserRepository,
)
from src.accessgrant.services.outcomes import (
    InvitationListResult,
    InvitationResult,
    InviteOutcome,
    IssueResult,
    TenantActor,
    outcome_for_status,
)

logger = get_logger(__name__)

# Attempts at drawing a token whose hash is not already stored
TOKEN_GENERATION_ATTEMPTS = 3


class InvitationIssuer:
    """Creates invitations and manages pending ones for a tenant.

    Every operation takes the acting member explicitly; nothing is read from
    request state. The database commit is the point of no return: email is
    sent afterwards and its failure never undoes the invitation.
    """

    def __init__(
        self,
        session: AsyncSession,
        invite_repo: InvitationRepository,
        membership_repo: MembershipRepository,
        user_repo: UserRepository,
        rate_limiter: InviteRateLimiter | None = None,
    ):
        self.session = session
        self.invite_repo = invite_repo
        self.membership_repo = membership_repo
        self.user_repo = user_repo
        self.rate_limiter = rate_limiter or InviteRateLimiter(invite_repo)

    async def issue(
        self,
        actor: TenantActor,
        tenant: Tenant,
        email: str,
        role: str,
        client_ip: str | None = None,
    ) -> IssueResult:
        """Create a pending invitation and email its link.

        Checks run in order: input shape, role hierarchy, existing
        membership or open invitation, rate limit.
        """
        tenant_id = tenant.id
        try:
            email = validate_invite_email(email)
        except ValueError as e:
            return IssueResult(outcome=InviteOutcome.INVALID_INPUT, detail=str(e))

        target_role = parse_role(role)
        if target_role is None:
            return IssueResult(outcome=InviteOutcome.INVALID_INPUT, detail=f"Unknown role: {role}")

        if not can_invite(actor.role, target_role):
            logger.warning(
                "Invitation forbidden by role hierarchy",
                tenant_id=str(tenant_id),
                actor_role=actor.role.value,
                target_role=target_role.value,
            )
            return IssueResult(outcome=InviteOutcome.FORBIDDEN)

        if not is_assignable(target_role, tenant.kind_enum):
            return IssueResult(
                outcome=InviteOutcome.INVALID_INPUT,
                detail=f"Role '{target_role.value}' is not available for {tenant.kind} tenants",
            )

        settings = get_settings()
        now = utc_now()

        try:
            if await self.membership_repo.get_membership_by_email(email, tenant_id):
                return IssueResult(
                    outcome=InviteOutcome.CONFLICT,
                    detail="This person is already a member",
                )
            if await self.invite_repo.get_open_for_email(email, tenant_id, now):
                return IssueResult(
                    outcome=InviteOutcome.CONFLICT,
                    detail="An invitation is already pending for this email",
                )

            limit = await self.rate_limiter.check_and_record(actor.user_id, now=now)
            if not limit.allowed:
                return IssueResult(
                    outcome=InviteOutcome.RATE_LIMITED,
                    retry_after_seconds=limit.retry_after_seconds,
                )

            token_pair = await self._new_token()
            if token_pair is None:
                return IssueResult(outcome=InviteOutcome.TRANSIENT_ERROR)
            token, token_hash = token_pair

            invitation = Invitation(
                tenant_id=tenant_id,
                email=email,
                role=target_role.value,
                token_hash=token_hash,
                status=InviteStatus.PENDING.value,
                expires_at=now + timedelta(days=settings.invite_expire_days),
                invited_by_user_id=actor.user_id,
                created_from_ip=client_ip,
                use_count=0,
                max_uses=settings.invite_max_uses,
                created_at=now,
            )
            self.invite_repo.add(invitation)

            inviter = await self.user_repo.get_by_id(actor.user_id)
            inviter_name = inviter.full_name if inviter else "A team member"

            await self.session.commit()
            await self.session.refresh(invitation)
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(
                "Failed to create invitation",
                tenant_id=str(tenant_id),
                error_type=type(e).__name__,
            )
            return IssueResult(outcome=InviteOutcome.TRANSIENT_ERROR)

        logger.info(
            "Invitation issued",
            invitation_id=str(invitation.id),
            tenant_id=str(tenant_id),
            email=log_email(email),
            role=invitation.role,
            invited_by=str(actor.user_id),
        )

        email_result = await send_invite_email(
            to=email,
            token=token,
            tenant_name=tenant.name,
            inviter_name=inviter_name,
            role=invitation.role,
            expires_at=invitation.expires_at,
        )
        if not email_result.success:
            logger.warning(
                "Invitation email not delivered, link must be shared manually",
                invitation_id=str(invitation.id),
            )
            return IssueResult(
                outcome=InviteOutcome.OK,
                invitation=invitation,
                email_sent=False,
                email_error=email_result.error,
                invite_url=build_invite_url(token),
            )

        return IssueResult(outcome=InviteOutcome.OK, invitation=invitation, email_sent=True)

    async def list_pending(
        self,
        actor: TenantActor,
        tenant: Tenant,
        cursor: str | None = None,
        limit: int = 20,
    ) -> InvitationListResult:
        """List pending, unexpired invitations, newest first."""
        if not can_manage_members(actor.role):
            return InvitationListResult(outcome=InviteOutcome.FORBIDDEN)

        try:
            items, next_cursor, has_more = await self.invite_repo.get_pending_by_tenant_paginated(
                tenant.id, utc_now(), cursor, limit
            )
        except ValueError:
            return InvitationListResult(outcome=InviteOutcome.INVALID_INPUT)
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Failed to list invitations", error_type=type(e).__name__)
            return InvitationListResult(outcome=InviteOutcome.TRANSIENT_ERROR)

        return InvitationListResult(
            outcome=InviteOutcome.OK, items=items, next_cursor=next_cursor, has_more=has_more
        )

    async def get(self, actor: TenantActor, tenant: Tenant, invitation_id: UUID) -> InvitationResult:
        """Get one invitation of the tenant (admin view)."""
        if not can_manage_members(actor.role):
            return InvitationResult(outcome=InviteOutcome.FORBIDDEN)

        try:
            invitation = await self._get_in_tenant(invitation_id, tenant)
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Failed to load invitation", error_type=type(e).__name__)
            return InvitationResult(outcome=InviteOutcome.TRANSIENT_ERROR)

        if invitation is None:
            return InvitationResult(outcome=InviteOutcome.NOT_FOUND)
        return InvitationResult(outcome=InviteOutcome.OK, invitation=invitation)

    async def cancel(
        self, actor: TenantActor, tenant: Tenant, invitation_id: UUID
    ) -> InvitationResult:
        """Cancel a pending invitation. Terminal invitations are left untouched."""
        return await self._terminate(actor, tenant, invitation_id, InviteStatus.CANCELED)

    async def revoke(
        self, actor: TenantActor, tenant: Tenant, invitation_id: UUID
    ) -> InvitationResult:
        """Revoke a pending invitation, recording who pulled it."""
        return await self._terminate(actor, tenant, invitation_id, InviteStatus.REVOKED)

    async def resend(
        self, actor: TenantActor, tenant: Tenant, invitation_id: UUID
    ) -> InvitationResult:
        """Rotate the token of a pending invitation and email a reminder.

        The old link stops working and the expiry window restarts.
        """
        if not can_manage_members(actor.role):
            return InvitationResult(outcome=InviteOutcome.FORBIDDEN)

        settings = get_settings()
        now = utc_now()

        try:
            invitation = await self._get_in_tenant(invitation_id, tenant)
            if invitation is None:
                return InvitationResult(outcome=InviteOutcome.NOT_FOUND)
            if not can_invite(actor.role, invitation.role_enum):
                return InvitationResult(outcome=InviteOutcome.FORBIDDEN)
            if invitation.status_enum.is_terminal:
                return InvitationResult(
                    outcome=outcome_for_status(invitation.status_enum), invitation=invitation
                )
            if invitation.is_expired(now):
                await self.invite_repo.mark_expired(invitation.id, now)
                await self.session.commit()
                await self.session.refresh(invitation)
                return InvitationResult(outcome=InviteOutcome.EXPIRED, invitation=invitation)

            token_pair = await self._new_token()
            if token_pair is None:
                return InvitationResult(outcome=InviteOutcome.TRANSIENT_ERROR)
            token, token_hash = token_pair

            rotated = await self.invite_repo.rotate_token(
                invitation.id,
                token_hash,
                now + timedelta(days=settings.invite_expire_days),
                now,
            )
            inviter = await self.user_repo.get_by_id(actor.user_id)
            inviter_name = inviter.full_name if inviter else "A team member"

            await self.session.commit()
            await self.session.refresh(invitation)
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(
                "Failed to resend invitation",
                invitation_id=str(invitation_id),
                error_type=type(e).__name__,
            )
            return InvitationResult(outcome=InviteOutcome.TRANSIENT_ERROR)

        if not rotated:
            # Accepted, canceled or expired between the read and the update
            outcome = outcome_for_status(invitation.status_enum)
            if outcome == InviteOutcome.VALID:
                outcome = InviteOutcome.EXPIRED
            return InvitationResult(outcome=outcome, invitation=invitation)

        logger.info(
            "Invitation resent",
            invitation_id=str(invitation.id),
            tenant_id=str(tenant.id),
            email=log_email(invitation.email),
            resent_by=str(actor.user_id),
        )

        email_result = await send_invite_email(
            to=invitation.email,
            token=token,
            tenant_name=tenant.name,
            inviter_name=inviter_name,
            role=invitation.role,
            expires_at=invitation.expires_at,
            is_reminder=True,
        )
        if not email_result.success:
            return InvitationResult(
                outcome=InviteOutcome.OK,
                invitation=invitation,
                email_sent=False,
                invite_url=build_invite_url(token),
            )
        return InvitationResult(outcome=InviteOutcome.OK, invitation=invitation, email_sent=True)

    async def expire_stale(self, tenant_id: UUID | None = None) -> int:
        """Mark every overdue pending invitation as expired.

        Returns:
            Number of invitations expired (0 if the sweep failed)
        """
        try:
            count = await self.invite_repo.expire_stale(utc_now(), tenant_id)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Invitation expiry sweep failed", error_type=type(e).__name__)
            return 0

        if count:
            logger.info(
                "Expired stale invitations",
                count=count,
                tenant_id=str(tenant_id) if tenant_id else None,
            )
        return count

    async def _terminate(
        self,
        actor: TenantActor,
        tenant: Tenant,
        invitation_id: UUID,
        target: InviteStatus,
    ) -> InvitationResult:
        if not can_manage_members(actor.role):
            return InvitationResult(outcome=InviteOutcome.FORBIDDEN)

        now = utc_now()
        try:
            invitation = await self._get_in_tenant(invitation_id, tenant)
            if invitation is None:
                return InvitationResult(outcome=InviteOutcome.NOT_FOUND)
            if not can_invite(actor.role, invitation.role_enum):
                return InvitationResult(outcome=InviteOutcome.FORBIDDEN)

            if target == InviteStatus.CANCELED:
                changed = await self.invite_repo.mark_canceled(invitation.id, actor.user_id, now)
            else:
                changed = await self.invite_repo.mark_revoked(invitation.id, actor.user_id, now)
            await self.session.commit()
            await self.session.refresh(invitation)
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(
                "Failed to update invitation",
                invitation_id=str(invitation_id),
                target_status=target.value,
                error_type=type(e).__name__,
            )
            return InvitationResult(outcome=InviteOutcome.TRANSIENT_ERROR)

        if not changed:
            return InvitationResult(
                outcome=outcome_for_status(invitation.status_enum), invitation=invitation
            )

        logger.info(
            f"Invitation {target.value}",
            invitation_id=str(invitation.id),
            tenant_id=str(tenant.id),
            actor_id=str(actor.user_id),
        )
        return InvitationResult(outcome=InviteOutcome.OK, invitation=invitation)

    async def _get_in_tenant(self, invitation_id: UUID, tenant: Tenant) -> Invitation | None:
        invitation = await self.invite_repo.get_by_id(invitation_id)
        if invitation is None or invitation.tenant_id != tenant.id:
            return None
        return invitation

    async def _new_token(self) -> tuple[str, str] | None:
        """Draw a token whose hash is not already stored.

        A collision is astronomically unlikely; it is treated as a failed
        draw and retried.
        """
        for _ in range(TOKEN_GENERATION_ATTEMPTS):
            token, token_hash = generate_invite_token()
            if not await self.invite_repo.token_hash_exists(token_hash):
                return token, token_hash
        logger.error("Could not generate a unique invitation token")
        return None
