"""Read-side checks on a presented invitation token."""

from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.accessgrant.core.logging import get_logger
from src.accessgrant.core.security import hash_invite_token, is_valid_invite_token_format
from src.accessgrant.models.base import utc_now
from src.accessgrant.repositories import InvitationRepository, TenantRepository
from src.accessgrant.services.outcomes import InviteOutcome, ValidationResult, outcome_for_status

logger = get_logger(__name__)


class InvitationValidator:
    """Resolves a raw token to an invitation and reports its state.

    Malformed tokens are rejected before hashing or touching storage. A
    pending invitation past its expiry is moved to ``expired`` here, so
    expiry never depends on the background sweep having run.
    """

    def __init__(
        self,
        session: AsyncSession,
        invite_repo: InvitationRepository,
        tenant_repo: TenantRepository,
    ):
        self.session = session
        self.invite_repo = invite_repo
        self.tenant_repo = tenant_repo

    async def validate(self, token: str, now: datetime | None = None) -> ValidationResult:
        if not is_valid_invite_token_format(token):
            return ValidationResult(outcome=InviteOutcome.INVALID)

        if now is None:
            now = utc_now()

        try:
            invitation = await self.invite_repo.get_by_token_hash(hash_invite_token(token))
            if invitation is None:
                return ValidationResult(outcome=InviteOutcome.INVALID)

            tenant = await self.tenant_repo.get_available(invitation.tenant_id)
            if tenant is None:
                return ValidationResult(outcome=InviteOutcome.INVALID)

            if invitation.status_enum.is_terminal:
                return ValidationResult(
                    outcome=outcome_for_status(invitation.status_enum),
                    invitation=invitation,
                    tenant=tenant,
                )

            if invitation.is_expired(now):
                expired = await self.invite_repo.mark_expired(invitation.id, now)
                await self.session.commit()
                await self.session.refresh(invitation)
                if expired:
                    logger.info(
                        "Invitation expired on access",
                        invitation_id=str(invitation.id),
                        tenant_id=str(tenant.id),
                    )
                outcome = outcome_for_status(invitation.status_enum)
                if outcome == InviteOutcome.VALID:
                    outcome = InviteOutcome.EXPIRED
                return ValidationResult(outcome=outcome, invitation=invitation, tenant=tenant)
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Failed to validate invitation token", error_type=type(e).__name__)
            return ValidationResult(outcome=InviteOutcome.TRANSIENT_ERROR)

        if invitation.use_count >= invitation.max_uses:
            return ValidationResult(
                outcome=InviteOutcome.ALREADY_USED, invitation=invitation, tenant=tenant
            )

        return ValidationResult(outcome=InviteOutcome.VALID, invitation=invitation, tenant=tenant)
