"""Invitation acceptance.

The invitation row is consumed with a single conditional UPDATE
(``status = 'pending' AND use_count < max_uses``). Among any number of
concurrent attempts on one token exactly one wins; losers re-read and report
idempotent success when the caller's membership now exists.
"""

from dataclasses import replace
from uuid import UUID

from sqlalchemy import inspect
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.accessgrant.core.config import get_settings
from src.accessgrant.core.logging import get_logger, log_email
from src.accessgrant.core.security import hash_password, normalize_email
from src.accessgrant.models import Invitation, InviteStatus, Tenant, User
from src.accessgrant.models.base import utc_now
from src.accessgrant.repositories import (
    InvitationRepository,
    MembershipRepository,
    UserRepository,
)
from src.accessgrant.services.invitation_validator import InvitationValidator
from src.accessgrant.services.outcomes import (
    AcceptResult,
    ActingIdentity,
    InviteOutcome,
    NewAccount,
    outcome_for_status,
)

logger = get_logger(__name__)

ACCOUNT_EXISTS_DETAIL = (
    "An account already exists for this email address. Sign in to accept the invitation."
)


class AcceptanceService:
    """Turns a valid invitation into a membership."""

    def __init__(
        self,
        session: AsyncSession,
        invite_repo: InvitationRepository,
        membership_repo: MembershipRepository,
        user_repo: UserRepository,
        validator: InvitationValidator,
    ):
        self.session = session
        self.invite_repo = invite_repo
        self.membership_repo = membership_repo
        self.user_repo = user_repo
        self.validator = validator

    async def accept(
        self,
        token: str,
        identity: ActingIdentity | None = None,
        new_account: NewAccount | None = None,
        client_ip: str | None = None,
    ) -> AcceptResult:
        """Accept an invitation as ``identity``, or as a new account.

        With no ``identity`` an account is created from ``new_account`` using
        the invitation's email. The account is committed on its own before the
        join, so it survives a failed join.

        A transient storage failure is retried with a fresh validate-then-accept
        cycle, ``invite_accept_retry_attempts`` times.
        """
        if identity is None and new_account is None:
            return AcceptResult(
                outcome=InviteOutcome.INVALID_INPUT,
                detail="Sign in or provide account details to accept",
            )

        attempts = 1 + max(0, get_settings().invite_accept_retry_attempts)
        created: User | None = None
        # Plain values survive the rollback of a failed attempt; ORM rows do not
        created_identity: ActingIdentity | None = None
        result = AcceptResult(outcome=InviteOutcome.TRANSIENT_ERROR)

        for attempt in range(attempts):
            if attempt:
                logger.warning("Retrying invitation acceptance", attempt=attempt)

            acting = identity or created_identity

            validation = await self.validator.validate(token)
            invitation, tenant = validation.invitation, validation.tenant

            if invitation is None or tenant is None:
                result = AcceptResult(outcome=validation.outcome)
            elif validation.outcome == InviteOutcome.ACCEPTED:
                result = await self._already_accepted(invitation, tenant, acting)
            elif not validation.is_valid:
                result = AcceptResult(outcome=validation.outcome)
            else:
                if acting is None and new_account is not None:
                    result, created = await self._create_account(invitation, new_account)
                    if created is None:
                        if result.outcome == InviteOutcome.TRANSIENT_ERROR:
                            continue
                        return result
                    created_identity = ActingIdentity(user_id=created.id, email=created.email)
                    acting = created_identity
                if acting is None:
                    return AcceptResult(outcome=InviteOutcome.INVALID_INPUT)

                if normalize_email(acting.email) != invitation.email:
                    logger.warning(
                        "Invitation email mismatch",
                        invitation_id=str(invitation.id),
                        user_id=str(acting.user_id),
                    )
                    return AcceptResult(outcome=InviteOutcome.EMAIL_MISMATCH)

                result = await self._join(invitation, tenant, acting, client_ip)

            if result.outcome != InviteOutcome.TRANSIENT_ERROR:
                break

        if created is not None:
            if inspect(created).expired:
                created = await self._reload(created)
            result = replace(result, account_created=True, user=result.user or created)
        return result

    async def _reload(self, user: User) -> User | None:
        """Re-read an account expired by the rollback of a later attempt."""
        try:
            await self.session.refresh(user)
            return user
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Failed to reload created account", error_type=type(e).__name__)
            return None

    async def _already_accepted(
        self, invitation: Invitation, tenant: Tenant, acting: ActingIdentity | None
    ) -> AcceptResult:
        """Second accept after a success: fine for the same member, used for anyone else."""
        if acting is None or normalize_email(acting.email) != invitation.email:
            return AcceptResult(outcome=InviteOutcome.ALREADY_USED)

        try:
            membership = await self.membership_repo.get_membership(acting.user_id, tenant.id)
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Failed to load membership", error_type=type(e).__name__)
            return AcceptResult(outcome=InviteOutcome.TRANSIENT_ERROR)

        if membership is None:
            return AcceptResult(outcome=InviteOutcome.ALREADY_USED)
        return AcceptResult(
            outcome=InviteOutcome.OK,
            membership=membership,
            tenant=tenant,
            already_member=True,
        )

    async def _create_account(
        self, invitation: Invitation, new_account: NewAccount
    ) -> tuple[AcceptResult, User | None]:
        now = utc_now()
        try:
            if await self.user_repo.exists_by_email(invitation.email):
                return AcceptResult(
                    outcome=InviteOutcome.CONFLICT, detail=ACCOUNT_EXISTS_DETAIL
                ), None

            # The invitation reached this address, which counts as verification
            user = User(
                email=invitation.email,
                hashed_password=hash_password(new_account.password),
                full_name=new_account.full_name.strip(),
                email_verified=True,
                email_verified_at=now,
            )
            self.user_repo.add(user)
            await self.session.commit()
            await self.session.refresh(user)
        except IntegrityError:
            await self.session.rollback()
            return AcceptResult(outcome=InviteOutcome.CONFLICT, detail=ACCOUNT_EXISTS_DETAIL), None
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Failed to create account at accept", error_type=type(e).__name__)
            return AcceptResult(outcome=InviteOutcome.TRANSIENT_ERROR), None

        logger.info(
            "Account created from invitation",
            user_id=str(user.id),
            email=log_email(user.email),
            invitation_id=str(invitation.id),
        )
        return AcceptResult(outcome=InviteOutcome.OK, user=user), user

    async def _join(
        self,
        invitation: Invitation,
        tenant: Tenant,
        acting: ActingIdentity,
        client_ip: str | None,
    ) -> AcceptResult:
        """Consume the invitation and create the membership in one transaction."""
        invitation_id = invitation.id
        tenant_id = tenant.id
        now = utc_now()
        try:
            existing = await self.membership_repo.get_membership(acting.user_id, tenant_id)
            if existing is not None:
                # Already a member: close the invitation, keep the current role
                consumed = await self.invite_repo.consume(
                    invitation_id, acting.user_id, now, client_ip
                )
                await self.session.commit()
                logger.info(
                    "Invitation accepted by existing member",
                    invitation_id=str(invitation_id),
                    tenant_id=str(tenant_id),
                    user_id=str(acting.user_id),
                    consumed=consumed,
                )
                return AcceptResult(
                    outcome=InviteOutcome.OK,
                    membership=existing,
                    tenant=tenant,
                    already_member=True,
                )

            consumed = await self.invite_repo.consume(invitation_id, acting.user_id, now, client_ip)
            if not consumed:
                await self.session.rollback()
                return await self._resolve_lost_race(invitation_id, tenant, acting)

            membership = self.membership_repo.create_membership(
                user_id=acting.user_id,
                tenant_id=tenant_id,
                role=invitation.role,
                invited_by_user_id=invitation.invited_by_user_id,
            )
            await self.session.commit()
            await self.session.refresh(membership)
        except IntegrityError:
            # Membership inserted by a concurrent path after our check
            await self.session.rollback()
            return await self._resolve_lost_race(invitation_id, tenant, acting)
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(
                "Failed to accept invitation",
                invitation_id=str(invitation_id),
                error_type=type(e).__name__,
            )
            return AcceptResult(outcome=InviteOutcome.TRANSIENT_ERROR)

        logger.info(
            "Invitation accepted",
            invitation_id=str(invitation_id),
            tenant_id=str(tenant_id),
            user_id=str(acting.user_id),
            role=membership.role,
        )
        return AcceptResult(outcome=InviteOutcome.OK, membership=membership, tenant=tenant)

    async def _resolve_lost_race(
        self, invitation_id: UUID, tenant: Tenant, acting: ActingIdentity
    ) -> AcceptResult:
        """Decide the outcome after losing the conditional update.

        Runs after a rollback, so ``tenant`` is re-read before use.
        """
        try:
            await self.session.refresh(tenant)
            membership = await self.membership_repo.get_membership(acting.user_id, tenant.id)
            if membership is not None:
                logger.info(
                    "Concurrent acceptance already joined this member",
                    invitation_id=str(invitation_id),
                    user_id=str(acting.user_id),
                )
                return AcceptResult(
                    outcome=InviteOutcome.OK,
                    membership=membership,
                    tenant=tenant,
                    already_member=True,
                )

            invitation = await self.invite_repo.get_by_id(invitation_id)
            if invitation is not None:
                await self.session.refresh(invitation)
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error("Failed to re-read invitation", error_type=type(e).__name__)
            return AcceptResult(outcome=InviteOutcome.TRANSIENT_ERROR)

        logger.warning(
            "Lost invitation consume race without a membership",
            invitation_id=str(invitation_id),
            user_id=str(acting.user_id),
        )
        if invitation is None:
            return AcceptResult(outcome=InviteOutcome.INVALID)
        if invitation.status_enum not in (InviteStatus.PENDING, InviteStatus.ACCEPTED):
            return AcceptResult(outcome=outcome_for_status(invitation.status_enum))
        if invitation.is_expired(utc_now()):
            return AcceptResult(outcome=InviteOutcome.EXPIRED)
        return AcceptResult(outcome=InviteOutcome.ALREADY_USED)
