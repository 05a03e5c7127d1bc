"""Tenant invitation API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, status

from src.accessgrant.api.dependencies import (
    AcceptanceDep,
    ClientIP,
    CurrentActor,
    IssuerDep,
    OptionalIdentity,
    ValidatedTenant,
    ValidatorDep,
)
from src.accessgrant.api.errors import outcome_error
from src.accessgrant.core.security import mask_email
from src.accessgrant.schemas import (
    AcceptInviteRequest,
    AcceptInviteResponse,
    InviteActionResponse,
    InviteCreateRequest,
    InviteCreateResponse,
    InviteInfoResponse,
    InviteRead,
    PaginatedResponse,
)
from src.accessgrant.services import InvitationResult, InviteOutcome, NewAccount

router = APIRouter(prefix="/invites", tags=["invites"])

EMAIL_NOT_SENT_MESSAGE = (
    "Invitation created, but the email could not be delivered. Share the link manually."
)


def _action_response(result: InvitationResult, message: str) -> InviteActionResponse:
    if result.outcome != InviteOutcome.OK or result.invitation is None:
        raise outcome_error(result.outcome)
    return InviteActionResponse(
        invite=InviteRead.model_validate(result.invitation),
        message=message,
    )


# =============================================================================
# Admin Endpoints (require X-Tenant-ID header + owner/admin membership)
# =============================================================================


@router.post(
    "",
    response_model=InviteCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create invitation",
    description="Create an invitation and email its link. Owner or admin role required.",
)
async def create_invite(
    request: InviteCreateRequest,
    actor: CurrentActor,
    tenant: ValidatedTenant,
    issuer: IssuerDep,
    client_ip: ClientIP,
) -> InviteCreateResponse:
    result = await issuer.issue(actor, tenant, request.email, request.role, client_ip=client_ip)
    if result.outcome != InviteOutcome.OK or result.invitation is None:
        raise outcome_error(
            result.outcome, detail=result.detail, retry_after_seconds=result.retry_after_seconds
        )

    invitation = result.invitation
    return InviteCreateResponse(
        id=invitation.id,
        email=invitation.email,
        role=invitation.role,
        status=invitation.status,
        expires_at=invitation.expires_at,
        email_sent=result.email_sent,
        invite_url=result.invite_url,
        message="Invitation sent" if result.email_sent else EMAIL_NOT_SENT_MESSAGE,
    )


@router.get(
    "",
    response_model=PaginatedResponse[InviteRead],
    summary="List pending invitations",
    description="Pending, unexpired invitations, newest first. Owner or admin role required.",
)
async def list_invites(
    actor: CurrentActor,
    tenant: ValidatedTenant,
    issuer: IssuerDep,
    cursor: str | None = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> PaginatedResponse[InviteRead]:
    result = await issuer.list_pending(actor, tenant, cursor=cursor, limit=limit)
    if result.outcome != InviteOutcome.OK:
        detail = "Invalid cursor" if result.outcome == InviteOutcome.INVALID_INPUT else None
        raise outcome_error(result.outcome, detail=detail)
    return PaginatedResponse[InviteRead](
        items=[InviteRead.model_validate(inv) for inv in result.items],
        next_cursor=result.next_cursor,
        has_more=result.has_more,
    )


@router.get(
    "/{invite_id}",
    response_model=InviteRead,
    summary="Get invitation by ID",
)
async def get_invite(
    invite_id: UUID,
    actor: CurrentActor,
    tenant: ValidatedTenant,
    issuer: IssuerDep,
) -> InviteRead:
    result = await issuer.get(actor, tenant, invite_id)
    if result.outcome != InviteOutcome.OK or result.invitation is None:
        raise outcome_error(result.outcome)
    return InviteRead.model_validate(result.invitation)


@router.delete(
    "/{invite_id}",
    response_model=InviteActionResponse,
    summary="Cancel invitation",
    description="Cancel a pending invitation. Terminal invitations cannot be canceled.",
)
async def cancel_invite(
    invite_id: UUID,
    actor: CurrentActor,
    tenant: ValidatedTenant,
    issuer: IssuerDep,
) -> InviteActionResponse:
    result = await issuer.cancel(actor, tenant, invite_id)
    return _action_response(result, "Invitation canceled")


@router.post(
    "/{invite_id}/revoke",
    response_model=InviteActionResponse,
    summary="Revoke invitation",
)
async def revoke_invite(
    invite_id: UUID,
    actor: CurrentActor,
    tenant: ValidatedTenant,
    issuer: IssuerDep,
) -> InviteActionResponse:
    result = await issuer.revoke(actor, tenant, invite_id)
    return _action_response(result, "Invitation revoked")


@router.post(
    "/{invite_id}/resend",
    response_model=InviteActionResponse,
    summary="Resend invitation",
    description="Issue a new link for a pending invitation. The previous link stops working.",
)
async def resend_invite(
    invite_id: UUID,
    actor: CurrentActor,
    tenant: ValidatedTenant,
    issuer: IssuerDep,
) -> InviteActionResponse:
    result = await issuer.resend(actor, tenant, invite_id)
    response = _action_response(
        result, "Invitation resent" if result.email_sent else EMAIL_NOT_SENT_MESSAGE
    )
    response.email_sent = result.email_sent
    response.invite_url = result.invite_url
    return response


# =============================================================================
# Public Endpoints (token-based, no tenant header)
# =============================================================================


@router.get(
    "/t/{token}",
    response_model=InviteInfoResponse,
    summary="Validate invitation token",
    description="Public details for the invitation landing page.",
)
async def get_invite_info(token: str, validator: ValidatorDep) -> InviteInfoResponse:
    result = await validator.validate(token)
    if not result.is_valid or result.invitation is None or result.tenant is None:
        raise outcome_error(result.outcome)

    return InviteInfoResponse(
        status=result.invitation.status,
        email=mask_email(result.invitation.email),
        tenant_name=result.tenant.name,
        tenant_slug=result.tenant.slug,
        tenant_kind=result.tenant.kind,
        role=result.invitation.role,
        expires_at=result.invitation.expires_at,
    )


@router.post(
    "/t/{token}/accept",
    response_model=AcceptInviteResponse,
    summary="Accept invitation",
    description=(
        "Accept an invitation. Signed-in users send an Authorization header; "
        "new users send full_name and password to create their account."
    ),
)
async def accept_invite(
    token: str,
    identity: OptionalIdentity,
    acceptance: AcceptanceDep,
    client_ip: ClientIP,
    body: AcceptInviteRequest | None = None,
) -> AcceptInviteResponse:
    new_account = None
    if identity is None and body is not None:
        new_account = NewAccount(full_name=body.full_name, password=body.password)

    result = await acceptance.accept(
        token, identity=identity, new_account=new_account, client_ip=client_ip
    )
    if (
        result.outcome != InviteOutcome.OK
        or result.membership is None
        or result.tenant is None
    ):
        raise outcome_error(result.outcome, detail=result.detail)

    if result.already_member:
        message = "You are already a member"
    elif result.account_created:
        message = "Account created and joined successfully"
    else:
        message = "Successfully joined"

    return AcceptInviteResponse(
        message=message,
        tenant_id=result.tenant.id,
        tenant_slug=result.tenant.slug,
        user_id=result.membership.user_id,
        role=result.membership.role,
        already_member=result.already_member,
        account_created=result.account_created,
    )
