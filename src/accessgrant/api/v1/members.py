"""Tenant member management endpoints."""

from uuid import UUID

from fastapi import APIRouter

from src.accessgrant.api.dependencies import CurrentActor, MembershipServiceDep, ValidatedTenant
from src.accessgrant.api.errors import outcome_error
from src.accessgrant.schemas import (
    MemberActionResponse,
    MemberListResponse,
    MemberRead,
    MemberRoleUpdate,
)
from src.accessgrant.services import InviteOutcome, MemberResult

router = APIRouter(prefix="/members", tags=["members"])


def _member_action(result: MemberResult, message: str) -> MemberActionResponse:
    if result.outcome != InviteOutcome.OK or result.membership is None:
        raise outcome_error(result.outcome)
    return MemberActionResponse(
        user_id=result.membership.user_id,
        role=result.membership.role,
        message=message,
    )


@router.get("", response_model=MemberListResponse, summary="List members")
async def list_members(
    actor: CurrentActor,
    tenant: ValidatedTenant,
    service: MembershipServiceDep,
) -> MemberListResponse:
    result = await service.list_members(actor, tenant)
    if result.outcome != InviteOutcome.OK:
        raise outcome_error(result.outcome)
    members = [
        MemberRead(
            user_id=membership.user_id,
            email=user.email,
            full_name=user.full_name,
            role=membership.role,
            joined_at=membership.created_at,
        )
        for membership, user in result.members
    ]
    return MemberListResponse(members=members, total=len(members))


# Declared before the {user_id} routes so "leave" is not parsed as an id
@router.post("/leave", response_model=MemberActionResponse, summary="Leave tenant")
async def leave_tenant(
    actor: CurrentActor,
    tenant: ValidatedTenant,
    service: MembershipServiceDep,
) -> MemberActionResponse:
    result = await service.leave(actor, tenant)
    return _member_action(result, "You have left the tenant")


@router.patch("/{user_id}", response_model=MemberActionResponse, summary="Change member role")
async def change_member_role(
    user_id: UUID,
    request: MemberRoleUpdate,
    actor: CurrentActor,
    tenant: ValidatedTenant,
    service: MembershipServiceDep,
) -> MemberActionResponse:
    result = await service.change_role(actor, tenant, user_id, request.role)
    return _member_action(result, "Role updated")


@router.delete("/{user_id}", response_model=MemberActionResponse, summary="Remove member")
async def remove_member(
    user_id: UUID,
    actor: CurrentActor,
    tenant: ValidatedTenant,
    service: MembershipServiceDep,
) -> MemberActionResponse:
    result = await service.remove_member(actor, tenant, user_id)
    return _member_action(result, "Member removed")
