"""Service factory dependencies."""

from typing import Annotated

from fastapi import Depends

from src.accessgrant.api.dependencies.db import DBSession
from src.accessgrant.api.dependencies.repositories import (
    InvitationRepo,
    MembershipRepo,
    TenantRepo,
    UserRepo,
)
from src.accessgrant.services import (
    AcceptanceService,
    InvitationIssuer,
    InvitationValidator,
    MembershipService,
)


def get_invitation_issuer(
    session: DBSession,
    invite_repo: InvitationRepo,
    membership_repo: MembershipRepo,
    user_repo: UserRepo,
) -> InvitationIssuer:
    return InvitationIssuer(session, invite_repo, membership_repo, user_repo)


def get_invitation_validator(
    session: DBSession,
    invite_repo: InvitationRepo,
    tenant_repo: TenantRepo,
) -> InvitationValidator:
    return InvitationValidator(session, invite_repo, tenant_repo)


def get_acceptance_service(
    session: DBSession,
    invite_repo: InvitationRepo,
    membership_repo: MembershipRepo,
    user_repo: UserRepo,
    validator: Annotated[InvitationValidator, Depends(get_invitation_validator)],
) -> AcceptanceService:
    return AcceptanceService(session, invite_repo, membership_repo, user_repo, validator)


def get_membership_service(session: DBSession, membership_repo: MembershipRepo) -> MembershipService:
    return MembershipService(session, membership_repo)


IssuerDep = Annotated[InvitationIssuer, Depends(get_invitation_issuer)]
ValidatorDep = Annotated[InvitationValidator, Depends(get_invitation_validator)]
AcceptanceDep = Annotated[AcceptanceService, Depends(get_acceptance_service)]
MembershipServiceDep = Annotated[MembershipService, Depends(get_membership_service)]
