"""Repository factory dependencies."""

from typing import Annotated

from fastapi import Depends

from src.accessgrant.api.dependencies.db import DBSession
from src.accessgrant.repositories import (
    InvitationRepository,
    MembershipRepository,
    TenantRepository,
    UserRepository,
)


def get_user_repository(session: DBSession) -> UserRepository:
    return UserRepository(session)


def get_membership_repository(session: DBSession) -> MembershipRepository:
    return MembershipRepository(session)


def get_tenant_repository(session: DBSession) -> TenantRepository:
    return TenantRepository(session)


def get_invitation_repository(session: DBSession) -> InvitationRepository:
    return InvitationRepository(session)


UserRepo = Annotated[UserRepository, Depends(get_user_repository)]
MembershipRepo = Annotated[MembershipRepository, Depends(get_membership_repository)]
TenantRepo = Annotated[TenantRepository, Depends(get_tenant_repository)]
InvitationRepo = Annotated[InvitationRepository, Depends(get_invitation_repository)]
