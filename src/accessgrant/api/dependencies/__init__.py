"""FastAPI dependency injection definitions."""

from src.accessgrant.api.dependencies.auth import (
    ClientIP,
    CurrentActor,
    CurrentUser,
    OptionalIdentity,
    OptionalUser,
    get_acting_identity,
    get_current_user,
    get_optional_user,
    get_request_client_ip,
    get_tenant_actor,
)
from src.accessgrant.api.dependencies.db import DBSession, get_db_session
from src.accessgrant.api.dependencies.repositories import (
    InvitationRepo,
    MembershipRepo,
    TenantRepo,
    UserRepo,
    get_invitation_repository,
    get_membership_repository,
    get_tenant_repository,
    get_user_repository,
)
from src.accessgrant.api.dependencies.services import (
    AcceptanceDep,
    IssuerDep,
    MembershipServiceDep,
    ValidatorDep,
    get_acceptance_service,
    get_invitation_issuer,
    get_invitation_validator,
    get_membership_service,
)
from src.accessgrant.api.dependencies.tenant import (
    ValidatedTenant,
    get_validated_tenant,
)

__all__ = [
    # Database
    "DBSession",
    "get_db_session",
    # Tenant
    "ValidatedTenant",
    "get_validated_tenant",
    # Auth
    "ClientIP",
    "CurrentActor",
    "CurrentUser",
    "OptionalIdentity",
    "OptionalUser",
    "get_acting_identity",
    "get_current_user",
    "get_optional_user",
    "get_request_client_ip",
    "get_tenant_actor",
    # Repositories
    "InvitationRepo",
    "MembershipRepo",
    "TenantRepo",
    "UserRepo",
    "get_invitation_repository",
    "get_membership_repository",
    "get_tenant_repository",
    "get_user_repository",
    # Services
    "AcceptanceDep",
    "IssuerDep",
    "MembershipServiceDep",
    "ValidatorDep",
    "get_acceptance_service",
    "get_invitation_issuer",
    "get_invitation_validator",
    "get_membership_service",
]
