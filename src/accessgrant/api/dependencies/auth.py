"""Authentication dependencies.

Access tokens are issued by the identity service; here they are only
verified and turned into an explicit identity passed to the services.
"""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status

from src.accessgrant.api.dependencies.repositories import MembershipRepo, UserRepo
from src.accessgrant.api.dependencies.tenant import ValidatedTenant
from src.accessgrant.core.logging import bind_user_context
from src.accessgrant.core.security import access_token_subject
from src.accessgrant.models import User
from src.accessgrant.services import ActingIdentity, TenantActor


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _user_from_authorization(authorization: str, user_repo: UserRepo) -> User:
    """Validate a bearer header and load its active user."""
    if not authorization.startswith("Bearer "):
        raise _unauthorized("Missing or invalid authorization header")

    user_id = access_token_subject(authorization.removeprefix("Bearer "))
    if user_id is None:
        raise _unauthorized("Invalid or expired token")

    user = await user_repo.get_by_id(user_id)
    if user is None or not user.is_active:
        raise _unauthorized("User not found or inactive")
    return user


async def get_current_user(
    user_repo: UserRepo,
    authorization: Annotated[str | None, Header()] = None,
) -> User:
    """Require a valid access token and return its user."""
    if not authorization:
        raise _unauthorized("Missing or invalid authorization header")
    user = await _user_from_authorization(authorization, user_repo)
    bind_user_context(user.id)
    return user


async def get_optional_user(
    user_repo: UserRepo,
    authorization: Annotated[str | None, Header()] = None,
) -> User | None:
    """Return the caller's user when an Authorization header is sent.

    A header that is present but invalid is still rejected.
    """
    if not authorization:
        return None
    user = await _user_from_authorization(authorization, user_repo)
    bind_user_context(user.id)
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]
OptionalUser = Annotated[User | None, Depends(get_optional_user)]


def get_acting_identity(user: OptionalUser) -> ActingIdentity | None:
    """Identity used to accept invitations: account id plus verified email."""
    if user is None:
        return None
    if not user.email_verified:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Verify your email address before accepting invitations",
        )
    return ActingIdentity(user_id=user.id, email=user.email)


OptionalIdentity = Annotated[ActingIdentity | None, Depends(get_acting_identity)]


async def get_tenant_actor(
    user: CurrentUser,
    tenant: ValidatedTenant,
    membership_repo: MembershipRepo,
) -> TenantActor:
    """The caller's role inside the request's tenant."""
    membership = await membership_repo.get_membership(user.id, tenant.id)
    if membership is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User does not have access to this tenant",
        )
    bind_user_context(user.id, tenant.id)
    return TenantActor(user_id=user.id, role=membership.role_enum)


CurrentActor = Annotated[TenantActor, Depends(get_tenant_actor)]


# Width of the *_from_ip audit columns (IPv6 text form)
MAX_IP_LENGTH = 45


def get_request_client_ip(request: Request) -> str | None:
    """Best-effort client address for audit columns.

    The first X-Forwarded-For entry is the original client; otherwise the
    direct peer address is used.
    """
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        ip = forwarded_for.split(",")[0].strip()
    else:
        ip = request.client.host if request.client else None
    return ip[:MAX_IP_LENGTH] if ip else None


ClientIP = Annotated[str | None, Depends(get_request_client_ip)]
