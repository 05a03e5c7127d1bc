from src.accessgrant.schemas.invite import (
    AcceptInviteRequest,
    AcceptInviteResponse,
    InviteActionResponse,
    InviteCreateRequest,
    InviteCreateResponse,
    InviteInfoResponse,
    InviteRead,
)
from src.accessgrant.schemas.membership import (
    MemberActionResponse,
    MemberListResponse,
    MemberRead,
    MemberRoleUpdate,
)
from src.accessgrant.schemas.pagination import PaginatedResponse

__all__ = [
    # Invite
    "AcceptInviteRequest",
    "AcceptInviteResponse",
    "InviteActionResponse",
    "InviteCreateRequest",
    "InviteCreateResponse",
    "InviteInfoResponse",
    "InviteRead",
    # Membership
    "MemberActionResponse",
    "MemberListResponse",
    "MemberRead",
    "MemberRoleUpdate",
    # Pagination
    "PaginatedResponse",
]
