"""Model exports.

Import from here: `from src.accessgrant.models import Invitation, Tenant`
"""

from src.accessgrant.models.enums import InviteStatus, MembershipRole, TenantKind
from src.accessgrant.models.invitation import Invitation
from src.accessgrant.models.tenant import Tenant
from src.accessgrant.models.user import Membership, User

__all__ = [
    # Enums
    "InviteStatus",
    "MembershipRole",
    "TenantKind",
    # Models
    "Invitation",
    "Membership",
    "Tenant",
    "User",
]
