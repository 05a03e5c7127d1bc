"""Repository layer - data access abstraction."""

from src.accessgrant.repositories.base import BaseRepository
from src.accessgrant.repositories.invitation import InvitationRepository
from src.accessgrant.repositories.membership import MembershipRepository
from src.accessgrant.repositories.tenant import TenantRepository
from src.accessgrant.repositories.user import UserRepository

__all__ = [
    "BaseRepository",
    "InvitationRepository",
    "MembershipRepository",
    "TenantRepository",
    "UserRepository",
]
