"""Service layer - orchestration and transaction ownership."""

from src.accessgrant.services.acceptance_service import AcceptanceService
from src.accessgrant.services.invitation_issuer import InvitationIssuer
from src.accessgrant.services.invitation_validator import InvitationValidator
from src.accessgrant.services.membership_service import MembershipService
from src.accessgrant.services.outcomes import (
    OUTCOME_MESSAGES,
    AcceptResult,
    ActingIdentity,
    InvitationListResult,
    InvitationResult,
    InviteOutcome,
    IssueResult,
    MemberListResult,
    MemberResult,
    NewAccount,
    TenantActor,
    ValidationResult,
    outcome_for_status,
    outcome_message,
)

__all__ = [
    # Services
    "AcceptanceService",
    "InvitationIssuer",
    "InvitationValidator",
    "MembershipService",
    # Outcomes
    "OUTCOME_MESSAGES",
    "AcceptResult",
    "ActingIdentity",
    "InvitationListResult",
    "InvitationResult",
    "InviteOutcome",
    "IssueResult",
    "MemberListResult",
    "MemberResult",
    "NewAccount",
    "TenantActor",
    "ValidationResult",
    "outcome_for_status",
    "outcome_message",
]
