"""Typed outcomes returned by the invitation and membership services.

Services never raise for domain failures. Every operation returns one of the
result dataclasses below, and ``outcome`` says exactly what happened so the
API layer can pick a message and status code without re-reading state.
"""

from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID

from src.accessgrant.models import (
    Invitation,
    InviteStatus,
    Membership,
    MembershipRole,
    Tenant,
    User,
)


class InviteOutcome(str, Enum):
    """Discriminated outcome of an invitation or membership operation."""

    OK = "ok"
    VALID = "valid"
    INVALID_INPUT = "invalid_input"
    FORBIDDEN = "forbidden"
    CONFLICT = "conflict"
    RATE_LIMITED = "rate_limited"
    NOT_FOUND = "not_found"
    INVALID = "invalid"
    EXPIRED = "expired"
    ALREADY_USED = "already_used"
    ACCEPTED = "accepted"
    REVOKED = "revoked"
    CANCELED = "canceled"
    EMAIL_MISMATCH = "email_mismatch"
    TRANSIENT_ERROR = "transient_error"

    @property
    def is_success(self) -> bool:
        return self in (InviteOutcome.OK, InviteOutcome.VALID)


OUTCOME_MESSAGES: dict[InviteOutcome, str] = {
    InviteOutcome.OK: "Done.",
    InviteOutcome.VALID: "This invitation is valid.",
    InviteOutcome.INVALID_INPUT: "Please check the email address and role and try again.",
    InviteOutcome.FORBIDDEN: "You don't have permission to do that.",
    InviteOutcome.CONFLICT: "This person is already a member or already has a pending invitation.",
    InviteOutcome.RATE_LIMITED: "You've sent too many invitations recently. Please try again later.",
    InviteOutcome.NOT_FOUND: "We couldn't find that.",
    InviteOutcome.INVALID: "This invitation link is invalid.",
    InviteOutcome.EXPIRED: "This invitation has expired. Ask for a new one.",
    InviteOutcome.ALREADY_USED: "This invitation has already been used.",
    InviteOutcome.ACCEPTED: "This invitation has already been accepted.",
    InviteOutcome.REVOKED: "This invitation has been revoked.",
    InviteOutcome.CANCELED: "This invitation has been canceled.",
    InviteOutcome.EMAIL_MISMATCH: "This invitation was sent to a different email address.",
    InviteOutcome.TRANSIENT_ERROR: "Something went wrong on our side. Please try again.",
}


def outcome_message(outcome: InviteOutcome) -> str:
    return OUTCOME_MESSAGES[outcome]


_STATUS_OUTCOMES: dict[InviteStatus, InviteOutcome] = {
    InviteStatus.PENDING: InviteOutcome.VALID,
    InviteStatus.ACCEPTED: InviteOutcome.ACCEPTED,
    InviteStatus.REVOKED: InviteOutcome.REVOKED,
    InviteStatus.CANCELED: InviteOutcome.CANCELED,
    InviteStatus.EXPIRED: InviteOutcome.EXPIRED,
}


def outcome_for_status(status: InviteStatus) -> InviteOutcome:
    """Outcome reported for an invitation found in ``status``."""
    return _STATUS_OUTCOMES[status]


@dataclass(frozen=True)
class TenantActor:
    """The caller's identity and role inside the tenant being operated on."""

    user_id: UUID
    role: MembershipRole


@dataclass(frozen=True)
class ActingIdentity:
    """An authenticated caller: account id plus verified email."""

    user_id: UUID
    email: str


@dataclass(frozen=True)
class NewAccount:
    """Details for an account created at accept time.

    The email is always the invitation's address and is not part of this.
    """

    full_name: str
    password: str


@dataclass(frozen=True)
class IssueResult:
    outcome: InviteOutcome
    invitation: Invitation | None = None
    email_sent: bool = False
    email_error: str | None = None
    # Only set when the email could not be delivered, for manual sharing
    invite_url: str | None = None
    retry_after_seconds: int | None = None
    detail: str | None = None


@dataclass(frozen=True)
class InvitationResult:
    """Result of an id-addressed operation (get, cancel, revoke, resend)."""

    outcome: InviteOutcome
    invitation: Invitation | None = None
    email_sent: bool = False
    invite_url: str | None = None


@dataclass(frozen=True)
class InvitationListResult:
    outcome: InviteOutcome
    items: list[Invitation] = field(default_factory=list)
    next_cursor: str | None = None
    has_more: bool = False


@dataclass(frozen=True)
class ValidationResult:
    """Result of validating a presented token.

    ``invitation`` and ``tenant`` are populated whenever the token resolved
    to a stored row, including terminal states.
    """

    outcome: InviteOutcome
    invitation: Invitation | None = None
    tenant: Tenant | None = None

    @property
    def is_valid(self) -> bool:
        return self.outcome == InviteOutcome.VALID


@dataclass(frozen=True)
class AcceptResult:
    outcome: InviteOutcome
    membership: Membership | None = None
    tenant: Tenant | None = None
    user: User | None = None
    already_member: bool = False
    account_created: bool = False
    detail: str | None = None


@dataclass(frozen=True)
class MemberResult:
    outcome: InviteOutcome
    membership: Membership | None = None


@dataclass(frozen=True)
class MemberListResult:
    outcome: InviteOutcome
    members: list[tuple[Membership, User]] = field(default_factory=list)
