"""Invitation schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, model_validator
from zxcvbn import zxcvbn

from src.accessgrant.models import MembershipRole

# Minimum zxcvbn score (0-4 scale): 3 = "safely unguessable"
MIN_PASSWORD_SCORE = 3


class InviteCreateRequest(BaseModel):
    """Request to create an invitation.

    The email is kept as a plain string so malformed addresses reach the
    issuer and come back as an ``invalid_input`` outcome.
    """

    email: str = Field(min_length=1, max_length=320)
    role: str = Field(default=MembershipRole.MEMBER.value, max_length=50)


class InviteCreateResponse(BaseModel):
    """Response after creating an invitation.

    ``invite_url`` is only returned when the email could not be delivered,
    so the inviter can share the link by hand.
    """

    id: UUID
    email: str
    role: str
    status: str
    expires_at: datetime
    email_sent: bool
    invite_url: str | None = None
    message: str


class InviteRead(BaseModel):
    """Read model for invitations (admin view). Never carries the token hash."""

    id: UUID
    email: str
    role: str
    status: str
    created_at: datetime
    expires_at: datetime
    invited_by_user_id: UUID
    use_count: int
    max_uses: int
    accepted_at: datetime | None = None
    accepted_by_user_id: UUID | None = None
    canceled_at: datetime | None = None
    revoked_at: datetime | None = None

    model_config = {"from_attributes": True}


class InviteActionResponse(BaseModel):
    """Response after cancel, revoke or resend."""

    invite: InviteRead
    email_sent: bool | None = None
    invite_url: str | None = None
    message: str


class InviteInfoResponse(BaseModel):
    """Public info about an invitation, for the landing page before accepting."""

    status: str
    email: str
    tenant_name: str
    tenant_slug: str
    tenant_kind: str
    role: str
    expires_at: datetime


class AcceptInviteRequest(BaseModel):
    """Details for creating an account while accepting.

    Omitted when the caller is already signed in. The address is always the
    invitation's own and cannot be chosen here.
    """

    password: str = Field(min_length=8, max_length=100)
    full_name: str = Field(min_length=1, max_length=100)

    @field_validator("full_name")
    @classmethod
    def validate_full_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Full name cannot be blank")
        return v.strip()

    @model_validator(mode="after")
    def check_password_strength(self) -> "AcceptInviteRequest":
        """Reject passwords zxcvbn scores below ``MIN_PASSWORD_SCORE``.

        The person's name is passed to zxcvbn as known input, so passwords
        built from it score lower.
        """
        result = zxcvbn(self.password, user_inputs=self.full_name.split())
        if result["score"] >= MIN_PASSWORD_SCORE:
            return self
        feedback = result.get("feedback", {})
        hint = feedback.get("warning") or next(iter(feedback.get("suggestions", [])), "")
        raise ValueError(
            f"Weak password: {hint}" if hint else "Password is too weak. Use a longer passphrase."
        )


class AcceptInviteResponse(BaseModel):
    """Response after accepting an invitation."""

    message: str
    tenant_id: UUID
    tenant_slug: str
    user_id: UUID
    role: str
    already_member: bool
    account_created: bool

