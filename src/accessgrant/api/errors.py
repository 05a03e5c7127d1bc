"""Translation of service outcomes into HTTP responses."""

from fastapi import HTTPException, status

from src.accessgrant.services import InviteOutcome, outcome_message

OUTCOME_STATUS: dict[InviteOutcome, int] = {
    InviteOutcome.OK: status.HTTP_200_OK,
    InviteOutcome.VALID: status.HTTP_200_OK,
    InviteOutcome.INVALID_INPUT: status.HTTP_422_UNPROCESSABLE_ENTITY,
    InviteOutcome.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    InviteOutcome.CONFLICT: status.HTTP_409_CONFLICT,
    InviteOutcome.RATE_LIMITED: status.HTTP_429_TOO_MANY_REQUESTS,
    InviteOutcome.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    # Malformed and unknown tokens are indistinguishable to the client
    InviteOutcome.INVALID: status.HTTP_404_NOT_FOUND,
    InviteOutcome.EXPIRED: status.HTTP_410_GONE,
    InviteOutcome.ALREADY_USED: status.HTTP_409_CONFLICT,
    InviteOutcome.ACCEPTED: status.HTTP_409_CONFLICT,
    InviteOutcome.REVOKED: status.HTTP_410_GONE,
    InviteOutcome.CANCELED: status.HTTP_410_GONE,
    InviteOutcome.EMAIL_MISMATCH: status.HTTP_403_FORBIDDEN,
    InviteOutcome.TRANSIENT_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def outcome_error(
    outcome: InviteOutcome,
    detail: str | None = None,
    retry_after_seconds: int | None = None,
) -> HTTPException:
    """Build the HTTP error for a failed outcome.

    The body carries a stable ``code`` (the outcome value) next to the
    human message.
    """
    headers = None
    if retry_after_seconds is not None:
        headers = {"Retry-After": str(retry_after_seconds)}
    return HTTPException(
        status_code=OUTCOME_STATUS[outcome],
        detail={"code": outcome.value, "message": detail or outcome_message(outcome)},
        headers=headers,
    )
