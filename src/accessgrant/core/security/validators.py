"""Security validators for user-supplied identifiers."""

from typing import Final

from email_validator import EmailNotValidError, validate_email

MAX_EMAIL_LENGTH: Final[int] = 255


def normalize_email(email: str) -> str:
    """Trim and lower-case an email address.

    Invitations and accounts compare addresses in this form only.
    """
    return email.strip().lower()


def validate_invite_email(email: str) -> str:
    """Normalize an email address and check its syntactic shape.

    Deliverability (DNS) is not checked: the invitation email itself is the
    deliverability test.

    Raises:
        ValueError: If the address is empty, too long, or malformed.
    """
    normalized = normalize_email(email)
    if not normalized:
        raise ValueError("Email address is required")
    if len(normalized) > MAX_EMAIL_LENGTH:
        raise ValueError(f"Email address exceeds {MAX_EMAIL_LENGTH} characters")
    try:
        validate_email(normalized, check_deliverability=False)
    except EmailNotValidError as e:
        raise ValueError(f"Invalid email address: {e}") from e
    return normalized


def _mask_part(part: str) -> str:
    if len(part) <= 2:
        return f"{part[:1]}*"
    return part[0] + "*" * min(len(part) - 2, 3) + part[-1]


def mask_email(email: str) -> str:
    """Partially mask an email address for display and logs.

    Examples:
        >>> mask_email("john.doe@company.com")
        'j***e@c***y.com'
        >>> mask_email("not-an-email")
        '***'
    """
    local, sep, domain = email.partition("@")
    if not sep or not local or not domain:
        return "***"
    domain_name, dot, rest = domain.partition(".")
    masked_domain = _mask_part(domain_name) + (f"{dot}{rest}" if dot else "")
    return f"{_mask_part(local)}@{masked_domain}"
