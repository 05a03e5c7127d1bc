"""Email client using Resend API.

Sending is a best-effort side effect: callers get an ``EmailResult`` back and
never an exception. The Resend SDK is synchronous, so each send runs on a
small thread pool and is abandoned once the configured timeout elapses.

Invitation links embed the raw token and are never written to logs.
"""

import asyncio
import html
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime

import resend

from src.accessgrant.core.config import get_settings
from src.accessgrant.core.logging import get_logger, log_email

logger = get_logger(__name__)

# Thread pool for email sending with timeout support
_email_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="email_sender")

# Shared email styles
_BODY_STYLE = (
    "font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; "
    "line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;"
)
_BUTTON_STYLE = (
    "background-color: #2563eb; color: white; padding: 12px 24px; "
    "text-decoration: none; border-radius: 6px; display: inline-block; font-weight: 500;"
)
_LINK_STYLE = "color: #2563eb; word-break: break-all;"
_MUTED_STYLE = "color: #666; font-size: 14px;"
_NOTICE_STYLE = (
    "background-color: #fef3c7; border: 1px solid #fcd34d; border-radius: 6px; "
    "padding: 12px 16px; color: #92400e; font-size: 14px;"
)

ROLE_DESCRIPTIONS: dict[str, str] = {
    "admin": "manage team members, invite users, and access all features",
    "editor": "edit the portal's content and view its reports",
    "member": "take part in the team and manage your own profile",
    "viewer": "view content and reports (read-only access)",
}


@dataclass(frozen=True)
class EmailResult:
    """Result of an email dispatch attempt."""

    success: bool
    error: str | None = None


def build_invite_url(token: str) -> str:
    """Build the public invitation link ``{app_url}/invite/{token}``."""
    return f"{get_settings().app_url}/invite/{token}"


async def send_email(
    to: str,
    subject: str,
    html_body: str,
    text_body: str,
    timeout: float | None = None,
) -> EmailResult:
    """Send a single email through Resend with a bounded wait.

    When ``RESEND_API_KEY`` is unset the email is only logged (dev mode) and
    the send counts as successful.
    """
    settings = get_settings()
    if timeout is None:
        timeout = settings.email_send_timeout_seconds

    if not settings.resend_api_key:
        logger.warning("RESEND_API_KEY not set - email not sent", to=log_email(to), subject=subject)
        return EmailResult(success=True)

    resend.api_key = settings.resend_api_key
    params: resend.Emails.SendParams = {
        "from": settings.email_from,
        "to": [to],
        "subject": subject,
        "html": html_body,
        "text": text_body,
    }

    loop = asyncio.get_running_loop()
    try:
        await asyncio.wait_for(
            loop.run_in_executor(_email_executor, resend.Emails.send, params),
            timeout=timeout,
        )
    except TimeoutError:
        logger.error("Email send timed out", to=log_email(to), timeout=timeout)
        return EmailResult(success=False, error="Email delivery timed out")
    except Exception as e:
        logger.error(
            "Failed to send email",
            to=log_email(to),
            error_type=type(e).__name__,
            error=str(e),
        )
        return EmailResult(success=False, error=str(e) or type(e).__name__)

    logger.info("Email sent", to=log_email(to), subject=subject)
    return EmailResult(success=True)


async def send_invite_email(
    to: str,
    token: str,
    tenant_name: str,
    inviter_name: str,
    role: str,
    expires_at: datetime,
    is_reminder: bool = False,
) -> EmailResult:
    """Send an invitation (or a reminder for a resent one).

    Args:
        to: Recipient email address
        token: Raw invitation token (plaintext, included in the URL only)
        tenant_name: Name of the tenant being joined
        inviter_name: Name of the person who sent the invitation
        role: Role granted on acceptance
        expires_at: When the link stops working (UTC)
        is_reminder: Prefix the subject for resent invitations

    Returns:
        EmailResult; failure never affects the invitation itself
    """
    invite_url = build_invite_url(token)
    subject = f"You've been invited to join {tenant_name}"
    if is_reminder:
        subject = f"Reminder: {subject}"

    return await send_email(
        to=to,
        subject=subject,
        html_body=_get_invite_email_html(tenant_name, inviter_name, role, invite_url, expires_at),
        text_body=_get_invite_email_text(tenant_name, inviter_name, role, invite_url, expires_at),
    )


def _format_expiry(expires_at: datetime) -> str:
    return f"{expires_at:%A, %B} {expires_at.day}, {expires_at.year}"


def _get_invite_email_html(
    tenant_name: str, inviter_name: str, role: str, invite_url: str, expires_at: datetime
) -> str:
    """Generate HTML content for invite email."""
    safe_tenant_name = html.escape(tenant_name)
    safe_inviter_name = html.escape(inviter_name)
    safe_role = html.escape(role)
    safe_url = html.escape(invite_url, quote=True)
    role_description = ROLE_DESCRIPTIONS.get(role, ROLE_DESCRIPTIONS["member"])
    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
</head>
<body style="{_BODY_STYLE}">
    <h1 style="color: #2563eb; margin-bottom: 24px;">You're invited!</h1>
    <p><strong>{safe_inviter_name}</strong> has invited you to join
    <strong>{safe_tenant_name}</strong> as <strong>{safe_role}</strong>.</p>
    <p>As {safe_role}, you'll be able to {role_description}.</p>
    <p style="margin: 32px 0;">
        <a href="{safe_url}" style="{_BUTTON_STYLE}">Accept Invitation</a>
    </p>
    <p style="{_MUTED_STYLE}">
        Or copy and paste this link into your browser:<br>
        <a href="{safe_url}" style="{_LINK_STYLE}">{safe_url}</a>
    </p>
    <p style="{_MUTED_STYLE}">This invitation expires on {_format_expiry(expires_at)}.</p>
    <p style="{_NOTICE_STYLE}">
        <strong>Security notice:</strong> if you didn't expect this invitation,
        you can safely ignore this email. Never share this link with others.
    </p>
</body>
</html>"""


def _get_invite_email_text(
    tenant_name: str, inviter_name: str, role: str, invite_url: str, expires_at: datetime
) -> str:
    role_description = ROLE_DESCRIPTIONS.get(role, ROLE_DESCRIPTIONS["member"])
    return (
        f"You're invited to join {tenant_name}\n\n"
        f"{inviter_name} has invited you to join {tenant_name} as {role}.\n"
        f"As {role}, you'll be able to {role_description}.\n\n"
        f"Accept the invitation:\n{invite_url}\n\n"
        f"This invitation expires on {_format_expiry(expires_at)}.\n\n"
        "If you didn't expect this invitation, you can safely ignore this email. "
        "Never share this link with others.\n"
    )
