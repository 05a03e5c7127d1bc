"""Notification utilities - email."""

from src.accessgrant.core.notifications.email import (
    EmailResult,
    build_invite_url,
    send_email,
    send_invite_email,
)

__all__ = [
    "EmailResult",
    "build_invite_url",
    "send_email",
    "send_invite_email",
]
