"""Sliding-window limit on invitation creation.

The window is evaluated against the invitations table itself: each
invitation row is the record of one creation event, so there is no separate
counter to keep in sync and nothing can be cached stale. The count and the
later insert are not in one transaction; a concurrent burst can overshoot the
limit slightly. This is a spam deterrent, not a quota.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import UUID

from src.accessgrant.core.config import get_settings
from src.accessgrant.core.logging import get_logger
from src.accessgrant.models.base import utc_now
from src.accessgrant.repositories import InvitationRepository

logger = get_logger(__name__)


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a rate-limit check."""

    allowed: bool
    count: int
    limit: int
    retry_after_seconds: int | None = None


def retry_after(oldest: datetime, window: timedelta, now: datetime) -> int:
    """Seconds until ``oldest`` leaves the window, at least 1."""
    remaining = (oldest + window - now).total_seconds()
    return max(1, math.ceil(remaining))


class InviteRateLimiter:
    """Per-inviter sliding window over invitation ``created_at`` timestamps."""

    def __init__(self, invite_repo: InvitationRepository):
        self.invite_repo = invite_repo

    async def check_and_record(
        self,
        inviter_id: UUID,
        window: timedelta | None = None,
        max_count: int | None = None,
        now: datetime | None = None,
    ) -> RateLimitResult:
        """Check whether ``inviter_id`` may create another invitation.

        Recording happens implicitly: the invitation row the caller inserts
        next is the event counted by later checks.
        """
        settings = get_settings()
        if window is None:
            window = timedelta(minutes=settings.invite_rate_limit_window_minutes)
        if max_count is None:
            max_count = settings.invite_rate_limit_max
        if now is None:
            now = utc_now()

        since = now - window
        count = await self.invite_repo.count_created_since(inviter_id, since)
        if count < max_count:
            return RateLimitResult(allowed=True, count=count, limit=max_count)

        oldest = await self.invite_repo.oldest_created_since(inviter_id, since)
        wait = retry_after(oldest, window, now) if oldest else int(window.total_seconds())
        logger.warning(
            "Invitation rate limit reached",
            inviter_id=str(inviter_id),
            count=count,
            limit=max_count,
            retry_after_seconds=wait,
        )
        return RateLimitResult(
            allowed=False, count=count, limit=max_count, retry_after_seconds=wait
        )
