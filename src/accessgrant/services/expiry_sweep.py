"""Background sweep marking overdue pending invitations as expired.

Validation enforces expiry on its own; the sweep only keeps listings and
reports accurate for invitations nobody opens again.
"""

import asyncio

from sqlalchemy.ext.asyncio import AsyncEngine

from src.accessgrant.core.db import get_session
from src.accessgrant.core.logging import get_logger
from src.accessgrant.repositories import (
    InvitationRepository,
    MembershipRepository,
    UserRepository,
)
from src.accessgrant.services.invitation_issuer import InvitationIssuer

logger = get_logger(__name__)


async def sweep_expired_invitations(engine: AsyncEngine | None = None) -> int:
    """Run one sweep in its own session. Returns the number expired."""
    async with get_session(engine) as session:
        issuer = InvitationIssuer(
            session,
            InvitationRepository(session),
            MembershipRepository(session),
            UserRepository(session),
        )
        return await issuer.expire_stale()


async def run_expiry_sweeper(interval_seconds: float, engine: AsyncEngine | None = None) -> None:
    """Sweep every ``interval_seconds`` until cancelled."""
    logger.info("Invitation expiry sweeper started", interval_seconds=interval_seconds)
    while True:
        await sweep_expired_invitations(engine)
        await asyncio.sleep(interval_seconds)
