"""Repository for Invitation entity.

State changes on an invitation are conditional updates guarded on
``status = 'pending'`` (plus ``use_count < max_uses`` for consumption), and
report success through the affected row count. Two concurrent writers can
therefore never both move the same row out of ``pending``.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import func, update
from sqlmodel import select

from src.accessgrant.models import Invitation, InviteStatus
from src.accessgrant.repositories.base import BaseRepository

_PENDING = InviteStatus.PENDING.value


class InvitationRepository(BaseRepository[Invitation]):
    """Repository for Invitation entity."""

    model = Invitation

    async def get_by_token_hash(self, token_hash: str) -> Invitation | None:
        """Get an invitation by token hash, whatever its status.

        Always reloads the row so a caller holding an older copy in the
        session sees the current status.
        """
        result = await self.session.execute(
            select(Invitation)
            .where(Invitation.token_hash == token_hash)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def token_hash_exists(self, token_hash: str) -> bool:
        result = await self.session.execute(
            select(func.count())
            .select_from(Invitation)
            .where(Invitation.token_hash == token_hash)
        )
        return bool(result.scalar_one())

    async def get_open_for_email(
        self, email: str, tenant_id: UUID, now: datetime
    ) -> Invitation | None:
        """Get a pending, unexpired invitation for an email in a tenant."""
        result = await self.session.execute(
            select(Invitation)
            .where(
                Invitation.email == email,
                Invitation.tenant_id == tenant_id,
                Invitation.status == _PENDING,
                Invitation.expires_at > now,  # type: ignore[arg-type]
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_pending_by_tenant_paginated(
        self, tenant_id: UUID, now: datetime, cursor: str | None, limit: int
    ) -> tuple[list[Invitation], str | None, bool]:
        """List pending, unexpired invitations for a tenant, newest first.

        Raises:
            ValueError: If ``cursor`` is malformed.

        Returns:
            Tuple of (items, next_cursor, has_more)
        """
        query = select(Invitation).where(
            Invitation.tenant_id == tenant_id,
            Invitation.status == _PENDING,
            Invitation.expires_at > now,  # type: ignore[arg-type]
        )
        return await self.newest_first_page(query, cursor, limit)

    async def count_created_since(self, inviter_id: UUID, since: datetime) -> int:
        """Count invitations created by an inviter at or after ``since``.

        Every status counts: a canceled invitation was still sent.
        """
        result = await self.session.execute(
            select(func.count())
            .select_from(Invitation)
            .where(
                Invitation.invited_by_user_id == inviter_id,
                Invitation.created_at >= since,  # type: ignore[arg-type]
            )
        )
        return int(result.scalar_one())

    async def oldest_created_since(self, inviter_id: UUID, since: datetime) -> datetime | None:
        """Creation time of the inviter's oldest invitation inside the window."""
        result = await self.session.execute(
            select(func.min(Invitation.created_at)).where(
                Invitation.invited_by_user_id == inviter_id,
                Invitation.created_at >= since,  # type: ignore[arg-type]
            )
        )
        return result.scalar_one_or_none()

    async def consume(
        self,
        invitation_id: UUID,
        user_id: UUID,
        now: datetime,
        client_ip: str | None = None,
    ) -> bool:
        """Atomically consume one use of a pending invitation.

        Succeeds only while the row is pending, unexpired and below max_uses.
        The winner's row becomes ``accepted`` in the same statement.

        Returns:
            True if this call consumed the invitation, False otherwise.
        """
        result = await self.session.execute(
            update(Invitation)
            .where(
                Invitation.id == invitation_id,  # type: ignore[arg-type]
                Invitation.status == _PENDING,  # type: ignore[arg-type]
                Invitation.use_count < Invitation.max_uses,  # type: ignore[arg-type]
                Invitation.expires_at >= now,  # type: ignore[arg-type]
            )
            .values(
                use_count=Invitation.use_count + 1,
                status=InviteStatus.ACCEPTED.value,
                accepted_at=now,
                accepted_by_user_id=user_id,
                accepted_from_ip=client_ip,
            )
            .execution_options(synchronize_session=False)
        )
        return (result.rowcount or 0) == 1  # type: ignore[attr-defined]

    async def mark_expired(self, invitation_id: UUID, now: datetime) -> bool:
        """Move an overdue pending invitation to ``expired``."""
        result = await self.session.execute(
            update(Invitation)
            .where(
                Invitation.id == invitation_id,  # type: ignore[arg-type]
                Invitation.status == _PENDING,  # type: ignore[arg-type]
                Invitation.expires_at < now,  # type: ignore[arg-type]
            )
            .values(status=InviteStatus.EXPIRED.value)
            .execution_options(synchronize_session=False)
        )
        return (result.rowcount or 0) == 1  # type: ignore[attr-defined]

    async def mark_canceled(self, invitation_id: UUID, actor_id: UUID, now: datetime) -> bool:
        """Cancel a pending invitation."""
        result = await self.session.execute(
            update(Invitation)
            .where(
                Invitation.id == invitation_id,  # type: ignore[arg-type]
                Invitation.status == _PENDING,  # type: ignore[arg-type]
            )
            .values(
                status=InviteStatus.CANCELED.value,
                canceled_at=now,
                canceled_by_user_id=actor_id,
            )
            .execution_options(synchronize_session=False)
        )
        return (result.rowcount or 0) == 1  # type: ignore[attr-defined]

    async def mark_revoked(self, invitation_id: UUID, actor_id: UUID, now: datetime) -> bool:
        """Revoke a pending invitation."""
        result = await self.session.execute(
            update(Invitation)
            .where(
                Invitation.id == invitation_id,  # type: ignore[arg-type]
                Invitation.status == _PENDING,  # type: ignore[arg-type]
            )
            .values(
                status=InviteStatus.REVOKED.value,
                revoked_at=now,
                revoked_by_user_id=actor_id,
            )
            .execution_options(synchronize_session=False)
        )
        return (result.rowcount or 0) == 1  # type: ignore[attr-defined]

    async def rotate_token(
        self, invitation_id: UUID, token_hash: str, expires_at: datetime, now: datetime
    ) -> bool:
        """Replace the token of a pending, unexpired invitation.

        The previous link stops resolving as soon as this commits.
        """
        result = await self.session.execute(
            update(Invitation)
            .where(
                Invitation.id == invitation_id,  # type: ignore[arg-type]
                Invitation.status == _PENDING,  # type: ignore[arg-type]
                Invitation.expires_at >= now,  # type: ignore[arg-type]
            )
            .values(token_hash=token_hash, expires_at=expires_at)
            .execution_options(synchronize_session=False)
        )
        return (result.rowcount or 0) == 1  # type: ignore[attr-defined]

    async def expire_stale(self, now: datetime, tenant_id: UUID | None = None) -> int:
        """Bulk-mark overdue pending invitations as expired.

        Validation enforces expiry on its own; this only keeps listings and
        reports honest.

        Returns:
            Number of invitations expired
        """
        stmt = (
            update(Invitation)
            .where(
                Invitation.status == _PENDING,  # type: ignore[arg-type]
                Invitation.expires_at < now,  # type: ignore[arg-type]
            )
            .values(status=InviteStatus.EXPIRED.value)
            .execution_options(synchronize_session=False)
        )
        if tenant_id is not None:
            stmt = stmt.where(Invitation.tenant_id == tenant_id)  # type: ignore[arg-type]
        result = await self.session.execute(stmt)
        return result.rowcount or 0  # type: ignore[attr-defined]
