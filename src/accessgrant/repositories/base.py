"""Shared data access for tenant-scoped tables."""

from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import and_, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel

from src.accessgrant.schemas.pagination import decode_cursor, encode_cursor

ModelType = TypeVar("ModelType", bound=SQLModel)


class BaseRepository(Generic[ModelType]):
    """Lookups and staging shared by every repository.

    Repositories read and stage writes. Commit and rollback belong to the
    services, which decide where a unit of work ends.
    """

    model: type[ModelType]

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, id: UUID) -> ModelType | None:
        return await self.session.get(self.model, id)

    def add(self, entity: ModelType) -> None:
        """Stage ``entity`` for insert at the next flush."""
        self.session.add(entity)

    async def newest_first_page(
        self, query: Any, cursor: str | None, limit: int
    ) -> tuple[list[ModelType], str | None, bool]:
        """Run ``query`` as one page ordered by ``(created_at, id)`` descending.

        The id breaks ties between rows created in the same instant, so no row
        is skipped or repeated across pages.

        Raises:
            ValueError: If ``cursor`` is malformed.

        Returns:
            Tuple of (items, next_cursor, has_more)
        """
        created_col = self.model.created_at  # type: ignore[attr-defined]
        id_col = self.model.id  # type: ignore[attr-defined]

        if cursor:
            last_created, last_id = decode_cursor(cursor)
            query = query.where(
                or_(
                    created_col < last_created,
                    and_(created_col == last_created, id_col < last_id),
                )
            )

        query = query.order_by(created_col.desc(), id_col.desc()).limit(limit + 1)
        result = await self.session.execute(query)
        items = list(result.scalars().all())

        has_more = len(items) > limit
        items = items[:limit]
        next_cursor = None
        if has_more:
            last = items[-1]
            next_cursor = encode_cursor(last.created_at, last.id)  # type: ignore[attr-defined]
        return items, next_cursor, has_more
