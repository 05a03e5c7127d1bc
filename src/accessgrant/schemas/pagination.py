"""Keyset cursors for newest-first list endpoints."""

import base64
import binascii
from datetime import datetime
from typing import Generic, TypeVar
from uuid import UUID

from pydantic import BaseModel, Field

T = TypeVar("T")


class PaginatedResponse(BaseModel, Generic[T]):
    """A page of results, newest first.

    ``next_cursor`` is opaque to clients: pass it back unchanged to get the
    following page.
    """

    items: list[T]
    next_cursor: str | None = Field(
        default=None,
        description="Opaque cursor for the next page. None on the last page.",
    )
    has_more: bool = Field(default=False, description="Whether another page follows.")


def encode_cursor(created_at: datetime, item_id: UUID) -> str:
    """Position after the row ``(created_at, item_id)``, as unpadded URL-safe base64."""
    raw = f"{created_at.isoformat()}|{item_id}"
    return base64.urlsafe_b64encode(raw.encode()).decode().rstrip("=")


def decode_cursor(cursor: str) -> tuple[datetime, UUID]:
    """Inverse of :func:`encode_cursor`.

    Raises:
        ValueError: If the cursor was not produced by :func:`encode_cursor`.
    """
    padded = cursor + "=" * (-len(cursor) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded.encode()).decode()
        created_at, _, item_id = raw.partition("|")
        return datetime.fromisoformat(created_at), UUID(item_id)
    except (binascii.Error, UnicodeDecodeError, ValueError) as e:
        raise ValueError("Invalid cursor") from e
