"""Membership schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class MemberRead(BaseModel):
    user_id: UUID
    email: str
    full_name: str
    role: str
    joined_at: datetime


class MemberListResponse(BaseModel):
    members: list[MemberRead]
    total: int


class MemberRoleUpdate(BaseModel):
    role: str = Field(min_length=1, max_length=50)


class MemberActionResponse(BaseModel):
    user_id: UUID
    role: str
    message: str
