"""Request/response schemas for profile endpoints."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class UserBrief(BaseModel):
    """Public slice of a user embedded in other payloads."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    username: str
    first_name: str | None = None
    last_name: str | None = None
    avatar_url: str | None = None
    role: str


class ProfileResponse(UserBrief):
    bio: str | None = None
    followers_count: int
    following_count: int
    created_at: datetime


class FollowToggleResponse(BaseModel):
    following: bool


class FollowListResponse(BaseModel):
    users: list[UserBrief]


class UpdatePasswordRequest(BaseModel):
    old_password: str = Field(..., min_length=1, max_length=128)
    password: str = Field(..., min_length=8, max_length=50)
