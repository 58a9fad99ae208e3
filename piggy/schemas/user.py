"""User schemas for API and RPC input validation."""

from __future__ import annotations

from pydantic import BaseModel, EmailStr, Field

from .common import EntityId, PaginationParams


class UserCreateRequest(BaseModel):
    """Create user request."""

    email: EmailStr
    name: str | None = Field(default=None, min_length=1, max_length=255)


class UserUpdateRequest(BaseModel):
    """Update user request; omitted fields stay unchanged."""

    email: EmailStr | None = None
    name: str | None = Field(default=None, min_length=1, max_length=255)


class UserUpdateInput(UserUpdateRequest):
    id: EntityId


class UserListInput(PaginationParams):
    """Page of users, newest first."""


class UserByEmailInput(BaseModel):
    email: EmailStr


class UserIdInput(BaseModel):
    user_id: EntityId


class UserStatsInput(BaseModel):
    user_id: EntityId
    days: int = Field(default=30, ge=1, le=365, description="Trailing window in days")
