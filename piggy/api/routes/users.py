"""User REST routes."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Path, Query, status
from pydantic import EmailStr

from piggy.database.orm import ID_PATTERN
from piggy.database.session import DbSession
from piggy.schemas.common import ApiResponse
from piggy.schemas.user import (
    UserCreateRequest,
    UserListInput,
    UserUpdateInput,
    UserUpdateRequest,
)
from piggy.services import users as users_service


router = APIRouter(prefix="/api/users", tags=["Users"])

UserId = Annotated[str, Path(pattern=ID_PATTERN, max_length=40)]


@router.post("", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
async def create_user(payload: UserCreateRequest, db: DbSession) -> ApiResponse:
    """Create a user."""
    return ApiResponse(data=await users_service.create_user(db, payload))


@router.get("", response_model=ApiResponse)
async def list_users(
    db: DbSession,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> ApiResponse:
    """List users, newest first."""
    data = UserListInput(limit=limit, offset=offset)
    return ApiResponse(data=await users_service.list_users(db, data))


@router.get("/email/{email}", response_model=ApiResponse)
async def get_user_by_email(email: EmailStr, db: DbSession) -> ApiResponse:
    return ApiResponse(data=await users_service.get_user_by_email(db, email))


@router.get("/{user_id}", response_model=ApiResponse)
async def get_user(user_id: UserId, db: DbSession) -> ApiResponse:
    return ApiResponse(data=await users_service.get_user(db, user_id))


@router.get("/{user_id}/portfolio", response_model=ApiResponse)
async def get_portfolio(user_id: UserId, db: DbSession) -> ApiResponse:
    """Portfolio summary: open/closed aggregates and holdings by symbol."""
    return ApiResponse(data=await users_service.get_portfolio_summary(db, user_id))


@router.put("/{user_id}", response_model=ApiResponse)
async def update_user(user_id: UserId, payload: UserUpdateRequest, db: DbSession) -> ApiResponse:
    data = UserUpdateInput(id=user_id, **payload.model_dump(exclude_unset=True))
    return ApiResponse(data=await users_service.update_user(db, data))


@router.delete("/{user_id}", response_model=ApiResponse)
async def delete_user(user_id: UserId, db: DbSession) -> ApiResponse:
    """Delete a user without positions."""
    await users_service.delete_user(db, user_id)
    return ApiResponse(message="User deleted successfully")
