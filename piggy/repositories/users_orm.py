"""User repository - SQLAlchemy ORM async."""

from __future__ import annotations

from typing import Any

from sqlalchemy import delete, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from piggy.database.connection import flush_or_conflict
from piggy.database.orm import Position, User


def user_to_dict(u: User, position_count: int | None = None) -> dict[str, Any]:
    """Convert User ORM object to dictionary."""
    data = {
        "id": u.id,
        "email": u.email,
        "name": u.name,
        "created_at": u.created_at,
        "updated_at": u.updated_at,
    }
    if position_count is not None:
        data["position_count"] = position_count
    return data


async def create_user(session: AsyncSession, email: str, name: str | None = None) -> dict[str, Any]:
    """Create a user; ConflictError when the email is taken."""
    user = User(email=email, name=name)
    session.add(user)
    await flush_or_conflict(session, f"User with email {email} already exists")
    return user_to_dict(user)


async def get_user(session: AsyncSession, user_id: str) -> dict[str, Any] | None:
    user = await session.get(User, user_id)
    return user_to_dict(user) if user else None


async def get_user_by_email(session: AsyncSession, email: str) -> dict[str, Any] | None:
    result = await session.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    return user_to_dict(user) if user else None


async def email_taken(session: AsyncSession, email: str, exclude_id: str | None = None) -> bool:
    stmt = select(User.id).where(User.email == email)
    if exclude_id:
        stmt = stmt.where(User.id != exclude_id)
    result = await session.execute(stmt.limit(1))
    return result.scalar_one_or_none() is not None


async def list_users(
    session: AsyncSession, *, limit: int, offset: int
) -> tuple[list[dict[str, Any]], int]:
    """Users newest first, each with its position count."""
    position_count = (
        select(func.count(Position.id))
        .where(Position.user_id == User.id)
        .correlate(User)
        .scalar_subquery()
    )
    result = await session.execute(
        select(User, position_count)
        .order_by(desc(User.created_at), User.id)
        .limit(limit)
        .offset(offset)
    )
    users = [user_to_dict(u, count) for u, count in result.all()]
    total = await session.scalar(select(func.count(User.id)))
    return users, total or 0


async def update_user(session: AsyncSession, user_id: str, **fields: Any) -> dict[str, Any] | None:
    """Apply the given fields to a user."""
    user = await session.get(User, user_id)
    if not user:
        return None

    for key, value in fields.items():
        setattr(user, key, value)

    await flush_or_conflict(session, f"User with email {fields.get('email')} already exists")
    return user_to_dict(user)


async def delete_user(session: AsyncSession, user_id: str) -> bool:
    result = await session.execute(delete(User).where(User.id == user_id))
    return result.rowcount > 0
