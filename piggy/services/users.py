"""User operations and per-user portfolio aggregates."""

from __future__ import annotations

from datetime import timedelta
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from piggy.core.exceptions import ConflictError, NotFoundError
from piggy.core.logging import get_logger
from piggy.database.orm import PositionStatus, utcnow
from piggy.repositories import positions_orm, stocks_orm, transactions_orm, users_orm
from piggy.schemas.common import paginated
from piggy.schemas.user import (
    UserCreateRequest,
    UserListInput,
    UserStatsInput,
    UserUpdateInput,
)
from piggy.services import metrics


logger = get_logger("services.users")


async def create_user(session: AsyncSession, data: UserCreateRequest) -> dict[str, Any]:
    if await users_orm.email_taken(session, data.email):
        raise ConflictError(message=f"User with email {data.email} already exists")
    user = await users_orm.create_user(session, data.email, data.name)
    logger.info(f"Created user {user['id']}")
    return user


async def list_users(session: AsyncSession, data: UserListInput) -> dict[str, Any]:
    users, total = await users_orm.list_users(session, limit=data.limit, offset=data.offset)
    return paginated("users", users, total, data.limit, data.offset)


async def get_user(session: AsyncSession, user_id: str) -> dict[str, Any]:
    user = await users_orm.get_user(session, user_id)
    if not user:
        raise NotFoundError(message="User not found")
    return user


async def get_user_by_email(session: AsyncSession, email: str) -> dict[str, Any]:
    user = await users_orm.get_user_by_email(session, email)
    if not user:
        raise NotFoundError(message="User not found")
    return user


async def update_user(session: AsyncSession, data: UserUpdateInput) -> dict[str, Any]:
    fields = data.model_dump(exclude={"id"}, exclude_unset=True, exclude_none=True)
    if "email" in fields and await users_orm.email_taken(session, fields["email"], exclude_id=data.id):
        raise ConflictError(message=f"User with email {fields['email']} already exists")
    user = await users_orm.update_user(session, data.id, **fields)
    if not user:
        raise NotFoundError(message="User not found")
    return user


async def get_portfolio_summary(session: AsyncSession, user_id: str) -> dict[str, Any]:
    """Open and closed aggregates plus open positions grouped by symbol."""
    user = await get_user(session, user_id)
    open_positions = await positions_orm.find_positions(
        session, user_id=user_id, status=PositionStatus.OPEN.value
    )
    closed_positions = await positions_orm.find_positions(
        session, user_id=user_id, status=PositionStatus.CLOSED.value
    )

    by_symbol: dict[str, dict[str, Any]] = {}
    for p in open_positions:
        group = by_symbol.setdefault(
            p.stock.symbol,
            {
                "stock": stocks_orm.stock_to_dict(p.stock, with_exchange=True),
                "total_quantity": 0,
                "total_invested": metrics.ZERO,
                "positions": [],
            },
        )
        group["total_quantity"] += p.quantity
        group["total_invested"] += p.capital_allocated
        group["positions"].append(positions_orm.position_to_dict(p, with_stock=False))

    return {
        "user": user,
        "summary": {
            "total_open_positions": len(open_positions),
            "total_invested": float(metrics.total(p.capital_allocated for p in open_positions)),
            "total_value": float(metrics.total(p.total_buy_value for p in open_positions)),
            "total_closed_positions": len(closed_positions),
            "total_realized_pnl": float(metrics.total(p.realized_pnl for p in closed_positions)),
            "avg_return": float(metrics.average(p.return_percentage for p in closed_positions)),
        },
        "positions_by_stock": [
            {"symbol": symbol, **group, "total_invested": float(group["total_invested"])}
            for symbol, group in sorted(by_symbol.items())
        ],
        "recent_positions": [positions_orm.position_to_dict(p) for p in open_positions[:5]],
    }


async def get_user_stats(session: AsyncSession, data: UserStatsInput) -> dict[str, Any]:
    """Activity over the trailing `days` window and lifetime closed-trade results."""
    await get_user(session, data.user_id)
    since = utcnow() - timedelta(days=data.days)
    closed = await positions_orm.find_positions(
        session, user_id=data.user_id, status=PositionStatus.CLOSED.value
    )
    return {
        "period_days": data.days,
        "recent_positions": await positions_orm.count_positions(
            session, user_id=data.user_id, created_since=since
        ),
        "recent_transactions": await transactions_orm.count_transactions(
            session, user_id=data.user_id, created_since=since
        ),
        "total_positions": await positions_orm.count_positions(session, user_id=data.user_id),
        "total_closed_trades": len(closed),
        "avg_return": float(metrics.average(p.return_percentage for p in closed)),
        "total_realized_pnl": float(metrics.total(p.realized_pnl for p in closed)),
    }


async def delete_user(session: AsyncSession, user_id: str) -> dict[str, Any]:
    await get_user(session, user_id)

    count = await positions_orm.count_positions(session, user_id=user_id)
    if count:
        logger.warning(f"Refused to delete user {user_id} with {count} positions")
        raise ConflictError(
            message="Cannot delete user with existing positions", details={"positions": count}
        )

    await users_orm.delete_user(session, user_id)
    logger.info(f"Deleted user {user_id}")
    return {"success": True}
