"""Position repository - SQLAlchemy ORM async."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Any

from sqlalchemy import delete, desc, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from piggy.core.data_helpers import safe_float
from piggy.database.orm import Position, PositionStatus, Stock, Transaction, utcnow
from piggy.repositories.stocks_orm import stock_to_dict
from piggy.repositories.transactions_orm import transaction_to_dict
from piggy.repositories.users_orm import user_to_dict


_MONEY_FIELDS = (
    "entry_price",
    "buy_fees",
    "total_buy_value",
    "capital_allocated",
    "exit_price",
    "total_sell_value",
    "sell_fees",
    "realized_pnl",
    "return_percentage",
    "stop_loss_price",
    "take_profit_price",
    "risk_amount",
    "risk_percentage",
)


def position_to_dict(
    p: Position,
    *,
    with_stock: bool = True,
    with_user: bool = False,
    with_transactions: bool = False,
) -> dict[str, Any]:
    """Convert Position ORM object to dictionary.

    Relationships are only serialized when requested; the caller is
    responsible for having loaded them.
    """
    data: dict[str, Any] = {
        "id": p.id,
        "user_id": p.user_id,
        "stock_id": p.stock_id,
        "status": p.status,
        "position_type": p.position_type,
        "open_date": p.open_date,
        "quantity": p.quantity,
        "close_date": p.close_date,
        "open_reason": p.open_reason,
        "strategy": p.strategy,
        "setup_type": p.setup_type,
        "timeframe": p.timeframe,
        "tags": list(p.tags or []),
        "notes": p.notes,
        "trade_grade": p.trade_grade,
        "lessons_learned": p.lessons_learned,
        "created_at": p.created_at,
        "updated_at": p.updated_at,
    }
    for field in _MONEY_FIELDS:
        data[field] = safe_float(getattr(p, field))
    if with_stock:
        data["stock"] = stock_to_dict(p.stock, with_exchange=True)
    if with_user:
        data["user"] = user_to_dict(p.user)
    if with_transactions:
        data["transactions"] = [transaction_to_dict(t) for t in p.transactions]
    return data


def _full_options():
    return (
        selectinload(Position.stock).selectinload(Stock.exchange),
        selectinload(Position.user),
        selectinload(Position.transactions),
    )


async def get_position_full(session: AsyncSession, position_id: str) -> dict[str, Any] | None:
    """Position with stock (and exchange), user and transactions by date."""
    result = await session.execute(
        select(Position)
        .options(*_full_options())
        .where(Position.id == position_id)
        .execution_options(populate_existing=True)
    )
    position = result.scalar_one_or_none()
    if not position:
        return None
    return position_to_dict(position, with_user=True, with_transactions=True)


async def lock_position(session: AsyncSession, position_id: str) -> Position | None:
    """Load a position with a row lock for a read-check-write sequence."""
    result = await session.execute(
        select(Position)
        .where(Position.id == position_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def insert_position(session: AsyncSession, **fields: Any) -> Position:
    position = Position(**fields)
    session.add(position)
    await session.flush()
    return position


async def mark_closed(session: AsyncSession, position_id: str, **fields: Any) -> bool:
    """Set exit fields and CLOSED status, only if the position is still OPEN."""
    result = await session.execute(
        update(Position)
        .where(Position.id == position_id, Position.status == PositionStatus.OPEN.value)
        .values(status=PositionStatus.CLOSED.value, updated_at=utcnow(), **fields)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def update_position(session: AsyncSession, position_id: str, **fields: Any) -> bool:
    position = await session.get(Position, position_id)
    if not position:
        return False

    for key, value in fields.items():
        setattr(position, key, value)

    await session.flush()
    return True


async def count_transactions(session: AsyncSession, position_id: str) -> int:
    return await session.scalar(
        select(func.count(Transaction.id)).where(Transaction.position_id == position_id)
    ) or 0


async def delete_position(session: AsyncSession, position_id: str) -> bool:
    result = await session.execute(delete(Position).where(Position.id == position_id))
    return result.rowcount > 0


async def list_positions(
    session: AsyncSession,
    *,
    user_id: str,
    status: str | None = None,
    stock_id: str | None = None,
    limit: int,
    offset: int,
) -> tuple[list[dict[str, Any]], int]:
    """Positions for a user, newest open date first, with stock and transactions."""
    filters = [Position.user_id == user_id]
    if status:
        filters.append(Position.status == status)
    if stock_id:
        filters.append(Position.stock_id == stock_id)

    result = await session.execute(
        select(Position)
        .options(
            selectinload(Position.stock).selectinload(Stock.exchange),
            selectinload(Position.transactions),
        )
        .where(*filters)
        .order_by(desc(Position.open_date), Position.id)
        .limit(limit)
        .offset(offset)
    )
    positions = [
        position_to_dict(p, with_transactions=True) for p in result.scalars().all()
    ]
    total = await session.scalar(select(func.count(Position.id)).where(*filters))
    return positions, total or 0


async def find_positions(
    session: AsyncSession,
    *,
    user_id: str | None = None,
    status: str | None = None,
    limit: int | None = None,
) -> list[Position]:
    """Positions (with stock loaded) for aggregation, newest open date first."""
    stmt = select(Position).options(
        selectinload(Position.stock).selectinload(Stock.exchange)
    )
    if user_id:
        stmt = stmt.where(Position.user_id == user_id)
    if status:
        stmt = stmt.where(Position.status == status)
    stmt = stmt.order_by(desc(Position.open_date), Position.id)
    if limit is not None:
        stmt = stmt.limit(limit)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def count_positions(
    session: AsyncSession,
    *,
    user_id: str | None = None,
    status: str | None = None,
    created_since: datetime | None = None,
) -> int:
    """Count positions; `created_since` windows on when the row was recorded."""
    stmt = select(func.count(Position.id))
    if user_id:
        stmt = stmt.where(Position.user_id == user_id)
    if status:
        stmt = stmt.where(Position.status == status)
    if created_since:
        stmt = stmt.where(Position.created_at >= created_since)
    return await session.scalar(stmt) or 0


async def existing_position_ids(session: AsyncSession, position_ids: Iterable[str]) -> set[str]:
    ids = set(position_ids)
    if not ids:
        return set()
    result = await session.execute(select(Position.id).where(Position.id.in_(ids)))
    return set(result.scalars().all())
