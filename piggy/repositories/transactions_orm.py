"""Transaction repository - SQLAlchemy ORM async."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import delete, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from piggy.core.data_helpers import safe_float
from piggy.database.connection import insert_for
from piggy.database.orm import Position, Transaction, generate_id, utcnow


def transaction_to_dict(t: Transaction) -> dict[str, Any]:
    """Convert Transaction ORM object to dictionary."""
    return {
        "id": t.id,
        "position_id": t.position_id,
        "type": t.type,
        "date": t.date,
        "quantity": t.quantity,
        "price": safe_float(t.price),
        "total_value": safe_float(t.total_value),
        "fees": safe_float(t.fees),
        "execution_time": t.execution_time,
        "broker_ref": t.broker_ref,
        "order_type": t.order_type,
        "notes": t.notes,
        "created_at": t.created_at,
        "updated_at": t.updated_at,
    }


def _filters(
    *,
    position_id: str | None = None,
    user_id: str | None = None,
    type: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> list:
    filters = []
    if position_id:
        filters.append(Transaction.position_id == position_id)
    if user_id:
        owned = select(Position.id).where(Position.user_id == user_id)
        filters.append(Transaction.position_id.in_(owned))
    if type:
        filters.append(Transaction.type == type)
    if start_date:
        filters.append(Transaction.date >= start_date)
    if end_date:
        filters.append(Transaction.date <= end_date)
    return filters


async def add_transaction(session: AsyncSession, **fields: Any) -> dict[str, Any]:
    txn = Transaction(**fields)
    session.add(txn)
    await session.flush()
    return transaction_to_dict(txn)


async def insert_transactions(session: AsyncSession, rows: Sequence[dict[str, Any]]) -> int:
    """Insert many rows, skipping conflicts. Returns rows created."""
    if not rows:
        return 0
    now = utcnow()
    values = [{"id": generate_id(), "created_at": now, "updated_at": now, **row} for row in rows]
    stmt = (
        insert_for(session, Transaction)
        .values(values)
        .on_conflict_do_nothing()
        .returning(Transaction.id)
    )
    result = await session.execute(stmt)
    return len(result.all())


async def get_transaction(session: AsyncSession, transaction_id: str) -> Transaction | None:
    return await session.get(Transaction, transaction_id)


async def list_for_position(session: AsyncSession, position_id: str) -> list[dict[str, Any]]:
    """All transactions for a position, oldest first."""
    result = await session.execute(
        select(Transaction)
        .where(Transaction.position_id == position_id)
        .order_by(Transaction.date, Transaction.created_at)
    )
    return [transaction_to_dict(t) for t in result.scalars().all()]


async def list_transactions(
    session: AsyncSession, *, limit: int, offset: int, **filters: Any
) -> tuple[list[dict[str, Any]], int]:
    """Filtered transactions, newest first."""
    where = _filters(**filters)
    result = await session.execute(
        select(Transaction)
        .where(*where)
        .order_by(desc(Transaction.date), Transaction.id)
        .limit(limit)
        .offset(offset)
    )
    transactions = [transaction_to_dict(t) for t in result.scalars().all()]
    total = await session.scalar(select(func.count(Transaction.id)).where(*where))
    return transactions, total or 0


async def summarize_by_type(session: AsyncSession, **filters: Any) -> list[dict[str, Any]]:
    """Per-type counts and sums; raw Decimal/int values."""
    result = await session.execute(
        select(
            Transaction.type,
            func.count(Transaction.id),
            func.coalesce(func.sum(Transaction.total_value), 0),
            func.coalesce(func.sum(Transaction.fees), 0),
            func.coalesce(func.sum(Transaction.quantity), 0),
        )
        .where(*_filters(**filters))
        .group_by(Transaction.type)
        .order_by(Transaction.type)
    )
    return [
        {
            "type": type_,
            "count": count,
            "total_value": total_value,
            "total_fees": total_fees,
            "total_shares": total_shares,
        }
        for type_, count, total_value, total_fees, total_shares in result.all()
    ]


async def count_transactions(
    session: AsyncSession,
    *,
    created_since: datetime | None = None,
    user_id: str | None = None,
) -> int:
    """Count transactions recorded since `created_since`, not by trade date."""
    where = _filters(user_id=user_id)
    if created_since:
        where.append(Transaction.created_at >= created_since)
    return await session.scalar(select(func.count(Transaction.id)).where(*where)) or 0


async def recent_transactions(session: AsyncSession, *, limit: int, **filters: Any) -> list[dict[str, Any]]:
    result = await session.execute(
        select(Transaction)
        .where(*_filters(**filters))
        .order_by(desc(Transaction.date), Transaction.id)
        .limit(limit)
    )
    return [transaction_to_dict(t) for t in result.scalars().all()]


async def delete_transaction(session: AsyncSession, transaction_id: str) -> bool:
    result = await session.execute(delete(Transaction).where(Transaction.id == transaction_id))
    return result.rowcount > 0
