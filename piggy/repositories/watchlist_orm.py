"""Watchlist repository using SQLAlchemy ORM.

One row per (user, stock) pair; the pair is unique.

Usage:
    from piggy.repositories.watchlist_orm import (
        add_item, get_item, list_items, remove_item,
    )
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from sqlalchemy import delete, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from piggy.core.data_helpers import safe_float, to_decimal
from piggy.core.logging import get_logger
from piggy.database.connection import flush_or_conflict, insert_for
from piggy.database.orm import Stock, Watchlist, generate_id, utcnow
from piggy.repositories.stocks_orm import stock_to_dict


logger = get_logger("repositories.watchlist_orm")


def _with_stock():
    return selectinload(Watchlist.stock).selectinload(Stock.exchange)


def item_to_dict(item: Watchlist, *, with_stock: bool = True) -> dict[str, Any]:
    """Convert Watchlist ORM object to dictionary."""
    data = {
        "id": item.id,
        "user_id": item.user_id,
        "stock_id": item.stock_id,
        "name": item.name,
        "notes": item.notes,
        "target_price": safe_float(item.target_price),
        "created_at": item.created_at,
        "updated_at": item.updated_at,
    }
    if with_stock:
        data["stock"] = stock_to_dict(item.stock, with_exchange=True)
    return data


async def _load(session: AsyncSession, *filters) -> Watchlist | None:
    result = await session.execute(
        select(Watchlist)
        .options(_with_stock())
        .where(*filters)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def add_item(
    session: AsyncSession,
    user_id: str,
    stock_id: str,
    *,
    name: str | None = None,
    notes: str | None = None,
    target_price: float | None = None,
) -> dict[str, Any]:
    """Add a stock to a user's watchlist; ConflictError if already present."""
    item = Watchlist(
        user_id=user_id,
        stock_id=stock_id,
        name=name,
        notes=notes,
        target_price=to_decimal(target_price),
    )
    session.add(item)
    await flush_or_conflict(session, "Stock is already in the watchlist")
    return item_to_dict(await _load(session, Watchlist.id == item.id))


async def get_item(session: AsyncSession, item_id: str) -> dict[str, Any] | None:
    item = await _load(session, Watchlist.id == item_id)
    return item_to_dict(item) if item else None


async def get_item_by_stock(
    session: AsyncSession, user_id: str, stock_id: str
) -> dict[str, Any] | None:
    item = await _load(session, Watchlist.user_id == user_id, Watchlist.stock_id == stock_id)
    return item_to_dict(item) if item else None


async def item_exists(session: AsyncSession, user_id: str, stock_id: str) -> bool:
    result = await session.execute(
        select(Watchlist.id).where(Watchlist.user_id == user_id, Watchlist.stock_id == stock_id)
    )
    return result.scalar_one_or_none() is not None


async def list_items(
    session: AsyncSession,
    user_id: str,
    *,
    limit: int | None = None,
    offset: int = 0,
    with_target_only: bool = False,
) -> list[dict[str, Any]]:
    """Items for a user, newest first."""
    stmt = (
        select(Watchlist)
        .options(_with_stock())
        .where(Watchlist.user_id == user_id)
        .order_by(desc(Watchlist.created_at), Watchlist.id)
        .offset(offset)
    )
    if with_target_only:
        stmt = stmt.where(Watchlist.target_price.is_not(None))
    if limit is not None:
        stmt = stmt.limit(limit)
    result = await session.execute(stmt)
    return [item_to_dict(item) for item in result.scalars().all()]


async def count_items(
    session: AsyncSession, user_id: str, *, with_target_only: bool = False
) -> int:
    stmt = select(func.count(Watchlist.id)).where(Watchlist.user_id == user_id)
    if with_target_only:
        stmt = stmt.where(Watchlist.target_price.is_not(None))
    return await session.scalar(stmt) or 0


async def update_item(session: AsyncSession, item_id: str, **fields: Any) -> dict[str, Any] | None:
    item = await _load(session, Watchlist.id == item_id)
    if not item:
        return None

    for key, value in fields.items():
        setattr(item, key, to_decimal(value) if key == "target_price" else value)

    await session.flush()
    return item_to_dict(item)


async def remove_item(session: AsyncSession, item_id: str) -> bool:
    result = await session.execute(delete(Watchlist).where(Watchlist.id == item_id))
    return result.rowcount > 0


async def remove_item_by_stock(session: AsyncSession, user_id: str, stock_id: str) -> bool:
    result = await session.execute(
        delete(Watchlist).where(Watchlist.user_id == user_id, Watchlist.stock_id == stock_id)
    )
    return result.rowcount > 0


async def add_items(
    session: AsyncSession,
    user_id: str,
    stock_ids: Iterable[str],
    notes: str | None = None,
) -> int:
    """Insert one item per stock, skipping pairs already watched. Returns rows added."""
    now = utcnow()
    rows = [
        {
            "id": generate_id(),
            "user_id": user_id,
            "stock_id": stock_id,
            "notes": notes,
            "created_at": now,
            "updated_at": now,
        }
        for stock_id in dict.fromkeys(stock_ids)
    ]
    if not rows:
        return 0
    stmt = (
        insert_for(session, Watchlist)
        .values(rows)
        .on_conflict_do_nothing(index_elements=["user_id", "stock_id"])
        .returning(Watchlist.id)
    )
    result = await session.execute(stmt)
    added = len(result.all())
    if added < len(rows):
        logger.info(f"Watchlist bulk add for {user_id}: skipped {len(rows) - added} duplicates")
    return added
