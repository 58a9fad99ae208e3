"""Stock repository - SQLAlchemy ORM async."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import Any

from sqlalchemy import and_, delete, desc, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from piggy.core.data_helpers import safe_float
from piggy.database.connection import flush_or_conflict
from piggy.database.orm import Exchange, Position, PriceHistory, Stock
from piggy.repositories.exchanges_orm import exchange_to_dict


def stock_to_dict(
    s: Stock,
    *,
    with_exchange: bool = False,
    counts: dict[str, int] | None = None,
) -> dict[str, Any]:
    """Convert Stock ORM object to dictionary.

    The exchange is only included when it was eagerly loaded.
    """
    data = {
        "id": s.id,
        "symbol": s.symbol,
        "name": s.name,
        "sector": s.sector,
        "industry": s.industry,
        "market_cap": safe_float(s.market_cap),
        "exchange_id": s.exchange_id,
        "is_active": s.is_active,
        "created_at": s.created_at,
        "updated_at": s.updated_at,
    }
    if with_exchange:
        data["exchange"] = exchange_to_dict(s.exchange)
    if counts is not None:
        data["counts"] = counts
    return data


def _position_count():
    return (
        select(func.count(Position.id))
        .where(Position.stock_id == Stock.id)
        .correlate(Stock)
        .scalar_subquery()
    )


def _price_count():
    return (
        select(func.count(PriceHistory.id))
        .where(PriceHistory.stock_id == Stock.id)
        .correlate(Stock)
        .scalar_subquery()
    )


async def create_stock(session: AsyncSession, **fields: Any) -> dict[str, Any]:
    stock = Stock(**fields)
    session.add(stock)
    await flush_or_conflict(
        session, f"Stock {fields['symbol']} already exists on this exchange"
    )
    result = await session.execute(
        select(Stock)
        .options(selectinload(Stock.exchange))
        .where(Stock.id == stock.id)
        .execution_options(populate_existing=True)
    )
    return stock_to_dict(result.scalar_one(), with_exchange=True)


async def get_stock(session: AsyncSession, stock_id: str) -> dict[str, Any] | None:
    """Stock with exchange and position/price counts."""
    result = await session.execute(
        select(Stock, _position_count(), _price_count())
        .options(selectinload(Stock.exchange))
        .where(Stock.id == stock_id)
    )
    row = result.first()
    if not row:
        return None
    stock, positions, prices = row
    return stock_to_dict(
        stock, with_exchange=True, counts={"positions": positions, "price_history": prices}
    )


async def get_stock_by_symbol(
    session: AsyncSession, symbol: str, exchange_code: str | None = None
) -> dict[str, Any] | None:
    """First stock matching the symbol, optionally narrowed to one exchange."""
    stmt = (
        select(Stock)
        .options(selectinload(Stock.exchange))
        .where(Stock.symbol == symbol.upper())
        .order_by(Stock.created_at)
    )
    if exchange_code:
        stmt = stmt.join(Exchange, Stock.exchange_id == Exchange.id).where(
            Exchange.code == exchange_code.upper()
        )
    result = await session.execute(stmt.limit(1))
    stock = result.scalar_one_or_none()
    return stock_to_dict(stock, with_exchange=True) if stock else None


async def existing_stock_ids(session: AsyncSession, stock_ids: Iterable[str]) -> set[str]:
    ids = set(stock_ids)
    if not ids:
        return set()
    result = await session.execute(select(Stock.id).where(Stock.id.in_(ids)))
    return set(result.scalars().all())


async def list_stocks(
    session: AsyncSession,
    *,
    exchange_id: str | None = None,
    sector: str | None = None,
    search: str | None = None,
    is_active: bool | None = None,
    limit: int,
    offset: int,
) -> tuple[list[dict[str, Any]], int]:
    """Stocks ordered by symbol, each with exchange and counts."""
    filters = []
    if exchange_id:
        filters.append(Stock.exchange_id == exchange_id)
    if sector:
        filters.append(Stock.sector == sector)
    if is_active is not None:
        filters.append(Stock.is_active == is_active)
    if search:
        pattern = f"%{search.lower()}%"
        filters.append(
            or_(func.lower(Stock.symbol).like(pattern), func.lower(Stock.name).like(pattern))
        )

    result = await session.execute(
        select(Stock, _position_count(), _price_count())
        .options(selectinload(Stock.exchange))
        .where(*filters)
        .order_by(Stock.symbol, Stock.id)
        .limit(limit)
        .offset(offset)
    )
    stocks = [
        stock_to_dict(
            stock, with_exchange=True, counts={"positions": positions, "price_history": prices}
        )
        for stock, positions, prices in result.all()
    ]
    total = await session.scalar(select(func.count(Stock.id)).where(*filters))
    return stocks, total or 0


async def update_stock(session: AsyncSession, stock_id: str, **fields: Any) -> dict[str, Any] | None:
    result = await session.execute(
        select(Stock).options(selectinload(Stock.exchange)).where(Stock.id == stock_id)
    )
    stock = result.scalar_one_or_none()
    if not stock:
        return None

    for key, value in fields.items():
        setattr(stock, key, value)

    await session.flush()
    return stock_to_dict(stock, with_exchange=True)


async def count_positions(session: AsyncSession, stock_id: str) -> int:
    return await session.scalar(
        select(func.count(Position.id)).where(Position.stock_id == stock_id)
    ) or 0


async def popular_stocks(
    session: AsyncSession, *, since: datetime, limit: int
) -> list[dict[str, Any]]:
    """Stocks ranked by positions recorded since `since`; unheld stocks count 0."""
    recent = func.count(Position.id).label("recent_positions")
    result = await session.execute(
        select(Stock, recent)
        .options(selectinload(Stock.exchange))
        .outerjoin(
            Position, and_(Position.stock_id == Stock.id, Position.created_at >= since)
        )
        .group_by(Stock.id)
        .order_by(desc(recent), Stock.symbol)
        .limit(limit)
    )
    popular = []
    for stock, count in result.all():
        data = stock_to_dict(stock, with_exchange=True)
        data["recent_positions"] = count
        popular.append(data)
    return popular


async def delete_stock(session: AsyncSession, stock_id: str) -> bool:
    """Delete a stock together with its price history."""
    await session.execute(delete(PriceHistory).where(PriceHistory.stock_id == stock_id))
    result = await session.execute(delete(Stock).where(Stock.id == stock_id))
    return result.rowcount > 0
