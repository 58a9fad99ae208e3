"""Price history repository - SQLAlchemy ORM async.

Daily OHLCV bars keyed by (stock_id, date). Single inserts upsert on that
key; bulk inserts skip dates that already exist.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date
from typing import Any

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from piggy.core.data_helpers import safe_float, to_decimal
from piggy.database.connection import insert_for
from piggy.database.orm import PriceHistory, generate_id


def price_to_dict(p: PriceHistory) -> dict[str, Any]:
    """Convert PriceHistory ORM object to dictionary."""
    return {
        "id": p.id,
        "stock_id": p.stock_id,
        "date": p.date,
        "open": safe_float(p.open),
        "high": safe_float(p.high),
        "low": safe_float(p.low),
        "close": safe_float(p.close),
        "volume": p.volume,
    }


def _row_values(stock_id: str, bar: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": generate_id(),
        "stock_id": stock_id,
        "date": bar["date"],
        "open": to_decimal(bar["open"]),
        "high": to_decimal(bar["high"]),
        "low": to_decimal(bar["low"]),
        "close": to_decimal(bar["close"]),
        "volume": bar.get("volume"),
    }


async def get_prices(
    session: AsyncSession,
    stock_id: str,
    *,
    start_date: date | None = None,
    end_date: date | None = None,
    limit: int = 100,
) -> list[dict[str, Any]]:
    """Bars for a stock, newest first."""
    stmt = select(PriceHistory).where(PriceHistory.stock_id == stock_id)
    if start_date:
        stmt = stmt.where(PriceHistory.date >= start_date)
    if end_date:
        stmt = stmt.where(PriceHistory.date <= end_date)
    result = await session.execute(stmt.order_by(desc(PriceHistory.date)).limit(limit))
    return [price_to_dict(p) for p in result.scalars().all()]


async def upsert_price(session: AsyncSession, stock_id: str, bar: dict[str, Any]) -> dict[str, Any]:
    """Insert a bar or overwrite the existing bar for that date."""
    stmt = insert_for(session, PriceHistory).values(**_row_values(stock_id, bar))
    stmt = stmt.on_conflict_do_update(
        index_elements=["stock_id", "date"],
        set_={
            "open": stmt.excluded.open,
            "high": stmt.excluded.high,
            "low": stmt.excluded.low,
            "close": stmt.excluded.close,
            "volume": stmt.excluded.volume,
        },
    )
    await session.execute(stmt)

    result = await session.execute(
        select(PriceHistory)
        .where(PriceHistory.stock_id == stock_id, PriceHistory.date == bar["date"])
        .execution_options(populate_existing=True)
    )
    return price_to_dict(result.scalar_one())


async def insert_prices(
    session: AsyncSession, stock_id: str, bars: Sequence[dict[str, Any]]
) -> int:
    """Insert bars, skipping dates already present. Returns rows created."""
    if not bars:
        return 0
    stmt = (
        insert_for(session, PriceHistory)
        .values([_row_values(stock_id, bar) for bar in bars])
        .on_conflict_do_nothing(index_elements=["stock_id", "date"])
        .returning(PriceHistory.id)
    )
    result = await session.execute(stmt)
    return len(result.all())


async def get_latest_price(session: AsyncSession, stock_id: str) -> dict[str, Any] | None:
    result = await session.execute(
        select(PriceHistory)
        .where(PriceHistory.stock_id == stock_id)
        .order_by(desc(PriceHistory.date))
        .limit(1)
    )
    price = result.scalar_one_or_none()
    return price_to_dict(price) if price else None


async def get_latest_prices(
    session: AsyncSession, stock_ids: Iterable[str]
) -> dict[str, dict[str, Any]]:
    """Latest bar per stock, keyed by stock id."""
    ids = set(stock_ids)
    if not ids:
        return {}
    latest = (
        select(PriceHistory.stock_id, func.max(PriceHistory.date).label("max_date"))
        .where(PriceHistory.stock_id.in_(ids))
        .group_by(PriceHistory.stock_id)
        .subquery()
    )
    result = await session.execute(
        select(PriceHistory).join(
            latest,
            (PriceHistory.stock_id == latest.c.stock_id)
            & (PriceHistory.date == latest.c.max_date),
        )
    )
    return {p.stock_id: price_to_dict(p) for p in result.scalars().all()}
