"""Exchange repository - SQLAlchemy ORM async."""

from __future__ import annotations

from typing import Any

from sqlalchemy import delete, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from piggy.database.connection import flush_or_conflict
from piggy.database.orm import Exchange, Position, Stock


def exchange_to_dict(e: Exchange, stock_count: int | None = None) -> dict[str, Any]:
    """Convert Exchange ORM object to dictionary."""
    data = {
        "id": e.id,
        "code": e.code,
        "name": e.name,
        "country": e.country,
        "timezone": e.timezone,
        "currency": e.currency,
        "is_active": e.is_active,
        "created_at": e.created_at,
        "updated_at": e.updated_at,
    }
    if stock_count is not None:
        data["stock_count"] = stock_count
    return data


def _stock_count():
    return (
        select(func.count(Stock.id))
        .where(Stock.exchange_id == Exchange.id)
        .correlate(Exchange)
        .scalar_subquery()
    )


async def create_exchange(session: AsyncSession, **fields: Any) -> dict[str, Any]:
    exchange = Exchange(**fields)
    session.add(exchange)
    await flush_or_conflict(session, f"Exchange with code {fields['code']} already exists")
    return exchange_to_dict(exchange, stock_count=0)


async def get_exchange(session: AsyncSession, exchange_id: str) -> dict[str, Any] | None:
    """Exchange with its stock count."""
    result = await session.execute(
        select(Exchange, _stock_count()).where(Exchange.id == exchange_id)
    )
    row = result.first()
    return exchange_to_dict(row[0], row[1]) if row else None


async def get_exchange_by_code(session: AsyncSession, code: str) -> dict[str, Any] | None:
    result = await session.execute(
        select(Exchange, _stock_count()).where(Exchange.code == code.upper())
    )
    row = result.first()
    return exchange_to_dict(row[0], row[1]) if row else None


async def exchange_exists(session: AsyncSession, exchange_id: str) -> bool:
    result = await session.execute(select(Exchange.id).where(Exchange.id == exchange_id))
    return result.scalar_one_or_none() is not None


async def list_exchanges(
    session: AsyncSession,
    *,
    is_active: bool | None = None,
    country: str | None = None,
    currency: str | None = None,
) -> list[dict[str, Any]]:
    """Exchanges ordered by name, each with its stock count."""
    stmt = select(Exchange, _stock_count()).order_by(Exchange.name)
    if is_active is not None:
        stmt = stmt.where(Exchange.is_active == is_active)
    if country:
        stmt = stmt.where(Exchange.country == country)
    if currency:
        stmt = stmt.where(Exchange.currency == currency.upper())
    result = await session.execute(stmt)
    return [exchange_to_dict(e, count) for e, count in result.all()]


async def update_exchange(
    session: AsyncSession, exchange_id: str, **fields: Any
) -> dict[str, Any] | None:
    exchange = await session.get(Exchange, exchange_id)
    if not exchange:
        return None

    for key, value in fields.items():
        setattr(exchange, key, value)

    await session.flush()
    return exchange_to_dict(exchange)


async def count_stocks(session: AsyncSession, exchange_id: str, *, active_only: bool = False) -> int:
    stmt = select(func.count(Stock.id)).where(Stock.exchange_id == exchange_id)
    if active_only:
        stmt = stmt.where(Stock.is_active.is_(True))
    return await session.scalar(stmt) or 0


async def count_positions(session: AsyncSession, exchange_id: str) -> int:
    return await session.scalar(
        select(func.count(Position.id))
        .join(Stock, Position.stock_id == Stock.id)
        .where(Stock.exchange_id == exchange_id)
    ) or 0


async def list_sectors(session: AsyncSession, exchange_id: str) -> list[str]:
    result = await session.execute(
        select(Stock.sector)
        .where(Stock.exchange_id == exchange_id, Stock.sector.is_not(None))
        .distinct()
        .order_by(Stock.sector)
    )
    return list(result.scalars().all())


async def top_stocks_by_positions(
    session: AsyncSession, exchange_id: str, limit: int = 10
) -> list[tuple[Stock, int]]:
    """Stocks on the exchange ranked by number of positions."""
    position_count = func.count(Position.id).label("position_count")
    result = await session.execute(
        select(Stock, position_count)
        .outerjoin(Position, Position.stock_id == Stock.id)
        .where(Stock.exchange_id == exchange_id)
        .group_by(Stock.id)
        .order_by(desc(position_count), Stock.symbol)
        .limit(limit)
    )
    return [(stock, count) for stock, count in result.all()]


async def delete_exchange(session: AsyncSession, exchange_id: str) -> bool:
    result = await session.execute(delete(Exchange).where(Exchange.id == exchange_id))
    return result.rowcount > 0
