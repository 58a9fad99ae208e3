"""Exchange catalogue operations."""

from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from piggy.core.exceptions import ConflictError, NotFoundError
from piggy.core.logging import get_logger
from piggy.repositories import exchanges_orm, stocks_orm
from piggy.schemas.exchange import (
    ExchangeCreateRequest,
    ExchangeListInput,
    ExchangeUpdateInput,
)


logger = get_logger("services.exchanges")


async def create_exchange(session: AsyncSession, data: ExchangeCreateRequest) -> dict[str, Any]:
    if await exchanges_orm.get_exchange_by_code(session, data.code):
        raise ConflictError(message=f"Exchange with code {data.code} already exists")
    exchange = await exchanges_orm.create_exchange(session, **data.model_dump())
    logger.info(f"Created exchange {exchange['code']}")
    return exchange


async def list_exchanges(session: AsyncSession, data: ExchangeListInput) -> list[dict[str, Any]]:
    return await exchanges_orm.list_exchanges(
        session, is_active=data.is_active, country=data.country, currency=data.currency
    )


async def get_exchange(session: AsyncSession, exchange_id: str) -> dict[str, Any]:
    """Exchange with stock count and its first 10 stocks by symbol."""
    exchange = await exchanges_orm.get_exchange(session, exchange_id)
    if not exchange:
        raise NotFoundError(message="Exchange not found")
    stocks, _ = await stocks_orm.list_stocks(session, exchange_id=exchange_id, limit=10, offset=0)
    exchange["stocks"] = stocks
    return exchange


async def get_exchange_by_code(session: AsyncSession, code: str) -> dict[str, Any]:
    exchange = await exchanges_orm.get_exchange_by_code(session, code)
    if not exchange:
        raise NotFoundError(message=f"Exchange {code.upper()} not found")
    return exchange


async def update_exchange(session: AsyncSession, data: ExchangeUpdateInput) -> dict[str, Any]:
    fields = data.model_dump(exclude={"id"}, exclude_unset=True, exclude_none=True)
    if "currency" in fields:
        fields["currency"] = fields["currency"].upper()
    exchange = await exchanges_orm.update_exchange(session, data.id, **fields)
    if not exchange:
        raise NotFoundError(message="Exchange not found")
    return exchange


async def get_exchange_stats(session: AsyncSession, exchange_id: str) -> dict[str, Any]:
    exchange = await exchanges_orm.get_exchange(session, exchange_id)
    if not exchange:
        raise NotFoundError(message="Exchange not found")

    top = await exchanges_orm.top_stocks_by_positions(session, exchange_id, limit=10)
    return {
        "exchange": exchange,
        "total_stocks": await exchanges_orm.count_stocks(session, exchange_id),
        "active_stocks": await exchanges_orm.count_stocks(session, exchange_id, active_only=True),
        "total_positions": await exchanges_orm.count_positions(session, exchange_id),
        "sectors": await exchanges_orm.list_sectors(session, exchange_id),
        "top_stocks": [
            {**stocks_orm.stock_to_dict(stock), "position_count": count}
            for stock, count in top
        ],
    }


async def delete_exchange(session: AsyncSession, exchange_id: str) -> dict[str, Any]:
    if not await exchanges_orm.exchange_exists(session, exchange_id):
        raise NotFoundError(message="Exchange not found")

    count = await exchanges_orm.count_stocks(session, exchange_id)
    if count:
        logger.warning(f"Refused to delete exchange {exchange_id} with {count} stocks")
        raise ConflictError(
            message="Cannot delete exchange with existing stocks", details={"stocks": count}
        )

    await exchanges_orm.delete_exchange(session, exchange_id)
    logger.info(f"Deleted exchange {exchange_id}")
    return {"success": True}
