"""Stock catalogue and price history operations."""

from __future__ import annotations

from datetime import timedelta
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from piggy.core.data_helpers import to_decimal
from piggy.core.exceptions import ConflictError, NotFoundError
from piggy.core.logging import get_logger
from piggy.database.orm import utcnow
from piggy.repositories import exchanges_orm, price_history_orm, stocks_orm
from piggy.schemas.common import paginated
from piggy.schemas.stock import (
    BulkPriceHistoryInput,
    PriceHistoryInput,
    PriceHistoryQuery,
    StockBySymbolInput,
    StockCreateRequest,
    StockListInput,
    StockUpdateInput,
)


logger = get_logger("services.stocks")

POPULAR_WINDOW_DAYS = 30


async def _require_stock(session: AsyncSession, stock_id: str) -> None:
    if not await stocks_orm.existing_stock_ids(session, [stock_id]):
        raise NotFoundError(message="Stock not found")


async def create_stock(session: AsyncSession, data: StockCreateRequest) -> dict[str, Any]:
    if not await exchanges_orm.exchange_exists(session, data.exchange_id):
        raise NotFoundError(message="Exchange not found")
    fields = data.model_dump()
    fields["market_cap"] = to_decimal(fields["market_cap"])
    stock = await stocks_orm.create_stock(session, **fields)
    logger.info(f"Created stock {stock['symbol']} on {stock['exchange']['code']}")
    return stock


async def list_stocks(session: AsyncSession, data: StockListInput) -> dict[str, Any]:
    stocks, total = await stocks_orm.list_stocks(
        session,
        exchange_id=data.exchange_id,
        sector=data.sector,
        search=data.search,
        is_active=data.is_active,
        limit=data.limit,
        offset=data.offset,
    )
    return paginated("stocks", stocks, total, data.limit, data.offset)


async def get_stock(session: AsyncSession, stock_id: str) -> dict[str, Any]:
    stock = await stocks_orm.get_stock(session, stock_id)
    if not stock:
        raise NotFoundError(message="Stock not found")
    return stock


async def get_stock_by_symbol(session: AsyncSession, data: StockBySymbolInput) -> dict[str, Any]:
    stock = await stocks_orm.get_stock_by_symbol(session, data.symbol, data.exchange_code)
    if not stock:
        raise NotFoundError(message=f"Stock {data.symbol.upper()} not found")
    return stock


async def update_stock(session: AsyncSession, data: StockUpdateInput) -> dict[str, Any]:
    fields = data.model_dump(exclude={"id"}, exclude_unset=True, exclude_none=True)
    if "market_cap" in fields:
        fields["market_cap"] = to_decimal(fields["market_cap"])
    stock = await stocks_orm.update_stock(session, data.id, **fields)
    if not stock:
        raise NotFoundError(message="Stock not found")
    return stock


async def get_price_history(session: AsyncSession, data: PriceHistoryQuery) -> list[dict[str, Any]]:
    return await price_history_orm.get_prices(
        session,
        data.stock_id,
        start_date=data.start_date,
        end_date=data.end_date,
        limit=data.limit,
    )


async def add_price_history(session: AsyncSession, data: PriceHistoryInput) -> dict[str, Any]:
    """Record one daily bar, replacing any bar already stored for that date."""
    await _require_stock(session, data.stock_id)
    return await price_history_orm.upsert_price(
        session, data.stock_id, data.model_dump(exclude={"stock_id"})
    )


async def add_bulk_price_history(session: AsyncSession, data: BulkPriceHistoryInput) -> dict[str, int]:
    await _require_stock(session, data.stock_id)
    bars = [bar.model_dump() for bar in data.data]
    created = await price_history_orm.insert_prices(session, data.stock_id, bars)
    if created < len(bars):
        logger.info(f"Price import for {data.stock_id}: skipped {len(bars) - created} existing dates")
    return {"created": created}


async def get_latest_price(session: AsyncSession, stock_id: str) -> dict[str, Any] | None:
    return await price_history_orm.get_latest_price(session, stock_id)


async def get_popular_stocks(session: AsyncSession, limit: int = 10) -> list[dict[str, Any]]:
    """Stocks ranked by positions recorded in the trailing window."""
    since = utcnow() - timedelta(days=POPULAR_WINDOW_DAYS)
    return await stocks_orm.popular_stocks(session, since=since, limit=limit)


async def delete_stock(session: AsyncSession, stock_id: str) -> dict[str, Any]:
    await _require_stock(session, stock_id)

    count = await stocks_orm.count_positions(session, stock_id)
    if count:
        logger.warning(f"Refused to delete stock {stock_id} with {count} positions")
        raise ConflictError(
            message="Cannot delete stock with existing positions", details={"positions": count}
        )

    await stocks_orm.delete_stock(session, stock_id)
    logger.info(f"Deleted stock {stock_id}")
    return {"success": True}
