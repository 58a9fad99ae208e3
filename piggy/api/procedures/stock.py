"""stock.* procedures."""

from piggy.api.rpc import mutation, query
from piggy.schemas.common import IdInput
from piggy.schemas.stock import (
    BulkPriceHistoryInput,
    PopularStocksInput,
    PriceHistoryInput,
    PriceHistoryQuery,
    StockBySymbolInput,
    StockCreateRequest,
    StockIdInput,
    StockListInput,
    StockUpdateInput,
)
from piggy.services import stocks


@mutation("stock.create", StockCreateRequest)
async def create(db, data: StockCreateRequest):
    return await stocks.create_stock(db, data)


@query("stock.list", StockListInput)
async def list_(db, data: StockListInput):
    return await stocks.list_stocks(db, data)


@query("stock.getById", IdInput)
async def get_by_id(db, data: IdInput):
    return await stocks.get_stock(db, data.id)


@query("stock.getBySymbol", StockBySymbolInput)
async def get_by_symbol(db, data: StockBySymbolInput):
    return await stocks.get_stock_by_symbol(db, data)


@mutation("stock.update", StockUpdateInput)
async def update(db, data: StockUpdateInput):
    return await stocks.update_stock(db, data)


@query("stock.getPriceHistory", PriceHistoryQuery)
async def get_price_history(db, data: PriceHistoryQuery):
    return await stocks.get_price_history(db, data)


@mutation("stock.addPriceHistory", PriceHistoryInput)
async def add_price_history(db, data: PriceHistoryInput):
    return await stocks.add_price_history(db, data)


@mutation("stock.addBulkPriceHistory", BulkPriceHistoryInput)
async def add_bulk_price_history(db, data: BulkPriceHistoryInput):
    return await stocks.add_bulk_price_history(db, data)


@query("stock.getLatestPrice", StockIdInput)
async def get_latest_price(db, data: StockIdInput):
    return await stocks.get_latest_price(db, data.stock_id)


@query("stock.getPopularStocks", PopularStocksInput)
async def get_popular_stocks(db, data: PopularStocksInput):
    return await stocks.get_popular_stocks(db, data.limit)


@mutation("stock.delete", IdInput)
async def delete(db, data: IdInput):
    return await stocks.delete_stock(db, data.id)
