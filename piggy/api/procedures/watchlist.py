"""watchlist.* procedures."""

from piggy.api.rpc import mutation, query
from piggy.schemas.common import IdInput
from piggy.schemas.user import UserIdInput
from piggy.schemas.watchlist import (
    WatchlistAddRequest,
    WatchlistBulkAddInput,
    WatchlistListInput,
    WatchlistPairInput,
    WatchlistUpdateInput,
)
from piggy.services import watchlist


@mutation("watchlist.add", WatchlistAddRequest)
async def add(db, data: WatchlistAddRequest):
    return await watchlist.add_to_watchlist(db, data)


@query("watchlist.list", WatchlistListInput)
async def list_(db, data: WatchlistListInput):
    return await watchlist.list_watchlist(db, data)


@query("watchlist.getById", IdInput)
async def get_by_id(db, data: IdInput):
    return await watchlist.get_item(db, data.id)


@mutation("watchlist.update", WatchlistUpdateInput)
async def update(db, data: WatchlistUpdateInput):
    return await watchlist.update_item(db, data)


@mutation("watchlist.remove", IdInput)
async def remove(db, data: IdInput):
    return await watchlist.remove_item(db, data.id)


@mutation("watchlist.removeByStock", WatchlistPairInput)
async def remove_by_stock(db, data: WatchlistPairInput):
    return await watchlist.remove_by_stock(db, data)


@query("watchlist.isWatched", WatchlistPairInput)
async def is_watched(db, data: WatchlistPairInput):
    return await watchlist.is_watched(db, data)


@query("watchlist.getPriceAlerts", UserIdInput)
async def get_price_alerts(db, data: UserIdInput):
    return await watchlist.get_price_alerts(db, data.user_id)


@query("watchlist.getSummary", UserIdInput)
async def get_summary(db, data: UserIdInput):
    return await watchlist.get_summary(db, data.user_id)


@mutation("watchlist.bulkAdd", WatchlistBulkAddInput)
async def bulk_add(db, data: WatchlistBulkAddInput):
    return await watchlist.bulk_add(db, data)
