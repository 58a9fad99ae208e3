"""Watchlist operations and target-price alerts."""

from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from piggy.core.exceptions import ConflictError, NotFoundError
from piggy.core.logging import get_logger
from piggy.repositories import price_history_orm, stocks_orm, users_orm, watchlist_orm
from piggy.schemas.common import paginated
from piggy.schemas.watchlist import (
    WatchlistAddRequest,
    WatchlistBulkAddInput,
    WatchlistListInput,
    WatchlistPairInput,
    WatchlistUpdateInput,
)


logger = get_logger("services.watchlist")


async def _require_user(session: AsyncSession, user_id: str) -> None:
    if not await users_orm.get_user(session, user_id):
        raise NotFoundError(message="User not found")


async def add_to_watchlist(session: AsyncSession, data: WatchlistAddRequest) -> dict[str, Any]:
    await _require_user(session, data.user_id)
    if not await stocks_orm.existing_stock_ids(session, [data.stock_id]):
        raise NotFoundError(message="Stock not found")
    if await watchlist_orm.item_exists(session, data.user_id, data.stock_id):
        raise ConflictError(message="Stock is already in the watchlist")
    return await watchlist_orm.add_item(
        session,
        data.user_id,
        data.stock_id,
        name=data.name,
        notes=data.notes,
        target_price=data.target_price,
    )


async def list_watchlist(session: AsyncSession, data: WatchlistListInput) -> dict[str, Any]:
    items = await watchlist_orm.list_items(
        session, data.user_id, limit=data.limit, offset=data.offset
    )
    total = await watchlist_orm.count_items(session, data.user_id)
    return paginated("watchlist", items, total, data.limit, data.offset)


async def get_item(session: AsyncSession, item_id: str) -> dict[str, Any]:
    item = await watchlist_orm.get_item(session, item_id)
    if not item:
        raise NotFoundError(message="Watchlist item not found")
    return item


async def update_item(session: AsyncSession, data: WatchlistUpdateInput) -> dict[str, Any]:
    fields = data.model_dump(exclude={"id"}, exclude_unset=True, exclude_none=True)
    item = await watchlist_orm.update_item(session, data.id, **fields)
    if not item:
        raise NotFoundError(message="Watchlist item not found")
    return item


async def remove_item(session: AsyncSession, item_id: str) -> dict[str, Any]:
    if not await watchlist_orm.remove_item(session, item_id):
        raise NotFoundError(message="Watchlist item not found")
    return {"success": True}


async def remove_by_stock(session: AsyncSession, data: WatchlistPairInput) -> dict[str, Any]:
    if not await watchlist_orm.remove_item_by_stock(session, data.user_id, data.stock_id):
        raise NotFoundError(message="Watchlist item not found")
    return {"success": True}


async def is_watched(session: AsyncSession, data: WatchlistPairInput) -> dict[str, Any]:
    item = await watchlist_orm.get_item_by_stock(session, data.user_id, data.stock_id)
    return {"is_watched": item is not None, "watchlist_item": item}


async def get_price_alerts(session: AsyncSession, user_id: str) -> dict[str, Any]:
    """Items with a target price, flagged when the latest close reached it."""
    items = await watchlist_orm.list_items(session, user_id, with_target_only=True)
    latest = await price_history_orm.get_latest_prices(session, {i["stock_id"] for i in items})

    alerts = []
    for item in items:
        price = latest.get(item["stock_id"])
        current = price["close"] if price else None
        alerts.append(
            {
                **item,
                "current_price": current,
                "triggered": current is not None and current >= item["target_price"],
            }
        )
    return {
        "watchlist_with_alerts": alerts,
        "triggered_alerts": [a for a in alerts if a["triggered"]],
    }


async def get_summary(session: AsyncSession, user_id: str) -> dict[str, Any]:
    return {
        "total_items": await watchlist_orm.count_items(session, user_id),
        "items_with_alerts": await watchlist_orm.count_items(
            session, user_id, with_target_only=True
        ),
        "recent_items": await watchlist_orm.list_items(session, user_id, limit=5),
    }


async def bulk_add(session: AsyncSession, data: WatchlistBulkAddInput) -> dict[str, int]:
    """Watch many stocks at once; already-watched stocks are skipped."""
    await _require_user(session, data.user_id)
    missing = set(data.stock_ids) - await stocks_orm.existing_stock_ids(session, data.stock_ids)
    if missing:
        raise NotFoundError(message="Stock not found", details={"stock_ids": sorted(missing)})
    added = await watchlist_orm.add_items(session, data.user_id, data.stock_ids, data.notes)
    logger.info(f"Watchlist bulk add for user {data.user_id}: {added} added")
    return {"added": added}
