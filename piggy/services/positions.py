"""Position lifecycle: open, close, update, delete and listing.

A position is opened together with its BUY transaction and closed together
with its SELL transaction; each pair is written in the caller's database
transaction. Closing locks the row and flips the status with a conditional
UPDATE, so concurrent closes of the same position cannot both succeed.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from piggy.core.data_helpers import to_decimal
from piggy.core.exceptions import ConflictError, InvalidStateError, NotFoundError
from piggy.core.logging import get_logger
from piggy.database.orm import PositionStatus, TransactionType
from piggy.repositories import positions_orm, stocks_orm, transactions_orm, users_orm
from piggy.schemas.common import paginated
from piggy.schemas.position import (
    PositionCloseRequest,
    PositionCreateRequest,
    PositionListInput,
    PositionUpdateInput,
)
from piggy.services import metrics


logger = get_logger("services.positions")

_RISK_FIELDS = ("stop_loss_price", "take_profit_price", "risk_amount", "risk_percentage")


async def get_position(session: AsyncSession, position_id: str) -> dict[str, Any]:
    position = await positions_orm.get_position_full(session, position_id)
    if not position:
        raise NotFoundError(message="Position not found")
    return position


async def create_position(session: AsyncSession, data: PositionCreateRequest) -> dict[str, Any]:
    """Open a position and record its BUY transaction."""
    if not await users_orm.get_user(session, data.user_id):
        raise NotFoundError(message="User not found")
    if not await stocks_orm.existing_stock_ids(session, [data.stock_id]):
        raise NotFoundError(message="Stock not found")

    entry = metrics.entry_values(data.quantity, data.entry_price, data.buy_fees)
    buy_fees = to_decimal(data.buy_fees)

    position = await positions_orm.insert_position(
        session,
        user_id=data.user_id,
        stock_id=data.stock_id,
        status=PositionStatus.OPEN.value,
        position_type=data.position_type.value,
        open_date=data.open_date,
        entry_price=to_decimal(data.entry_price),
        quantity=data.quantity,
        buy_fees=buy_fees,
        total_buy_value=entry.total_buy_value,
        capital_allocated=entry.capital_allocated,
        open_reason=data.open_reason,
        strategy=data.strategy,
        setup_type=data.setup_type,
        timeframe=data.timeframe,
        tags=list(data.tags),
        notes=data.notes,
        **{field: to_decimal(getattr(data, field)) for field in _RISK_FIELDS},
    )
    await transactions_orm.add_transaction(
        session,
        position_id=position.id,
        type=TransactionType.BUY.value,
        date=data.open_date,
        quantity=data.quantity,
        price=to_decimal(data.entry_price),
        total_value=entry.total_buy_value,
        fees=buy_fees,
    )

    logger.info(
        f"Opened position {position.id}",
        extra={"user_id": data.user_id, "stock_id": data.stock_id, "quantity": data.quantity},
    )
    return await get_position(session, position.id)


async def close_position(session: AsyncSession, data: PositionCloseRequest) -> dict[str, Any]:
    """Close an OPEN position at `exit_price` and record its SELL transaction."""
    position = await positions_orm.lock_position(session, data.position_id)
    if not position:
        raise NotFoundError(message="Position not found")
    if position.status != PositionStatus.OPEN.value:
        raise InvalidStateError(message="Position is not open")

    closing = metrics.exit_values(
        quantity=position.quantity,
        exit_price=data.exit_price,
        total_buy_value=position.total_buy_value,
        buy_fees=position.buy_fees,
        sell_fees=data.sell_fees,
        capital_allocated=position.capital_allocated,
    )
    sell_fees = to_decimal(data.sell_fees)

    closed = await positions_orm.mark_closed(
        session,
        position.id,
        close_date=data.close_date,
        exit_price=to_decimal(data.exit_price),
        sell_fees=sell_fees,
        total_sell_value=closing.total_sell_value,
        realized_pnl=closing.realized_pnl,
        return_percentage=closing.return_percentage,
        trade_grade=data.trade_grade,
        lessons_learned=data.lessons_learned,
    )
    if not closed:
        # Another request closed it between the lock and the update
        raise InvalidStateError(message="Position is not open")

    await transactions_orm.add_transaction(
        session,
        position_id=position.id,
        type=TransactionType.SELL.value,
        date=data.close_date,
        quantity=position.quantity,
        price=to_decimal(data.exit_price),
        total_value=closing.total_sell_value,
        fees=sell_fees,
    )

    logger.info(
        f"Closed position {position.id}",
        extra={"realized_pnl": float(closing.realized_pnl)},
    )
    return await get_position(session, position.id)


async def update_position(session: AsyncSession, data: PositionUpdateInput) -> dict[str, Any]:
    """Merge journal and risk fields; derived values are never recomputed."""
    fields = data.model_dump(exclude={"id"}, exclude_unset=True, exclude_none=True)
    for key in ("stop_loss_price", "take_profit_price"):
        if key in fields:
            fields[key] = to_decimal(fields[key])

    if not await positions_orm.update_position(session, data.id, **fields):
        raise NotFoundError(message="Position not found")
    return await get_position(session, data.id)


async def delete_position(session: AsyncSession, position_id: str) -> dict[str, Any]:
    position = await positions_orm.lock_position(session, position_id)
    if not position:
        raise NotFoundError(message="Position not found")

    count = await positions_orm.count_transactions(session, position_id)
    if count:
        logger.warning(f"Refused to delete position {position_id} with {count} transactions")
        raise ConflictError(
            message="Cannot delete position with existing transactions",
            details={"transactions": count},
        )

    await positions_orm.delete_position(session, position_id)
    logger.info(f"Deleted position {position_id}")
    return {"success": True}


async def list_positions(session: AsyncSession, data: PositionListInput) -> dict[str, Any]:
    positions, total = await positions_orm.list_positions(
        session,
        user_id=data.user_id,
        status=data.status.value if data.status else None,
        stock_id=data.stock_id,
        limit=data.limit,
        offset=data.offset,
    )
    return paginated("positions", positions, total, data.limit, data.offset)


async def get_open_summary(session: AsyncSession, user_id: str) -> dict[str, Any]:
    """Totals over a user's OPEN positions."""
    positions = await positions_orm.find_positions(
        session, user_id=user_id, status=PositionStatus.OPEN.value
    )
    return {
        "total_positions": len(positions),
        "total_invested": float(metrics.total(p.capital_allocated for p in positions)),
        "total_value": float(metrics.total(p.total_buy_value for p in positions)),
        "positions": [positions_orm.position_to_dict(p) for p in positions],
    }
