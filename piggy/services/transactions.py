"""Transaction ledger operations."""

from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from piggy.core.data_helpers import to_decimal
from piggy.core.exceptions import NotFoundError
from piggy.core.logging import get_logger
from piggy.repositories import positions_orm, transactions_orm
from piggy.repositories.transactions_orm import transaction_to_dict
from piggy.schemas.common import paginated
from piggy.schemas.transaction import (
    TransactionBulkCreateInput,
    TransactionCreateRequest,
    TransactionFilter,
    TransactionListInput,
    TransactionUpdateInput,
)
from piggy.services import metrics


logger = get_logger("services.transactions")


def _row(data: TransactionCreateRequest) -> dict[str, Any]:
    return {
        "position_id": data.position_id,
        "type": data.type.value,
        "date": data.date,
        "quantity": data.quantity,
        "price": to_decimal(data.price),
        "total_value": metrics.line_value(data.quantity, data.price),
        "fees": to_decimal(data.fees),
        "execution_time": data.execution_time,
        "broker_ref": data.broker_ref,
        "order_type": data.order_type,
        "notes": data.notes,
    }


async def _require_positions(session: AsyncSession, position_ids: set[str]) -> None:
    missing = position_ids - await positions_orm.existing_position_ids(session, position_ids)
    if missing:
        raise NotFoundError(
            message="Position not found", details={"position_ids": sorted(missing)}
        )


async def create_transaction(session: AsyncSession, data: TransactionCreateRequest) -> dict[str, Any]:
    await _require_positions(session, {data.position_id})
    txn = await transactions_orm.add_transaction(session, **_row(data))
    logger.info(f"Recorded {data.type.value} transaction on position {data.position_id}")
    return txn


async def get_transaction(session: AsyncSession, transaction_id: str) -> dict[str, Any]:
    txn = await transactions_orm.get_transaction(session, transaction_id)
    if not txn:
        raise NotFoundError(message="Transaction not found")
    return transaction_to_dict(txn)


async def get_by_position(session: AsyncSession, position_id: str) -> list[dict[str, Any]]:
    return await transactions_orm.list_for_position(session, position_id)


async def list_transactions(session: AsyncSession, data: TransactionListInput) -> dict[str, Any]:
    transactions, total = await transactions_orm.list_transactions(
        session,
        limit=data.limit,
        offset=data.offset,
        position_id=data.position_id,
        user_id=data.user_id,
        type=data.type.value if data.type else None,
        start_date=data.start_date,
        end_date=data.end_date,
    )
    return paginated("transactions", transactions, total, data.limit, data.offset)


async def update_transaction(session: AsyncSession, data: TransactionUpdateInput) -> dict[str, Any]:
    """Merge provided fields; total_value follows quantity and price."""
    txn = await transactions_orm.get_transaction(session, data.id)
    if not txn:
        raise NotFoundError(message="Transaction not found")

    fields = data.model_dump(exclude={"id"}, exclude_unset=True, exclude_none=True)
    for key in ("price", "fees"):
        if key in fields:
            fields[key] = to_decimal(fields[key])
    for key, value in fields.items():
        setattr(txn, key, value)
    if "quantity" in fields or "price" in fields:
        txn.total_value = metrics.line_value(txn.quantity, txn.price)

    await session.flush()
    return transaction_to_dict(txn)


async def get_summary(session: AsyncSession, data: TransactionFilter) -> dict[str, Any]:
    """Totals and per-type breakdown over the filtered transactions."""
    filters = data.model_dump(exclude_none=True)
    by_type = await transactions_orm.summarize_by_type(session, **filters)
    recent = await transactions_orm.recent_transactions(session, limit=10, **filters)
    return {
        "summary": {
            "total_transactions": sum(row["count"] for row in by_type),
            "total_volume": float(metrics.total(row["total_value"] for row in by_type)),
            "total_fees": float(metrics.total(row["total_fees"] for row in by_type)),
            "total_shares": int(sum(row["total_shares"] for row in by_type)),
        },
        "by_type": [
            {
                "type": row["type"],
                "count": row["count"],
                "total_value": float(row["total_value"]),
                "total_fees": float(row["total_fees"]),
            }
            for row in by_type
        ],
        "recent_transactions": recent,
    }


async def create_bulk(session: AsyncSession, data: TransactionBulkCreateInput) -> dict[str, int]:
    """Insert many transactions; conflicting rows are skipped and only counted."""
    if not data.transactions:
        return {"created": 0}
    await _require_positions(session, {t.position_id for t in data.transactions})
    created = await transactions_orm.insert_transactions(
        session, [_row(t) for t in data.transactions]
    )
    skipped = len(data.transactions) - created
    if skipped:
        logger.info(f"Bulk transaction insert skipped {skipped} rows")
    return {"created": created}


async def delete_transaction(session: AsyncSession, transaction_id: str) -> dict[str, Any]:
    if not await transactions_orm.delete_transaction(session, transaction_id):
        raise NotFoundError(message="Transaction not found")
    logger.info(f"Deleted transaction {transaction_id}")
    return {"success": True}
