"""transaction.* procedures."""

from piggy.api.rpc import mutation, query
from piggy.schemas.common import IdInput
from piggy.schemas.transaction import (
    PositionIdInput,
    TransactionBulkCreateInput,
    TransactionCreateRequest,
    TransactionFilter,
    TransactionListInput,
    TransactionUpdateInput,
)
from piggy.services import transactions


@mutation("transaction.create", TransactionCreateRequest)
async def create(db, data: TransactionCreateRequest):
    return await transactions.create_transaction(db, data)


@query("transaction.getById", IdInput)
async def get_by_id(db, data: IdInput):
    return await transactions.get_transaction(db, data.id)


@query("transaction.getByPosition", PositionIdInput)
async def get_by_position(db, data: PositionIdInput):
    return await transactions.get_by_position(db, data.position_id)


@query("transaction.list", TransactionListInput)
async def list_(db, data: TransactionListInput):
    return await transactions.list_transactions(db, data)


@mutation("transaction.update", TransactionUpdateInput)
async def update(db, data: TransactionUpdateInput):
    return await transactions.update_transaction(db, data)


@query("transaction.getSummary", TransactionFilter)
async def get_summary(db, data: TransactionFilter):
    return await transactions.get_summary(db, data)


@mutation("transaction.createBulk", TransactionBulkCreateInput)
async def create_bulk(db, data: TransactionBulkCreateInput):
    return await transactions.create_bulk(db, data)


@mutation("transaction.delete", IdInput)
async def delete(db, data: IdInput):
    return await transactions.delete_transaction(db, data.id)
