"""exchange.* procedures."""

from piggy.api.rpc import mutation, query
from piggy.schemas.common import IdInput
from piggy.schemas.exchange import (
    ExchangeByCodeInput,
    ExchangeCreateRequest,
    ExchangeListInput,
    ExchangeUpdateInput,
)
from piggy.services import exchanges


@mutation("exchange.create", ExchangeCreateRequest)
async def create(db, data: ExchangeCreateRequest):
    return await exchanges.create_exchange(db, data)


@query("exchange.list", ExchangeListInput)
async def list_(db, data: ExchangeListInput):
    return await exchanges.list_exchanges(db, data)


@query("exchange.getById", IdInput)
async def get_by_id(db, data: IdInput):
    return await exchanges.get_exchange(db, data.id)


@query("exchange.getByCode", ExchangeByCodeInput)
async def get_by_code(db, data: ExchangeByCodeInput):
    return await exchanges.get_exchange_by_code(db, data.code)


@mutation("exchange.update", ExchangeUpdateInput)
async def update(db, data: ExchangeUpdateInput):
    return await exchanges.update_exchange(db, data)


@query("exchange.getStats", IdInput)
async def get_stats(db, data: IdInput):
    return await exchanges.get_exchange_stats(db, data.id)


@mutation("exchange.delete", IdInput)
async def delete(db, data: IdInput):
    return await exchanges.delete_exchange(db, data.id)
