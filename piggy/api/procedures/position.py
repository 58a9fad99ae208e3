"""position.* procedures."""

from piggy.api.rpc import mutation, query
from piggy.schemas.common import IdInput
from piggy.schemas.position import (
    PositionCloseRequest,
    PositionCreateRequest,
    PositionListInput,
    PositionUpdateInput,
)
from piggy.schemas.user import UserIdInput
from piggy.services import positions


@mutation("position.create", PositionCreateRequest)
async def create(db, data: PositionCreateRequest):
    return await positions.create_position(db, data)


@mutation("position.close", PositionCloseRequest)
async def close(db, data: PositionCloseRequest):
    return await positions.close_position(db, data)


@query("position.getById", IdInput)
async def get_by_id(db, data: IdInput):
    return await positions.get_position(db, data.id)


@mutation("position.update", PositionUpdateInput)
async def update(db, data: PositionUpdateInput):
    return await positions.update_position(db, data)


@mutation("position.delete", IdInput)
async def delete(db, data: IdInput):
    return await positions.delete_position(db, data.id)


@query("position.list", PositionListInput)
async def list_(db, data: PositionListInput):
    return await positions.list_positions(db, data)


@query("position.openSummary", UserIdInput)
async def open_summary(db, data: UserIdInput):
    return await positions.get_open_summary(db, data.user_id)
