"""user.* procedures."""

from piggy.api.rpc import mutation, query
from piggy.schemas.common import IdInput
from piggy.schemas.user import (
    UserByEmailInput,
    UserCreateRequest,
    UserIdInput,
    UserListInput,
    UserStatsInput,
    UserUpdateInput,
)
from piggy.services import users


@mutation("user.create", UserCreateRequest)
async def create(db, data: UserCreateRequest):
    return await users.create_user(db, data)


@query("user.list", UserListInput)
async def list_(db, data: UserListInput):
    return await users.list_users(db, data)


@query("user.getById", IdInput)
async def get_by_id(db, data: IdInput):
    return await users.get_user(db, data.id)


@query("user.getByEmail", UserByEmailInput)
async def get_by_email(db, data: UserByEmailInput):
    return await users.get_user_by_email(db, data.email)


@mutation("user.update", UserUpdateInput)
async def update(db, data: UserUpdateInput):
    return await users.update_user(db, data)


@query("user.getPortfolioSummary", UserIdInput)
async def get_portfolio_summary(db, data: UserIdInput):
    return await users.get_portfolio_summary(db, data.user_id)


@query("user.getStats", UserStatsInput)
async def get_stats(db, data: UserStatsInput):
    return await users.get_user_stats(db, data)


@mutation("user.delete", IdInput)
async def delete(db, data: IdInput):
    return await users.delete_user(db, data.id)
