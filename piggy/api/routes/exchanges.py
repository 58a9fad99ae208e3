"""Exchange REST routes."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Path, Query, status

from piggy.database.orm import ID_PATTERN
from piggy.database.session import DbSession
from piggy.schemas.common import ApiResponse
from piggy.schemas.exchange import (
    ExchangeCreateRequest,
    ExchangeListInput,
    ExchangeUpdateInput,
    ExchangeUpdateRequest,
)
from piggy.services import exchanges as exchanges_service


router = APIRouter(prefix="/api/exchanges", tags=["Exchanges"])

ExchangeId = Annotated[str, Path(pattern=ID_PATTERN, max_length=40)]


@router.post("", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
async def create_exchange(payload: ExchangeCreateRequest, db: DbSession) -> ApiResponse:
    return ApiResponse(data=await exchanges_service.create_exchange(db, payload))


@router.get("", response_model=ApiResponse)
async def list_exchanges(
    db: DbSession,
    is_active: bool | None = Query(None),
    country: str | None = Query(None),
    currency: str | None = Query(None, min_length=3, max_length=3),
) -> ApiResponse:
    """List exchanges by name, each with its stock count."""
    data = ExchangeListInput(is_active=is_active, country=country, currency=currency)
    return ApiResponse(data=await exchanges_service.list_exchanges(db, data))


@router.get("/code/{code}", response_model=ApiResponse)
async def get_exchange_by_code(
    code: Annotated[str, Path(min_length=1, max_length=10)], db: DbSession
) -> ApiResponse:
    return ApiResponse(data=await exchanges_service.get_exchange_by_code(db, code))


@router.get("/{exchange_id}", response_model=ApiResponse)
async def get_exchange(exchange_id: ExchangeId, db: DbSession) -> ApiResponse:
    return ApiResponse(data=await exchanges_service.get_exchange(db, exchange_id))


@router.get("/{exchange_id}/stats", response_model=ApiResponse)
async def get_exchange_stats(exchange_id: ExchangeId, db: DbSession) -> ApiResponse:
    return ApiResponse(data=await exchanges_service.get_exchange_stats(db, exchange_id))


@router.put("/{exchange_id}", response_model=ApiResponse)
async def update_exchange(
    exchange_id: ExchangeId, payload: ExchangeUpdateRequest, db: DbSession
) -> ApiResponse:
    data = ExchangeUpdateInput(id=exchange_id, **payload.model_dump(exclude_unset=True))
    return ApiResponse(data=await exchanges_service.update_exchange(db, data))


@router.delete("/{exchange_id}", response_model=ApiResponse)
async def delete_exchange(exchange_id: ExchangeId, db: DbSession) -> ApiResponse:
    """Delete an exchange without stocks."""
    await exchanges_service.delete_exchange(db, exchange_id)
    return ApiResponse(message="Exchange deleted successfully")
