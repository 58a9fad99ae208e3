"""Transaction schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from piggy.database.orm import TransactionType

from .common import EntityId


class TransactionCreateRequest(BaseModel):
    """Manual ledger entry (dividends, splits, bonuses, corrections)."""

    position_id: EntityId
    type: TransactionType
    date: datetime
    quantity: int = Field(..., gt=0)
    price: float = Field(..., gt=0)
    fees: float = Field(default=0, ge=0)
    execution_time: datetime | None = None
    broker_ref: str | None = Field(default=None, max_length=100)
    order_type: str | None = Field(default=None, max_length=50)
    notes: str | None = None


class TransactionBulkCreateInput(BaseModel):
    transactions: list[TransactionCreateRequest] = Field(..., max_length=1000)


class TransactionUpdateInput(BaseModel):
    id: EntityId
    date: datetime | None = None
    quantity: int | None = Field(default=None, gt=0)
    price: float | None = Field(default=None, gt=0)
    fees: float | None = Field(default=None, ge=0)
    execution_time: datetime | None = None
    broker_ref: str | None = Field(default=None, max_length=100)
    order_type: str | None = Field(default=None, max_length=50)
    notes: str | None = None


class TransactionFilter(BaseModel):
    position_id: EntityId | None = None
    user_id: EntityId | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None


class TransactionListInput(TransactionFilter):
    type: TransactionType | None = None
    limit: int = Field(default=50, ge=1, le=100)
    offset: int = Field(default=0, ge=0)


class PositionIdInput(BaseModel):
    position_id: EntityId
