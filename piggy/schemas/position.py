"""Position schemas for the lifecycle operations."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from piggy.database.orm import PositionStatus, PositionType

from .common import EntityId


class PositionCreateRequest(BaseModel):
    """Open a new position."""

    user_id: EntityId
    stock_id: EntityId
    open_date: datetime
    entry_price: float = Field(..., gt=0)
    quantity: int = Field(..., gt=0)
    position_type: PositionType = PositionType.LONG
    buy_fees: float = Field(default=0, ge=0)
    stop_loss_price: float | None = Field(default=None, gt=0)
    take_profit_price: float | None = Field(default=None, gt=0)
    risk_amount: float | None = Field(default=None, gt=0)
    risk_percentage: float | None = Field(default=None, gt=0)
    open_reason: str = Field(..., min_length=1)
    strategy: str | None = Field(default=None, max_length=100)
    setup_type: str | None = Field(default=None, max_length=100)
    timeframe: str | None = Field(default=None, max_length=50)
    tags: list[str] = Field(default_factory=list)
    notes: str | None = None


class PositionCloseRequest(BaseModel):
    """Close an open position."""

    position_id: EntityId
    close_date: datetime
    exit_price: float = Field(..., gt=0)
    sell_fees: float = Field(default=0, ge=0)
    trade_grade: str | None = Field(default=None, max_length=10)
    lessons_learned: str | None = None


class PositionUpdateInput(BaseModel):
    """Journal/risk fields that may change while a position lives."""

    id: EntityId
    stop_loss_price: float | None = Field(default=None, gt=0)
    take_profit_price: float | None = Field(default=None, gt=0)
    strategy: str | None = Field(default=None, max_length=100)
    setup_type: str | None = Field(default=None, max_length=100)
    timeframe: str | None = Field(default=None, max_length=50)
    tags: list[str] | None = None
    notes: str | None = None


class PositionListInput(BaseModel):
    user_id: EntityId
    status: PositionStatus | None = None
    stock_id: EntityId | None = None
    limit: int = Field(default=50, ge=1, le=100)
    offset: int = Field(default=0, ge=0)
