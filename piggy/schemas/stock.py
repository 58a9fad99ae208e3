"""Stock and price history schemas."""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, Field, field_validator, model_validator

from .common import EntityId


class StockCreateRequest(BaseModel):
    """Create stock request."""

    symbol: str = Field(..., min_length=1, max_length=10)
    name: str = Field(..., min_length=1, max_length=255)
    sector: str | None = Field(default=None, max_length=100)
    industry: str | None = Field(default=None, max_length=100)
    market_cap: float | None = Field(default=None, gt=0)
    exchange_id: EntityId
    is_active: bool = True

    @field_validator("symbol", mode="before")
    @classmethod
    def normalize_symbol(cls, v: str) -> str:
        return v.upper().strip() if isinstance(v, str) else v


class StockUpdateInput(BaseModel):
    id: EntityId
    name: str | None = Field(default=None, min_length=1, max_length=255)
    sector: str | None = Field(default=None, max_length=100)
    industry: str | None = Field(default=None, max_length=100)
    market_cap: float | None = Field(default=None, gt=0)
    is_active: bool | None = None


class StockListInput(BaseModel):
    exchange_id: EntityId | None = None
    sector: str | None = None
    search: str | None = Field(default=None, description="Case-insensitive match on symbol or name")
    is_active: bool | None = None
    limit: int = Field(default=50, ge=1, le=200)
    offset: int = Field(default=0, ge=0)


class StockBySymbolInput(BaseModel):
    symbol: str = Field(..., min_length=1, max_length=10)
    exchange_code: str | None = Field(default=None, max_length=10)


class StockIdInput(BaseModel):
    stock_id: EntityId


class PopularStocksInput(BaseModel):
    limit: int = Field(default=10, ge=1, le=50)


class PriceBar(BaseModel):
    """One daily OHLCV bar."""

    date: dt.date
    open: float = Field(..., gt=0)
    high: float = Field(..., gt=0)
    low: float = Field(..., gt=0)
    close: float = Field(..., gt=0)
    volume: int | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def check_range(self) -> "PriceBar":
        if self.low > self.high:
            raise ValueError("low must not exceed high")
        return self


class PriceHistoryInput(PriceBar):
    stock_id: EntityId


class BulkPriceHistoryInput(BaseModel):
    stock_id: EntityId
    data: list[PriceBar] = Field(..., max_length=5000)


class PriceHistoryQuery(BaseModel):
    stock_id: EntityId
    start_date: dt.date | None = None
    end_date: dt.date | None = None
    limit: int = Field(default=100, ge=1, le=1000)
