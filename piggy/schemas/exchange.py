"""Exchange schemas for API and RPC input validation."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from .common import EntityId


class ExchangeCreateRequest(BaseModel):
    """Create exchange request."""

    code: str = Field(..., min_length=1, max_length=10)
    name: str = Field(..., min_length=1, max_length=255)
    country: str = Field(..., min_length=1, max_length=100)
    timezone: str = Field(..., min_length=1, max_length=64)
    currency: str = Field(..., min_length=3, max_length=3)
    is_active: bool = True

    @field_validator("code", mode="before")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        return v.upper().strip() if isinstance(v, str) else v

    @field_validator("currency", mode="before")
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        return v.upper().strip() if isinstance(v, str) else v


class ExchangeUpdateRequest(BaseModel):
    """Update exchange request; omitted fields stay unchanged."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    country: str | None = Field(default=None, min_length=1, max_length=100)
    timezone: str | None = Field(default=None, min_length=1, max_length=64)
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    is_active: bool | None = None


class ExchangeUpdateInput(ExchangeUpdateRequest):
    id: EntityId


class ExchangeListInput(BaseModel):
    is_active: bool | None = None
    country: str | None = None
    currency: str | None = None


class ExchangeByCodeInput(BaseModel):
    code: str = Field(..., min_length=1, max_length=10)
