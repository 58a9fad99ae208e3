"""Watchlist schemas.

Pydantic models for watchlist-related requests.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from .common import EntityId, PaginationParams


class WatchlistAddRequest(BaseModel):
    """Add a stock to a user's watchlist."""
    user_id: EntityId
    stock_id: EntityId
    name: str | None = Field(None, max_length=255)
    notes: str | None = None
    target_price: float | None = Field(None, gt=0)


class WatchlistUpdateInput(BaseModel):
    """Update a watchlist item; omitted fields stay unchanged."""
    id: EntityId
    name: str | None = Field(None, max_length=255)
    notes: str | None = None
    target_price: float | None = Field(None, gt=0)


class WatchlistListInput(PaginationParams):
    user_id: EntityId


class WatchlistPairInput(BaseModel):
    """A (user, stock) pair, the watchlist's natural key."""
    user_id: EntityId
    stock_id: EntityId


class WatchlistBulkAddInput(BaseModel):
    user_id: EntityId
    stock_ids: list[EntityId] = Field(..., max_length=500)
    notes: str | None = None
