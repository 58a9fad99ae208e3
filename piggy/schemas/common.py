"""Common schemas: identifiers, pagination and response envelopes."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Dict, Optional

from pydantic import BaseModel, Field

from piggy.database.orm import ID_PATTERN


EntityId = Annotated[
    str,
    Field(pattern=ID_PATTERN, max_length=40, description="Opaque entity identifier"),
]


class ErrorResponse(BaseModel):
    """Standard error envelope."""

    success: bool = Field(default=False)
    error: str = Field(..., description="Error code", examples=["NOT_FOUND"])
    message: str = Field(..., description="Human-readable error message")
    status: int = Field(..., description="HTTP status code")
    details: Optional[Dict[str, Any]] = Field(
        default=None, description="Additional error details"
    )

    model_config = {"json_schema_extra": {"example": {"success": False, "error": "NOT_FOUND", "message": "Position not found", "status": 404}}}


class ApiResponse(BaseModel):
    """Success envelope used by the REST surface."""

    success: bool = True
    data: Any = None
    message: str | None = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="ok when the API answers", examples=["ok"])
    version: str = Field(..., description="Application version")
    timestamp: datetime
    checks: Dict[str, bool] = Field(default_factory=dict, description="Individual service health checks")


class IdInput(BaseModel):
    """Single-entity lookup."""

    id: EntityId


class PaginationParams(BaseModel):
    """Pagination parameters."""

    limit: int = Field(default=50, ge=1, le=100, description="Number of items to return")
    offset: int = Field(default=0, ge=0, description="Number of items to skip")


def paginated(
    key: str, items: list[Any], total: int, limit: int, offset: int
) -> dict[str, Any]:
    """Build the `{<key>, total, has_more, pagination}` list result."""
    return {
        key: items,
        "total": total,
        "has_more": offset + limit < total,
        "pagination": {"limit": limit, "offset": offset, "total": total},
    }
