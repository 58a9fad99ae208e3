"""Pydantic schemas for API and RPC input validation."""

from .common import (
    ApiResponse,
    EntityId,
    ErrorResponse,
    HealthResponse,
    IdInput,
    PaginationParams,
    paginated,
)


__all__ = [
    "ApiResponse",
    "EntityId",
    "ErrorResponse",
    "HealthResponse",
    "IdInput",
    "PaginationParams",
    "paginated",
]
