"""Service description endpoint."""

from __future__ import annotations

from fastapi import APIRouter

from piggy.api import rpc
from piggy.core.config import settings


router = APIRouter()

FEATURES = [
    "User Management",
    "Exchange Management",
    "Stock Management with Price History",
    "Portfolio Position Tracking",
    "Transaction Logging",
    "Watchlist with Price Alerts",
]


@router.get("/api", summary="API information")
async def api_info() -> dict:
    """Static description of the service and its entry points."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "description": settings.description,
        "endpoints": {
            "health": "/health",
            "rpc": "/rpc",
            "users": "/api/users",
            "exchanges": "/api/exchanges",
        },
        "procedures": len(rpc.list_procedures()),
        "features": FEATURES,
    }
