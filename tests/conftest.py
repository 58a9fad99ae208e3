"""Pytest configuration and fixtures.

Tests run against an in-memory SQLite database (aiosqlite driver). Each
fixture builds a fresh engine, so every test starts from empty tables.
"""

from __future__ import annotations

import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import datetime  # noqa: E402
from typing import Any, AsyncGenerator, Generator  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

import piggy.database.connection as db_conn  # noqa: E402


@pytest.fixture(scope="function", autouse=True)
def reset_engine():
    """Drop references to any engine left over from a previous test."""
    db_conn._engine = None
    db_conn._session_factory = None
    yield
    db_conn._engine = None
    db_conn._session_factory = None


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """A session on a fresh database with all tables created."""
    await db_conn.init_sqlalchemy_engine()
    await db_conn.create_tables()
    factory = await db_conn.get_session_factory()
    async with factory() as session:
        yield session
    await db_conn.close_sqlalchemy_engine()


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """Test client; the lifespan creates the tables on startup."""
    from piggy.main import create_app

    app = create_app()
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


@pytest_asyncio.fixture
async def async_client() -> AsyncGenerator[AsyncClient, None]:
    """Async test client against a database prepared in the test's loop."""
    from piggy.api.app import create_api_app

    await db_conn.init_sqlalchemy_engine()
    await db_conn.create_tables()
    app = create_api_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    await db_conn.close_sqlalchemy_engine()


# ============================================================================
# Domain fixtures (service layer)
# ============================================================================


@pytest_asyncio.fixture
async def user(db_session: AsyncSession) -> dict[str, Any]:
    from piggy.schemas.user import UserCreateRequest
    from piggy.services import users

    return await users.create_user(
        db_session, UserCreateRequest(email="trader@example.com", name="Trader")
    )


@pytest_asyncio.fixture
async def exchange(db_session: AsyncSession) -> dict[str, Any]:
    from piggy.schemas.exchange import ExchangeCreateRequest
    from piggy.services import exchanges

    return await exchanges.create_exchange(
        db_session,
        ExchangeCreateRequest(
            code="nasdaq",
            name="NASDAQ",
            country="United States",
            timezone="America/New_York",
            currency="usd",
        ),
    )


@pytest_asyncio.fixture
async def stock(db_session: AsyncSession, exchange: dict[str, Any]) -> dict[str, Any]:
    from piggy.schemas.stock import StockCreateRequest
    from piggy.services import stocks

    return await stocks.create_stock(
        db_session,
        StockCreateRequest(
            symbol="aapl",
            name="Apple Inc.",
            sector="Technology",
            industry="Consumer Electronics",
            exchange_id=exchange["id"],
        ),
    )


@pytest.fixture
def open_position_input(user: dict[str, Any], stock: dict[str, Any]):
    """Factory for position.create inputs with overridable fields."""
    from piggy.schemas.position import PositionCreateRequest

    def _make(**overrides: Any) -> PositionCreateRequest:
        fields: dict[str, Any] = {
            "user_id": user["id"],
            "stock_id": stock["id"],
            "open_date": datetime(2024, 1, 15, 10, 0),
            "entry_price": 100,
            "quantity": 10,
            "buy_fees": 5,
            "open_reason": "Breakout above resistance",
            "tags": ["breakout", "tech"],
        }
        fields.update(overrides)
        return PositionCreateRequest(**fields)

    return _make
