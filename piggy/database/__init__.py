"""Database module: SQLAlchemy async engine, sessions and ORM models."""

from .connection import (
    close_database,
    close_sqlalchemy_engine,
    create_tables,
    db_healthcheck,
    flush_or_conflict,
    get_async_database_url,
    get_engine,
    get_session,
    get_session_factory,
    init_database,
    init_sqlalchemy_engine,
    insert_for,
)
from .orm import (
    Base,
    Exchange,
    Position,
    PositionStatus,
    PositionType,
    PriceHistory,
    Stock,
    Transaction,
    TransactionType,
    User,
    Watchlist,
)


__all__ = [
    "init_sqlalchemy_engine",
    "close_sqlalchemy_engine",
    "create_tables",
    "db_healthcheck",
    "flush_or_conflict",
    "get_async_database_url",
    "get_engine",
    "get_session",
    "get_session_factory",
    "init_database",
    "close_database",
    "insert_for",
    "Base",
    "User",
    "Exchange",
    "Stock",
    "PriceHistory",
    "Position",
    "PositionStatus",
    "PositionType",
    "Transaction",
    "TransactionType",
    "Watchlist",
]
