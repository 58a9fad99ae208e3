"""SQLAlchemy ORM models for Piggy.

This module defines all database tables using SQLAlchemy 2.0 ORM style.
Uses async support via the asyncpg driver (aiosqlite in tests).

Usage:
    from piggy.database.orm import Position, Transaction
    from piggy.database.session import DbSession

    async def handler(db: DbSession):
        position = await db.get(Position, position_id)
"""

from __future__ import annotations

import enum
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    mapped_column,
    relationship,
)


# Naming convention for constraints and indexes (deterministic names for Alembic)
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Identifiers are opaque: "c" followed by 32 lowercase hex characters.
ID_PATTERN = r"^c[^\s-]{8,}$"

JsonList = JSON().with_variant(JSONB, "postgresql")


def generate_id() -> str:
    """Collision-resistant opaque identifier."""
    return "c" + uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PositionStatus(str, enum.Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"
    PARTIAL = "PARTIAL"


class PositionType(str, enum.Enum):
    LONG = "LONG"
    SHORT = "SHORT"


class TransactionType(str, enum.Enum):
    BUY = "BUY"
    SELL = "SELL"
    DIVIDEND = "DIVIDEND"
    SPLIT = "SPLIT"
    BONUS = "BONUS"


class Base(DeclarativeBase):
    """Base class for all ORM models with naming convention."""
    metadata = MetaData(naming_convention=NAMING_CONVENTION)


# =============================================================================
# USERS
# =============================================================================


class User(Base):
    """Portfolio owner."""
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(40), primary_key=True, default=generate_id)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[str | None] = mapped_column(String(255))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow)

    # Relationships
    positions: Mapped[list[Position]] = relationship(back_populates="user")
    watchlist: Mapped[list[Watchlist]] = relationship(back_populates="user", passive_deletes=True)


# =============================================================================
# EXCHANGES & STOCKS
# =============================================================================


class Exchange(Base):
    """Stock exchange (NASDAQ, XETRA, ...)."""
    __tablename__ = "exchanges"

    id: Mapped[str] = mapped_column(String(40), primary_key=True, default=generate_id)
    code: Mapped[str] = mapped_column(String(10), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    country: Mapped[str] = mapped_column(String(100), nullable=False)
    timezone: Mapped[str] = mapped_column(String(64), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow)

    stocks: Mapped[list[Stock]] = relationship(back_populates="exchange")

    __table_args__ = (
        Index("idx_exchanges_name", "name"),
    )


class Stock(Base):
    """Listed stock; symbol is unique per exchange."""
    __tablename__ = "stocks"

    id: Mapped[str] = mapped_column(String(40), primary_key=True, default=generate_id)
    symbol: Mapped[str] = mapped_column(String(10), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    sector: Mapped[str | None] = mapped_column(String(100))
    industry: Mapped[str | None] = mapped_column(String(100))
    market_cap: Mapped[Decimal | None] = mapped_column(Numeric(20, 2))
    exchange_id: Mapped[str] = mapped_column(ForeignKey("exchanges.id", ondelete="RESTRICT"), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow)

    exchange: Mapped[Exchange] = relationship(back_populates="stocks")
    price_history: Mapped[list[PriceHistory]] = relationship(back_populates="stock", passive_deletes=True)
    positions: Mapped[list[Position]] = relationship(back_populates="stock")
    watchlist: Mapped[list[Watchlist]] = relationship(back_populates="stock", passive_deletes=True)

    __table_args__ = (
        UniqueConstraint("symbol", "exchange_id", name="uq_stocks_symbol_exchange"),
        Index("idx_stocks_symbol", "symbol"),
        Index("idx_stocks_sector", "sector"),
    )


class PriceHistory(Base):
    """Daily OHLCV bar for a stock."""
    __tablename__ = "price_history"

    id: Mapped[str] = mapped_column(String(40), primary_key=True, default=generate_id)
    stock_id: Mapped[str] = mapped_column(ForeignKey("stocks.id", ondelete="CASCADE"), nullable=False)
    date: Mapped[date] = mapped_column(Date, nullable=False)
    open: Mapped[Decimal] = mapped_column(Numeric(16, 6), nullable=False)
    high: Mapped[Decimal] = mapped_column(Numeric(16, 6), nullable=False)
    low: Mapped[Decimal] = mapped_column(Numeric(16, 6), nullable=False)
    close: Mapped[Decimal] = mapped_column(Numeric(16, 6), nullable=False)
    volume: Mapped[int | None] = mapped_column(BigInteger)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    stock: Mapped[Stock] = relationship(back_populates="price_history")

    __table_args__ = (
        UniqueConstraint("stock_id", "date", name="uq_price_history_stock_date"),
        Index("idx_price_history_stock_date", "stock_id", "date"),
    )


# =============================================================================
# POSITIONS & TRANSACTIONS
# =============================================================================


class Position(Base):
    """A tracked trade (entry to exit) in one stock, owned by one user."""
    __tablename__ = "positions"

    id: Mapped[str] = mapped_column(String(40), primary_key=True, default=generate_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)
    stock_id: Mapped[str] = mapped_column(ForeignKey("stocks.id", ondelete="RESTRICT"), nullable=False)
    status: Mapped[str] = mapped_column(String(10), nullable=False, default=PositionStatus.OPEN.value)
    position_type: Mapped[str] = mapped_column(String(10), nullable=False, default=PositionType.LONG.value)

    # Entry
    open_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    entry_price: Mapped[Decimal] = mapped_column(Numeric(18, 6), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    buy_fees: Mapped[Decimal] = mapped_column(Numeric(18, 4), nullable=False, default=Decimal("0"))
    total_buy_value: Mapped[Decimal] = mapped_column(Numeric(20, 4), nullable=False)
    capital_allocated: Mapped[Decimal] = mapped_column(Numeric(20, 4), nullable=False)

    # Exit (set once, at close)
    close_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    exit_price: Mapped[Decimal | None] = mapped_column(Numeric(18, 6))
    total_sell_value: Mapped[Decimal | None] = mapped_column(Numeric(20, 4))
    sell_fees: Mapped[Decimal | None] = mapped_column(Numeric(18, 4))
    realized_pnl: Mapped[Decimal | None] = mapped_column(Numeric(20, 4))
    return_percentage: Mapped[Decimal | None] = mapped_column(Numeric(12, 6))

    # Risk management
    stop_loss_price: Mapped[Decimal | None] = mapped_column(Numeric(18, 6))
    take_profit_price: Mapped[Decimal | None] = mapped_column(Numeric(18, 6))
    risk_amount: Mapped[Decimal | None] = mapped_column(Numeric(18, 4))
    risk_percentage: Mapped[Decimal | None] = mapped_column(Numeric(8, 4))

    # Journal
    open_reason: Mapped[str] = mapped_column(Text, nullable=False)
    strategy: Mapped[str | None] = mapped_column(String(100))
    setup_type: Mapped[str | None] = mapped_column(String(100))
    timeframe: Mapped[str | None] = mapped_column(String(50))
    tags: Mapped[list[str]] = mapped_column(JsonList, nullable=False, default=list)
    notes: Mapped[str | None] = mapped_column(Text)
    trade_grade: Mapped[str | None] = mapped_column(String(10))
    lessons_learned: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow)

    user: Mapped[User] = relationship(back_populates="positions")
    stock: Mapped[Stock] = relationship(back_populates="positions")
    transactions: Mapped[list[Transaction]] = relationship(
        back_populates="position", order_by="Transaction.date"
    )

    __table_args__ = (
        CheckConstraint("status IN ('OPEN', 'CLOSED', 'PARTIAL')", name="status"),
        CheckConstraint("position_type IN ('LONG', 'SHORT')", name="position_type"),
        CheckConstraint("quantity > 0", name="quantity_positive"),
        Index("idx_positions_user_status", "user_id", "status"),
        Index("idx_positions_stock", "stock_id"),
        Index("idx_positions_open_date", "open_date"),
    )


class Transaction(Base):
    """Ledger entry attached to a position."""
    __tablename__ = "transactions"

    id: Mapped[str] = mapped_column(String(40), primary_key=True, default=generate_id)
    position_id: Mapped[str] = mapped_column(ForeignKey("positions.id", ondelete="RESTRICT"), nullable=False)
    type: Mapped[str] = mapped_column(String(10), nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(18, 6), nullable=False)
    total_value: Mapped[Decimal] = mapped_column(Numeric(20, 4), nullable=False)
    fees: Mapped[Decimal] = mapped_column(Numeric(18, 4), nullable=False, default=Decimal("0"))
    execution_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    broker_ref: Mapped[str | None] = mapped_column(String(100))
    order_type: Mapped[str | None] = mapped_column(String(50))
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow)

    position: Mapped[Position] = relationship(back_populates="transactions")

    __table_args__ = (
        CheckConstraint("type IN ('BUY', 'SELL', 'DIVIDEND', 'SPLIT', 'BONUS')", name="type"),
        CheckConstraint("quantity > 0", name="quantity_positive"),
        Index("idx_transactions_position", "position_id"),
        Index("idx_transactions_date", "date"),
    )


# =============================================================================
# WATCHLIST
# =============================================================================


class Watchlist(Base):
    """A stock watched by a user, optionally with a target price alert."""
    __tablename__ = "watchlist"

    id: Mapped[str] = mapped_column(String(40), primary_key=True, default=generate_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    stock_id: Mapped[str] = mapped_column(ForeignKey("stocks.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str | None] = mapped_column(String(255))
    notes: Mapped[str | None] = mapped_column(Text)
    target_price: Mapped[Decimal | None] = mapped_column(Numeric(18, 6))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow)

    user: Mapped[User] = relationship(back_populates="watchlist")
    stock: Mapped[Stock] = relationship(back_populates="watchlist")

    __table_args__ = (
        UniqueConstraint("user_id", "stock_id", name="uq_watchlist_user_stock"),
        Index("idx_watchlist_user_created", "user_id", "created_at"),
    )
