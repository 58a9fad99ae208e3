"""Derived financial metrics for positions and transactions.

Pure functions over `Decimal` values; no database access. Every monetary
figure a position carries is derived here:

    total_buy_value   = quantity * entry_price
    capital_allocated = total_buy_value + buy_fees
    total_sell_value  = quantity * exit_price
    realized_pnl      = total_sell_value - total_buy_value - buy_fees - sell_fees
    return_percentage = realized_pnl / capital_allocated * 100
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from piggy.core.data_helpers import to_decimal


ZERO = Decimal("0")
HUNDRED = Decimal("100")


@dataclass(frozen=True)
class EntryValues:
    total_buy_value: Decimal
    capital_allocated: Decimal


@dataclass(frozen=True)
class ExitValues:
    total_sell_value: Decimal
    realized_pnl: Decimal
    return_percentage: Decimal


def line_value(quantity: int, price: Decimal | float) -> Decimal:
    """Gross value of `quantity` units at `price`."""
    return Decimal(quantity) * to_decimal(price)


def entry_values(
    quantity: int, entry_price: Decimal | float, buy_fees: Decimal | float = ZERO
) -> EntryValues:
    """Values fixed when a position is opened."""
    total_buy_value = line_value(quantity, entry_price)
    return EntryValues(
        total_buy_value=total_buy_value,
        capital_allocated=total_buy_value + to_decimal(buy_fees),
    )


def exit_values(
    *,
    quantity: int,
    exit_price: Decimal | float,
    total_buy_value: Decimal | float,
    buy_fees: Decimal | float,
    sell_fees: Decimal | float,
    capital_allocated: Decimal | float,
) -> ExitValues:
    """Values computed once, when a position is closed."""
    total_sell_value = line_value(quantity, exit_price)
    realized_pnl = (
        total_sell_value
        - to_decimal(total_buy_value)
        - to_decimal(buy_fees)
        - to_decimal(sell_fees)
    )
    capital = to_decimal(capital_allocated)
    # capital_allocated > 0 because entry_price > 0 and quantity > 0
    return_percentage = realized_pnl / capital * HUNDRED if capital else ZERO
    return ExitValues(
        total_sell_value=total_sell_value,
        realized_pnl=realized_pnl,
        return_percentage=return_percentage,
    )


def total(values: Iterable[Any]) -> Decimal:
    """Sum of numeric values, treating None as zero."""
    return sum((to_decimal(v) or ZERO for v in values), ZERO)


def average(values: Iterable[Any]) -> Decimal:
    """Mean of numeric values (None counts as zero); zero for an empty input."""
    items = [to_decimal(v) or ZERO for v in values]
    if not items:
        return ZERO
    return sum(items, ZERO) / len(items)
