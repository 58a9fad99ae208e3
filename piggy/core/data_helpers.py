"""
Centralized Data Conversion Helpers.

Numeric columns are stored as `Numeric` and come back from the database as
`Decimal`; these helpers move values between `Decimal` (domain arithmetic)
and `float` (JSON responses).

Usage:
    from piggy.core.data_helpers import safe_float, to_decimal
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any


def safe_float(value: Any, default: float | None = None) -> float | None:
    """
    Safely convert value to float.

    Handles None, NaN, Inf and conversion errors gracefully.

    Args:
        value: Any value to convert
        default: Default to return if conversion fails

    Returns:
        Float value or default if conversion fails
    """
    if value is None:
        return default
    try:
        f = float(value)
        # Check for NaN and Inf
        if f != f or f == float('inf') or f == float('-inf'):
            return default
        return f
    except (ValueError, TypeError):
        return default


def to_decimal(value: Any) -> Decimal | None:
    """Convert a number to Decimal via its string form (avoids binary float noise)."""
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None
