"""Lenient numeric parsing and es-AR number formatting.

Amounts reach the computation layer as Decimal columns, JSON numbers or
decimal strings. Malformed values never raise here: they become NaN (or the
caller's default) so a single bad row cannot break a dashboard render.
"""

import math
from decimal import Decimal


def to_float(value) -> float:
    """Parse a number or numeric string; anything else becomes NaN."""
    if value is None or isinstance(value, bool):
        return math.nan
    if isinstance(value, (int, float, Decimal)):
        return float(value)
    try:
        return float(str(value).strip())
    except ValueError:
        return math.nan


def safe_amount(value, default: float = 0.0) -> float:
    """Like `to_float`, but NaN and infinities collapse to `default`."""
    number = to_float(value)
    if math.isnan(number) or math.isinf(number):
        return default
    return number


def format_es_ar(value: float, decimals: int = 0) -> str:
    """Format with Argentine separators: 1234567.8 → '1.234.567,80' (decimals=2)."""
    formatted = f"{value:,.{decimals}f}"
    # Swap "," (grouping) and "." (decimal) via a placeholder
    return formatted.replace(",", "\x00").replace(".", ",").replace("\x00", ".")
