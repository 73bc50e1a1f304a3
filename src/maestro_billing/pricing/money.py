"""Money parsing and formatting.

Backend records carry prices as text ("12.50"); user input arrives as text
too. Everything inside the engine is a ``Decimal``.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

ZERO = Decimal("0")
CENT = Decimal("0.01")


def parse_money(value: Any) -> Decimal:
    """Convert a textual or numeric amount to ``Decimal``.

    Never raises. ``None``, empty strings, non-numeric text and non-finite
    values all parse to ``Decimal("0")``.
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        # str() keeps the shortest repr so 0.1 does not become 0.1000000000000000055
        result = Decimal(str(value))
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError):
            return ZERO
    if not result.is_finite():
        return ZERO
    return result


def quantize_money(amount: Any) -> Decimal:
    """Round an amount to cents, half up."""
    return parse_money(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def format_money(amount: Any) -> str:
    """Render an amount with exactly two fractional digits."""
    return f"{quantize_money(amount):.2f}"


def format_price(amount: Any, symbol: str = "$") -> str:
    return f"{symbol}{format_money(amount)}"


def sanitize_amount_input(text: str, previous: str = "") -> str:
    """Filter typed amount text to digits and a single decimal point.

    Input containing more than one decimal point is refused and the
    previous value is returned unchanged.
    """
    sanitized = "".join(ch for ch in (text or "") if ch in "0123456789.")
    if sanitized.count(".") > 1:
        return previous
    return sanitized
