"""Exact conversion between decimal strings and smallest token units."""

from decimal import Decimal, InvalidOperation, Overflow, localcontext
from typing import Optional

# Enough digits for any uint256 amount at 18 decimals
_PRECISION = 80
_MAX_DIGITS = 78  # 2 ** 256 has 78 digits


def parse_units(text: str, decimals: int) -> Optional[int]:
    """Convert a decimal string to an integer amount of smallest units.

    Returns None when the text is not a finite number, does not fit a uint256
    or has more fractional digits than the token supports. No rounding is
    ever applied.
    """
    try:
        value = Decimal(text.strip())
    except (InvalidOperation, AttributeError):
        return None
    if not value.is_finite():
        return None
    if value.adjusted() + decimals > _MAX_DIGITS:
        return None

    with localcontext() as ctx:
        ctx.prec = _PRECISION
        try:
            scaled = value.scaleb(decimals)
        except (InvalidOperation, Overflow):
            return None
        if scaled != scaled.to_integral_value():
            return None
        return int(scaled)


def format_units(amount: int, decimals: int, places: Optional[int] = 4) -> str:
    """Render a smallest-unit amount for display."""
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        value = Decimal(amount).scaleb(-decimals)
        if places is None:
            return f"{value.normalize():f}" if value else "0"
        return f"{value:.{places}f}"
