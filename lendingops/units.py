"""Conversions between token base units and human-readable decimals."""
from __future__ import annotations

from decimal import Decimal, InvalidOperation, getcontext

getcontext().prec = 120


def to_units(raw: int, decimals: int) -> Decimal:
    if decimals <= 0:
        return Decimal(raw)
    return Decimal(raw) / (Decimal(10) ** decimals)


def format_units(raw: int, decimals: int, places: int | None = None) -> str:
    """Render ``raw`` base units as a plain decimal string.

    Trailing zeros are trimmed unless ``places`` fixes the precision.
    """
    value = to_units(raw, decimals)
    if places is not None:
        return f"{value:.{places}f}"
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"


def parse_units(text: str, decimals: int) -> int:
    """Convert a decimal string such as ``"12.5"`` into base units.

    Raises ``ValueError`` for non-numeric input, negative values, or more
    fractional digits than the token supports.
    """
    try:
        value = Decimal(text.strip())
    except (InvalidOperation, AttributeError) as e:
        raise ValueError(f"not a number: {text!r}") from e
    if not value.is_finite():
        raise ValueError(f"not a finite number: {text!r}")
    if value < 0:
        raise ValueError(f"negative amount: {text!r}")
    scaled = value * (Decimal(10) ** decimals)
    if scaled != scaled.to_integral_value():
        raise ValueError(f"{text!r} has more than {decimals} decimal places")
    return int(scaled)
