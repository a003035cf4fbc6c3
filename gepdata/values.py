from __future__ import annotations
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional
import math


def to_number(value: Any) -> Optional[float]:
    """
    Numeric cast used for filter values and summary fields.
    Returns None for missing, boolean, non-finite or unparseable input.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        num = float(value)
    elif isinstance(value, str):
        s = value.strip()
        if not s:
            return None
        try:
            num = float(s)
        except ValueError:
            return None
    else:
        return None
    return num if math.isfinite(num) else None


def to_decimal(value: Any) -> Optional[Decimal]:
    """Exact decimal cast; same acceptance rules as `to_number`."""
    if to_number(value) is None:
        return None
    try:
        return Decimal(value.strip() if isinstance(value, str) else str(value))
    except InvalidOperation:
        return None


def as_text(value: Any) -> Optional[str]:
    """Render a stored JSON value the way a `->>` text projection does."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def round_half_away(value: Any, places: int = 2) -> float:
    """Round to `places` decimals, halves away from zero. None rounds to 0."""
    dec = to_decimal(value)
    if dec is None:
        return 0.0
    quantum = Decimal(1).scaleb(-places)
    return float(dec.quantize(quantum, rounding=ROUND_HALF_UP))
