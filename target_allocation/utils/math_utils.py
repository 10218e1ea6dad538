# target_allocation/utils/math_utils.py
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional, Union

from target_allocation.exceptions import CalculationError

Number = Union[int, float, Decimal]

def round_half_up(value: Number, places: int = 0) -> Decimal:
    """Round a value half away from zero to a number of decimal places.

    Args:
        value: Value to round
        places: Decimal places to keep

    Returns:
        Rounded Decimal
    """
    quantum = Decimal(1).scaleb(-places)
    return Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)

def to_decimal(value: Number) -> Decimal:
    """Convert a number to Decimal without binary float artefacts."""
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise CalculationError(f"Invalid numeric value: {value!r}")

def parse_br_decimal(text: str) -> Decimal:
    """Parse an amount written with a thousands dot and a decimal comma.

    "12.345,67" -> Decimal('12345.67'). A currency prefix and surrounding
    whitespace are ignored.

    Raises:
        ValueError if the text is empty or not a number
    """
    cleaned = (text or '').strip()
    if cleaned.upper().startswith('R$'):
        cleaned = cleaned[2:].strip()
    cleaned = cleaned.replace(' ', '').replace('.', '').replace(',', '.')
    if not cleaned:
        raise ValueError("Empty amount")
    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {text!r}")
    if not amount.is_finite():
        raise ValueError(f"Invalid amount: {text!r}")
    return amount

def safe_ratio(numerator: Number, denominator: Number) -> Optional[float]:
    """Divide, returning None when the denominator is zero."""
    if not denominator:
        return None
    return float(numerator) / float(denominator)

def safe_share(part: Number, total: Number) -> float:
    """Share of a total, returning 0.0 when the total is zero."""
    if not total:
        return 0.0
    return float(part) / float(total)
