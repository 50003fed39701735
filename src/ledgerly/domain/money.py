"""Exact currency arithmetic on Decimal.

Amounts are plain ``Decimal`` values. Rounding happens only where money
actually moves (a posting) or leaves the process (serialization); projections
keep full precision in between.
"""

from decimal import Decimal, InvalidOperation, ROUND_CEILING, ROUND_HALF_UP

MINOR_UNIT = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")
MINOR_UNITS_PER_MAJOR = 100


def to_decimal(value) -> Decimal:
    """Coerce a str, int or Decimal to Decimal.

    Floats are refused: they cannot represent most cent values exactly.

    Raises:
        TypeError: If value is a float or an unsupported type
        ValueError: If value is not a finite number
    """
    if isinstance(value, bool):
        raise TypeError("Booleans are not money")
    if isinstance(value, float):
        raise TypeError("Float values are not accepted for money; pass a str or Decimal")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, str)):
        try:
            result = Decimal(value.strip() if isinstance(value, str) else value)
        except InvalidOperation:
            raise ValueError(f"Could not parse amount '{value}'")
    else:
        raise TypeError(f"Unsupported money type: {type(value).__name__}")
    if not result.is_finite():
        raise ValueError(f"Amount must be finite, got {value}")
    return result


def is_minor_unit_exact(amount: Decimal) -> bool:
    """Return True if amount has no precision below one cent."""
    if not amount.is_finite():
        return False
    return amount == amount.quantize(MINOR_UNIT)


def round_money(amount: Decimal) -> Decimal:
    """Round half-up to the minor unit. Use only at posting boundaries."""
    return amount.quantize(MINOR_UNIT, rounding=ROUND_HALF_UP)


def ceil_money(amount: Decimal) -> Decimal:
    """Round up to the next minor unit (payments never fall short)."""
    return amount.quantize(MINOR_UNIT, rounding=ROUND_CEILING)


def to_minor_units(amount: Decimal) -> int:
    """Convert an exact cent amount to integer minor units.

    Raises:
        ValueError: If amount carries sub-cent precision
    """
    if not is_minor_unit_exact(amount):
        raise ValueError(f"Amount {amount} has more precision than the minor unit")
    return int(amount * MINOR_UNITS_PER_MAJOR)


def from_minor_units(units: int) -> Decimal:
    """Convert integer minor units back to a Decimal amount."""
    return (Decimal(units) / MINOR_UNITS_PER_MAJOR).quantize(MINOR_UNIT)


def money_str(amount: Decimal) -> str:
    """Render an amount for JSON: a string rounded to cents, never a float."""
    return str(round_money(amount))


def format_money(amount: Decimal) -> str:
    """Render an amount for humans, e.g. ``-$1,234.50``."""
    rounded = round_money(amount)
    sign = "-" if rounded < 0 else ""
    return f"{sign}${abs(rounded):,.2f}"
