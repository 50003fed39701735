"""Amount and percentage parsing utilities."""

from decimal import Decimal, InvalidOperation
import re


def parse_amount(amount_str: str, allow_negative: bool = True) -> Decimal:
    """Parse an amount string into an exact Decimal.

    Handles:
    - "123.45", "$123.45", "1,234.56"
    - "-123.45", "-$123.45", "(123.45)" (negative)

    Precision is kept as written: "1.005" stays 1.005 so that the ledger can
    reject it instead of rounding it.

    Args:
        amount_str: Amount string
        allow_negative: Whether a negative result is acceptable

    Returns:
        Decimal amount

    Raises:
        ValueError: If amount string cannot be parsed
    """
    if not amount_str or not amount_str.strip():
        raise ValueError("Empty amount string")

    amount_str = amount_str.strip()

    is_negative = False
    if amount_str.startswith("(") and amount_str.endswith(")"):
        is_negative = True
        amount_str = amount_str[1:-1]

    amount_str = re.sub(r"[$€£¥,\s]", "", amount_str)
    if amount_str.startswith("-"):
        is_negative = not is_negative
        amount_str = amount_str[1:]
    amount_str = amount_str.lstrip("$")

    try:
        amount = Decimal(amount_str)
    except InvalidOperation:
        raise ValueError(f"Could not parse amount '{amount_str}'")
    if not amount.is_finite():
        raise ValueError(f"Amount must be finite, got '{amount_str}'")

    if is_negative:
        amount = -amount
    if amount < 0 and not allow_negative:
        raise ValueError(f"Amount must not be negative, got {amount}")
    return amount


def parse_percent(percent_str: str) -> Decimal:
    """Parse a percentage such as "12", "12.5%" or "0%" into Decimal("12.5").

    Raises:
        ValueError: If the value is malformed or negative
    """
    cleaned = percent_str.strip().rstrip("%").strip()
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        raise ValueError(f"Could not parse percentage '{percent_str}'")
    if not value.is_finite() or value < 0:
        raise ValueError(f"Percentage must be a non-negative number, got '{percent_str}'")
    return value
