"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
import re

CENT = Decimal("0.01")


def parse_amount(value) -> Decimal:
    """Parse an amount into a Decimal.

    Handles various formats:
    - 123.45 (int, float or Decimal)
    - "123.45"
    - "$123.45"
    - "-123.45"
    - "1,234.56"
    - "(123.45)" (negative in parentheses)

    Floats are converted through their shortest string form so that 1.02
    becomes Decimal("1.02") rather than its binary approximation.

    Args:
        value: Amount as a number or string

    Returns:
        Decimal amount

    Raises:
        ValueError: If the value cannot be parsed
    """
    if value is None or isinstance(value, bool):
        raise ValueError(f"Not an amount: {value!r}")

    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        amount = Decimal(str(value))
    else:
        amount_str = str(value).strip()
        if not amount_str:
            raise ValueError("Empty amount string")

        # Handle parentheses notation (negative)
        is_negative = False
        if amount_str.startswith("(") and amount_str.endswith(")"):
            is_negative = True
            amount_str = amount_str[1:-1]

        # Remove currency symbols and thousands separators
        amount_str = re.sub(r"[$€£¥]", "", amount_str)
        amount_str = amount_str.replace(",", "").strip()

        try:
            amount = Decimal(amount_str)
        except InvalidOperation as e:
            raise ValueError(f"Could not parse amount '{amount_str}': {e!r}")
        if is_negative:
            amount = -amount

    if not amount.is_finite():
        raise ValueError(f"Amount must be finite, got {value!r}")
    return amount


def parse_positive_amount(value) -> Decimal:
    """Parse an amount that must be strictly greater than zero.

    Raises:
        ValueError: If the value cannot be parsed or is not positive
    """
    amount = parse_amount(value)
    if amount <= 0:
        raise ValueError(f"Amount must be positive, got {amount}")
    return amount


def parse_quantity(value) -> int:
    """Parse a whole, non-negative quantity of atomic units.

    Raises:
        ValueError: If the value is fractional, negative or not a number
    """
    amount = parse_amount(value)
    if amount != amount.to_integral_value():
        raise ValueError(f"Quantity must be a whole number, got {amount}")
    if amount < 0:
        raise ValueError(f"Quantity cannot be negative, got {amount}")
    return int(amount)


def round_money(amount: Decimal) -> Decimal:
    """Round to currency precision for display and serialization only."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)
