"""Money and percentage helpers.

Amounts are kept as full-precision Decimals through every calculation and
only rounded to cents by the presentation helpers at the bottom of this
module.
"""

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional

CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def parse_amount(amount_str: str) -> Decimal:
    """Parse an amount string into a Decimal.

    Handles various formats:
    - "123.45"
    - "$123.45"
    - "-123.45"
    - "-$123.45"
    - "1,234.56"
    - "(123.45)" (negative in parentheses)

    Args:
        amount_str: Amount string

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

    amount_str = re.sub(r"[$€£¥]", "", amount_str)
    amount_str = amount_str.replace(",", "").strip()

    # "-$50" leaves "-50" here, "$-50" is rejected by Decimal below
    try:
        amount = Decimal(amount_str)
    except InvalidOperation as e:
        raise ValueError(f"Could not parse amount '{amount_str}': {e!r}")
    if not amount.is_finite():
        raise ValueError(f"Could not parse amount '{amount_str}': not a finite number")
    return -amount if is_negative else amount


def parse_percentage(percentage_str: str) -> Decimal:
    """Parse a percentage such as "50", "50%" or "12.5 %".

    Raises:
        ValueError: If the value is not a number in the range (0, 100]
    """
    cleaned = percentage_str.strip().rstrip("%").strip()
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        raise ValueError(f"Could not parse percentage '{percentage_str}'")
    if not value.is_finite() or value <= 0 or value > HUNDRED:
        raise ValueError(f"Percentage must be greater than 0 and at most 100, got '{percentage_str}'")
    return value


def percent_of(part: Decimal, whole: Decimal) -> Decimal:
    """Return part as a percentage of whole, or 0 when whole is 0."""
    if whole == 0:
        return Decimal("0")
    return part / whole * HUNDRED


def to_money(value: Optional[Decimal]) -> Optional[Decimal]:
    """Round a monetary value to cents for presentation."""
    if value is None:
        return None
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_percent(value: Optional[Decimal]) -> Optional[Decimal]:
    """Round a percentage to two places for presentation."""
    return to_money(value)
