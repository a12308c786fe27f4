"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation
import re

CENT = Decimal("0.01")


def parse_amount(amount_str: str, allow_negative: bool = False) -> Decimal:
    """Parse an amount string into a two-place Decimal.

    Handles "1234.50", "1,234.50", "$500000" and "500_000". Currency
    symbols and thousands separators are stripped.

    Args:
        amount_str: Amount string
        allow_negative: Accept a leading minus sign or (parentheses)

    Returns:
        Decimal amount quantized to cents

    Raises:
        ValueError: If the string cannot be parsed, has more than two
            decimal places, or is negative when negatives are not allowed
    """
    if amount_str is None or not str(amount_str).strip():
        raise ValueError("Empty amount string")

    text = str(amount_str).strip()

    is_negative = False
    if text.startswith("(") and text.endswith(")"):
        is_negative = True
        text = text[1:-1]

    text = re.sub(r"[$€£¥\s,_]", "", text)
    if text.startswith("-"):
        is_negative = not is_negative
        text = text[1:]

    try:
        amount = Decimal(text)
    except InvalidOperation:
        raise ValueError(f"Could not parse amount '{amount_str}'")

    if not amount.is_finite():
        raise ValueError(f"Could not parse amount '{amount_str}'")
    if amount != amount.quantize(CENT):
        raise ValueError(f"Amount '{amount_str}' has more than two decimal places")
    if is_negative and amount != 0:
        if not allow_negative:
            raise ValueError(f"Amount '{amount_str}' must not be negative")
        amount = -amount
    return amount.quantize(CENT)
