"""Input coercion helpers shared by the domain services."""

from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional, TypeVar

from fundledger.domain.entities import ZERO
from fundledger.domain.errors import ValidationError

E = TypeVar("E", bound=Enum)

CENT = Decimal("0.01")


def coerce_enum(enum_cls: type[E], value: Any, field_name: str) -> E:
    """Convert a raw value (enum member or its string value) to an enum member."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip())
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"Invalid {field_name} '{value}'. Allowed values: {allowed}")


def require_text(value: Optional[str], field_name: str) -> str:
    """Return stripped text, rejecting empty values."""
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"{field_name} is required")
    return text


def optional_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    text = value.strip()
    return text or None


def to_amount(value: Any, field_name: str) -> Decimal:
    """Convert a money value to a two-place Decimal.

    Floats are rejected; pass strings, ints or Decimals.

    Raises:
        ValidationError: If the value is not a finite number with at most
            two decimal places
    """
    if value is None:
        return ZERO
    if isinstance(value, float):
        raise ValidationError(f"{field_name} must be a Decimal, int or string, not float")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation:
        raise ValidationError(f"{field_name} '{value}' is not a valid amount")
    if not amount.is_finite():
        raise ValidationError(f"{field_name} '{value}' is not a valid amount")
    if amount != amount.quantize(CENT):
        raise ValidationError(f"{field_name} '{value}' has more than two decimal places")
    return amount.quantize(CENT)
