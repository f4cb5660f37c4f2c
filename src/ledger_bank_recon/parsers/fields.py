"""Field-level parsing shared by the row parsers."""

from decimal import Decimal, InvalidOperation
from typing import Sequence

from ..utils.exceptions import RowParseError


def require_fields(record: Sequence[str], count: int, stage: str) -> None:
    """Raise if a row carries fewer than ``count`` fields."""
    if len(record) < count:
        raise RowParseError(
            f"invalid record format: expected at least {count} fields, got {len(record)}",
            stage=stage,
        )


def parse_amount(value: str, stage: str) -> Decimal:
    """
    Parse a numeric amount at full precision.

    Raises:
        RowParseError: If the value is not a finite number
    """
    try:
        amount = Decimal(value.strip())
    except InvalidOperation:
        raise RowParseError(f"error parsing amount {value!r}", stage=stage) from None

    if not amount.is_finite():
        raise RowParseError(f"amount {value!r} is not finite", stage=stage)
    return amount
