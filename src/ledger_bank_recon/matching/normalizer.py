"""
Amount normalization into bucket keys.

Keys are integer minor units (cents). The amount's decimal value is
quantized to two places with banker's rounding, so keys never depend on
binary float formatting.
"""

from decimal import ROUND_HALF_EVEN, Decimal
from typing import Union

Amount = Union[Decimal, float, int, str]

CENT = Decimal("0.01")
ROUNDING = ROUND_HALF_EVEN


def to_decimal(amount: Amount) -> Decimal:
    """Convert an amount to Decimal using its shortest decimal representation."""
    if isinstance(amount, Decimal):
        return amount
    if isinstance(amount, float):
        # repr() gives the shortest string that round-trips, e.g. 100.505 not 100.50499...
        return Decimal(repr(amount))
    return Decimal(amount)


def normalize(amount: Amount, is_debit: bool = False, rounding: str = ROUNDING) -> int:
    """
    Canonicalize an amount into its bucket key.

    Args:
        amount: Signed amount
        is_debit: Negate the amount before keying
        rounding: Decimal rounding mode used to reach two places

    Returns:
        Amount in minor units

    Raises:
        ValueError: If the amount is NaN or infinite
    """
    value = to_decimal(amount)
    if not value.is_finite():
        raise ValueError(f"Cannot normalize non-finite amount: {amount!r}")

    if is_debit:
        value = -value

    return int(value.quantize(CENT, rounding=rounding).scaleb(2))


def format_key(key: int) -> str:
    """Render a bucket key as its canonical 2-decimal string, e.g. ``-20000`` -> ``"-200.00"``."""
    return f"{Decimal(key).scaleb(-2):.2f}"
