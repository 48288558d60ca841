"""
Fixed-point money arithmetic.

Every balance computation runs on integers counted in the currency's minor
unit (cents for a two-digit currency). Decimals only appear at the edges:
to_minor() on the way in, from_minor() on the way out. Sums of integers
cannot drift, so net shares always add up exactly.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from potledger.config import get_settings

Amount = Union[Decimal, int, str]


def minor_digits() -> int:
    """Decimal places of the configured currency."""
    return get_settings().ledger.currency_minor_digits


def to_minor(amount: Amount, digits: Optional[int] = None) -> int:
    """
    Convert a currency amount to whole minor units, rounding half-up.

    >>> to_minor(Decimal("12.345"), 2)
    1235
    """
    if digits is None:
        digits = minor_digits()
    value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    quantized = value.quantize(Decimal(1).scaleb(-digits), rounding=ROUND_HALF_UP)
    return int(quantized.scaleb(digits))


def from_minor(units: int, digits: Optional[int] = None) -> Decimal:
    """Convert whole minor units back to a currency Decimal."""
    if digits is None:
        digits = minor_digits()
    return Decimal(units).scaleb(-digits)


def split_evenly(total_minor: int, parts: int) -> int:
    """
    One part of total_minor divided into `parts`, rounded half-up.

    A divisor below 1 is treated as 1 so an empty group never divides by zero.
    """
    divisor = max(parts, 1)
    share = (Decimal(total_minor) / divisor).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return int(share)


def epsilon_minor(
    epsilon: Optional[Decimal] = None,
    digits: Optional[int] = None,
) -> Decimal:
    """The settlement tolerance expressed in minor units (0.005 -> 0.5 cents)."""
    ledger = get_settings().ledger
    if epsilon is None:
        epsilon = ledger.settlement_epsilon
    if digits is None:
        digits = ledger.currency_minor_digits
    return epsilon.scaleb(digits)
