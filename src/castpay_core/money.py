"""Integer money helpers.

Amounts are ``int`` minor units. Rates are percentages that may carry a
fraction (12.5), so multiplication goes through Decimal and the result is
floored back to an integer. No float ever touches an amount.
"""

from __future__ import annotations

from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal
from typing import Union

Rate = Union[int, float, Decimal]

_HUNDRED = Decimal(100)


def _as_decimal(rate: Rate) -> Decimal:
    if isinstance(rate, Decimal):
        return rate
    # str() keeps 12.3 as 12.3 instead of its binary expansion
    return Decimal(str(rate))


def percent_of(amount: int, rate: Rate) -> int:
    """Return ``floor(amount * rate / 100)``.

    Examples:
        >>> percent_of(1000, 12.5)
        125
        >>> percent_of(999, 10)
        99
    """
    value = Decimal(amount) * _as_decimal(rate) / _HUNDRED
    return int(value.to_integral_value(rounding=ROUND_FLOOR))


def percent_of_half_up(amount: int, rate: Rate) -> int:
    """Return ``amount * rate / 100`` rounded half-up (withholding style)."""
    value = Decimal(amount) * _as_decimal(rate) / _HUNDRED
    return int(value.to_integral_value(rounding=ROUND_HALF_UP))


def multiply_floor(amount: int, factor: Rate) -> int:
    """Return ``floor(amount * factor)``, e.g. hourly rate times hours worked."""
    value = Decimal(amount) * _as_decimal(factor)
    return int(value.to_integral_value(rounding=ROUND_FLOOR))


def split_evenly(amount: int, count: int) -> list[int]:
    """Split ``amount`` into ``count`` floored shares, the last taking the remainder.

    Returns an empty list when ``count`` is zero.

    Examples:
        >>> split_evenly(1000, 3)
        [333, 333, 334]
    """
    if count <= 0:
        return []
    share = amount // count
    shares = [share] * (count - 1)
    shares.append(amount - share * (count - 1))
    return shares
