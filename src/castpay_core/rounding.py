"""Rounding directives for minor-currency amounts.

A directive is either ``"<mode>_<position>"`` (``floor_100``, ``ceil_10``,
``round_1000``) or one of the literals ``"round"`` (position 1) and
``"none"``. Amounts are integers in the currency's minor unit, so every
operation here is integer arithmetic.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class RoundingMode(str, Enum):
    """Rounding operation applied at a given position."""

    FLOOR = "floor"
    CEIL = "ceil"
    ROUND = "round"
    NONE = "none"


DEFAULT_DIRECTIVE = "floor_100"
DEFAULT_ROUNDING: tuple[int, RoundingMode] = (100, RoundingMode.FLOOR)


def parse_rounding(directive: Optional[str]) -> tuple[int, RoundingMode]:
    """Parse a rounding directive into ``(position, mode)``.

    Unparseable directives and negative positions default to ``floor_100``
    so one bad settings field cannot block a payroll run.

    Args:
        directive: Directive string, or None for the default.

    Returns:
        Tuple of rounding position and mode.

    Examples:
        >>> parse_rounding("floor_100")
        (100, <RoundingMode.FLOOR: 'floor'>)
        >>> parse_rounding("round")
        (1, <RoundingMode.ROUND: 'round'>)
        >>> parse_rounding("none")
        (0, <RoundingMode.NONE: 'none'>)
    """
    if directive is None:
        return DEFAULT_ROUNDING

    text = str(directive).strip().lower()
    if text == RoundingMode.NONE.value:
        return 0, RoundingMode.NONE
    if text == RoundingMode.ROUND.value:
        return 1, RoundingMode.ROUND

    mode_part, sep, position_part = text.partition("_")
    try:
        mode = RoundingMode(mode_part)
        position = int(position_part) if sep else -1
    except ValueError:
        logger.warning("Unparseable rounding directive %r; using %s", directive, DEFAULT_DIRECTIVE)
        return DEFAULT_ROUNDING

    if mode is RoundingMode.NONE:
        return 0, RoundingMode.NONE
    if position < 0:
        logger.warning("Invalid rounding position in %r; using %s", directive, DEFAULT_DIRECTIVE)
        return DEFAULT_ROUNDING
    return position, mode


def apply_rounding(amount: int, position: int, mode: RoundingMode) -> int:
    """Round ``amount`` to a multiple of ``position``.

    ``mode=none`` and ``position <= 0`` leave the amount unchanged. ``round``
    is half-up: exact halves move toward positive infinity.

    Args:
        amount: Amount in minor currency units.
        position: Rounding unit (1, 10, 100, ...).
        mode: Rounding operation.

    Returns:
        Rounded amount.

    Examples:
        >>> apply_rounding(1234, 100, RoundingMode.FLOOR)
        1200
        >>> apply_rounding(1234, 100, RoundingMode.CEIL)
        1300
        >>> apply_rounding(1250, 100, RoundingMode.ROUND)
        1300
    """
    if mode is RoundingMode.NONE or position <= 0:
        return amount
    if mode is RoundingMode.FLOOR:
        return (amount // position) * position
    if mode is RoundingMode.CEIL:
        return -(-amount // position) * position
    if mode is RoundingMode.ROUND:
        return ((2 * amount + position) // (2 * position)) * position
    raise ValueError(f"Unhandled rounding mode: {mode!r}")


def apply_directive(amount: int, directive: Optional[str]) -> int:
    """Parse ``directive`` and apply it to ``amount`` in one step."""
    position, mode = parse_rounding(directive)
    return apply_rounding(amount, position, mode)
