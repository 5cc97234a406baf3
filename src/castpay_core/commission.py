"""Commission on aggregate sales: flat rate or sliding-scale tiers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from castpay_core.money import percent_of
from castpay_core.types import CompensationType, SlidingRateTier

logger = logging.getLogger(__name__)


def sorted_tiers(tiers: Sequence[SlidingRateTier]) -> list[SlidingRateTier]:
    """Tiers ordered by ``min`` ascending; ties keep their declared order."""
    return sorted(tiers, key=lambda tier: tier.min)


def find_tier(aggregate_sales: int, tiers: Sequence[SlidingRateTier]) -> Optional[SlidingRateTier]:
    """Return the first tier covering ``aggregate_sales``, scanning by ``min``.

    A tier covers ``[min, max)``; ``max == 0`` means unbounded.

    Examples:
        >>> table = [SlidingRateTier(0, 100000, 40), SlidingRateTier(100000, 0, 45)]
        >>> find_tier(100000, table).rate_percent
        45
    """
    for tier in sorted_tiers(tiers):
        if tier.covers(aggregate_sales):
            return tier
    return None


def resolve_sliding_rate(aggregate_sales: int, tiers: Sequence[SlidingRateTier]) -> Optional[float]:
    """Rate percent of the covering tier, or None when no tier covers the amount."""
    tier = find_tier(aggregate_sales, tiers)
    return None if tier is None else tier.rate_percent


def commission(aggregate_sales: int, ctype: CompensationType) -> int:
    """Commission earned on ``aggregate_sales`` under a compensation type.

    Sliding types use the covering tier's rate; when no tier covers the
    amount (a gap in the table) the commission is zero. Flat types use
    ``commission_rate_percent``. Both floor the result.
    """
    if ctype.use_sliding_rate:
        rate = resolve_sliding_rate(aggregate_sales, ctype.sliding_rates)
        if rate is None:
            logger.warning(
                "No sliding tier of type %s covers sales %d; commission is 0",
                ctype.id,
                aggregate_sales,
            )
            return 0
        return percent_of(aggregate_sales, rate)
    return percent_of(aggregate_sales, ctype.commission_rate_percent)


@dataclass(frozen=True)
class NextTier:
    """The next tier above the current sales and the amount still missing."""

    tier: SlidingRateTier
    remaining: int


def next_tier(aggregate_sales: int, tiers: Sequence[SlidingRateTier]) -> Optional[NextTier]:
    """Smallest tier whose ``min`` is above ``aggregate_sales``.

    Returns None when the sales already sit in the top tier.
    """
    for tier in sorted_tiers(tiers):
        if tier.min > aggregate_sales:
            return NextTier(tier=tier, remaining=tier.min - aggregate_sales)
    return None


def find_tier_gaps(tiers: Sequence[SlidingRateTier]) -> list[str]:
    """Describe gaps and overlaps in a tier table.

    Returns:
        Human-readable problems; empty when the table is contiguous from its
        first ``min`` and ends with an unbounded tier.
    """
    problems: list[str] = []
    ordered = sorted_tiers(tiers)
    for current, following in zip(ordered, ordered[1:]):
        if current.max == 0:
            problems.append(
                f"Tier starting at {current.min} is unbounded but tier {following.min} follows it"
            )
        elif current.max < following.min:
            problems.append(f"Gap between {current.max} and {following.min}")
        elif current.max > following.min:
            problems.append(f"Tiers starting at {current.min} and {following.min} overlap")
    if ordered and ordered[-1].max != 0:
        problems.append(f"Sales of {ordered[-1].max} or more fall outside every tier")
    for tier in ordered:
        if tier.max != 0 and tier.max <= tier.min:
            problems.append(f"Tier starting at {tier.min} has max {tier.max} <= min")
    return problems
