"""Sales attribution: split each line item among self and help casts.

The engine is a pure function of (line item, nominations, policy). Two
aggregation modes share the algorithm and differ in eligibility:

- **item_based**: credits what the nominated casts sold. Lines without any
  cast are not included. Self credit goes to the nominations on the line
  (or to every nomination with ``nomination_distribute_all``, or when no
  nomination sits on the line).
- **receipt_based**: credits what the whole receipt generated. Every real
  nomination is always a self recipient, and lines without casts are
  credited to them too.

Remainders from integer division always go to the last recipient of the
fixed iteration order given by ``ITERATION_ORDER``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Sequence

from castpay_core.config import (
    DistributionPolicy,
    HelpDistributionMethod,
    MultiCastDistribution,
    RoundingTiming,
    SalesAggregationMode,
    SalesPolicy,
)
from castpay_core.money import percent_of, split_evenly
from castpay_core.rounding import apply_rounding
from castpay_core.types import (
    AttributionResult,
    AttributionRow,
    CastSales,
    LineItem,
    NominationSet,
    Receipt,
)

logger = logging.getLogger(__name__)

# Recipient order used for every split; the last recipient takes the remainder.
ITERATION_ORDER = ("self_on_item", "self_off_item", "help")


@dataclass
class ReceiptAttribution:
    """Attribution of every line on one receipt under one mode.

    Attributes:
        receipt: The attributed receipt.
        mode: Aggregation mode used.
        items: One AttributionResult per line, in receipt order.
        cast_sales: Per-cast totals for the receipt, in first-credit order.
            Under per-receipt rounding these totals are the adjusted ones.
    """

    receipt: Receipt
    mode: SalesAggregationMode
    items: tuple[AttributionResult, ...]
    cast_sales: dict[str, CastSales] = field(default_factory=dict)

    @property
    def included_items(self) -> tuple[AttributionResult, ...]:
        return tuple(result for result in self.items if result.included)


class SalesAttributionEngine:
    """Attribute line items to casts under a venue's SalesPolicy.

    Example:
        >>> from castpay_core import LineItem, NominationSet, SalesPolicy
        >>> engine = SalesAttributionEngine(SalesPolicy())
        >>> item = LineItem(id=1, product_name="Champagne", base_price=11000, cast_names=("Aoi",))
        >>> result = engine.attribute(item, NominationSet(names=("Aoi",)), "item_based")
        >>> [(row.cast_name, row.attributed_sales) for row in result.rows]
        [('Aoi', 10000)]
    """

    def __init__(self, policy: SalesPolicy) -> None:
        self.policy = policy

    # ------------------------------------------------------------------ #
    # Amounts
    # ------------------------------------------------------------------ #

    def strip_tax(self, amount: int, dist: DistributionPolicy) -> int:
        """Remove consumption tax from ``amount`` when ``dist`` excludes it."""
        if dist.exclude_tax and self.policy.tax_percent > 0:
            return amount * 100 // (100 + self.policy.tax_percent)
        return amount

    def adjust_amount(self, amount: int, dist: DistributionPolicy) -> int:
        """Strip tax, round, add service charge and round again, per ``dist``."""
        result = self.strip_tax(amount, dist)
        result = apply_rounding(result, dist.rounding_position, dist.rounding_mode)
        if not dist.exclude_service_charge and self.policy.service_charge_percent > 0:
            result += percent_of(result, self.policy.service_charge_percent)
            result = apply_rounding(result, dist.rounding_position, dist.rounding_mode)
        return result

    def item_base_amount(self, item: LineItem, dist: DistributionPolicy) -> int:
        """Amount distributed for ``item``; raw price under per-receipt timing."""
        if dist.rounding_timing is RoundingTiming.PER_ITEM:
            return self.adjust_amount(item.base_price, dist)
        return item.base_price

    # ------------------------------------------------------------------ #
    # Attribution
    # ------------------------------------------------------------------ #

    def attribute(
        self,
        item: LineItem,
        nominations: NominationSet,
        mode: SalesAggregationMode | str,
    ) -> AttributionResult:
        """Attribute one line item.

        Args:
            item: Line item to attribute.
            nominations: Nominated casts of the receipt plus exclusions.
            mode: Aggregation mode (enum member or its string value).

        Returns:
            AttributionResult with rows ordered self-on-item, self-off-item,
            help. No rows when nobody is eligible.
        """
        mode = SalesAggregationMode(mode)
        dist = self.policy.for_mode(mode)
        real_nominations = nominations.real_names
        free_seating = nominations.is_free_seating

        on_item = nominations.eligible(item.cast_names)
        if free_seating:
            self_on_item, help_on_item = on_item, ()
        else:
            self_on_item = tuple(name for name in on_item if name in real_nominations)
            help_on_item = tuple(name for name in on_item if name not in real_nominations)

        base = self.item_base_amount(item, dist)

        if not item.cast_names:
            if mode is SalesAggregationMode.ITEM_BASED or free_seating:
                logger.debug("Item %s has no cast; not included in %s", item.id, mode.value)
                return AttributionResult(item=item, included=False, base_amount=base)
            self_targets: tuple[str, ...] = real_nominations
            help_targets: tuple[str, ...] = ()
        else:
            self_targets = self._self_targets(self_on_item, real_nominations, free_seating, mode, dist)
            help_targets = help_on_item

        rows = self._distribute(base, self_targets, help_targets, dist)
        back_amount = None
        if dist.rounding_timing is RoundingTiming.PER_RECEIPT:
            # Backs are paid on tax-excluded amounts under either timing.
            back_amount = self.strip_tax(base, dist)
            rows = [replace(row, back_share=self.strip_tax(row.calculated_share, dist)) for row in rows]
        return AttributionResult(
            item=item,
            included=True,
            base_amount=base,
            self_casts_on_item=self_on_item,
            help_casts_on_item=help_on_item,
            rows=tuple(rows),
            back_amount=back_amount,
        )

    def attribute_receipt(
        self,
        receipt: Receipt,
        mode: SalesAggregationMode | str,
    ) -> ReceiptAttribution:
        """Attribute every line of a receipt and total the credit per cast.

        Under per-receipt timing each cast's self and help totals are
        adjusted (tax, rounding, service charge) once here instead of per
        line.
        """
        mode = SalesAggregationMode(mode)
        dist = self.policy.for_mode(mode)
        nominations = NominationSet.for_receipt(receipt, self.policy.non_help_staff_names)

        results = tuple(self.attribute(item, nominations, mode) for item in receipt.items)

        cast_sales: dict[str, CastSales] = {}
        for result in results:
            for row in result.rows:
                sales = cast_sales.setdefault(row.cast_name, CastSales(cast_name=row.cast_name))
                if row.is_self:
                    sales.self_sales += row.attributed_sales
                else:
                    sales.help_sales += row.attributed_sales

        if dist.rounding_timing is RoundingTiming.PER_RECEIPT:
            for sales in cast_sales.values():
                sales.self_sales = self.adjust_amount(sales.self_sales, dist)
                sales.help_sales = self.adjust_amount(sales.help_sales, dist)

        return ReceiptAttribution(receipt=receipt, mode=mode, items=results, cast_sales=cast_sales)

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    @staticmethod
    def _self_targets(
        self_on_item: tuple[str, ...],
        real_nominations: tuple[str, ...],
        free_seating: bool,
        mode: SalesAggregationMode,
        dist: DistributionPolicy,
    ) -> tuple[str, ...]:
        if free_seating:
            return self_on_item
        widen = (
            mode is SalesAggregationMode.RECEIPT_BASED
            or dist.nomination_distribute_all
            or not self_on_item
        )
        if not widen:
            return self_on_item
        off_item = tuple(name for name in real_nominations if name not in self_on_item)
        return self_on_item + off_item

    @staticmethod
    def _group_shares(
        base: int,
        self_count: int,
        help_count: int,
        dist: DistributionPolicy,
    ) -> tuple[list[int], list[int]]:
        """Per-recipient shares of ``base`` for the self and help groups."""
        method = dist.help_distribution_method

        if method is HelpDistributionMethod.EQUAL_PER_PERSON:
            shares = split_evenly(base, self_count + help_count)
            return shares[:self_count], shares[self_count:]

        if help_count == 0:
            self_total, help_total = base, 0
        elif self_count == 0:
            self_total, help_total = 0, base
        elif method is HelpDistributionMethod.ALL_TO_NOMINATION:
            self_total, help_total = base, 0
        elif method is HelpDistributionMethod.EQUAL:
            self_total = base // 2
            help_total = base - self_total
        elif method is HelpDistributionMethod.RATIO:
            self_total = percent_of(base, dist.help_ratio_percent)
            help_total = base - self_total
        else:
            raise ValueError(f"Unhandled help distribution method: {method!r}")

        return split_evenly(self_total, self_count), split_evenly(help_total, help_count)

    def _distribute(
        self,
        base: int,
        self_targets: Sequence[str],
        help_targets: Sequence[str],
        dist: DistributionPolicy,
    ) -> list[AttributionRow]:
        if not self_targets and not help_targets:
            return []

        self_shares, help_shares = self._group_shares(
            base, len(self_targets), len(help_targets), dist
        )

        if dist.multi_cast_distribution is MultiCastDistribution.NOMINATION_ONLY:
            if self_targets:
                self_shares = split_evenly(base, len(self_targets))
            if not dist.give_help_sales:
                help_shares = [0] * len(help_targets)
            help_sales = [0] * len(help_targets)
        elif dist.multi_cast_distribution is MultiCastDistribution.ALL_EQUAL:
            help_sales = help_shares if dist.give_help_sales else [0] * len(help_targets)
        else:
            raise ValueError(f"Unhandled multi-cast distribution: {dist.multi_cast_distribution!r}")

        rows = [
            AttributionRow(cast_name=name, is_self=True, attributed_sales=share, calculated_share=share)
            for name, share in zip(self_targets, self_shares)
        ]
        rows.extend(
            AttributionRow(cast_name=name, is_self=False, attributed_sales=sales, calculated_share=share)
            for name, share, sales in zip(help_targets, help_shares, help_sales)
        )
        return rows
