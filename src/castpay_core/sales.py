"""Per-day and per-period sales aggregation.

Attributes every receipt of a period under one aggregation mode, totals the
credit per cast, and (given a back-rate resolver and a roster) computes the
product backs on the mode the venue publishes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Mapping, Optional, Sequence

from castpay_core.attribution import ReceiptAttribution, SalesAttributionEngine
from castpay_core.backs import (
    BackOptionsSource,
    BackRateResolver,
    ExternalOrder,
    ProductBackCalculator,
    external_order_back,
    total_backs_by_cast,
)
from castpay_core.config import SalesAggregationMode, SalesPolicy
from castpay_core.types import (
    AttributionResult,
    CastSales,
    ProductBack,
    ProductBackTotals,
    Receipt,
)
from castpay_core.validation import ValidationIssue, validate_receipts

logger = logging.getLogger(__name__)


@dataclass
class SalesSummary:
    """Sales of a set of receipts under one aggregation mode.

    Attributes:
        mode: Aggregation mode of ``cast_sales`` and ``breakdown``.
        cast_sales: Per-cast totals in first-credit order.
        breakdown: One AttributionResult per line item, receipt order.
        product_backs: Detailed ProductBack rows (published mode plus
            external orders). Empty when no resolver was given.
        back_totals: Per-cast self/help product back totals.
        issues: Validation issues found in the receipts.
        receipt_count: Number of receipts summarized.
    """

    mode: SalesAggregationMode
    cast_sales: dict[str, CastSales] = field(default_factory=dict)
    breakdown: list[AttributionResult] = field(default_factory=list)
    product_backs: list[ProductBack] = field(default_factory=list)
    back_totals: dict[str, ProductBackTotals] = field(default_factory=dict)
    issues: list[ValidationIssue] = field(default_factory=list)
    receipt_count: int = 0

    def sales_for(self, cast_name: str) -> CastSales:
        """Totals of one cast; zero when the cast earned no credit."""
        return self.cast_sales.get(cast_name, CastSales(cast_name=cast_name))

    def backs_for(self, cast_name: str) -> ProductBackTotals:
        return self.back_totals.get(cast_name, ProductBackTotals())

    @property
    def total_sales(self) -> int:
        return sum(sales.total_sales for sales in self.cast_sales.values())


def _merge_cast_sales(target: dict[str, CastSales], receipt: ReceiptAttribution) -> None:
    for name, sales in receipt.cast_sales.items():
        total = target.setdefault(name, CastSales(cast_name=name))
        total.self_sales += sales.self_sales
        total.help_sales += sales.help_sales


def summarize_sales(
    receipts: Iterable[Receipt],
    policy: SalesPolicy,
    mode: SalesAggregationMode | str,
    resolver: Optional[BackRateResolver] = None,
    roster: Optional[Mapping[str, int]] = None,
    back_options: BackOptionsSource = None,
    external_orders: Sequence[ExternalOrder] = (),
) -> SalesSummary:
    """Attribute a batch of receipts and total the result per cast.

    Product backs always follow ``policy.published_aggregation``: when
    ``mode`` differs, receipts are attributed a second time under the
    published mode for the back computation only.

    Args:
        receipts: Receipts of the period.
        policy: Venue sales policy.
        mode: Aggregation mode of the reported sales.
        resolver: Back-rate resolver; without it no backs are computed.
        roster: Cast name to cast id, required for backs.
        back_options: Per-cast BackOptions (mapping or callable).
        external_orders: Online-shop orders; their subtotals are added to
            the cast's self sales and, with a resolver, their backs to the
            published backs.

    Returns:
        SalesSummary for the batch.
    """
    mode = SalesAggregationMode(mode)
    receipts = list(receipts)
    engine = SalesAttributionEngine(policy)

    summary = SalesSummary(mode=mode, receipt_count=len(receipts))
    summary.issues = validate_receipts(receipts)

    for receipt in receipts:
        attributed = engine.attribute_receipt(receipt, mode)
        summary.breakdown.extend(attributed.items)
        _merge_cast_sales(summary.cast_sales, attributed)

    for order in external_orders:
        # Shop orders are the cast's own sales; actual_price is already tax-excluded.
        sales = summary.cast_sales.setdefault(order.cast_name, CastSales(cast_name=order.cast_name))
        sales.self_sales += order.subtotal

    if resolver is not None and roster is not None:
        if policy.published_aggregation is mode:
            published = summary.breakdown
        else:
            published = [
                result
                for receipt in receipts
                for result in engine.attribute_receipt(receipt, policy.published_aggregation).items
            ]
        calculator = ProductBackCalculator(resolver, roster, back_options)
        summary.product_backs = calculator.calculate_all(r for r in published if r.included)
        for order in external_orders:
            back = external_order_back(order, resolver, roster)
            if back is not None:
                summary.product_backs.append(back)
        summary.back_totals = total_backs_by_cast(summary.product_backs)

    logger.info(
        "Summarized %d receipt(s) under %s: %d cast(s), total sales %d",
        summary.receipt_count,
        mode.value,
        len(summary.cast_sales),
        summary.total_sales,
    )
    return summary


def summarize_all_modes(
    receipts: Iterable[Receipt],
    policy: SalesPolicy,
    resolver: Optional[BackRateResolver] = None,
    roster: Optional[Mapping[str, int]] = None,
    back_options: BackOptionsSource = None,
    external_orders: Sequence[ExternalOrder] = (),
) -> dict[SalesAggregationMode, SalesSummary]:
    """Summaries for every aggregation mode.

    Backs are attached to the summary of the published mode only, so they
    are never counted twice. Shop order subtotals count toward self sales
    in every mode.
    """
    receipts = list(receipts)
    summaries: dict[SalesAggregationMode, SalesSummary] = {}
    for mode in SalesAggregationMode:
        with_backs = mode is policy.published_aggregation
        summaries[mode] = summarize_sales(
            receipts,
            policy,
            mode,
            resolver=resolver if with_backs else None,
            roster=roster if with_backs else None,
            back_options=back_options,
            external_orders=external_orders,
        )
    return summaries


def summarize_by_day(
    receipts: Iterable[Receipt],
    policy: SalesPolicy,
    mode: SalesAggregationMode | str,
    resolver: Optional[BackRateResolver] = None,
    roster: Optional[Mapping[str, int]] = None,
    back_options: BackOptionsSource = None,
) -> dict[Optional[date], SalesSummary]:
    """One SalesSummary per business date, dates ascending.

    Receipts without a business date are grouped under ``None``, placed last.
    """
    by_day: dict[Optional[date], list[Receipt]] = {}
    for receipt in receipts:
        by_day.setdefault(receipt.business_date, []).append(receipt)

    days = sorted((d for d in by_day if d is not None))
    if None in by_day:
        days.append(None)

    return {
        day: summarize_sales(by_day[day], policy, mode, resolver, roster, back_options)
        for day in days
    }
