"""Product backs: resolve a cast's back rate and apply it to attributed shares.

Back-rate lookup scans only the active rules of one cast, in declaration
order, with this precedence (first match wins):

1. exact ``(category, product_name)``
2. ``(category, product_name=None)``: category-wide
3. ``(category=None, product_name=None)``: cast-wide default

A missing rule means "no back", which is a normal business state and not an
error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Callable, Iterable, Mapping, Optional, Union

from castpay_core.money import percent_of
from castpay_core.types import (
    AttributionResult,
    BackOptions,
    BackRateRule,
    BackType,
    CastCompensationSettings,
    HelpBackCalculationMethod,
    PaymentSelectionMethod,
    ProductBack,
    ProductBackTotals,
    ResolvedBackRate,
)

logger = logging.getLogger(__name__)

DEFAULT_BACK_OPTIONS = BackOptions()
EXTERNAL_ORDER_CATEGORY = "BASE"

BackOptionsSource = Union[Mapping[str, BackOptions], Callable[[str], BackOptions], None]


class BackRateResolver:
    """Resolve back rates from a venue's back-rate table.

    Args:
        rules: Back-rate rules for any number of casts. Inactive rules are
            dropped; the remaining order is kept per cast.
    """

    def __init__(self, rules: Iterable[BackRateRule]) -> None:
        self._rules_by_cast: dict[int, list[BackRateRule]] = {}
        for rule in rules:
            if rule.is_active:
                self._rules_by_cast.setdefault(rule.cast_id, []).append(rule)

    def rules_for(self, cast_id: int) -> list[BackRateRule]:
        """Active rules of a cast in declaration order."""
        return list(self._rules_by_cast.get(cast_id, ()))

    def find_rule(
        self,
        cast_id: int,
        category: Optional[str],
        product_name: Optional[str],
        *,
        allow_cast_default: bool = True,
    ) -> Optional[BackRateRule]:
        """Return the rule that governs an item, or None."""
        rules = self._rules_by_cast.get(cast_id)
        if not rules:
            return None

        for rule in rules:
            if rule.product_name is not None and rule.product_name == product_name and rule.category == category:
                return rule
        for rule in rules:
            if rule.product_name is None and rule.category is not None and rule.category == category:
                return rule
        if allow_cast_default:
            for rule in rules:
                if rule.category is None and rule.product_name is None:
                    return rule
        return None

    def resolve(
        self,
        cast_id: int,
        category: Optional[str],
        product_name: Optional[str],
        is_self: bool,
    ) -> Optional[ResolvedBackRate]:
        """Resolve the back rate for one side of one item.

        A sliding rule carrying a precomputed ``calculated_sliding_rate`` uses
        that rate as a ratio; it is not recomputed here.

        Returns:
            ResolvedBackRate, or None when no rule matches.
        """
        rule = self.find_rule(cast_id, category, product_name)
        if rule is None:
            return None
        return _rate_from_rule(rule, is_self)


def _rate_from_rule(rule: BackRateRule, is_self: bool) -> ResolvedBackRate:
    if rule.use_sliding_back and rule.calculated_sliding_rate is not None:
        return ResolvedBackRate(
            back_type=BackType.RATIO,
            ratio=rule.calculated_sliding_rate,
            fixed_amount=0,
            is_sliding=True,
        )
    side_ratio = rule.self_back_ratio if is_self else rule.help_back_ratio
    ratio = side_ratio if side_ratio is not None else rule.back_ratio
    return ResolvedBackRate(
        back_type=rule.back_type,
        ratio=ratio,
        fixed_amount=rule.back_fixed_amount,
    )


def back_options_for(settings: Optional[CastCompensationSettings]) -> BackOptions:
    """Derive the product-back switches of a cast from its compensation settings.

    The selected type wins when ``specific`` selection names an enabled type,
    then the first enabled type; with neither, both sides are enabled and
    help backs are sales based.
    """
    if settings is None:
        return DEFAULT_BACK_OPTIONS

    enabled = settings.enabled_types
    chosen = None
    if (
        settings.payment_selection_method is PaymentSelectionMethod.SPECIFIC
        and settings.selected_compensation_type_id is not None
    ):
        chosen = next((t for t in enabled if t.id == settings.selected_compensation_type_id), None)
    if chosen is None and enabled:
        chosen = enabled[0]
    if chosen is None:
        return DEFAULT_BACK_OPTIONS

    return BackOptions(
        use_product_back=chosen.use_product_back,
        use_help_product_back=chosen.use_help_product_back,
        help_back_calculation_method=chosen.help_back_calculation_method,
    )


class ProductBackCalculator:
    """Apply resolved back rates to attribution rows.

    Args:
        resolver: BackRateResolver over the venue's rules.
        roster: Cast name to cast id. Names not on the roster earn no back.
        back_options: Per-cast BackOptions, as a mapping by cast name or a
            callable. Casts without options use DEFAULT_BACK_OPTIONS.
    """

    def __init__(
        self,
        resolver: BackRateResolver,
        roster: Mapping[str, int],
        back_options: BackOptionsSource = None,
    ) -> None:
        self.resolver = resolver
        self.roster = dict(roster)
        self._back_options = back_options

    def options_for(self, cast_name: str) -> BackOptions:
        source = self._back_options
        if source is None:
            return DEFAULT_BACK_OPTIONS
        if callable(source):
            return source(cast_name)
        return source.get(cast_name, DEFAULT_BACK_OPTIONS)

    def calculate(self, result: AttributionResult) -> list[ProductBack]:
        """Compute the backs earned on one attributed line item.

        A row is skipped when its side is disabled for the cast, when its
        share is zero and full-amount help backs do not apply,
        or when no back rule matches.
        """
        backs: list[ProductBack] = []
        item = result.item
        for row in result.rows:
            cast_id = self.roster.get(row.cast_name)
            if cast_id is None:
                continue

            options = self.options_for(row.cast_name)
            if row.is_self and not options.use_product_back:
                continue
            if not row.is_self and not options.use_help_product_back:
                continue

            full_amount = (
                not row.is_self
                and options.help_back_calculation_method is HelpBackCalculationMethod.FULL_AMOUNT
            )
            if row.back_base == 0 and not full_amount:
                continue

            rate = self.resolver.resolve(cast_id, item.category, item.product_name, row.is_self)
            if rate is None:
                continue

            base = result.back_base if full_amount else row.back_base
            if rate.back_type is BackType.FIXED:
                amount = rate.fixed_amount * item.quantity
            else:
                amount = percent_of(base, rate.ratio)

            backs.append(
                ProductBack(
                    item_id=item.id,
                    cast_name=row.cast_name,
                    is_self=row.is_self,
                    product_name=item.product_name,
                    category=item.category,
                    base=base,
                    back_type=rate.back_type,
                    ratio=rate.ratio,
                    amount=amount,
                )
            )
        return backs

    def calculate_all(self, results: Iterable[AttributionResult]) -> list[ProductBack]:
        backs: list[ProductBack] = []
        for result in results:
            backs.extend(self.calculate(result))
        logger.debug("Computed %d product back row(s)", len(backs))
        return backs


def total_backs_by_cast(backs: Iterable[ProductBack]) -> dict[str, ProductBackTotals]:
    """Sum ProductBack rows into per-cast self/help totals."""
    totals: dict[str, ProductBackTotals] = {}
    for back in backs:
        side = (
            ProductBackTotals(self_back=back.amount)
            if back.is_self
            else ProductBackTotals(help_back=back.amount)
        )
        totals[back.cast_name] = totals.get(back.cast_name, ProductBackTotals()) + side
    return totals


# --------------------------------------------------------------------------- #
# External shop orders
# --------------------------------------------------------------------------- #


@dataclass(frozen=True)
class ExternalOrder:
    """An order from the venue's online shop credited to one cast.

    ``actual_price`` is already tax-excluded.
    """

    id: object
    cast_name: str
    product_name: str
    actual_price: int
    quantity: int = 1
    business_date: Optional[date] = None

    @property
    def subtotal(self) -> int:
        return self.actual_price * self.quantity


def external_order_back(
    order: ExternalOrder,
    resolver: BackRateResolver,
    roster: Mapping[str, int],
    category: str = EXTERNAL_ORDER_CATEGORY,
) -> Optional[ProductBack]:
    """Compute the back for an online-shop order.

    Only rules scoped to the shop category apply (exact product, then the
    category default); the cast-wide default never covers shop orders.

    Returns:
        ProductBack for the order, or None when the cast is not on the
        roster or no rule matches.
    """
    cast_id = roster.get(order.cast_name)
    if cast_id is None:
        return None
    rule = resolver.find_rule(cast_id, category, order.product_name, allow_cast_default=False)
    if rule is None:
        return None
    rate = _rate_from_rule(rule, is_self=True)
    if rate.back_type is BackType.FIXED:
        amount = rate.fixed_amount * order.quantity
    else:
        amount = percent_of(order.subtotal, rate.ratio)
    return ProductBack(
        item_id=order.id,
        cast_name=order.cast_name,
        is_self=True,
        product_name=order.product_name,
        category=category,
        base=order.subtotal,
        back_type=rate.back_type,
        ratio=rate.ratio,
        amount=amount,
    )
