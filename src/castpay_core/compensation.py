"""Compensation types: evaluate every pay formula, then pick the payable one.

Example:
    >>> from castpay_core.types import CompensationType, ProductBackTotals
    >>> hourly = CompensationType(id="hourly", hourly_rate=2000)
    >>> result = evaluate(hourly, 5, {"item_based": 0}, ProductBackTotals())
    >>> result.total
    10000
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping, Optional, Sequence

from castpay_core.commission import commission
from castpay_core.config import SalesAggregationMode
from castpay_core.exceptions import ValidationError
from castpay_core.money import multiply_floor
from castpay_core.types import (
    CastCompensationSettings,
    CompensationType,
    ComputedCompensation,
    PaymentSelectionMethod,
    ProductBackTotals,
)
from castpay_core.validation import (
    ValidationIssue,
    has_errors,
    validate_compensation_settings,
    validate_work_hours,
)

logger = logging.getLogger(__name__)


def _sales_for_mode(
    sales_by_mode: Mapping[SalesAggregationMode | str, int],
    mode: SalesAggregationMode,
) -> int:
    if mode in sales_by_mode:
        return sales_by_mode[mode]
    return sales_by_mode.get(mode.value, 0)


def evaluate(
    ctype: CompensationType,
    work_hours: float,
    sales_by_mode: Mapping[SalesAggregationMode | str, int],
    product_backs: ProductBackTotals,
) -> ComputedCompensation:
    """Evaluate one compensation type.

    Args:
        ctype: Compensation type to evaluate.
        work_hours: Hours worked in the period (may be fractional).
        sales_by_mode: Aggregate sales keyed by aggregation mode; the type's
            ``sales_aggregation_mode`` picks the figure.
        product_backs: The cast's self/help product back totals.

    Returns:
        ComputedCompensation. Components switched off by the type are
        reported as 0 and excluded from the total.
    """
    sales = _sales_for_mode(sales_by_mode, ctype.sales_aggregation_mode)

    hourly_pay = multiply_floor(ctype.hourly_rate, work_hours) if ctype.hourly_rate > 0 else 0
    fixed_pay = ctype.fixed_amount
    commission_back = commission(sales, ctype)
    self_back = product_backs.self_back if ctype.use_product_back else 0
    help_back = product_backs.help_back if ctype.use_help_product_back else 0

    return ComputedCompensation(
        type_id=ctype.id,
        hourly_pay=hourly_pay,
        fixed_pay=fixed_pay,
        commission_back=commission_back,
        self_product_back=self_back,
        help_product_back=help_back,
        total=hourly_pay + fixed_pay + commission_back + self_back + help_back,
    )


def evaluate_all(
    types: Sequence[CompensationType],
    work_hours: float,
    sales_by_mode: Mapping[SalesAggregationMode | str, int],
    product_backs: ProductBackTotals,
) -> list[ComputedCompensation]:
    """Evaluate every enabled type, keeping declaration order."""
    return [
        evaluate(ctype, work_hours, sales_by_mode, product_backs)
        for ctype in types
        if ctype.is_enabled
    ]


def select(
    evaluations: Sequence[ComputedCompensation],
    method: PaymentSelectionMethod | str,
    specific_type_id: Optional[str] = None,
) -> ComputedCompensation:
    """Choose the payable evaluation.

    ``highest`` returns the first evaluation with the maximum total, so ties
    go to the earliest declared type. ``specific`` returns the evaluation of
    ``specific_type_id``, falling back to the first evaluation when that id
    was not evaluated.

    Raises:
        ValidationError: If ``evaluations`` is empty.
    """
    if not evaluations:
        raise ValidationError("Cannot select a compensation type from zero evaluations")

    method = PaymentSelectionMethod(method)
    if method is PaymentSelectionMethod.HIGHEST:
        best = evaluations[0]
        for evaluation in evaluations[1:]:
            if evaluation.total > best.total:
                best = evaluation
        return best

    for evaluation in evaluations:
        if evaluation.type_id == specific_type_id:
            return evaluation
    logger.warning(
        "Compensation type %r not among evaluated types; falling back to %r",
        specific_type_id,
        evaluations[0].type_id,
    )
    return evaluations[0]


@dataclass
class CastPayResult:
    """Pay computation of one cast for one period.

    Attributes:
        cast_name: Cast the result belongs to.
        evaluations: One ComputedCompensation per enabled type.
        selected: The payable evaluation, or None when blocked by errors.
        sales_by_mode: Aggregate sales used, keyed by mode value.
        product_backs: Product back totals used.
        issues: Validation issues found for this cast.
    """

    cast_name: str
    evaluations: list[ComputedCompensation] = field(default_factory=list)
    selected: Optional[ComputedCompensation] = None
    sales_by_mode: dict[str, int] = field(default_factory=dict)
    product_backs: ProductBackTotals = field(default_factory=ProductBackTotals)
    issues: list[ValidationIssue] = field(default_factory=list)

    @property
    def selected_total(self) -> Optional[int]:
        return None if self.selected is None else self.selected.total

    @property
    def ok(self) -> bool:
        return self.selected is not None and not has_errors(self.issues)


def calculate_cast_pay(
    cast_name: str,
    settings: CastCompensationSettings,
    work_hours: float,
    sales_by_mode: Mapping[SalesAggregationMode | str, int],
    product_backs: ProductBackTotals,
    issues: Sequence[ValidationIssue] = (),
) -> CastPayResult:
    """Evaluate and select a cast's compensation for a period.

    Validation runs first; any error-level issue (including ``issues``
    passed in by the caller, such as bad receipts) leaves ``selected`` as
    None.
    """
    found = list(issues)
    found.extend(validate_work_hours(cast_name, work_hours))
    found.extend(validate_compensation_settings(settings, cast_name))

    result = CastPayResult(
        cast_name=cast_name,
        sales_by_mode={SalesAggregationMode(k).value: v for k, v in sales_by_mode.items()},
        product_backs=product_backs,
        issues=found,
    )
    if has_errors(found):
        logger.info("Skipping compensation for %s: %d blocking issue(s)", cast_name, len(found))
        return result

    result.evaluations = evaluate_all(settings.types, work_hours, sales_by_mode, product_backs)
    result.selected = select(
        result.evaluations,
        settings.payment_selection_method,
        settings.selected_compensation_type_id,
    )
    logger.debug(
        "Cast %s: selected %s with total %d",
        cast_name,
        result.selected.type_id,
        result.selected.total,
    )
    return result
