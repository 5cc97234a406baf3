"""castpay-core - Sales attribution and cast compensation engine.

This package turns receipts into per-cast sales credit, product backs and
payable compensation for hospitality venues where several staff ("casts")
serve one table:

- **Attribution**: split each line item between nominated (self) and
  supporting (help) casts under the venue's SalesPolicy
- **Backs**: per-item commissions from the venue's back-rate table
- **Compensation**: evaluate every pay formula of a cast and select the
  payable one

Module Structure:
    castpay_core.config: SalesPolicy and distribution enums
    castpay_core.rounding: Rounding directives
    castpay_core.attribution: SalesAttributionEngine
    castpay_core.backs: BackRateResolver and ProductBackCalculator
    castpay_core.commission: Flat and sliding-scale commission
    castpay_core.compensation: Type evaluation and selection
    castpay_core.sales: Per-day and per-period summaries
    castpay_core.batch: Roster recalculation in a worker pool
    castpay_core.marts: pandas report frames
    castpay_core.loaders: CSV / JSON read models
    castpay_core.payslip: Deductions and net pay

Quick Start:
    >>> from pathlib import Path
    >>> from castpay_core import load_policy_json, recalculate_roster
    >>> from castpay_core.loaders import load_back_rates_csv, load_casts_json, load_receipts_csv
    >>>
    >>> policy = load_policy_json(Path("policy.json"))
    >>> receipts = load_receipts_csv(Path("receipts.csv"))
    >>> rules = load_back_rates_csv(Path("back_rates.csv"))
    >>> jobs = load_casts_json(Path("casts.json"))
    >>>
    >>> batch = recalculate_roster(jobs, receipts, policy, rules)
    >>> for result in batch.results:
    ...     print(result.cast_name, result.selected_total)
"""

__version__ = "0.1.0"

from castpay_core.attribution import ITERATION_ORDER, ReceiptAttribution, SalesAttributionEngine
from castpay_core.backs import (
    BackRateResolver,
    ExternalOrder,
    ProductBackCalculator,
    back_options_for,
    external_order_back,
    total_backs_by_cast,
)
from castpay_core.batch import BatchResult, CastPeriodJob, recalculate_roster
from castpay_core.commission import commission, find_tier, next_tier
from castpay_core.compensation import CastPayResult, calculate_cast_pay, evaluate, evaluate_all, select
from castpay_core.config import (
    DistributionPolicy,
    HelpDistributionMethod,
    MultiCastDistribution,
    RoundingTiming,
    SalesAggregationMode,
    SalesPolicy,
    load_policy_json,
)
from castpay_core.exceptions import CastPayError, ConfigError, DataQualityError, ValidationError
from castpay_core.rounding import RoundingMode, apply_rounding, parse_rounding
from castpay_core.sales import SalesSummary, summarize_all_modes, summarize_by_day, summarize_sales
from castpay_core.types import (
    AttributionResult,
    AttributionRow,
    BackOptions,
    BackRateRule,
    BackType,
    CastCompensationSettings,
    CastSales,
    CompensationType,
    ComputedCompensation,
    HelpBackCalculationMethod,
    LineItem,
    NominationSet,
    PaymentSelectionMethod,
    ProductBack,
    ProductBackTotals,
    Receipt,
    SlidingRateTier,
)
from castpay_core.validation import ValidationIssue

__all__ = [
    "AttributionResult",
    "AttributionRow",
    "BackOptions",
    "BackRateResolver",
    "BackRateRule",
    "BackType",
    "BatchResult",
    "CastCompensationSettings",
    "CastPayError",
    "CastPayResult",
    "CastPeriodJob",
    "CastSales",
    "CompensationType",
    "ComputedCompensation",
    "ConfigError",
    "DataQualityError",
    "DistributionPolicy",
    "ExternalOrder",
    "HelpBackCalculationMethod",
    "HelpDistributionMethod",
    "ITERATION_ORDER",
    "LineItem",
    "MultiCastDistribution",
    "NominationSet",
    "PaymentSelectionMethod",
    "ProductBack",
    "ProductBackCalculator",
    "ProductBackTotals",
    "Receipt",
    "ReceiptAttribution",
    "RoundingMode",
    "RoundingTiming",
    "SalesAggregationMode",
    "SalesAttributionEngine",
    "SalesPolicy",
    "SalesSummary",
    "SlidingRateTier",
    "ValidationError",
    "ValidationIssue",
    "__version__",
    "apply_rounding",
    "back_options_for",
    "calculate_cast_pay",
    "commission",
    "evaluate",
    "evaluate_all",
    "external_order_back",
    "find_tier",
    "load_policy_json",
    "next_tier",
    "parse_rounding",
    "recalculate_roster",
    "select",
    "summarize_all_modes",
    "summarize_by_day",
    "summarize_sales",
    "total_backs_by_cast",
]
