"""Example: one month of sales attribution, compensation and payslips.

Builds a small venue in memory, recalculates the roster and prints each
cast's sales, selected compensation and net pay.
"""

from datetime import date

from castpay_core import (
    BackRateRule,
    CastCompensationSettings,
    CastPeriodJob,
    CompensationType,
    LineItem,
    Receipt,
    SalesPolicy,
    SlidingRateTier,
    recalculate_roster,
)
from castpay_core.marts import cast_sales_frame, compensation_frame
from castpay_core.payslip import AttendanceDay, DeductionKind, DeductionType, build_payslip

# Setup
policy = SalesPolicy.from_dict(
    {
        "tax_percent": 10,
        "item_rounding_method": "floor_100",
        "item_multi_cast_distribution": "all_equal",
        "item_help_distribution_method": "equal_per_person",
        "non_help_staff_names": "free",
    }
)

receipts = [
    Receipt(
        id="R1",
        business_date=date(2025, 3, 1),
        staff_names=("Aoi",),
        items=(
            LineItem(id=1, product_name="Dom Perignon", category="Champagne", base_price=88000, cast_names=("Aoi",)),
            LineItem(id=2, product_name="Cocktail", category="Drink", base_price=2200, cast_names=("Aoi", "Mio")),
            LineItem(id=3, product_name="Set charge", category="Charge", base_price=6600),
        ),
    ),
    Receipt(
        id="R2",
        business_date=date(2025, 3, 2),
        staff_names=("free",),
        items=(
            LineItem(id=4, product_name="Wine", category="Wine", base_price=16500, cast_names=("Mio", "Rin")),
        ),
    ),
]

rules = [
    BackRateRule(cast_id=1, category="Champagne", back_ratio=20),
    BackRateRule(cast_id=1, back_ratio=10),
    BackRateRule(cast_id=2, back_ratio=10),
    BackRateRule(cast_id=3, back_ratio=5, help_back_ratio=3),
]

sliding = CompensationType(
    id="sliding",
    use_sliding_rate=True,
    sliding_rates=(
        SlidingRateTier(0, 100000, 40),
        SlidingRateTier(100000, 200000, 45),
        SlidingRateTier(200000, 0, 50),
    ),
)
hourly = CompensationType(id="hourly", hourly_rate=2500)
settings = CastCompensationSettings(types=(hourly, sliding))

jobs = [
    CastPeriodJob(cast_name="Aoi", cast_id=1, settings=settings, work_hours=24),
    CastPeriodJob(cast_name="Mio", cast_id=2, settings=settings, work_hours=30),
    CastPeriodJob(cast_name="Rin", cast_id=3, settings=settings, work_hours=12.5),
]

# Recalculate the roster
batch = recalculate_roster(jobs, receipts, policy, rules)

print("Sales by cast (item_based)")
print("-" * 60)
print(cast_sales_frame(batch.summaries[policy.published_aggregation]).to_string(index=False))
print()

print("Compensation")
print("-" * 60)
print(compensation_frame(batch.results).to_string(index=False))
print()

# Payslips
deductions = [
    DeductionType(id=1, name="Withholding", kind=DeductionKind.PERCENTAGE, percentage=10.21),
    DeductionType(id=2, name="Dress rental", kind=DeductionKind.FIXED, default_amount=3000),
]
attendance = [AttendanceDay(day=date(2025, 3, 1), daily_payment=5000)]

print("Payslips")
print("-" * 60)
for result in batch.results:
    if result.selected is None:
        print(f"{result.cast_name}: blocked ({len(result.issues)} issue(s))")
        continue
    slip = build_payslip(result, deductions, attendance)
    print(f"{slip.cast_name}: gross {slip.gross}, deductions {slip.total_deduction}, net {slip.net}")
