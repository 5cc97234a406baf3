"""Tests for report frames."""

from castpay_core.backs import BackRateResolver
from castpay_core.compensation import CastPayResult, calculate_cast_pay
from castpay_core.marts import (
    BREAKDOWN_COLUMNS,
    COMPENSATION_COLUMNS,
    PRODUCT_BACK_COLUMNS,
    breakdown_frame,
    cast_sales_frame,
    compensation_frame,
    product_back_frame,
)
from castpay_core.sales import summarize_sales
from castpay_core.types import (
    BackRateRule,
    CastCompensationSettings,
    CompensationType,
    ProductBackTotals,
)


def test_cast_sales_frame_sorted_by_total(plain_policy, sample_receipts) -> None:
    """Test that casts are listed by total sales, highest first."""
    df = cast_sales_frame(summarize_sales(sample_receipts, plain_policy, "item_based"))

    assert list(df["cast_name"]) == ["Aoi", "Mio", "Rin"]
    assert list(df["total_sales"]) == [32000, 9000, 0]
    assert list(df.columns) == ["cast_name", "self_sales", "help_sales", "total_sales", "self_back", "help_back"]


def test_breakdown_frame(plain_policy, sample_receipts) -> None:
    """Test one row per attribution row of included items."""
    df = breakdown_frame(summarize_sales(sample_receipts, plain_policy, "item_based"))

    assert list(df.columns) == BREAKDOWN_COLUMNS
    assert len(df) == 5
    assert df["attributed_sales"].sum() == 41000
    assert "Set charge" not in set(df["product_name"])


def test_product_back_frame(plain_policy, sample_receipts) -> None:
    """Test one row per product back, with the back type as text."""
    resolver = BackRateResolver([BackRateRule(cast_id=1, back_ratio=10)])
    summary = summarize_sales(sample_receipts, plain_policy, "item_based", resolver=resolver, roster={"Aoi": 1})

    df = product_back_frame(summary)

    assert list(df.columns) == PRODUCT_BACK_COLUMNS
    assert list(df["amount"]) == [3000, 200]
    assert set(df["back_type"]) == {"ratio"}


def test_empty_inputs_give_empty_frames(plain_policy) -> None:
    """Test that empty summaries and results keep their columns."""
    summary = summarize_sales([], plain_policy, "item_based")

    assert cast_sales_frame(summary).empty
    assert list(breakdown_frame(summary).columns) == BREAKDOWN_COLUMNS
    assert list(product_back_frame(summary).columns) == PRODUCT_BACK_COLUMNS
    assert list(compensation_frame([]).columns) == COMPENSATION_COLUMNS


def test_compensation_frame_flags_selection() -> None:
    """Test one row per evaluated type with the selected one flagged."""
    settings = CastCompensationSettings(
        types=(
            CompensationType(id="hourly", hourly_rate=2000),
            CompensationType(id="fixed", fixed_amount=5000),
        )
    )
    paid = calculate_cast_pay("Aoi", settings, 5, {"item_based": 0}, ProductBackTotals())
    blocked = CastPayResult(cast_name="Mio")

    df = compensation_frame([paid, blocked])

    assert list(df["type_id"]) == ["hourly", "fixed"]
    assert list(df["total"]) == [10000, 5000]
    assert list(df["selected"]) == [True, False]
    assert set(df["cast_name"]) == {"Aoi"}
