"""Tests for per-period and per-day sales summaries."""

from datetime import date

import pytest

from castpay_core.backs import BackRateResolver, ExternalOrder
from castpay_core.config import SalesAggregationMode
from castpay_core.sales import summarize_all_modes, summarize_by_day, summarize_sales
from castpay_core.types import BackRateRule, LineItem, ProductBackTotals, Receipt

ROSTER = {"Aoi": 1, "Mio": 2, "Rin": 3}


@pytest.fixture
def resolver() -> BackRateResolver:
    """Every cast earns a flat 10% back."""
    return BackRateResolver([BackRateRule(cast_id=cast_id, back_ratio=10) for cast_id in ROSTER.values()])


def test_item_based_summary(plain_policy, sample_receipts) -> None:
    """Test per-cast totals; lines without cast are skipped."""
    summary = summarize_sales(sample_receipts, plain_policy, "item_based")

    assert summary.mode is SalesAggregationMode.ITEM_BASED
    assert summary.receipt_count == 2
    assert list(summary.cast_sales) == ["Aoi", "Mio", "Rin"]
    assert summary.sales_for("Aoi").total_sales == 32000
    assert summary.sales_for("Mio").self_sales == 9000
    assert summary.sales_for("Mio").help_sales == 0
    assert summary.sales_for("Nobody").total_sales == 0
    assert len(summary.breakdown) == 4
    assert summary.product_backs == []


def test_receipt_based_summary_credits_uncast_lines(plain_policy, sample_receipts) -> None:
    """Test that the set charge is credited to the nomination."""
    summary = summarize_sales(sample_receipts, plain_policy, SalesAggregationMode.RECEIPT_BASED)
    assert summary.sales_for("Aoi").total_sales == 37000


def test_product_backs(plain_policy, sample_receipts, resolver) -> None:
    """Test backs on self and help shares of the published mode."""
    summary = summarize_sales(sample_receipts, plain_policy, "item_based", resolver=resolver, roster=ROSTER)

    assert summary.back_totals == {
        "Aoi": ProductBackTotals(self_back=3200),
        "Mio": ProductBackTotals(self_back=900, help_back=100),
        "Rin": ProductBackTotals(help_back=450),
    }
    assert summary.backs_for("Nobody") == ProductBackTotals()


def test_backs_follow_published_mode(plain_policy, sample_receipts, resolver) -> None:
    """Test that a receipt-based summary still computes backs item-based."""
    summary = summarize_sales(sample_receipts, plain_policy, "receipt_based", resolver=resolver, roster=ROSTER)

    assert summary.sales_for("Aoi").total_sales == 37000
    assert summary.backs_for("Aoi") == ProductBackTotals(self_back=3200)


def test_external_orders_add_backs(plain_policy, sample_receipts) -> None:
    """Test that shop orders contribute self backs."""
    resolver = BackRateResolver([BackRateRule(cast_id=1, category="BASE", back_ratio=20)])
    orders = [ExternalOrder(id="S1", cast_name="Aoi", product_name="Photo book", actual_price=3000)]

    summary = summarize_sales(
        sample_receipts, plain_policy, "item_based", resolver=resolver, roster=ROSTER, external_orders=orders
    )

    assert summary.backs_for("Aoi") == ProductBackTotals(self_back=600)


def test_external_orders_count_as_self_sales(plain_policy, sample_receipts) -> None:
    """Test that shop order subtotals are credited even without backs."""
    orders = [
        ExternalOrder(id="S1", cast_name="Aoi", product_name="Photo book", actual_price=3000),
        ExternalOrder(id="S2", cast_name="Yui", product_name="Cheki", actual_price=500, quantity=4),
    ]

    summary = summarize_sales(sample_receipts, plain_policy, "item_based", external_orders=orders)

    assert summary.sales_for("Aoi").self_sales == 35000
    assert summary.sales_for("Yui").self_sales == 2000
    assert summary.sales_for("Yui").help_sales == 0
    assert summary.product_backs == []


def test_external_orders_without_receipts(plain_policy) -> None:
    """Test a shop-only period: sales and back both credited."""
    resolver = BackRateResolver([BackRateRule(cast_id=1, category="BASE", back_ratio=20)])
    orders = [ExternalOrder(id="S1", cast_name="Aoi", product_name="Photo book", actual_price=3000)]

    summary = summarize_sales([], plain_policy, "item_based", resolver, {"Aoi": 1}, external_orders=orders)

    assert summary.sales_for("Aoi").self_sales == 3000
    assert summary.backs_for("Aoi") == ProductBackTotals(self_back=600)


def test_summarize_all_modes_credits_shop_sales_everywhere(plain_policy, sample_receipts) -> None:
    """Test shop sales in both modes and the shop back only once."""
    resolver = BackRateResolver([BackRateRule(cast_id=1, category="BASE", back_ratio=20)])
    orders = [ExternalOrder(id="S1", cast_name="Aoi", product_name="Photo book", actual_price=3000)]

    summaries = summarize_all_modes(
        sample_receipts, plain_policy, resolver=resolver, roster=ROSTER, external_orders=orders
    )

    assert summaries[SalesAggregationMode.ITEM_BASED].sales_for("Aoi").total_sales == 35000
    assert summaries[SalesAggregationMode.RECEIPT_BASED].sales_for("Aoi").total_sales == 40000
    assert summaries[SalesAggregationMode.ITEM_BASED].backs_for("Aoi") == ProductBackTotals(self_back=600)
    assert summaries[SalesAggregationMode.RECEIPT_BASED].back_totals == {}


def test_summarize_all_modes_attaches_backs_once(plain_policy, sample_receipts, resolver) -> None:
    """Test that only the published summary carries backs."""
    summaries = summarize_all_modes(sample_receipts, plain_policy, resolver=resolver, roster=ROSTER)

    assert set(summaries) == set(SalesAggregationMode)
    assert summaries[SalesAggregationMode.ITEM_BASED].back_totals["Aoi"].self_back == 3200
    assert summaries[SalesAggregationMode.RECEIPT_BASED].product_backs == []
    assert summaries[SalesAggregationMode.RECEIPT_BASED].sales_for("Aoi").total_sales == 37000


def test_summarize_by_day(plain_policy, sample_receipts) -> None:
    """Test one summary per business date, ascending, undated last."""
    undated = Receipt(
        id="R0",
        staff_names=("Rin",),
        items=(LineItem(id=9, product_name="Beer", base_price=1000, cast_names=("Rin",)),),
    )

    by_day = summarize_by_day([undated] + list(reversed(sample_receipts)), plain_policy, "item_based")

    assert list(by_day) == [date(2025, 3, 1), date(2025, 3, 2), None]
    assert by_day[date(2025, 3, 1)].sales_for("Aoi").total_sales == 32000
    assert by_day[date(2025, 3, 2)].sales_for("Mio").total_sales == 9000
    assert by_day[None].sales_for("Rin").total_sales == 1000


def test_invalid_receipts_are_reported(plain_policy) -> None:
    """Test that negative prices and quantities show up as issues."""
    receipt = Receipt(
        id="R9",
        staff_names=("Aoi",),
        items=(LineItem(id=1, product_name="Refund", base_price=-500, cast_names=("Aoi",), quantity=-1),),
    )

    summary = summarize_sales([receipt], plain_policy, "item_based")

    assert [(issue.code, issue.subject) for issue in summary.issues] == [
        ("negative_price", "R9/1"),
        ("negative_quantity", "R9/1"),
    ]
