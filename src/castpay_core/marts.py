"""Report frames: flatten summaries and pay results into pandas DataFrames.

Every builder returns a frame with a fixed column order; empty inputs give
an empty frame with the same columns so callers can concatenate or export
without special cases.
"""

from __future__ import annotations

from typing import Iterable

import pandas as pd

from castpay_core.compensation import CastPayResult
from castpay_core.sales import SalesSummary

BREAKDOWN_COLUMNS = [
    "receipt_item_id",
    "product_name",
    "category",
    "base_amount",
    "cast_name",
    "is_self",
    "attributed_sales",
    "calculated_share",
]

CAST_SALES_COLUMNS = ["cast_name", "self_sales", "help_sales", "total_sales"]

PRODUCT_BACK_COLUMNS = [
    "item_id",
    "cast_name",
    "is_self",
    "product_name",
    "category",
    "base",
    "back_type",
    "ratio",
    "amount",
]

COMPENSATION_COLUMNS = [
    "cast_name",
    "type_id",
    "hourly_pay",
    "fixed_pay",
    "commission_back",
    "self_product_back",
    "help_product_back",
    "total",
    "selected",
]


def breakdown_frame(summary: SalesSummary) -> pd.DataFrame:
    """One row per attribution row of every included line item."""
    records = [
        {
            "receipt_item_id": result.item.id,
            "product_name": result.item.product_name,
            "category": result.item.category,
            "base_amount": result.base_amount,
            "cast_name": row.cast_name,
            "is_self": row.is_self,
            "attributed_sales": row.attributed_sales,
            "calculated_share": row.calculated_share,
        }
        for result in summary.breakdown
        if result.included
        for row in result.rows
    ]
    if not records:
        return pd.DataFrame(columns=BREAKDOWN_COLUMNS)
    return pd.DataFrame.from_records(records, columns=BREAKDOWN_COLUMNS)


def cast_sales_frame(summary: SalesSummary) -> pd.DataFrame:
    """Per-cast sales sorted by total sales, highest first.

    Ties keep first-credit order. Back totals are joined as ``self_back`` /
    ``help_back`` when the summary carries them.

    Examples:
        >>> from castpay_core import SalesPolicy, summarize_sales
        >>> cast_sales_frame(summarize_sales([], SalesPolicy(), "item_based")).empty
        True
    """
    if not summary.cast_sales:
        return pd.DataFrame(columns=CAST_SALES_COLUMNS + ["self_back", "help_back"])

    df = pd.DataFrame.from_records(
        [
            {
                "cast_name": sales.cast_name,
                "self_sales": sales.self_sales,
                "help_sales": sales.help_sales,
                "total_sales": sales.total_sales,
            }
            for sales in summary.cast_sales.values()
        ],
        columns=CAST_SALES_COLUMNS,
    )
    df["self_back"] = [summary.backs_for(name).self_back for name in df["cast_name"]]
    df["help_back"] = [summary.backs_for(name).help_back for name in df["cast_name"]]
    df = df.sort_values("total_sales", ascending=False, kind="mergesort")
    return df.reset_index(drop=True)


def product_back_frame(summary: SalesSummary) -> pd.DataFrame:
    """One row per computed product back."""
    if not summary.product_backs:
        return pd.DataFrame(columns=PRODUCT_BACK_COLUMNS)
    return pd.DataFrame.from_records(
        [
            {
                "item_id": back.item_id,
                "cast_name": back.cast_name,
                "is_self": back.is_self,
                "product_name": back.product_name,
                "category": back.category,
                "base": back.base,
                "back_type": back.back_type.value,
                "ratio": back.ratio,
                "amount": back.amount,
            }
            for back in summary.product_backs
        ],
        columns=PRODUCT_BACK_COLUMNS,
    )


def compensation_frame(results: Iterable[CastPayResult]) -> pd.DataFrame:
    """One row per evaluated compensation type, flagging the selected one.

    Casts blocked by validation errors contribute no rows.
    """
    records = []
    for result in results:
        selected_id = None if result.selected is None else result.selected.type_id
        for evaluation in result.evaluations:
            records.append(
                {
                    "cast_name": result.cast_name,
                    "type_id": evaluation.type_id,
                    "hourly_pay": evaluation.hourly_pay,
                    "fixed_pay": evaluation.fixed_pay,
                    "commission_back": evaluation.commission_back,
                    "self_product_back": evaluation.self_product_back,
                    "help_product_back": evaluation.help_product_back,
                    "total": evaluation.total,
                    "selected": evaluation.type_id == selected_id,
                }
            )
    if not records:
        return pd.DataFrame(columns=COMPENSATION_COLUMNS)
    return pd.DataFrame.from_records(records, columns=COMPENSATION_COLUMNS)
