"""Command-line entry point: attribute a receipt feed and compute cast pay.

Examples:
    Sales per cast for a period:
        castpay --receipts receipts.csv --policy policy.json

    Full pay run with product backs, writing report CSVs:
        castpay --receipts receipts.csv --policy policy.json \\
            --back-rates back_rates.csv --casts casts.json --out reports/
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

import pandas as pd

from castpay_core.batch import recalculate_roster
from castpay_core.config import SalesAggregationMode, SalesPolicy, load_policy_json
from castpay_core.exceptions import CastPayError
from castpay_core.loaders import load_back_rates_csv, load_casts_json, load_receipts_csv
from castpay_core.marts import (
    breakdown_frame,
    cast_sales_frame,
    compensation_frame,
    product_back_frame,
)
from castpay_core.sales import summarize_sales
from castpay_core.validation import format_issues, has_errors

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="castpay",
        description="Attribute receipts to casts and compute their compensation.",
    )
    parser.add_argument("--receipts", type=Path, required=True, help="Receipt feed CSV (one row per line item)")
    parser.add_argument("--policy", type=Path, default=None, help="Sales policy JSON (default: built-in defaults)")
    parser.add_argument("--back-rates", type=Path, default=None, help="Back-rate table CSV")
    parser.add_argument("--casts", type=Path, default=None, help="Cast roster JSON with compensation settings")
    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in SalesAggregationMode],
        default=SalesAggregationMode.ITEM_BASED.value,
        help="Aggregation mode of the printed sales table (default: item_based)",
    )
    parser.add_argument("--out", type=Path, default=None, help="Directory for report CSVs")
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("--quiet", action="store_true", help="Less logging")
    verbosity.add_argument("--verbose", action="store_true", help="Debug logging")
    return parser


def _write_frames(out_dir: Path, frames: dict[str, pd.DataFrame]) -> None:
    out_dir.mkdir(parents=True, exist_ok=True)
    for name, df in frames.items():
        path = out_dir / f"{name}.csv"
        df.to_csv(path, index=False)
        logger.info("Wrote %s (%d rows)", path, len(df))


def main(argv: list[str] | None = None) -> None:
    """Run the castpay command-line tool.

    Prints the per-cast sales table for ``--mode`` and, with ``--casts``,
    every cast's evaluated compensation types and the selected one.

    Exits with code 1 when inputs cannot be loaded or error-level
    validation issues are found.
    """
    args = build_parser().parse_args(argv)
    if args.verbose:
        level = logging.DEBUG
    elif args.quiet:
        level = logging.WARNING
    else:
        level = logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")

    mode = SalesAggregationMode(args.mode)
    try:
        policy = load_policy_json(args.policy) if args.policy else SalesPolicy()
        receipts = load_receipts_csv(args.receipts)
        rules = load_back_rates_csv(args.back_rates) if args.back_rates else []
        jobs = load_casts_json(args.casts) if args.casts else []
    except (CastPayError, FileNotFoundError) as e:
        print(f"ERROR: {e}")
        raise SystemExit(1) from e

    failures: dict[str, str] = {}
    if jobs:
        batch = recalculate_roster(jobs, receipts, policy, rules)
        summary = batch.summaries[mode]
        if summary.mode is not policy.published_aggregation:
            # backs live on the published summary
            summary.back_totals = batch.summaries[policy.published_aggregation].back_totals
            summary.product_backs = batch.summaries[policy.published_aggregation].product_backs
        issues = batch.issues or summary.issues
        results = batch.results
        failures = batch.failures
    else:
        summary = summarize_sales(receipts, policy, mode)
        issues = summary.issues
        results = []

    sales_df = cast_sales_frame(summary)
    print(f"Sales by cast ({mode.value}, {summary.receipt_count} receipts)")
    print(sales_df.to_string(index=False) if not sales_df.empty else "  (no attributed sales)")

    comp_df = compensation_frame(results)
    if results:
        print("\nCompensation")
        print(comp_df.to_string(index=False) if not comp_df.empty else "  (no payable casts)")

    if args.out:
        _write_frames(
            args.out,
            {
                "cast_sales": sales_df,
                "breakdown": breakdown_frame(summary),
                "product_backs": product_back_frame(summary),
                "compensation": comp_df,
            },
        )

    if issues:
        print()
        for line in format_issues(issues):
            print(line)
    for cast_name, message in failures.items():
        print(f"[ERROR] failed ({cast_name}): {message}")

    if has_errors(issues) or failures:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
