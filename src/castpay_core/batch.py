"""Recalculate a whole roster for one pay period.

Attribution is shared by every cast of a venue, so it is computed once per
aggregation mode. Per-cast evaluation and selection then run in a thread
pool; one cast failing is recorded and logged without stopping the others.
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from castpay_core.backs import BackRateResolver, ExternalOrder, back_options_for
from castpay_core.compensation import CastPayResult, calculate_cast_pay
from castpay_core.config import SalesAggregationMode, SalesPolicy
from castpay_core.sales import SalesSummary, summarize_all_modes
from castpay_core.types import BackRateRule, CastCompensationSettings, Receipt
from castpay_core.validation import ValidationIssue

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CastPeriodJob:
    """Inputs of one cast for one pay period.

    Attributes:
        cast_name: Name used on receipts.
        cast_id: Id used by the back-rate table.
        settings: The cast's compensation settings for the period.
        work_hours: Hours worked in the period.
    """

    cast_name: str
    cast_id: int
    settings: CastCompensationSettings
    work_hours: float = 0.0


@dataclass
class BatchResult:
    """Outcome of a roster recalculation.

    Attributes:
        results: CastPayResult per successful cast, in job order.
        failures: Cast name to error message for casts that raised.
        summaries: Shared SalesSummary per aggregation mode.
    """

    results: list[CastPayResult] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)
    summaries: dict[SalesAggregationMode, SalesSummary] = field(default_factory=dict)

    @property
    def issues(self) -> list[ValidationIssue]:
        """Every issue of every cast, de-duplicated, in job order."""
        seen: list[ValidationIssue] = []
        for result in self.results:
            for issue in result.issues:
                if issue not in seen:
                    seen.append(issue)
        return seen


def _default_workers(job_count: int) -> int:
    return max(1, min(job_count, os.cpu_count() or 1))


def recalculate_roster(
    jobs: Sequence[CastPeriodJob],
    receipts: Iterable[Receipt],
    policy: SalesPolicy,
    rules: Iterable[BackRateRule],
    max_workers: Optional[int] = None,
    external_orders: Sequence[ExternalOrder] = (),
) -> BatchResult:
    """Compute every cast's pay for a period.

    Receipt validation errors apply to every cast: sales totals built from
    a bad receipt are unreliable for the whole roster.

    Args:
        jobs: One CastPeriodJob per cast.
        receipts: Receipts of the period.
        policy: Venue sales policy.
        rules: Back-rate table of the venue.
        max_workers: Thread count; defaults to ``os.cpu_count()`` bounded by
            the number of jobs.
        external_orders: Online-shop orders credited to casts.

    Returns:
        BatchResult with results in job order.
    """
    jobs = list(jobs)
    roster = {job.cast_name: job.cast_id for job in jobs}
    options = {job.cast_name: back_options_for(job.settings) for job in jobs}
    resolver = BackRateResolver(rules)

    summaries = summarize_all_modes(
        receipts,
        policy,
        resolver=resolver,
        roster=roster,
        back_options=options,
        external_orders=external_orders,
    )
    published = summaries[policy.published_aggregation]
    receipt_issues = published.issues

    def run(job: CastPeriodJob) -> CastPayResult:
        sales_by_mode = {
            mode: summary.sales_for(job.cast_name).total_sales for mode, summary in summaries.items()
        }
        return calculate_cast_pay(
            job.cast_name,
            job.settings,
            job.work_hours,
            sales_by_mode,
            published.backs_for(job.cast_name),
            issues=receipt_issues,
        )

    batch = BatchResult(summaries=summaries)
    if not jobs:
        return batch

    workers = max_workers or _default_workers(len(jobs))
    logger.info("Recalculating %d cast(s) with %d worker(s)", len(jobs), workers)

    by_name: dict[str, CastPayResult] = {}
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {executor.submit(run, job): job for job in jobs}
        for future in as_completed(futures):
            job = futures[future]
            try:
                by_name[job.cast_name] = future.result()
            except Exception as e:
                logger.error("Recalculation failed for %s: %s", job.cast_name, e)
                batch.failures[job.cast_name] = str(e)

    batch.results = [by_name[job.cast_name] for job in jobs if job.cast_name in by_name]
    logger.info(
        "Recalculated %d cast(s), %d failure(s)", len(batch.results), len(batch.failures)
    )
    return batch
