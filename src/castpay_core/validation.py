"""Caller contract checks reported alongside computations.

Checks here never raise. They return ValidationIssue records so a batch
driver can show every problem of a payroll run at once; error-level issues
stop the affected cast's computation instead of producing a plausible but
wrong number.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from castpay_core.commission import find_tier_gaps
from castpay_core.types import (
    CastCompensationSettings,
    PaymentSelectionMethod,
    Receipt,
)

ERROR = "error"
WARNING = "warning"


@dataclass(frozen=True)
class ValidationIssue:
    """A single validation outcome.

    Attributes:
        level: Severity, either "error" or "warning".
        code: Stable machine-readable identifier.
        message: Human-readable description.
        subject: What the issue is about (receipt/item id, type id, cast).

    Examples:
        >>> issue = ValidationIssue("error", "negative_price", "Price is negative")
        >>> issue.is_error
        True
    """

    level: str
    code: str
    message: str
    subject: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.level == ERROR


def has_errors(issues: Iterable[ValidationIssue]) -> bool:
    """True when at least one blocking issue exists."""
    return any(issue.is_error for issue in issues)


def validate_receipts(receipts: Iterable[Receipt]) -> list[ValidationIssue]:
    """Check prices and quantities of every line item."""
    issues: list[ValidationIssue] = []
    for receipt in receipts:
        for item in receipt.items:
            subject = f"{receipt.id}/{item.id}"
            if item.base_price < 0:
                issues.append(
                    ValidationIssue(
                        ERROR,
                        "negative_price",
                        f"Item '{item.product_name}' has negative price {item.base_price}",
                        subject,
                    )
                )
            if item.quantity < 0:
                issues.append(
                    ValidationIssue(
                        ERROR,
                        "negative_quantity",
                        f"Item '{item.product_name}' has negative quantity {item.quantity}",
                        subject,
                    )
                )
    return issues


def validate_work_hours(cast_name: str, work_hours: float) -> list[ValidationIssue]:
    if work_hours < 0:
        return [
            ValidationIssue(ERROR, "negative_work_hours", f"Work hours {work_hours} are negative", cast_name)
        ]
    return []


def validate_compensation_settings(
    settings: CastCompensationSettings,
    cast_name: Optional[str] = None,
) -> list[ValidationIssue]:
    """Check a cast's compensation configuration.

    - No enabled type is an error: there is nothing to pay from.
    - ``specific`` selection naming an absent or disabled type is a warning;
      selection falls back to the first evaluated type.
    - Gaps or overlaps in sliding tables are warnings: sales in a gap earn
      zero commission.
    """
    issues: list[ValidationIssue] = []
    enabled = settings.enabled_types
    if not enabled:
        issues.append(
            ValidationIssue(ERROR, "no_enabled_types", "No enabled compensation type", cast_name)
        )

    if settings.payment_selection_method is PaymentSelectionMethod.SPECIFIC:
        selected = settings.selected_compensation_type_id
        if selected is None:
            issues.append(
                ValidationIssue(
                    WARNING,
                    "selection_missing",
                    "Specific selection without a selected type; using the first type",
                    cast_name,
                )
            )
        elif selected not in {t.id for t in enabled}:
            issues.append(
                ValidationIssue(
                    WARNING,
                    "selection_unavailable",
                    f"Selected type '{selected}' is absent or disabled; using the first type",
                    cast_name,
                )
            )

    for ctype in enabled:
        if ctype.use_sliding_rate:
            for problem in find_tier_gaps(ctype.sliding_rates):
                issues.append(
                    ValidationIssue(WARNING, "sliding_table", f"Type '{ctype.id}': {problem}", cast_name)
                )
    return issues


def format_issues(issues: Sequence[ValidationIssue]) -> list[str]:
    """Render issues one per line, errors first."""
    ordered = sorted(issues, key=lambda issue: 0 if issue.is_error else 1)
    lines = []
    for issue in ordered:
        prefix = "[ERROR]" if issue.is_error else "[WARN ]"
        subject = f" ({issue.subject})" if issue.subject else ""
        lines.append(f"{prefix} {issue.code}{subject}: {issue.message}")
    return lines
