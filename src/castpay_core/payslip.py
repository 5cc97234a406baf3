"""Payslip assembly: deductions and net pay on top of a selected compensation.

Deductions are applied in a fixed order: daily payment advances, late
penalties, status penalties, fixed deductions, then percentage withholding
on the gross. Late penalties arrive already computed per attendance day.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Iterable, Mapping, Optional, Sequence

from castpay_core.compensation import CastPayResult
from castpay_core.config import parse_enum
from castpay_core.exceptions import ValidationError
from castpay_core.money import percent_of_half_up

logger = logging.getLogger(__name__)


class DeductionKind(str, Enum):
    """Kinds of payroll deduction."""

    DAILY_PAYMENT = "daily_payment"
    PENALTY_LATE = "penalty_late"
    PENALTY_STATUS = "penalty_status"
    FIXED = "fixed"
    PERCENTAGE = "percentage"


@dataclass(frozen=True)
class DeductionType:
    """A configured deduction of the venue.

    Attributes:
        id: Deduction id referenced by ``enabled_deduction_ids``.
        name: Label printed on the payslip.
        kind: DeductionKind.
        percentage: Withholding rate for ``percentage`` deductions.
        default_amount: Amount of a ``fixed`` deduction.
        penalty_amount: Amount per matching day for ``penalty_status``.
        attendance_status_id: Attendance status a ``penalty_status`` counts.
    """

    id: int
    name: str
    kind: DeductionKind
    percentage: float = 0.0
    default_amount: int = 0
    penalty_amount: int = 0
    attendance_status_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> DeductionType:
        status = data.get("attendance_status_id")
        return cls(
            id=int(data["id"]),
            name=str(data.get("name") or ""),
            kind=parse_enum(DeductionKind, data.get("type", data.get("kind")), DeductionKind.FIXED),
            percentage=float(data.get("percentage") or 0),
            default_amount=int(data.get("default_amount") or 0),
            penalty_amount=int(data.get("penalty_amount") or 0),
            attendance_status_id=None if status is None else str(status),
        )


@dataclass(frozen=True)
class AttendanceDay:
    """One attendance day of a cast, with its derived penalty."""

    day: date
    daily_payment: int = 0
    late_penalty: int = 0
    status_id: Optional[str] = None


@dataclass(frozen=True)
class DeductionLine:
    """One deduction printed on a payslip."""

    name: str
    kind: DeductionKind
    amount: int
    count: Optional[int] = None
    percentage: Optional[float] = None


@dataclass
class Payslip:
    """Gross, deductions and net pay of one cast for one period."""

    cast_name: str
    compensation_type_id: str
    gross: int
    deductions: list[DeductionLine] = field(default_factory=list)

    @property
    def total_deduction(self) -> int:
        return sum(line.amount for line in self.deductions)

    @property
    def net(self) -> int:
        return self.gross - self.total_deduction


def _enabled(deduction: DeductionType, enabled_ids: Sequence[int]) -> bool:
    return not enabled_ids or deduction.id in enabled_ids


def build_payslip(
    cast_result: CastPayResult,
    deductions: Iterable[DeductionType],
    attendance: Iterable[AttendanceDay] = (),
    enabled_deduction_ids: Sequence[int] = (),
) -> Payslip:
    """Assemble a payslip from a selected compensation.

    Args:
        cast_result: Result of ``calculate_cast_pay`` with a selection.
        deductions: The venue's configured deduction types.
        attendance: Attendance days of the period.
        enabled_deduction_ids: Deductions that apply to this cast. Empty
            enables every deduction.

    Returns:
        Payslip. Deductions that amount to zero are left off.

    Raises:
        ValidationError: If the result has no selected compensation.

    Examples:
        >>> # result: CastPayResult from calculate_cast_pay with a 100000 total
        >>> slip = build_payslip(result, [DeductionType(1, "Tax", DeductionKind.PERCENTAGE, 10.21)])
        >>> slip.net
        89790
    """
    if cast_result.selected is None:
        raise ValidationError(
            f"Cannot build a payslip for {cast_result.cast_name}: no compensation was selected"
        )
    gross = cast_result.selected.total
    deductions = list(deductions)
    attendance = list(attendance)
    slip = Payslip(
        cast_name=cast_result.cast_name,
        compensation_type_id=cast_result.selected.type_id,
        gross=gross,
    )

    advances = [day.daily_payment for day in attendance if day.daily_payment > 0]
    if advances:
        slip.deductions.append(
            DeductionLine("Daily payment", DeductionKind.DAILY_PAYMENT, sum(advances), count=len(advances))
        )

    late = next(
        (
            d
            for d in deductions
            if d.kind is DeductionKind.PENALTY_LATE and _enabled(d, enabled_deduction_ids)
        ),
        None,
    )
    if late is not None:
        penalties = [day.late_penalty for day in attendance if day.late_penalty > 0]
        if penalties:
            slip.deductions.append(
                DeductionLine(late.name, DeductionKind.PENALTY_LATE, sum(penalties), count=len(penalties))
            )

    for d in deductions:
        if d.kind is not DeductionKind.PENALTY_STATUS or d.attendance_status_id is None:
            continue
        if not _enabled(d, enabled_deduction_ids):
            continue
        count = sum(1 for day in attendance if day.status_id == d.attendance_status_id)
        if count > 0:
            slip.deductions.append(
                DeductionLine(d.name, DeductionKind.PENALTY_STATUS, d.penalty_amount * count, count=count)
            )

    for d in deductions:
        if d.kind is DeductionKind.FIXED and _enabled(d, enabled_deduction_ids) and d.default_amount > 0:
            slip.deductions.append(DeductionLine(d.name, DeductionKind.FIXED, d.default_amount))

    for d in deductions:
        if d.kind is not DeductionKind.PERCENTAGE or not d.percentage:
            continue
        if not _enabled(d, enabled_deduction_ids):
            continue
        amount = percent_of_half_up(gross, d.percentage)
        if amount > 0:
            slip.deductions.append(
                DeductionLine(d.name, DeductionKind.PERCENTAGE, amount, percentage=d.percentage)
            )

    logger.debug(
        "Payslip %s: gross %d, deductions %d, net %d",
        slip.cast_name,
        slip.gross,
        slip.total_deduction,
        slip.net,
    )
    return slip
