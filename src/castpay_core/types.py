"""Shared data model for the attribution and compensation engine.

All monetary fields are ``int`` amounts in the currency's minor unit.
Percentages (back ratios, commission rates) may be fractional and are kept
as ``float`` or ``Decimal``; they are only ever multiplied through
``castpay_core.money.percent_of``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Mapping, Optional, Sequence

from castpay_core.config import SalesAggregationMode, parse_enum


class BackType(str, Enum):
    """Whether a back is a percentage of sales or a fixed amount."""

    RATIO = "ratio"
    FIXED = "fixed"


class HelpBackCalculationMethod(str, Enum):
    """Base used for help-side product backs."""

    SALES_BASED = "sales_based"
    FULL_AMOUNT = "full_amount"


class PaymentSelectionMethod(str, Enum):
    """How the payable compensation type is chosen."""

    HIGHEST = "highest"
    SPECIFIC = "specific"


def _split_names(value: Any) -> tuple[str, ...]:
    """Normalize a name list (sequence or comma-separated string), keeping order."""
    if value is None:
        return ()
    if isinstance(value, str):
        parts = value.split(",")
    else:
        parts = list(value)
    names: list[str] = []
    for part in parts:
        name = str(part).strip()
        if name and name not in names:
            names.append(name)
    return tuple(names)


def _as_bool(value: Any, default: bool) -> bool:
    """Read a flag from JSON, CSV text, or a pandas cell."""
    if value is None or value == "":
        return default
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y", "t"}
    if isinstance(value, float) and value != value:
        return default
    return bool(value)


def _optional_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    # pandas hands NaN for empty cells
    if number != number:
        return None
    return number


# --------------------------------------------------------------------------- #
# Receipts
# --------------------------------------------------------------------------- #


@dataclass(frozen=True)
class LineItem:
    """One product line on a receipt.

    Attributes:
        id: Line item identifier.
        product_name: Product name as sold.
        category: Product category, or None.
        base_price: Line amount (unit price x quantity) in minor units.
        cast_names: Casts credited on the line, de-duplicated, in order.
            Empty marks the line as "not included" for item-based sales.
        quantity: Units sold; multiplies fixed backs.
    """

    id: Any
    product_name: str
    base_price: int
    cast_names: tuple[str, ...] = ()
    category: Optional[str] = None
    quantity: int = 1

    def __post_init__(self) -> None:
        object.__setattr__(self, "cast_names", _split_names(self.cast_names))


@dataclass(frozen=True)
class Receipt:
    """A receipt: nominated staff plus its line items."""

    id: Any
    items: tuple[LineItem, ...]
    staff_names: tuple[str, ...] = ()
    business_date: Optional[date] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "staff_names", _split_names(self.staff_names))
        object.__setattr__(self, "items", tuple(self.items))


@dataclass(frozen=True)
class NominationSet:
    """Nominated ("self") casts of a receipt and the non-help exclusion list.

    Attributes:
        names: Nominated cast names in receipt order.
        non_help_names: Labels that are never help (house, free seating).
    """

    names: tuple[str, ...] = ()
    non_help_names: frozenset[str] = frozenset()

    @classmethod
    def for_receipt(cls, receipt: Receipt, non_help_names: Sequence[str] = ()) -> NominationSet:
        return cls(names=receipt.staff_names, non_help_names=frozenset(non_help_names))

    @property
    def real_names(self) -> tuple[str, ...]:
        """Nominations with excluded labels removed."""
        return tuple(name for name in self.names if name not in self.non_help_names)

    @property
    def is_free_seating(self) -> bool:
        """True when nobody real was nominated."""
        return not self.real_names

    def eligible(self, cast_names: Sequence[str]) -> tuple[str, ...]:
        """Drop excluded labels from an on-item cast list."""
        return tuple(name for name in cast_names if name not in self.non_help_names)


# --------------------------------------------------------------------------- #
# Attribution output
# --------------------------------------------------------------------------- #


@dataclass(frozen=True)
class AttributionRow:
    """Sales credit of one cast on one line item.

    ``calculated_share`` is the share before ``give_help_sales`` zeroes the
    reported help sales; product backs are computed from it. Under
    per-receipt timing the share still carries tax, and ``back_share`` holds
    the tax-stripped amount backs use instead.
    """

    cast_name: str
    is_self: bool
    attributed_sales: int
    calculated_share: int
    back_share: Optional[int] = None

    @property
    def back_base(self) -> int:
        return self.calculated_share if self.back_share is None else self.back_share


@dataclass(frozen=True)
class AttributionResult:
    """Attribution of one line item under one aggregation mode."""

    item: LineItem
    included: bool
    base_amount: int
    self_casts_on_item: tuple[str, ...] = ()
    help_casts_on_item: tuple[str, ...] = ()
    rows: tuple[AttributionRow, ...] = ()
    back_amount: Optional[int] = None

    @property
    def back_base(self) -> int:
        """Item amount full-amount help backs are computed from."""
        return self.base_amount if self.back_amount is None else self.back_amount

    @property
    def total_attributed(self) -> int:
        return sum(row.attributed_sales for row in self.rows)


# --------------------------------------------------------------------------- #
# Back rates
# --------------------------------------------------------------------------- #


@dataclass(frozen=True)
class BackRateRule:
    """A cast's back rate for a product, a category, or everything.

    ``category=None`` and ``product_name=None`` is the cast-wide default;
    ``product_name=None`` alone is a category default.
    """

    cast_id: int
    category: Optional[str] = None
    product_name: Optional[str] = None
    back_type: BackType = BackType.RATIO
    back_ratio: float = 0.0
    self_back_ratio: Optional[float] = None
    help_back_ratio: Optional[float] = None
    back_fixed_amount: int = 0
    use_sliding_back: bool = False
    calculated_sliding_rate: Optional[float] = None
    is_active: bool = True

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> BackRateRule:
        """Build a rule from a back-rate table row, defaulting absent fields."""
        category = data.get("category")
        product_name = data.get("product_name")
        return cls(
            cast_id=int(data["cast_id"]),
            category=category if isinstance(category, str) and category else None,
            product_name=product_name if isinstance(product_name, str) and product_name else None,
            back_type=parse_enum(BackType, data.get("back_type"), BackType.RATIO),
            back_ratio=_optional_float(data.get("back_ratio")) or 0.0,
            self_back_ratio=_optional_float(data.get("self_back_ratio")),
            help_back_ratio=_optional_float(data.get("help_back_ratio")),
            back_fixed_amount=int(_optional_float(data.get("back_fixed_amount")) or 0),
            use_sliding_back=_as_bool(data.get("use_sliding_back"), False),
            calculated_sliding_rate=_optional_float(data.get("calculated_sliding_rate")),
            is_active=_as_bool(data.get("is_active"), True),
        )


@dataclass(frozen=True)
class ResolvedBackRate:
    """Back rate that applies to one (cast, item, side) combination."""

    back_type: BackType
    ratio: float
    fixed_amount: int
    is_sliding: bool = False


@dataclass(frozen=True)
class ProductBack:
    """Back earned by one cast on one line item."""

    item_id: Any
    cast_name: str
    is_self: bool
    product_name: str
    category: Optional[str]
    base: int
    back_type: BackType
    ratio: float
    amount: int


@dataclass(frozen=True)
class ProductBackTotals:
    """Per-cast product back split by side."""

    self_back: int = 0
    help_back: int = 0

    @property
    def total(self) -> int:
        return self.self_back + self.help_back

    def __add__(self, other: ProductBackTotals) -> ProductBackTotals:
        return ProductBackTotals(
            self_back=self.self_back + other.self_back,
            help_back=self.help_back + other.help_back,
        )


@dataclass(frozen=True)
class BackOptions:
    """Compensation-type switches that gate product backs for one cast."""

    use_product_back: bool = True
    use_help_product_back: bool = True
    help_back_calculation_method: HelpBackCalculationMethod = HelpBackCalculationMethod.SALES_BASED


# --------------------------------------------------------------------------- #
# Compensation
# --------------------------------------------------------------------------- #


@dataclass(frozen=True)
class SlidingRateTier:
    """Commission tier covering ``[min, max)``; ``max == 0`` is unbounded."""

    min: int
    max: int
    rate_percent: float

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SlidingRateTier:
        rate = data.get("rate_percent", data.get("rate"))
        return cls(
            min=int(data.get("min") or 0),
            max=int(data.get("max") or 0),
            rate_percent=_optional_float(rate) or 0.0,
        )

    def covers(self, amount: int) -> bool:
        return amount >= self.min and (self.max == 0 or amount < self.max)


@dataclass(frozen=True)
class CompensationType:
    """One complete pay formula for a cast.

    Attributes:
        id: Type identifier, unique per cast and period.
        name: Display name.
        is_enabled: Disabled types are never evaluated.
        sales_aggregation_mode: Which sales figure the commission uses.
        hourly_rate: Hourly wage; ``<= 0`` disables the hourly component.
        fixed_amount: Fixed pay per period.
        commission_rate_percent: Flat commission rate.
        use_sliding_rate: Use ``sliding_rates`` instead of the flat rate.
        sliding_rates: Tier table ordered by ``min``.
        use_product_back: Include self-side product backs.
        use_help_product_back: Include help-side product backs.
        help_back_calculation_method: Base for help-side backs.
    """

    id: str
    name: str = ""
    is_enabled: bool = True
    sales_aggregation_mode: SalesAggregationMode = SalesAggregationMode.ITEM_BASED
    hourly_rate: int = 0
    fixed_amount: int = 0
    commission_rate_percent: float = 0.0
    use_sliding_rate: bool = False
    sliding_rates: tuple[SlidingRateTier, ...] = ()
    use_product_back: bool = True
    use_help_product_back: bool = True
    help_back_calculation_method: HelpBackCalculationMethod = HelpBackCalculationMethod.SALES_BASED

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> CompensationType:
        """Build a type from a settings blob. A missing ``is_enabled`` means enabled."""
        rates = data.get("sliding_rates") or ()
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            is_enabled=_as_bool(data.get("is_enabled"), True),
            sales_aggregation_mode=parse_enum(
                SalesAggregationMode,
                data.get("sales_aggregation_mode", data.get("sales_aggregation")),
                SalesAggregationMode.ITEM_BASED,
            ),
            hourly_rate=int(_optional_float(data.get("hourly_rate")) or 0),
            fixed_amount=int(_optional_float(data.get("fixed_amount")) or 0),
            commission_rate_percent=_optional_float(
                data.get("commission_rate_percent", data.get("commission_rate"))
            )
            or 0.0,
            use_sliding_rate=_as_bool(data.get("use_sliding_rate"), False),
            sliding_rates=tuple(
                rate if isinstance(rate, SlidingRateTier) else SlidingRateTier.from_dict(rate)
                for rate in rates
            ),
            use_product_back=_as_bool(data.get("use_product_back"), True),
            use_help_product_back=_as_bool(data.get("use_help_product_back"), True),
            help_back_calculation_method=parse_enum(
                HelpBackCalculationMethod,
                data.get("help_back_calculation_method"),
                HelpBackCalculationMethod.SALES_BASED,
            ),
        )


@dataclass(frozen=True)
class CastCompensationSettings:
    """Compensation configuration of one cast for one pay period."""

    types: tuple[CompensationType, ...] = ()
    payment_selection_method: PaymentSelectionMethod = PaymentSelectionMethod.HIGHEST
    selected_compensation_type_id: Optional[str] = None
    enabled_deduction_ids: tuple[int, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> CastCompensationSettings:
        selected = data.get("selected_compensation_type_id")
        return cls(
            types=tuple(CompensationType.from_dict(t) for t in data.get("compensation_types") or ()),
            payment_selection_method=parse_enum(
                PaymentSelectionMethod,
                data.get("payment_selection_method"),
                PaymentSelectionMethod.HIGHEST,
            ),
            selected_compensation_type_id=None if selected is None else str(selected),
            enabled_deduction_ids=tuple(int(i) for i in data.get("enabled_deduction_ids") or ()),
        )

    @property
    def enabled_types(self) -> tuple[CompensationType, ...]:
        return tuple(t for t in self.types if t.is_enabled)


@dataclass(frozen=True)
class ComputedCompensation:
    """Evaluated pay of one compensation type."""

    type_id: str
    hourly_pay: int
    fixed_pay: int
    commission_back: int
    self_product_back: int
    help_product_back: int
    total: int


@dataclass
class CastSales:
    """Accumulated sales of one cast."""

    cast_name: str
    self_sales: int = 0
    help_sales: int = 0

    @property
    def total_sales(self) -> int:
        return self.self_sales + self.help_sales

