"""Typed sales policy for the attribution engine.

Venue settings arrive as a flat row (one column per knob, prefixed with
``item_`` or ``receipt_`` for the two aggregation modes). This module turns
that row into closed enums and frozen dataclasses exactly once, so the
algorithms never see a raw string or a missing key.

Example:
    >>> from castpay_core.config import SalesPolicy, SalesAggregationMode
    >>> policy = SalesPolicy.from_dict({"item_rounding_method": "floor_10"})
    >>> policy.for_mode(SalesAggregationMode.ITEM_BASED).rounding_position
    10
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Optional, Type, TypeVar

from castpay_core.exceptions import ConfigError
from castpay_core.rounding import RoundingMode, parse_rounding

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)


class RoundingTiming(str, Enum):
    """When rounding is applied to attributed amounts."""

    PER_ITEM = "per_item"
    PER_RECEIPT = "per_receipt"


class MultiCastDistribution(str, Enum):
    """Who may receive sales credit when several casts sit on one item."""

    ALL_EQUAL = "all_equal"
    NOMINATION_ONLY = "nomination_only"


class HelpDistributionMethod(str, Enum):
    """How an item is split between the self group and the help group."""

    ALL_TO_NOMINATION = "all_to_nomination"
    EQUAL = "equal"
    RATIO = "ratio"
    EQUAL_PER_PERSON = "equal_per_person"


class SalesAggregationMode(str, Enum):
    """Unit of account for "how much did this cast sell"."""

    ITEM_BASED = "item_based"
    RECEIPT_BASED = "receipt_based"


# Legacy spellings found in older settings rows.
_ALIASES: dict[str, str] = {
    "total": "per_receipt",
    "per_total": "per_receipt",
    "equal_all": "equal_per_person",
    "item": "item_based",
    "receipt": "receipt_based",
}


def parse_enum(enum_cls: Type[E], value: Any, default: E) -> E:
    """Parse a settings value into a member of ``enum_cls``.

    ``None`` and empty strings fall back to ``default``. Anything else that
    is not a member (after alias resolution) raises ConfigError, because a
    silently ignored distribution mode would change payouts.

    Args:
        enum_cls: Target enum class.
        value: Raw value from a settings row (string, enum member, or None).
        default: Member returned for missing values.

    Returns:
        The parsed enum member.

    Raises:
        ConfigError: If the value is not part of the closed set.
    """
    if value is None or value == "":
        return default
    if isinstance(value, enum_cls):
        return value
    key = str(value).strip().lower()
    key = _ALIASES.get(key, key)
    try:
        return enum_cls(key)
    except ValueError as e:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ConfigError(
            f"Invalid {enum_cls.__name__} value '{value}'. Expected one of: {allowed}"
        ) from e


@dataclass(frozen=True)
class DistributionPolicy:
    """Attribution knobs for one aggregation mode.

    Attributes:
        mode: Aggregation mode this policy belongs to.
        exclude_tax: Strip consumption tax from prices before distribution.
        exclude_service_charge: When False, add the service charge back on.
        rounding_position: Rounding unit in minor currency (e.g. 100).
        rounding_mode: floor, ceil, round or none.
        rounding_timing: Round each item or each receipt total.
        multi_cast_distribution: Whether help casts may receive sales credit.
        help_distribution_method: Split between self and help groups.
        help_ratio_percent: Self group percentage for the ``ratio`` method.
        give_help_sales: Report help shares as help sales.
        nomination_distribute_all: Credit every nomination, not only the
            nominations sitting on the item.
    """

    mode: SalesAggregationMode = SalesAggregationMode.ITEM_BASED
    exclude_tax: bool = True
    exclude_service_charge: bool = True
    rounding_position: int = 100
    rounding_mode: RoundingMode = RoundingMode.FLOOR
    rounding_timing: RoundingTiming = RoundingTiming.PER_ITEM
    multi_cast_distribution: MultiCastDistribution = MultiCastDistribution.NOMINATION_ONLY
    help_distribution_method: HelpDistributionMethod = HelpDistributionMethod.EQUAL_PER_PERSON
    help_ratio_percent: int = 50
    give_help_sales: bool = True
    nomination_distribute_all: bool = False

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any],
        mode: SalesAggregationMode,
    ) -> DistributionPolicy:
        """Build the policy for ``mode`` from a flat settings row.

        Keys are read with the mode prefix (``item_`` / ``receipt_``) and fall
        back to the legacy unprefixed columns, then to the dataclass default.
        """
        prefix = "item_" if mode is SalesAggregationMode.ITEM_BASED else "receipt_"

        def pick(name: str, legacy: Optional[str] = None) -> Any:
            value = data.get(prefix + name)
            if value is None and legacy is not None:
                value = data.get(legacy)
            return value

        defaults = cls()

        exclude_tax = pick("exclude_consumption_tax", "use_tax_excluded")
        exclude_service = pick("exclude_service_charge", "exclude_service_charge")

        position, rounding_mode = parse_rounding(pick("rounding_method", "rounding_method"))
        explicit_position = pick("rounding_position")
        if explicit_position is not None:
            try:
                position = int(explicit_position)
            except (TypeError, ValueError):
                logger.warning(
                    "Unreadable %srounding_position %r; keeping %d", prefix, explicit_position, position
                )
            if position < 0:
                logger.warning("Negative %srounding_position %d; defaulting to floor_100", prefix, position)
                position, rounding_mode = 100, RoundingMode.FLOOR

        inclusion = pick("help_sales_inclusion")
        give_help_sales = defaults.give_help_sales if inclusion is None else inclusion == "both"
        if data.get(prefix + "give_help_sales") is not None:
            give_help_sales = bool(data[prefix + "give_help_sales"])

        ratio = pick("help_ratio", "help_ratio")
        help_ratio = defaults.help_ratio_percent
        if ratio is not None:
            try:
                help_ratio = int(float(ratio))
            except (TypeError, ValueError):
                logger.warning("Unreadable %shelp_ratio %r; defaulting to %d", prefix, ratio, help_ratio)

        return cls(
            mode=mode,
            exclude_tax=defaults.exclude_tax if exclude_tax is None else bool(exclude_tax),
            exclude_service_charge=(
                defaults.exclude_service_charge if exclude_service is None else bool(exclude_service)
            ),
            rounding_position=position,
            rounding_mode=rounding_mode,
            rounding_timing=parse_enum(
                RoundingTiming, pick("rounding_timing", "rounding_timing"), defaults.rounding_timing
            ),
            multi_cast_distribution=parse_enum(
                MultiCastDistribution, pick("multi_cast_distribution"), defaults.multi_cast_distribution
            ),
            help_distribution_method=parse_enum(
                HelpDistributionMethod,
                pick("help_distribution_method"),
                defaults.help_distribution_method,
            ),
            help_ratio_percent=help_ratio,
            give_help_sales=give_help_sales,
            nomination_distribute_all=bool(pick("nomination_distribute_all") or False),
        )


@dataclass(frozen=True)
class SalesPolicy:
    """System-wide sales policy shared by every receipt of a venue.

    Attributes:
        tax_percent: Consumption tax rate in percent (10 = 10%).
        service_charge_percent: Service charge rate in percent.
        non_help_staff_names: Labels never treated as help (house accounts,
            free-seating markers).
        published_aggregation: Mode whose attribution drives product backs.
        item_based: Policy for item-based aggregation.
        receipt_based: Policy for receipt-based aggregation.
    """

    tax_percent: int = 10
    service_charge_percent: int = 0
    non_help_staff_names: tuple[str, ...] = ()
    published_aggregation: SalesAggregationMode = SalesAggregationMode.ITEM_BASED
    item_based: DistributionPolicy = field(
        default_factory=lambda: DistributionPolicy(mode=SalesAggregationMode.ITEM_BASED)
    )
    receipt_based: DistributionPolicy = field(
        default_factory=lambda: DistributionPolicy(mode=SalesAggregationMode.RECEIPT_BASED)
    )

    def __post_init__(self) -> None:
        # Each slot carries the mode it is stored under.
        slots = (
            ("item_based", SalesAggregationMode.ITEM_BASED),
            ("receipt_based", SalesAggregationMode.RECEIPT_BASED),
        )
        for name, mode in slots:
            dist = getattr(self, name)
            if dist.mode is not mode:
                object.__setattr__(self, name, replace(dist, mode=mode))

    def for_mode(self, mode: SalesAggregationMode) -> DistributionPolicy:
        """Return the distribution policy for an aggregation mode."""
        if mode is SalesAggregationMode.ITEM_BASED:
            return self.item_based
        return self.receipt_based

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SalesPolicy:
        """Build a SalesPolicy from a flat settings row, applying defaults once.

        ``tax_rate`` / ``service_rate`` given as fractions (0.1) are accepted
        alongside ``tax_percent`` / ``service_charge_percent``.

        Args:
            data: Mapping shaped like the venue's sales settings row.

        Returns:
            Fully populated SalesPolicy.

        Raises:
            ConfigError: If an enum-valued setting is outside its closed set.
        """
        defaults = cls()

        tax_percent = data.get("tax_percent")
        if tax_percent is None and data.get("tax_rate") is not None:
            tax_percent = round(float(data["tax_rate"]) * 100)
        service_percent = data.get("service_charge_percent")
        if service_percent is None and data.get("service_rate") is not None:
            service_percent = round(float(data["service_rate"]) * 100)

        non_help = data.get("non_help_staff_names") or ()
        if isinstance(non_help, str):
            non_help = [name.strip() for name in non_help.split(",") if name.strip()]

        return cls(
            tax_percent=defaults.tax_percent if tax_percent is None else int(tax_percent),
            service_charge_percent=(
                defaults.service_charge_percent if service_percent is None else int(service_percent)
            ),
            non_help_staff_names=tuple(non_help),
            published_aggregation=parse_enum(
                SalesAggregationMode,
                data.get("published_aggregation"),
                defaults.published_aggregation,
            ),
            item_based=DistributionPolicy.from_dict(data, SalesAggregationMode.ITEM_BASED),
            receipt_based=DistributionPolicy.from_dict(data, SalesAggregationMode.RECEIPT_BASED),
        )


def load_policy_json(path: Path) -> SalesPolicy:
    """Load a SalesPolicy from a JSON settings file.

    Args:
        path: Path to a JSON object shaped like the venue's settings row.

    Returns:
        Parsed SalesPolicy.

    Raises:
        ConfigError: If the file is missing, not valid JSON, or not an object.
    """
    if not path.exists():
        raise ConfigError(f"Policy file not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigError(f"Policy file {path} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Policy file {path} must contain a JSON object")
    logger.debug("Loaded sales policy from %s", path)
    return SalesPolicy.from_dict(data)
