"""Tests for SalesPolicy parsing and policy file loading."""

import json

import pytest

from castpay_core.config import (
    HelpDistributionMethod,
    MultiCastDistribution,
    RoundingTiming,
    SalesAggregationMode,
    SalesPolicy,
    load_policy_json,
    parse_enum,
)
from castpay_core.exceptions import ConfigError
from castpay_core.rounding import RoundingMode


def test_default_policy() -> None:
    """Test the documented defaults of an empty settings row."""
    policy = SalesPolicy.from_dict({})

    assert policy.tax_percent == 10
    assert policy.service_charge_percent == 0
    assert policy.published_aggregation is SalesAggregationMode.ITEM_BASED
    item = policy.for_mode(SalesAggregationMode.ITEM_BASED)
    assert item.exclude_tax is True
    assert item.exclude_service_charge is True
    assert (item.rounding_position, item.rounding_mode) == (100, RoundingMode.FLOOR)
    assert item.rounding_timing is RoundingTiming.PER_ITEM
    assert item.multi_cast_distribution is MultiCastDistribution.NOMINATION_ONLY
    assert item.help_distribution_method is HelpDistributionMethod.EQUAL_PER_PERSON
    assert item.give_help_sales is True
    assert policy.for_mode(SalesAggregationMode.RECEIPT_BASED).mode is SalesAggregationMode.RECEIPT_BASED


def test_prefixed_settings_apply_per_mode() -> None:
    """Test that item_ and receipt_ keys configure their own mode only."""
    policy = SalesPolicy.from_dict(
        {
            "item_rounding_method": "floor_10",
            "receipt_rounding_method": "ceil_1000",
            "receipt_help_distribution_method": "ratio",
            "receipt_help_ratio": 70,
        }
    )

    item = policy.item_based
    receipt = policy.receipt_based
    assert (item.rounding_position, item.rounding_mode) == (10, RoundingMode.FLOOR)
    assert (receipt.rounding_position, receipt.rounding_mode) == (1000, RoundingMode.CEIL)
    assert item.help_distribution_method is HelpDistributionMethod.EQUAL_PER_PERSON
    assert receipt.help_distribution_method is HelpDistributionMethod.RATIO
    assert receipt.help_ratio_percent == 70


def test_legacy_aliases_are_accepted() -> None:
    """Test the legacy spellings "total" and "equal_all"."""
    policy = SalesPolicy.from_dict(
        {
            "item_rounding_timing": "total",
            "item_help_distribution_method": "equal_all",
        }
    )

    assert policy.item_based.rounding_timing is RoundingTiming.PER_RECEIPT
    assert policy.item_based.help_distribution_method is HelpDistributionMethod.EQUAL_PER_PERSON


def test_unknown_enum_value_raises() -> None:
    """Test that an unknown distribution mode is rejected at parse time."""
    with pytest.raises(ConfigError, match="MultiCastDistribution"):
        SalesPolicy.from_dict({"item_multi_cast_distribution": "bogus"})


def test_parse_enum_defaults_on_missing_values() -> None:
    """Test that None and empty strings produce the default member."""
    assert parse_enum(RoundingTiming, None, RoundingTiming.PER_ITEM) is RoundingTiming.PER_ITEM
    assert parse_enum(RoundingTiming, "", RoundingTiming.PER_ITEM) is RoundingTiming.PER_ITEM
    assert parse_enum(RoundingTiming, " PER_RECEIPT ", RoundingTiming.PER_ITEM) is RoundingTiming.PER_RECEIPT


@pytest.mark.parametrize("inclusion, expected", [("both", True), ("self_only", False)])
def test_help_sales_inclusion(inclusion, expected) -> None:
    """Test that help sales are reported only when inclusion is "both"."""
    policy = SalesPolicy.from_dict({"item_help_sales_inclusion": inclusion})
    assert policy.item_based.give_help_sales is expected
    assert policy.receipt_based.give_help_sales is True


def test_legacy_tax_flag_and_fractional_rates() -> None:
    """Test legacy use_tax_excluded and tax/service rates given as fractions."""
    policy = SalesPolicy.from_dict(
        {"use_tax_excluded": False, "tax_rate": 0.08, "service_rate": 0.2}
    )

    assert policy.tax_percent == 8
    assert policy.service_charge_percent == 20
    assert policy.item_based.exclude_tax is False
    assert policy.receipt_based.exclude_tax is False


def test_non_help_names_from_string() -> None:
    """Test that a comma-separated exclusion list is split and trimmed."""
    policy = SalesPolicy.from_dict({"non_help_staff_names": "free, house ,"})
    assert policy.non_help_staff_names == ("free", "house")


def test_negative_rounding_position_defaults() -> None:
    """Test that a negative rounding position falls back to floor_100."""
    policy = SalesPolicy.from_dict({"item_rounding_method": "ceil_10", "item_rounding_position": -5})
    assert (policy.item_based.rounding_position, policy.item_based.rounding_mode) == (
        100,
        RoundingMode.FLOOR,
    )


class TestLoadPolicyJson:
    """Loading a policy from disk."""

    def test_loads_object(self, tmp_path) -> None:
        """Test that a JSON object becomes a SalesPolicy."""
        path = tmp_path / "policy.json"
        path.write_text(json.dumps({"tax_percent": 8, "published_aggregation": "receipt_based"}))

        policy = load_policy_json(path)

        assert policy.tax_percent == 8
        assert policy.published_aggregation is SalesAggregationMode.RECEIPT_BASED

    def test_missing_file(self, tmp_path) -> None:
        """Test that a missing file raises ConfigError."""
        with pytest.raises(ConfigError, match="not found"):
            load_policy_json(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path) -> None:
        """Test that broken JSON raises ConfigError."""
        path = tmp_path / "policy.json"
        path.write_text("{not json")
        with pytest.raises(ConfigError, match="not valid JSON"):
            load_policy_json(path)

    def test_non_object(self, tmp_path) -> None:
        """Test that a JSON list is rejected."""
        path = tmp_path / "policy.json"
        path.write_text("[1, 2]")
        with pytest.raises(ConfigError, match="JSON object"):
            load_policy_json(path)


@pytest.mark.parametrize("ratio, expected", [("70", 70), (60.0, 60), ("seventy", 50)])
def test_help_ratio_parsing(ratio, expected, caplog) -> None:
    """Test that an unreadable help ratio falls back to 50 with a warning."""
    policy = SalesPolicy.from_dict({"item_help_ratio": ratio})

    assert policy.item_based.help_ratio_percent == expected
    assert policy.receipt_based.help_ratio_percent == 50
    assert ("Unreadable item_help_ratio" in caplog.text) is (expected == 50)
