"""Tests for back-rate resolution and product back calculation."""

import pytest

from castpay_core.attribution import SalesAttributionEngine
from castpay_core.backs import (
    DEFAULT_BACK_OPTIONS,
    BackRateResolver,
    ExternalOrder,
    ProductBackCalculator,
    back_options_for,
    external_order_back,
    total_backs_by_cast,
)
from castpay_core.config import MultiCastDistribution, RoundingTiming
from castpay_core.types import (
    BackOptions,
    BackRateRule,
    BackType,
    CastCompensationSettings,
    CompensationType,
    HelpBackCalculationMethod,
    LineItem,
    NominationSet,
    PaymentSelectionMethod,
    ProductBackTotals,
)


class TestBackRateResolver:
    """Rule precedence and side ratios."""

    def test_category_rule_beats_cast_default(self) -> None:
        """Test Champagne resolving to 20% and everything else to 10%."""
        resolver = BackRateResolver(
            [
                BackRateRule(cast_id=1, back_ratio=10),
                BackRateRule(cast_id=1, category="Champagne", back_ratio=20),
            ]
        )

        assert resolver.resolve(1, "Champagne", "Dom Perignon", True).ratio == 20
        assert resolver.resolve(1, "Wine", "Chablis", True).ratio == 10
        assert resolver.resolve(1, None, "Water", True).ratio == 10

    def test_exact_product_beats_category(self) -> None:
        """Test that an exact (category, product) rule wins."""
        resolver = BackRateResolver(
            [
                BackRateRule(cast_id=1, category="Champagne", back_ratio=20),
                BackRateRule(cast_id=1, category="Champagne", product_name="Dom Perignon", back_ratio=30),
            ]
        )

        assert resolver.resolve(1, "Champagne", "Dom Perignon", True).ratio == 30
        assert resolver.resolve(1, "Champagne", "Moet", True).ratio == 20

    def test_product_rule_requires_matching_category(self) -> None:
        """Test that a product rule does not match an item of another category."""
        resolver = BackRateResolver(
            [BackRateRule(cast_id=1, category="Champagne", product_name="Dom Perignon", back_ratio=30)]
        )
        assert resolver.resolve(1, None, "Dom Perignon", True) is None

    def test_inactive_and_missing_rules(self) -> None:
        """Test that inactive rules are ignored and unknown casts resolve to None."""
        resolver = BackRateResolver([BackRateRule(cast_id=1, back_ratio=10, is_active=False)])

        assert resolver.resolve(1, "Wine", "Chablis", True) is None
        assert resolver.resolve(2, "Wine", "Chablis", True) is None
        assert resolver.rules_for(1) == []

    def test_side_ratios(self) -> None:
        """Test self/help ratios with fallback to the shared ratio."""
        resolver = BackRateResolver(
            [
                BackRateRule(cast_id=1, category="Wine", back_ratio=10, self_back_ratio=15, help_back_ratio=5),
                BackRateRule(cast_id=1, back_ratio=10, self_back_ratio=12),
            ]
        )

        assert resolver.resolve(1, "Wine", "Chablis", True).ratio == 15
        assert resolver.resolve(1, "Wine", "Chablis", False).ratio == 5
        assert resolver.resolve(1, "Beer", "Lager", False).ratio == 10

    def test_precomputed_sliding_rate(self) -> None:
        """Test that a sliding rule uses its precomputed rate as a ratio."""
        resolver = BackRateResolver(
            [BackRateRule(cast_id=1, back_type=BackType.FIXED, use_sliding_back=True, calculated_sliding_rate=25)]
        )

        rate = resolver.resolve(1, "Wine", "Chablis", True)

        assert rate.back_type is BackType.RATIO
        assert rate.ratio == 25
        assert rate.is_sliding is True


@pytest.fixture
def attributed(make_policy):
    """A 10000 wine split evenly between Aoi (self) and Mio (help)."""
    engine = SalesAttributionEngine(make_policy(multi_cast_distribution=MultiCastDistribution.ALL_EQUAL))
    item = LineItem(
        id=7, product_name="Chablis", category="Wine", base_price=10000, cast_names=("Aoi", "Mio"), quantity=2
    )
    return engine.attribute(item, NominationSet(names=("Aoi",)), "item_based")


ROSTER = {"Aoi": 1, "Mio": 2}


class TestProductBackCalculator:
    """Backs computed from attribution rows."""

    def test_ratio_backs_on_calculated_share(self, attributed) -> None:
        """Test 10% on each cast's 5000 share."""
        resolver = BackRateResolver([BackRateRule(cast_id=1, back_ratio=10), BackRateRule(cast_id=2, back_ratio=10)])

        backs = ProductBackCalculator(resolver, ROSTER).calculate(attributed)

        assert [(b.cast_name, b.is_self, b.base, b.amount) for b in backs] == [
            ("Aoi", True, 5000, 500),
            ("Mio", False, 5000, 500),
        ]

    @pytest.mark.parametrize("timing", list(RoundingTiming))
    def test_backs_exclude_tax_under_either_timing(self, make_policy, timing) -> None:
        """Test that backs use the tax-excluded share whatever the rounding timing."""
        engine = SalesAttributionEngine(make_policy(tax_percent=10, exclude_tax=True, rounding_timing=timing))
        item = LineItem(id=1, product_name="Chablis", category="Wine", base_price=11000, cast_names=("Aoi", "Mio"))
        result = engine.attribute(item, NominationSet(names=("Aoi",)), "item_based")
        resolver = BackRateResolver([BackRateRule(cast_id=1, back_ratio=10), BackRateRule(cast_id=2, back_ratio=10)])
        full = {"Mio": BackOptions(help_back_calculation_method=HelpBackCalculationMethod.FULL_AMOUNT)}

        backs = ProductBackCalculator(resolver, ROSTER, full).calculate(result)

        assert [(b.cast_name, b.base, b.amount) for b in backs] == [("Aoi", 10000, 1000), ("Mio", 10000, 1000)]

    def test_full_amount_help_back(self, attributed) -> None:
        """Test that full_amount help backs use the whole item amount."""
        resolver = BackRateResolver([BackRateRule(cast_id=2, back_ratio=10)])
        options = {"Mio": BackOptions(help_back_calculation_method=HelpBackCalculationMethod.FULL_AMOUNT)}

        backs = ProductBackCalculator(resolver, ROSTER, options).calculate(attributed)

        assert [(b.cast_name, b.base, b.amount) for b in backs] == [("Mio", 10000, 1000)]

    def test_fixed_back_multiplies_quantity(self, attributed) -> None:
        """Test that fixed backs pay the fixed amount per unit."""
        resolver = BackRateResolver([BackRateRule(cast_id=2, back_type=BackType.FIXED, back_fixed_amount=300)])

        backs = ProductBackCalculator(resolver, ROSTER).calculate(attributed)

        assert [(b.cast_name, b.back_type, b.amount) for b in backs] == [("Mio", BackType.FIXED, 600)]

    def test_disabled_side_is_skipped(self, attributed) -> None:
        """Test that a cast with help backs switched off earns none."""
        resolver = BackRateResolver([BackRateRule(cast_id=1, back_ratio=10), BackRateRule(cast_id=2, back_ratio=10)])
        options = lambda name: BackOptions(use_help_product_back=False)  # noqa: E731

        backs = ProductBackCalculator(resolver, ROSTER, options).calculate(attributed)

        assert [b.cast_name for b in backs] == ["Aoi"]

    def test_zero_share_and_unknown_cast_are_skipped(self, make_policy) -> None:
        """Test that zero help shares and off-roster casts produce no back."""
        engine = SalesAttributionEngine(make_policy(give_help_sales=False))
        item = LineItem(id=1, product_name="Chablis", category="Wine", base_price=10000, cast_names=("Aoi", "Mio"))
        result = engine.attribute(item, NominationSet(names=("Aoi",)), "item_based")
        resolver = BackRateResolver([BackRateRule(cast_id=2, back_ratio=10)])

        assert ProductBackCalculator(resolver, ROSTER).calculate(result) == []
        assert ProductBackCalculator(resolver, {"Aoi": 1}).calculate(result) == []

        full = {"Mio": BackOptions(help_back_calculation_method=HelpBackCalculationMethod.FULL_AMOUNT)}
        backs = ProductBackCalculator(resolver, ROSTER, full).calculate(result)
        assert [(b.cast_name, b.amount) for b in backs] == [("Mio", 1000)]

    def test_total_backs_by_cast(self, attributed) -> None:
        """Test summing rows into per-cast self/help totals."""
        resolver = BackRateResolver([BackRateRule(cast_id=1, back_ratio=10), BackRateRule(cast_id=2, back_ratio=10)])
        backs = ProductBackCalculator(resolver, ROSTER).calculate_all([attributed, attributed])

        totals = total_backs_by_cast(backs)

        assert totals == {
            "Aoi": ProductBackTotals(self_back=1000),
            "Mio": ProductBackTotals(help_back=1000),
        }
        assert totals["Aoi"].total == 1000


class TestBackOptionsFor:
    """Deriving back switches from compensation settings."""

    def _settings(self, **kwargs) -> CastCompensationSettings:
        return CastCompensationSettings(
            types=(
                CompensationType(id="a", use_product_back=False),
                CompensationType(
                    id="b",
                    use_help_product_back=False,
                    help_back_calculation_method=HelpBackCalculationMethod.FULL_AMOUNT,
                ),
            ),
            **kwargs,
        )

    def test_first_enabled_type_by_default(self) -> None:
        """Test that highest selection reads the first enabled type."""
        options = back_options_for(self._settings())
        assert options == BackOptions(use_product_back=False)

    def test_specific_selection_wins(self) -> None:
        """Test that a specific selection reads the selected type."""
        options = back_options_for(
            self._settings(
                payment_selection_method=PaymentSelectionMethod.SPECIFIC,
                selected_compensation_type_id="b",
            )
        )
        assert options.use_help_product_back is False
        assert options.help_back_calculation_method is HelpBackCalculationMethod.FULL_AMOUNT

    def test_no_settings(self) -> None:
        """Test defaults without settings or enabled types."""
        assert back_options_for(None) == DEFAULT_BACK_OPTIONS
        assert back_options_for(CastCompensationSettings()) == DEFAULT_BACK_OPTIONS


class TestExternalOrders:
    """Backs on online-shop orders."""

    def test_shop_category_rule_applies(self) -> None:
        """Test a 20% shop rule on a two-unit order."""
        resolver = BackRateResolver([BackRateRule(cast_id=1, category="BASE", back_ratio=20)])
        order = ExternalOrder(id="S1", cast_name="Aoi", product_name="Photo book", actual_price=3000, quantity=2)

        back = external_order_back(order, resolver, ROSTER)

        assert back.base == 6000
        assert back.amount == 1200
        assert back.category == "BASE"

    def test_cast_default_does_not_cover_shop_orders(self) -> None:
        """Test that only shop-scoped rules apply to shop orders."""
        resolver = BackRateResolver([BackRateRule(cast_id=1, back_ratio=20)])
        order = ExternalOrder(id="S1", cast_name="Aoi", product_name="Photo book", actual_price=3000)

        assert external_order_back(order, resolver, ROSTER) is None
        assert external_order_back(order, resolver, {}) is None
