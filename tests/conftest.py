"""Shared fixtures for castpay-core tests."""

from __future__ import annotations

from datetime import date
from typing import Callable

import pytest

from castpay_core.config import DistributionPolicy, SalesAggregationMode, SalesPolicy
from castpay_core.rounding import RoundingMode
from castpay_core.types import LineItem, Receipt


@pytest.fixture
def make_policy() -> Callable[..., SalesPolicy]:
    """Factory for a policy without tax or rounding, so amounts stay exact.

    Keyword arguments override DistributionPolicy fields for both modes;
    ``tax_percent``, ``service_charge_percent``, ``non_help_staff_names``
    and ``published_aggregation`` go to SalesPolicy.
    """

    def factory(**overrides) -> SalesPolicy:
        top_level = {
            key: overrides.pop(key)
            for key in ("tax_percent", "service_charge_percent", "non_help_staff_names", "published_aggregation")
            if key in overrides
        }
        fields = {
            "exclude_tax": False,
            "rounding_position": 0,
            "rounding_mode": RoundingMode.NONE,
        }
        fields.update(overrides)
        return SalesPolicy(
            item_based=DistributionPolicy(mode=SalesAggregationMode.ITEM_BASED, **fields),
            receipt_based=DistributionPolicy(mode=SalesAggregationMode.RECEIPT_BASED, **fields),
            **top_level,
        )

    return factory


@pytest.fixture
def plain_policy(make_policy) -> SalesPolicy:
    """Policy with tax and rounding switched off."""
    return make_policy()


@pytest.fixture
def sample_receipts() -> list[Receipt]:
    """Two days of receipts for casts Aoi, Mio and Rin."""
    return [
        Receipt(
            id="R1",
            business_date=date(2025, 3, 1),
            staff_names=("Aoi",),
            items=(
                LineItem(id=1, product_name="Champagne", category="Champagne", base_price=30000, cast_names=("Aoi",)),
                LineItem(id=2, product_name="Cocktail", category="Drink", base_price=2000, cast_names=("Aoi", "Mio")),
                LineItem(id=3, product_name="Set charge", category="Charge", base_price=5000),
            ),
        ),
        Receipt(
            id="R2",
            business_date=date(2025, 3, 2),
            staff_names=("Mio",),
            items=(
                LineItem(id=4, product_name="Wine", category="Wine", base_price=9000, cast_names=("Mio", "Rin")),
            ),
        ),
    ]
