"""
Tests for placement construction and cost arithmetic.
"""

import math
import random
import pytest

from business_logic.placement_factory import (
    PlacementFactory, quantity_for_budget, cost_for_quantity, forecast_impressions,
    resize_placement, scale_placement
)
from data.reference_tables import DEFAULT_VENDORS, RATE_RANGES
from models.data_models import Channel, CostMethod, PlacementStatus


class TestCostArithmetic:
    """Test cases for cost-method conversions."""

    def test_quantity_for_budget(self):
        assert quantity_for_budget(CostMethod.CPM, 1000, 10) == 100000
        assert quantity_for_budget(CostMethod.CPC, 100, 3) == 33
        assert quantity_for_budget(CostMethod.SPOT, 100, 500) == 1
        assert quantity_for_budget(CostMethod.FLAT, 2500, 1000) == 2

    def test_quantity_for_non_positive_inputs(self):
        assert quantity_for_budget(CostMethod.FLAT, 0, 500) == 0
        assert quantity_for_budget(CostMethod.CPM, 100, 0) == 0

    def test_cost_for_quantity(self):
        assert cost_for_quantity(CostMethod.CPM, 100000, 10) == pytest.approx(1000.0)
        assert cost_for_quantity(CostMethod.CPC, 33, 3) == pytest.approx(99.0)
        assert cost_for_quantity(CostMethod.FLAT, 2, 1000) == pytest.approx(2000.0)


class TestPlacementFactory:
    """Test cases for PlacementFactory."""

    def setup_method(self):
        self.factory = PlacementFactory(random.Random(42))

    def test_create_search_placement(self):
        placement = self.factory.create(Channel.SEARCH, 10000)
        rate_range = RATE_RANGES[Channel.SEARCH]

        assert placement.cost_method == CostMethod.CPC
        assert rate_range.min_rate <= placement.rate <= rate_range.max_rate
        assert placement.vendor in DEFAULT_VENDORS[Channel.SEARCH]
        assert placement.status == PlacementStatus.ACTIVE
        assert placement.name == f"Search - {placement.vendor} - {placement.ad_unit}"
        assert placement.total_cost == pytest.approx(
            cost_for_quantity(placement.cost_method, placement.quantity, placement.rate)
        )
        assert placement.total_cost <= 10000

    def test_forecast_and_performance_attached(self):
        placement = self.factory.create(Channel.DISPLAY, 20000)

        assert placement.forecast.spend == pytest.approx(placement.total_cost)
        assert placement.forecast.impressions == placement.quantity
        assert 0.5 <= placement.performance.roas <= 6.0

    def test_create_without_performance(self):
        placement = self.factory.create(Channel.SOCIAL, 5000, simulate_performance=False)
        assert placement.performance is None
        assert placement.forecast is not None

    def test_explicit_vendor_and_ad_unit(self):
        placement = self.factory.create(Channel.TV, 25000, vendor="ESPN", ad_unit="SportsCenter")
        assert placement.vendor == "ESPN"
        assert placement.ad_unit == "SportsCenter"
        assert placement.display_name == "ESPN - SportsCenter"

    def test_seeded_factories_are_reproducible(self):
        first = PlacementFactory(random.Random(7)).create(Channel.RADIO, 8000)
        second = PlacementFactory(random.Random(7)).create(Channel.RADIO, 8000)
        assert first == second

    def test_flat_forecast_uses_circulation(self):
        placement = self.factory.create(Channel.PRINT, 20000)
        assert forecast_impressions(placement) == placement.quantity * 50000


class TestResizing:
    """Test cases for resizing existing placements."""

    def setup_method(self):
        self.factory = PlacementFactory(random.Random(3))

    def test_resize_placement(self):
        placement = self.factory.create(Channel.DISPLAY, 10000)
        old_impressions = placement.forecast.impressions

        resize_placement(placement, 5000)

        assert placement.quantity == math.floor(5000 * 1000 / placement.rate)
        assert placement.total_cost <= 5000
        assert placement.forecast.spend == pytest.approx(placement.total_cost)
        assert placement.forecast.impressions == pytest.approx(old_impressions / 2, rel=0.01)

    def test_scale_placement(self):
        placement = self.factory.create(Channel.SEARCH, 10000)
        old_quantity = placement.quantity

        scale_placement(placement, 1.2)

        assert placement.quantity == math.floor(old_quantity * 1.2)
        assert placement.total_cost == pytest.approx(placement.quantity * placement.rate)
