"""
Tests for strategy-driven budget allocation.
"""

import random
import pytest

from business_logic.budget_allocator import BudgetAllocator
from data.reference_tables import CORE_DIGITAL_CHANNELS
from models.data_models import Channel, Strategy


class TestBudgetAllocator:
    """Test cases for BudgetAllocator."""

    def setup_method(self):
        self.allocator = BudgetAllocator(random.Random(42))

    def test_balanced_starts_with_core_digital(self):
        result = self.allocator.allocate(500000, Strategy.BALANCED)
        channels = [p.channel for p in result.placements[:3]]
        assert channels == [Channel.SEARCH, Channel.SOCIAL, Channel.DISPLAY]

    def test_totals_agree_with_placements(self):
        result = self.allocator.allocate(500000, Strategy.BALANCED)

        assert result.total_spend == pytest.approx(sum(p.total_cost for p in result.placements))
        assert result.remaining_budget == pytest.approx(500000 - result.total_spend)
        assert result.strategy == Strategy.BALANCED

    def test_balanced_never_overspends(self):
        for seed in range(5):
            result = BudgetAllocator(random.Random(seed)).allocate(250000, Strategy.BALANCED)
            assert result.total_spend <= 250000

    def test_small_budget_skips_offline(self):
        result = self.allocator.allocate(40000, Strategy.DIGITAL)
        assert result.placements
        assert all(p.channel in CORE_DIGITAL_CHANNELS for p in result.placements)

    def test_awareness_leads_with_tv_and_ooh(self):
        result = self.allocator.allocate(1000000, Strategy.AWARENESS)
        channels = [p.channel for p in result.placements]

        assert channels[:2] == [Channel.SEARCH, Channel.SOCIAL]
        assert channels[2] == Channel.TV
        assert channels[3] == Channel.OOH

    def test_fill_pass_is_capped(self):
        result = self.allocator.allocate(500000, Strategy.BALANCED)
        assert result.fill_iterations <= self.allocator.fill_max_iterations

    def test_seeded_allocation_is_reproducible(self):
        first = BudgetAllocator(random.Random(11)).allocate(300000, Strategy.DIGITAL)
        second = BudgetAllocator(random.Random(11)).allocate(300000, Strategy.DIGITAL)

        assert first.total_spend == second.total_spend
        assert [p.vendor for p in first.placements] == [p.vendor for p in second.placements]
