"""
Budget allocation logic for media planning.

This module synthesizes the line items of a plan against a target budget
under a chosen strategy, in three passes: a core digital layer, an
offline broad-reach layer and a fill pass that tops spend up towards
95% of the target.
"""

import logging
import random
from dataclasses import dataclass
from typing import List, Optional

from models.data_models import Channel, Placement, Strategy
from data.reference_tables import CORE_DIGITAL_CHANNELS, OFFLINE_CHANNELS, FILL_CHANNELS
from .placement_factory import PlacementFactory

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@dataclass
class AllocationResult:
    """Result of a budget allocation run."""
    placements: List[Placement]
    total_spend: float
    remaining_budget: float
    strategy: Strategy
    fill_iterations: int = 0


class BudgetAllocator:
    """
    Best-effort allocator of a budget into placements.

    Spend is not guaranteed to hit 100% of the target: jitter, rounding and
    the fill-pass iteration cap can leave it under or over.
    """

    def __init__(self, rng: Optional[random.Random] = None,
                 factory: Optional[PlacementFactory] = None):
        """Initialize the allocator with an optional seeded random source."""
        self.rng = rng or random.Random()
        self.factory = factory or PlacementFactory(self.rng)

        # Allocation parameters
        self.core_pct = 0.10
        self.digital_core_pct = 0.25
        self.awareness_core_pct = {Channel.SEARCH: 0.02, Channel.SOCIAL: 0.05}
        self.core_jitter = 0.02
        self.offline_threshold = 50000
        self.offline_pct = 0.15
        self.awareness_offline_pct = 0.25
        self.fill_target = 0.95
        self.fill_pct = 0.05
        self.fill_max_iterations = 20
        self.min_fill_cost = 10

    def allocate(self, budget: float, strategy: Strategy = Strategy.BALANCED) -> AllocationResult:
        """
        Allocate a budget into placements.

        Args:
            budget: Target campaign budget
            strategy: Allocation policy

        Returns:
            AllocationResult with the generated placements and totals
        """
        logger.info(f"Allocating {budget:,.0f} with {strategy.value} strategy")

        placements: List[Placement] = []
        spend = self._allocate_core(budget, strategy, placements)
        spend = self._allocate_offline(budget, strategy, placements, spend)
        spend, iterations = self._fill_remaining(budget, placements, spend)

        logger.info(
            f"Allocated {len(placements)} placements, spend {spend:,.2f} of {budget:,.2f}"
        )

        return AllocationResult(
            placements=placements,
            total_spend=spend,
            remaining_budget=budget - spend,
            strategy=strategy,
            fill_iterations=iterations
        )

    def _core_fraction(self, channel: Channel, strategy: Strategy) -> float:
        if strategy == Strategy.DIGITAL:
            return self.digital_core_pct
        if strategy == Strategy.AWARENESS:
            return self.awareness_core_pct.get(channel, self.core_pct)
        return self.core_pct

    def _allocate_core(self, budget: float, strategy: Strategy,
                       placements: List[Placement]) -> float:
        """Search, Social and Display (Display skipped for awareness)."""
        spend = 0.0
        for channel in CORE_DIGITAL_CHANNELS:
            if strategy == Strategy.AWARENESS and channel == Channel.DISPLAY:
                continue

            fraction = self._core_fraction(channel, strategy) + self.rng.random() * self.core_jitter
            placement = self.factory.create(channel, budget * fraction)
            placements.append(placement)
            spend += placement.total_cost

        return spend

    def _allocate_offline(self, budget: float, strategy: Strategy,
                          placements: List[Placement], spend: float) -> float:
        """TV, Radio, OOH and Print for awareness plans and larger budgets."""
        awareness = strategy == Strategy.AWARENESS
        if not awareness and budget <= self.offline_threshold:
            return spend

        count = 4 if awareness else 2
        fraction = self.awareness_offline_pct if awareness else self.offline_pct

        for i in range(count):
            channel = self.rng.choice(OFFLINE_CHANNELS)
            if awareness and i == 0:
                channel = Channel.TV
            elif awareness and i == 1:
                channel = Channel.OOH

            placement = self.factory.create(channel, budget * fraction)

            # The lead awareness buy is kept even if it overshoots
            if spend + placement.total_cost <= budget or (awareness and i == 0):
                placements.append(placement)
                spend += placement.total_cost
            else:
                logger.debug(f"Skipped {channel.value} placement that would overshoot budget")

        return spend

    def _fill_remaining(self, budget: float, placements: List[Placement], spend: float):
        """Top up with small Social/Display buys until spend reaches the fill target."""
        iterations = 0
        while spend < budget * self.fill_target and iterations < self.fill_max_iterations:
            channel = FILL_CHANNELS[0] if self.rng.random() > 0.5 else FILL_CHANNELS[1]
            allocation = min(budget - spend, budget * self.fill_pct)

            placement = self.factory.create(channel, allocation)
            if placement.total_cost > self.min_fill_cost:
                placements.append(placement)
                spend += placement.total_cost
            iterations += 1

        return spend, iterations
