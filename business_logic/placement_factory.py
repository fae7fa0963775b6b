"""
Placement construction and cost-method arithmetic.

Builds single line items for a channel using the benchmark rate tables,
and sizes them against an allocation so that total cost always agrees
with quantity and rate under the channel's pricing convention.
"""

import logging
import math
import random
from typing import Optional

from models.data_models import (
    Channel, CostMethod, Placement, PlacementForecast, PlacementPerformance
)
from data.reference_tables import RATE_RANGES, AD_UNITS, SEGMENTS, DEFAULT_VENDORS

logger = logging.getLogger(__name__)

# Share of impressions assumed to reach unique people
REACH_RATIO = 0.4


def quantity_for_budget(cost_method: CostMethod, allocation: float, rate: float) -> int:
    """
    Derive the quantity an allocation buys.

    CPM quantities are impressions (rate is per thousand). Spot and Flat
    buys always get at least one unit.
    """
    if rate <= 0 or allocation <= 0:
        return 0

    if cost_method == CostMethod.CPM:
        return int(math.floor(allocation * 1000 / rate))
    elif cost_method in (CostMethod.SPOT, CostMethod.FLAT):
        return max(1, int(math.floor(allocation / rate)))
    return int(math.floor(allocation / rate))


def cost_for_quantity(cost_method: CostMethod, quantity: int, rate: float) -> float:
    """Total cost of a quantity under the cost method's unit convention."""
    if cost_method == CostMethod.CPM:
        return quantity * rate / 1000
    return quantity * rate


def forecast_impressions(placement: Placement, ctr: float = 0.02) -> int:
    """Planned impressions implied by a placement's quantity."""
    if placement.cost_method == CostMethod.CPM:
        return placement.quantity
    elif placement.cost_method == CostMethod.CPC:
        # Quantity is clicks
        return int(placement.quantity / ctr) if ctr > 0 else 0
    # Spot/Flat insertions carry a circulation estimate per unit
    return placement.quantity * 50000


def resize_placement(placement: Placement, allocation: float) -> Placement:
    """
    Re-derive quantity and total cost for a new allocation in place.

    Forecast and performance figures scale with the quantity change so
    that metrics stay consistent with the line item.
    """
    old_quantity = placement.quantity
    placement.quantity = quantity_for_budget(placement.cost_method, allocation, placement.rate)
    placement.total_cost = cost_for_quantity(placement.cost_method, placement.quantity, placement.rate)
    _rescale_delivery(placement, old_quantity)
    return placement


def scale_placement(placement: Placement, factor: float) -> Placement:
    """Multiply a placement's quantity by factor (floored) and recompute cost."""
    old_quantity = placement.quantity
    placement.quantity = int(math.floor(placement.quantity * factor))
    placement.total_cost = cost_for_quantity(placement.cost_method, placement.quantity, placement.rate)
    _rescale_delivery(placement, old_quantity)
    return placement


def _rescale_delivery(placement: Placement, old_quantity: int):
    ratio = placement.quantity / old_quantity if old_quantity else 0.0

    if placement.forecast is not None:
        placement.forecast = PlacementForecast(
            impressions=int(placement.forecast.impressions * ratio),
            spend=placement.total_cost,
            reach=int(placement.forecast.reach * ratio)
        )

    if placement.performance is not None:
        perf = placement.performance
        placement.performance = PlacementPerformance(
            impressions=int(perf.impressions * ratio),
            clicks=int(perf.clicks * ratio),
            conversions=int(perf.conversions * ratio),
            ctr=perf.ctr,
            cvr=perf.cvr,
            roas=perf.roas
        )


class PlacementFactory:
    """
    Creates line items with benchmark pricing.

    All random choices (vendor, ad unit, segment, rate, simulated delivery)
    come from the injected random source so plans are reproducible.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def create(self, channel: Channel, allocation: float,
               vendor: Optional[str] = None,
               ad_unit: Optional[str] = None,
               segment: Optional[str] = None,
               simulate_performance: bool = True) -> Placement:
        """
        Create a placement for a channel sized against an allocation.

        Args:
            channel: Channel of the new line item
            allocation: Spend target used to derive the quantity
            vendor: Vendor name, random default vendor when omitted
            ad_unit: Ad unit or program name, random when omitted
            segment: Audience segment, random when omitted
            simulate_performance: Attach simulated delivery figures

        Returns:
            New ACTIVE placement
        """
        rate_range = RATE_RANGES.get(channel, RATE_RANGES[Channel.TV])
        rate = round(self.rng.uniform(rate_range.min_rate, rate_range.max_rate), 2)

        vendor = vendor or self.rng.choice(DEFAULT_VENDORS[channel])
        ad_unit = ad_unit or self.rng.choice(AD_UNITS[channel])
        segment = segment or self.rng.choice(SEGMENTS[channel])

        quantity = quantity_for_budget(rate_range.cost_method, allocation, rate)
        total_cost = cost_for_quantity(rate_range.cost_method, quantity, rate)

        placement = Placement(
            id=f"pl-{self.rng.getrandbits(32):08x}",
            name=f"{channel.value} - {vendor} - {ad_unit}",
            channel=channel,
            vendor=vendor,
            ad_unit=ad_unit,
            segment=segment,
            cost_method=rate_range.cost_method,
            rate=rate,
            quantity=quantity,
            total_cost=total_cost
        )

        ctr = self.rng.uniform(0.005, 0.03)
        impressions = forecast_impressions(placement, ctr)
        placement.forecast = PlacementForecast(
            impressions=impressions,
            spend=total_cost,
            reach=int(impressions * REACH_RATIO)
        )

        if simulate_performance:
            placement.performance = self._simulate_performance(impressions, ctr)

        logger.debug(f"Created {channel.value} placement {placement.id} costing {total_cost:.2f}")
        return placement

    def _simulate_performance(self, forecast: int, ctr: float) -> PlacementPerformance:
        """Generate plausible delivery around the forecast."""
        impressions = int(forecast * self.rng.uniform(0.85, 1.05))
        cvr = self.rng.uniform(0.001, 0.05)
        clicks = int(impressions * ctr)

        return PlacementPerformance(
            impressions=impressions,
            clicks=clicks,
            conversions=int(clicks * cvr),
            ctr=ctr,
            cvr=cvr,
            roas=round(self.rng.uniform(0.5, 6.0), 2)
        )
