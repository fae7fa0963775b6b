"""
Plan mutation operations and metrics rollup.

Every operation receives the current plan, works on a deep copy and returns
a CommandResult carrying the updated plan plus a confirmation message. The
session swaps its plan reference in a single step. Totals and metrics are
always recomputed from the line items after a change.
"""

import copy
import logging
import math
import uuid
from datetime import date, timedelta
from typing import List, Optional

import pandas as pd

from models.data_models import (
    Campaign, Channel, CommandResult, GroupingMode, MediaPlan, Placement,
    PlacementStatus, PlanMetrics, Stage, Strategy
)
from config.settings import AppConfig
from .budget_allocator import BudgetAllocator
from .entity_extractor import VendorMatch, format_currency
from .error_handler import InvalidAmountError, RowNotFoundError
from .placement_factory import (
    PlacementFactory, REACH_RATIO, resize_placement, scale_placement
)

logger = logging.getLogger(__name__)

FLIGHT_LENGTH_DAYS = 30

# Name terms that address every placement
ALL_PLACEMENTS_TERMS = ('all', 'everything', 'placements', 'all placements')


def calculate_plan_metrics(placements: List[Placement]) -> PlanMetrics:
    """
    Roll up delivery metrics from line items.

    Impressions use actual performance where present and the forecast
    otherwise. Reach is approximated as 40% of impressions.
    """
    impressions = 0
    for placement in placements:
        if placement.performance is not None:
            impressions += placement.performance.impressions
        elif placement.forecast is not None:
            impressions += placement.forecast.impressions

    total_cost = sum(p.total_cost for p in placements)
    reach = int(math.floor(impressions * REACH_RATIO))

    return PlanMetrics(
        impressions=impressions,
        reach=reach,
        frequency=impressions / reach if reach > 0 else 0.0,
        cpm=total_cost / impressions * 1000 if impressions > 0 else 0.0
    )


def recompute_plan(plan: MediaPlan) -> MediaPlan:
    """Recompute spend, remaining budget and metrics in place."""
    plan.total_spend = sum(p.total_cost for p in plan.line_items)
    plan.remaining_budget = plan.campaign.budget - plan.total_spend
    plan.metrics = calculate_plan_metrics(plan.line_items)
    return plan


def _working_copy(plan: MediaPlan) -> MediaPlan:
    return copy.deepcopy(plan)


def _finish(plan: MediaPlan, bump_version: bool = False) -> MediaPlan:
    if bump_version:
        plan.version += 1
    recompute_plan(plan)
    logger.info(f"Plan {plan.id} v{plan.version}: spend {plan.total_spend:,.2f} of {plan.campaign.budget:,.2f}")
    return plan


def _row_placement(plan: MediaPlan, row: int) -> Optional[Placement]:
    if 1 <= row <= len(plan.line_items):
        return plan.line_items[row - 1]
    return None


def create_plan(client_name: str, budget: float, start_date: Optional[date] = None) -> MediaPlan:
    """
    Create an empty plan for a client.

    Args:
        client_name: Advertiser name
        budget: Campaign budget
        start_date: Flight start, today when omitted

    Returns:
        MediaPlan with no line items
    """
    start = start_date or date.today()
    campaign = Campaign(
        id=uuid.uuid4().hex,
        name=f"{client_name} Campaign",
        advertiser=client_name,
        budget=budget,
        start_date=start,
        end_date=start + timedelta(days=FLIGHT_LENGTH_DAYS)
    )
    plan = MediaPlan(id=uuid.uuid4().hex, campaign=campaign)
    return recompute_plan(plan)


def generate_placements(plan: MediaPlan, strategy: Strategy,
                        allocator: BudgetAllocator) -> CommandResult:
    """Run the allocator and replace the plan's line items."""
    updated = _working_copy(plan)
    result = allocator.allocate(updated.campaign.budget, strategy)

    updated.strategy = strategy
    updated.campaign.placements = result.placements
    _finish(updated, bump_version=True)

    text = (
        f"I've generated a **{strategy.value}** media plan with {len(result.placements)} placements."
        "\n\nI've optimized the channel mix for your strategy. How does it look?"
    )
    return CommandResult(
        text=text,
        suggested_replies=['Optimize for Reach', 'Optimize for Conversions', 'Looks good'],
        updated_plan=updated,
        new_stage=Stage.REFINEMENT
    )


def add_placement(plan: MediaPlan, channel: Channel, factory: PlacementFactory,
                  config: AppConfig, vendor_match: Optional[VendorMatch] = None) -> CommandResult:
    """
    Add one placement sized at the add allocation.

    The allocation is a share of the campaign budget with a fixed floor.
    """
    updated = _working_copy(plan)
    allocation = config.add_allocation(updated.campaign.budget)

    vendor = vendor_match.vendor if vendor_match else None
    program = vendor_match.program if vendor_match else None
    placement = factory.create(channel, allocation, vendor=vendor, ad_unit=program)

    updated.campaign.placements.append(placement)
    _finish(updated, bump_version=True)

    if program:
        label = placement.display_name
    else:
        label = f"{placement.vendor} ({channel.value})"

    text = (
        f"I've added a new **{label}** placement for {format_currency(placement.total_cost)}."
        f"\n\nCurrent Spend: {format_currency(updated.total_spend)}"
    )
    return CommandResult(
        text=text,
        suggested_replies=['Add another channel', 'Looks good', 'Export PDF'],
        updated_plan=updated
    )


def add_batch(plan: MediaPlan, channel: Channel, count: int,
              factory: PlacementFactory, config: AppConfig,
              vendor: Optional[str] = None) -> CommandResult:
    """Add several placements of one channel, each sized like a single add."""
    limit = config.max_batch_placements
    if count < 1 or count > limit:
        logger.warning(f"Rejected batch add of {count} placements")
        return CommandResult(
            text=f"I can create between 1 and {limit} placements at a time. You requested {count}.",
            suggested_replies=[f'Add {max(1, min(count, limit))} {channel.value} placements']
        )

    updated = _working_copy(plan)
    allocation = config.add_allocation(updated.campaign.budget)

    added_cost = 0.0
    for _ in range(count):
        placement = factory.create(channel, allocation, vendor=vendor)
        updated.campaign.placements.append(placement)
        added_cost += placement.total_cost

    _finish(updated, bump_version=True)

    text = (
        f"I've added {count} **{channel.value}** placements for a total of {format_currency(added_cost)}."
        f"\n\nCurrent Spend: {format_currency(updated.total_spend)}"
    )
    return CommandResult(
        text=text,
        suggested_replies=['Show Channel Summary', 'Optimize', 'Export PDF'],
        updated_plan=updated
    )


def set_status_by_row(plan: MediaPlan, row: int, status: PlacementStatus) -> CommandResult:
    """
    Pause or resume a single row.

    Pausing only affects ACTIVE rows and resuming only PAUSED rows, so a
    repeated command reports that nothing matched.
    """
    updated = _working_copy(plan)
    placement = _row_placement(updated, row)
    required = PlacementStatus.ACTIVE if status == PlacementStatus.PAUSED else PlacementStatus.PAUSED

    if placement is None or placement.status != required:
        return _status_not_found(status)

    placement.status = status
    _finish(updated)
    return _status_changed(updated, status, [f"Row #{row} ({placement.vendor})"])


def set_status_by_name(plan: MediaPlan, term: str, status: PlacementStatus) -> CommandResult:
    """Pause or resume every row whose vendor or name contains term."""
    updated = _working_copy(plan)
    needle = term.lower().strip()
    required = PlacementStatus.ACTIVE if status == PlacementStatus.PAUSED else PlacementStatus.PAUSED

    match_all = needle in ALL_PLACEMENTS_TERMS

    changed = []
    if needle:
        for placement in updated.line_items:
            if placement.status != required:
                continue
            if match_all or needle in placement.vendor.lower() or needle in placement.name.lower():
                placement.status = status
                changed.append(placement.vendor or placement.name)

    if not changed:
        return _status_not_found(status)

    _finish(updated)
    return _status_changed(updated, status, changed)


def _status_changed(plan: MediaPlan, status: PlacementStatus, labels: List[str]) -> CommandResult:
    if status == PlacementStatus.PAUSED:
        return CommandResult(
            text=f"I've paused {len(labels)} placement(s): {', '.join(labels)}.",
            suggested_replies=['Resume placements', 'Export PDF'],
            updated_plan=plan
        )
    return CommandResult(
        text=f"I've resumed {len(labels)} placement(s): {', '.join(labels)}.",
        suggested_replies=['Optimize for Reach', 'Export PDF'],
        updated_plan=plan
    )


def _status_not_found(status: PlacementStatus) -> CommandResult:
    if status == PlacementStatus.PAUSED:
        text = "I couldn't find any matching placements to pause. Please check the row number or name."
    else:
        text = "I couldn't find any paused placements matching that criteria to resume."
    logger.warning(text)
    return CommandResult(text=text, suggested_replies=['Show Details'])


def delete_row(plan: MediaPlan, row: int) -> CommandResult:
    """Remove a line item by 1-based row number."""
    updated = _working_copy(plan)
    placement = _row_placement(updated, row)
    if placement is None:
        raise RowNotFoundError(row)

    updated.campaign.placements.pop(row - 1)
    _finish(updated, bump_version=True)

    text = (
        f"I've removed Row #{row} ({placement.vendor}).\n\n"
        f"Current Spend: {format_currency(updated.total_spend)}"
    )
    return CommandResult(
        text=text,
        suggested_replies=['Show Details', 'Undo', 'Export PDF'],
        updated_plan=updated
    )


def change_campaign_budget(plan: MediaPlan, amount: float) -> CommandResult:
    """Set the campaign budget. Line items are left untouched."""
    if amount <= 0:
        raise InvalidAmountError(
            f"Non-positive campaign budget {amount}",
            'Budget must be greater than 0. Please specify a valid amount like "$100k" or "$500,000".'
        )

    updated = _working_copy(plan)
    updated.campaign.budget = amount
    _finish(updated)

    text = (
        f"Updated total campaign budget to **{format_currency(amount)}**. "
        f"You have {format_currency(updated.remaining_budget)} remaining."
    )
    return CommandResult(text=text, suggested_replies=['Add TV', 'Export PDF'], updated_plan=updated)


def scale_campaign_budget(plan: MediaPlan, percent: float, increase: bool = True) -> CommandResult:
    """Raise or cut the campaign budget by a percentage."""
    factor = 1 + percent / 100 if increase else 1 - percent / 100
    return change_campaign_budget(plan, round(plan.campaign.budget * factor, 2))


def change_row_budget(plan: MediaPlan, row: int, amount: float) -> CommandResult:
    """
    Resize one line item to a new spend target.

    Quantity is re-derived under the cost method and cost follows from
    quantity and rate.
    """
    if amount <= 0:
        raise InvalidAmountError(
            f"Non-positive row budget {amount}",
            'Budget must be greater than 0. Please specify a valid amount like "$10k" or "$50,000".'
        )

    updated = _working_copy(plan)
    placement = _row_placement(updated, row)
    if placement is None:
        raise RowNotFoundError(
            row, f"Row {row} doesn't exist. You have {len(updated.line_items)} placements."
        )

    old_cost = placement.total_cost
    resize_placement(placement, amount)
    _finish(updated)

    text = (
        f"Updated **{placement.vendor}** (Row {row}) budget from {format_currency(old_cost)} "
        f"to **{format_currency(placement.total_cost)}**.\n\n"
        f"New total spend: {format_currency(updated.total_spend)}"
    )
    return CommandResult(text=text, suggested_replies=['Optimize', 'Export PDF'], updated_plan=updated)


def change_segment(plan: MediaPlan, row: int, segment: str) -> CommandResult:
    """Change the audience segment of one row."""
    updated = _working_copy(plan)
    placement = _row_placement(updated, row)
    if placement is None:
        raise RowNotFoundError(row)

    cleaned = segment.replace('"', '').replace("'", '').strip()
    display_segment = cleaned[:1].upper() + cleaned[1:]
    old_segment = placement.segment
    placement.segment = display_segment
    _finish(updated)

    text = (
        f"Updated Row #{row} ({placement.vendor}): Changed segment from "
        f"\"{old_segment}\" to \"**{display_segment}**\"."
    )
    return CommandResult(
        text=text,
        suggested_replies=['Change another segment', 'Export PDF'],
        updated_plan=updated
    )


def delay_start(plan: MediaPlan, amount: int = 1, unit: str = "month") -> CommandResult:
    """Shift the campaign start date forward."""
    updated = _working_copy(plan)
    campaign = updated.campaign
    offset = pd.DateOffset(**{f"{unit}s": amount})

    duration = campaign.end_date - campaign.start_date
    campaign.start_date = (pd.Timestamp(campaign.start_date) + offset).date()
    if campaign.start_date > campaign.end_date:
        campaign.end_date = campaign.start_date + duration
    _finish(updated)

    plural = "" if amount == 1 else "s"
    return CommandResult(
        text=f"I've shifted the campaign start date by {amount} {unit}{plural}.",
        suggested_replies=['Delay start by 1 month', 'Export PDF'],
        updated_plan=updated
    )


def set_flight_dates(plan: MediaPlan, start: date, end: date) -> CommandResult:
    """Set both campaign flight dates."""
    updated = _working_copy(plan)
    updated.campaign.start_date = start
    updated.campaign.end_date = end
    _finish(updated)

    return CommandResult(
        text=f"I've updated the flight dates to run from {start:%m/%d/%Y} to {end:%m/%d/%Y}.",
        suggested_replies=['Delay start by 1 month', 'Export PDF'],
        updated_plan=updated
    )


def set_grouping(plan: MediaPlan, mode: GroupingMode) -> CommandResult:
    """Switch the presentation grouping mode."""
    updated = _working_copy(plan)
    updated.grouping_mode = mode

    if mode == GroupingMode.DETAILED:
        text = "Switched to **Detailed View** (Line Items)."
    else:
        text = "Switched to **Channel Summary View**. Data is now aggregated by channel."

    return CommandResult(
        text=text,
        suggested_replies=['Show Details', 'Show Channel Summary', 'Export PDF'],
        updated_plan=updated
    )


def pause_underperformers(plan: MediaPlan, threshold: float) -> CommandResult:
    """Pause every active placement whose ROAS is below threshold."""
    updated = _working_copy(plan)
    paused = 0
    for placement in updated.line_items:
        if (placement.performance is not None and placement.performance.roas < threshold
                and placement.status == PlacementStatus.ACTIVE):
            placement.status = PlacementStatus.PAUSED
            paused += 1
    _finish(updated)

    return CommandResult(
        text=f"I've paused {paused} placements that were underperforming (ROAS < {threshold}).",
        suggested_replies=['Shift budget to Search', 'Export PDF'],
        updated_plan=updated,
        new_stage=Stage.OPTIMIZATION
    )


def boost_search(plan: MediaPlan, factor: float) -> CommandResult:
    """Scale every Search placement's quantity and cost by factor."""
    updated = _working_copy(plan)
    for placement in updated.line_items:
        if placement.channel == Channel.SEARCH:
            scale_placement(placement, factor)
    _finish(updated)

    percent = int(round((factor - 1) * 100))
    return CommandResult(
        text=f"I've increased the budget for Search placements by {percent}%.",
        suggested_replies=['Export PDF', 'Start New Campaign'],
        updated_plan=updated,
        new_stage=Stage.OPTIMIZATION
    )


def summarize_plan(plan: MediaPlan) -> str:
    """One-paragraph summary used when a session is finished."""
    active = sum(1 for p in plan.line_items if p.status == PlacementStatus.ACTIVE)
    return (
        f"Here's the final plan for **{plan.campaign.advertiser}**: "
        f"{len(plan.line_items)} placements ({active} active), "
        f"{format_currency(plan.total_spend)} of {format_currency(plan.campaign.budget)} allocated, "
        f"{plan.metrics.impressions:,} forecast impressions."
    )
