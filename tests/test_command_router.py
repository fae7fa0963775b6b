"""
Tests for ordered command routing.
"""

import random
import pytest
from datetime import date

from business_logic import plan_mutator as mutator
from business_logic.budget_allocator import BudgetAllocator
from business_logic.command_router import CommandRouter, CommandRule
from config.settings import AppConfig
from models.data_models import (
    ActionPayload, ActionType, Channel, CommandResult, GroupingMode,
    PlacementStatus, SideEffectAction, Stage, Strategy
)


@pytest.fixture
def plan():
    base = mutator.create_plan("Acme", 500000, start_date=date(2025, 1, 1))
    return mutator.generate_placements(base, Strategy.BALANCED, BudgetAllocator(random.Random(42))).updated_plan


class TestRuleMatching:
    """Test cases for rule selection order."""

    def setup_method(self):
        self.router = CommandRouter(AppConfig(), random.Random(42))

    @pytest.mark.parametrize("text,rule_name", [
        ("What sports programming is available?", "inventory-query"),
        ("what inventory do you have", "inventory-query"),
        ("create campaign for Globex", "create-campaign-or-flight"),
        ("new flight Spring Launch", "create-campaign-or-flight"),
        ("add 3 social", "add-batch"),
        ("Add ESPN SportsCenter", "add-placement-by-channel"),
        ("Add TV", "add-placement-by-channel"),
        ("Add Google Search ads", "add-placement-by-freeform-name"),
        ("add print ad", "add-placement-by-freeform-name"),
        ("set budget to $750k", "change-budget"),
        ("Change budget for row 1 to $10k", "change-budget"),
        ("increase budget by 10%", "change-budget"),
        ("delay start by 2 weeks", "change-dates"),
        ("pause row 2", "pause-by-row-or-name"),
        ("pause spotify", "pause-by-row-or-name"),
        ("resume row 2", "resume-by-row-or-name"),
        ("delete row 1", "delete-by-row"),
        ("pause underperformers", "optimize-performance"),
        ("shift budget to search", "optimize-performance"),
        ("show performance", "optimize-performance"),
        ("export to powerpoint", "export-to-slideshow"),
        ("export pdf", "export-to-document"),
        ("show channel summary", "change-grouping-view"),
        ("show details", "change-grouping-view"),
        ("row 2 segment to sports fans", "change-segment-by-row"),
        ("I'm done", "finish-session"),
    ])
    def test_rule_selected(self, text, rule_name):
        rule, _ = self.router.match(text)
        assert rule is not None
        assert rule.name == rule_name

    def test_unmatched_text(self):
        assert self.router.match("what's the weather like") == (None, None)

    def test_update_does_not_trigger_dates(self):
        rule, _ = self.router.match("update the plan")
        assert rule is None or rule.name != "change-dates"

    def test_row_budget_entities(self):
        _, entities = self.router.match("Change budget for row 1 to $10k")
        assert entities == {'mode': 'row', 'row': 1, 'amount': 10000.0}

    def test_segment_entities_keep_case(self):
        _, entities = self.router.match("Row 2 segment to Sports Fans")
        assert entities == {'row': 2, 'segment': 'Sports Fans'}

    def test_custom_rules(self):
        rule = CommandRule(
            'echo',
            lambda lowered, raw: {'text': raw} if lowered.startswith('echo') else None,
            lambda router, plan, entities: CommandResult(text=entities['text']),
            requires_plan=False
        )
        router = CommandRouter(AppConfig(), random.Random(1), rules=[rule])

        result = router.route("echo hello", None)
        assert result.text == "echo hello"
        assert result.rule_name == 'echo'
        assert router.route("pause row 1", None) is None


class TestRouting:
    """Test cases for routed command outcomes."""

    def setup_method(self):
        self.router = CommandRouter(AppConfig(), random.Random(42))

    def test_add_named_network(self, plan):
        result = self.router.route("Add ESPN SportsCenter", plan)
        added = result.updated_plan.line_items[-1]

        assert added.channel == Channel.TV
        assert added.vendor == "ESPN"
        assert added.ad_unit == "SportsCenter"
        assert added.total_cost == pytest.approx(max(5000, 500000 * 0.05), abs=1)

    def test_add_freeform_vendor(self, plan):
        result = self.router.route("Add Google Search ads", plan)
        added = result.updated_plan.line_items[-1]

        assert added.channel == Channel.SEARCH
        assert added.vendor == "Google Ads"
        assert "**Google Ads (Search)**" in result.text

    def test_unsupported_channel_rejected(self, plan):
        result = self.router.route("add print ad", plan)

        assert result.updated_plan is None
        assert "Sorry, **print** is not a supported media channel." in result.text
        assert result.suggested_replies == ['Add Display', 'Add Social', 'Add TV']

    def test_generic_add_asks_for_channel(self, plan):
        result = self.router.route("add another channel", plan)
        assert result.updated_plan is None
        assert result.text.startswith("Which channel would you like to add?")

    def test_batch_on_network(self, plan):
        result = self.router.route("add 2 tv on espn", plan)
        added = result.updated_plan.line_items[-2:]

        assert len(result.updated_plan.line_items) == len(plan.line_items) + 2
        assert all(p.vendor == "ESPN" and p.channel == Channel.TV for p in added)

    def test_batch_limit(self, plan):
        result = self.router.route("add 11 social", plan)
        assert result.updated_plan is None
        assert "between 1 and 10" in result.text

    def test_percent_budget(self, plan):
        result = self.router.route("increase budget by 10%", plan)
        assert result.updated_plan.campaign.budget == pytest.approx(550000)

    def test_zero_budget_is_rejected(self, plan):
        result = self.router.route("set budget to $0", plan)
        assert result.updated_plan is None
        assert result.text.startswith("Budget must be greater than 0.")

    def test_inventory_by_genre(self, plan):
        result = self.router.route("What sports programming is available?", plan)

        assert result.text.startswith("**📺 Available Sports Programming:**")
        assert "• ESPN SportsCenter (2-5M viewers)" in result.text
        assert result.suggested_replies[0] == 'Add ESPN Monday Night Football'
        assert result.updated_plan is None

    def test_inventory_suggestion_adds_placement(self, plan):
        reply = self.router.route("What sports programming is available?", plan).suggested_replies[0]
        result = self.router.route(reply, plan)

        assert result.rule_name == "add-placement-by-channel"
        assert result.updated_plan.line_items[-1].vendor == "ESPN"

    def test_inventory_without_genre(self, plan):
        result = self.router.route("what inventory do you have", plan)
        assert result.text.startswith("I can show TV programming inventory by genre")
        assert result.updated_plan is None

    def test_row_budget_without_verb(self, plan):
        result = self.router.route("Row 2 budget $5k", plan)
        resized = result.updated_plan.line_items[1]

        assert result.rule_name == "change-budget"
        assert result.updated_plan.campaign.budget == 500000
        assert resized.total_cost == pytest.approx(5000, abs=resized.rate)
        assert result.updated_plan.line_items[0].total_cost == plan.line_items[0].total_cost

    def test_row_budget_with_leading_whitespace(self, plan):
        result = self.router.route("  change row 2 budget to $5,000", plan)
        resized = result.updated_plan.line_items[1]

        assert resized.total_cost == pytest.approx(5000, abs=resized.rate)
        assert result.updated_plan.campaign.budget == 500000

    def test_row_reference_without_amount_is_not_a_campaign_change(self):
        _, entities = self.router.match("what is the row 2 budget")
        assert entities is None or entities.get('mode') != 'campaign'

    @pytest.mark.parametrize("text", ["set budget to 750000", "Change budget to 750,000"])
    def test_campaign_budget_bare_number(self, plan, text):
        result = self.router.route(text, plan)
        assert result.rule_name == "change-budget"
        assert result.updated_plan.campaign.budget == 750000

    def test_pause_row(self, plan):
        result = self.router.route("pause row 2", plan)
        assert result.updated_plan.line_items[1].status == PlacementStatus.PAUSED
        assert result.rule_name == "pause-by-row-or-name"

    def test_pause_missing_row(self, plan):
        result = self.router.route("pause row 99", plan)
        assert result.updated_plan is None
        assert "couldn't find any matching placements to pause" in result.text

    def test_delete_missing_row(self, plan):
        result = self.router.route("delete row 99", plan)
        assert result.text == "I couldn't find Row #99. Please check the table and try again."
        assert result.suggested_replies == ['Show Details']

    def test_plan_required(self):
        result = self.router.route("pause row 1", None)
        assert result.text.startswith("I need an active media plan for that.")

    def test_exports_emit_actions(self, plan):
        assert self.router.route("export pdf", plan).action == SideEffectAction.EXPORT_PDF
        assert self.router.route("export ppt", plan).action == SideEffectAction.EXPORT_PPT
        assert self.router.route("export pdf", None).action == SideEffectAction.EXPORT_PDF

    def test_create_campaign_action(self, plan):
        result = self.router.route("create campaign for Globex", plan)
        assert result.action == ActionPayload(ActionType.CREATE_CAMPAIGN, {'name': 'Globex'})
        assert result.updated_plan is None

    def test_grouping_view(self, plan):
        result = self.router.route("show channel summary", plan)
        assert result.updated_plan.grouping_mode == GroupingMode.CHANNEL_SUMMARY

    def test_performance_insights(self, plan):
        result = self.router.route("show performance", plan)
        assert result.new_stage == Stage.OPTIMIZATION
        assert result.updated_plan is None

    def test_finish(self, plan):
        result = self.router.route("wrap it up", plan)
        assert result.new_stage == Stage.FINISHED
        assert "final plan for **Acme**" in result.text
