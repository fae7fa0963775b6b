"""
End-to-end tests for the planning conversation.
"""

import random
import pytest
from unittest.mock import patch

from business_logic.planning_session import PlanningSession, WELCOME_TEXT
from config.settings import AppConfig
from models.data_models import (
    MessageRole, PlacementStatus, SessionContext, SideEffectAction, Stage, Strategy
)


class TestPlanningWorkflow:
    """Test cases for the guided planning flow."""

    def setup_method(self):
        self.session = PlanningSession(config=AppConfig(), rng=random.Random(42))

    def start_plan(self, strategy_reply="Apply 70/20/10 Rule"):
        self.session.process_input("Create plan for Acme ($500k)")
        return self.session.process_input(strategy_reply)

    def test_new_session_greets(self):
        assert self.session.stage == Stage.INIT
        assert self.session.plan is None
        assert len(self.session.history) == 1
        assert self.session.history[0].text == WELCOME_TEXT

    def test_initialize_plan(self):
        reply = self.session.process_input("Create plan for Acme ($500k)")

        assert self.session.stage == Stage.BUDGETING
        assert self.session.plan.campaign.advertiser == "Acme"
        assert self.session.plan.campaign.budget == 500000
        assert "**Acme**" in reply.text
        assert "**$500,000**" in reply.text
        assert reply.suggested_replies[0] == 'Apply 70/20/10 Rule'

    def test_missing_budget_uses_default(self):
        self.session.process_input("Start a plan for Initech")
        assert self.session.plan.campaign.budget == 100000

    def test_balanced_generation(self):
        reply = self.start_plan()

        assert self.session.stage == Stage.REFINEMENT
        assert self.session.plan.strategy == Strategy.BALANCED
        assert len(self.session.plan.line_items) > 0
        assert "**BALANCED**" in reply.text

    def test_digital_generation(self):
        self.start_plan("Focus on Digital Only")
        assert self.session.plan.strategy == Strategy.DIGITAL

    def test_awareness_generation(self):
        self.start_plan("Focus on Brand Awareness (TV/OOH)")
        assert self.session.plan.strategy == Strategy.AWARENESS

    def test_unclear_strategy_prompts(self):
        self.session.process_input("Create plan for Acme ($500k)")
        reply = self.session.process_input("hmm")

        assert self.session.stage == Stage.BUDGETING
        assert reply.text == "I'll draft a Balanced plan. Ready to see the placements?"

        self.session.process_input("Show me the plan")
        assert self.session.stage == Stage.REFINEMENT
        assert self.session.plan.strategy == Strategy.BALANCED

    def test_unclear_strategy_settles_on_balanced(self):
        self.session.process_input("Create plan for Acme ($500k)")
        self.session.plan.strategy = Strategy.DIGITAL

        self.session.process_input("not sure yet")

        assert self.session.plan.strategy == Strategy.BALANCED
        assert self.session.plan.line_items == []
        assert self.session.process_input("undo").text == "There's nothing to undo yet."

    def test_budget_commands(self):
        self.start_plan()
        row_two_cost = self.session.plan.line_items[1].total_cost

        self.session.process_input("Change budget to 750,000")
        assert self.session.plan.campaign.budget == 750000
        assert self.session.plan.line_items[1].total_cost == row_two_cost

        self.session.process_input("Row 2 budget $5k")
        resized = self.session.plan.line_items[1]
        assert self.session.plan.campaign.budget == 750000
        assert resized.total_cost == pytest.approx(5000, abs=resized.rate)

    def test_pause_row(self):
        self.start_plan()
        self.session.process_input("pause row 2")
        assert self.session.plan.line_items[1].status == PlacementStatus.PAUSED

    def test_unrecognized_refinement_input(self):
        self.start_plan()
        reply = self.session.process_input("what's the weather like")
        assert reply.text.startswith("I'm listening.")

    def test_optimization_stage(self):
        self.start_plan()
        self.session.process_input("pause underperformers")
        assert self.session.stage == Stage.OPTIMIZATION

    def test_one_agent_message_per_turn(self):
        inputs = ["Create plan for Acme ($500k)", "Apply 70/20/10 Rule", "pause row 2", "help", "nonsense"]
        for text in inputs:
            self.session.process_input(text)

        history = self.session.history
        assert len(history) == 1 + 2 * len(inputs)
        for user_msg, agent_msg in zip(history[1::2], history[2::2]):
            assert user_msg.role == MessageRole.USER
            assert agent_msg.role == MessageRole.AGENT

    def test_message_ids_are_unique(self):
        self.start_plan()
        ids = [m.id for m in self.session.history]
        assert len(ids) == len(set(ids))


class TestMetaCommands:
    """Test cases for layout, help, undo and finish."""

    def setup_method(self):
        self.session = PlanningSession(config=AppConfig(), rng=random.Random(7))

    def generate(self):
        self.session.process_input("Create plan for Acme ($500k)")
        self.session.process_input("Apply 70/20/10 Rule")

    def test_layout_change(self):
        self.generate()
        plan = self.session.plan
        reply = self.session.process_input("switch to left")

        assert reply.side_effect_action == SideEffectAction.LAYOUT_LEFT
        assert reply.text == "I've switched the layout to **left** position."
        assert self.session.plan is plan

    def test_layout_works_without_plan(self):
        reply = self.session.process_input("layout bottom")
        assert reply.side_effect_action == SideEffectAction.LAYOUT_BOTTOM
        assert self.session.stage == Stage.INIT

    def test_help_before_and_after_plan(self):
        before = self.session.process_input("help")
        assert before.text.startswith("Here are some ways to get started")
        assert self.session.stage == Stage.INIT

        self.generate()
        after = self.session.process_input("What can you do?")
        assert after.text.startswith("Here's what I can help you with")

    def test_undo(self):
        self.generate()
        self.session.process_input("pause row 2")
        reply = self.session.process_input("undo")

        assert self.session.plan.line_items[1].status == PlacementStatus.ACTIVE
        assert reply.text.startswith("I've reverted the last change.")

    def test_undo_with_empty_stack(self):
        reply = self.session.process_input("undo")
        assert reply.text == "There's nothing to undo yet."

    def test_undo_does_not_remove_plan(self):
        self.session.process_input("Create plan for Acme ($500k)")
        reply = self.session.process_input("undo")

        assert reply.text == "There's nothing to undo yet."
        assert self.session.plan is not None

    def test_redo(self):
        self.generate()
        self.session.process_input("pause row 2")
        self.session.process_input("undo")

        reply = self.session.process_input("redo")

        assert self.session.plan.line_items[1].status == PlacementStatus.PAUSED
        assert reply.text.startswith("I've reapplied the change.")

        self.session.process_input("undo")
        assert self.session.plan.line_items[1].status == PlacementStatus.ACTIVE

    def test_redo_cleared_by_new_change(self):
        self.generate()
        self.session.process_input("pause row 2")
        self.session.process_input("undo")
        self.session.process_input("pause row 1")

        reply = self.session.process_input("redo")

        assert reply.text == "There's nothing to redo."
        assert self.session.plan.line_items[0].status == PlacementStatus.PAUSED
        assert self.session.plan.line_items[1].status == PlacementStatus.ACTIVE

    def test_show_history(self):
        empty = self.session.process_input("show history")
        assert empty.text == "No plan changes yet in this session."

        self.generate()
        self.session.process_input("pause row 2")
        reply = self.session.process_input("show history")

        assert reply.text.startswith("**Recent changes:**")
        assert '"Apply 70/20/10 Rule"' in reply.text
        assert '3. "pause row 2"' in reply.text

    def test_finish_and_restart(self):
        self.generate()
        finished = self.session.process_input("I'm done")
        assert self.session.stage == Stage.FINISHED
        assert "final plan for **Acme**" in finished.text

        restart = self.session.process_input("pause row 1")
        assert self.session.stage == Stage.INIT
        assert self.session.plan is None
        assert restart.text == "Starting a new session. Who is the client?"

    def test_restored_context_skips_welcome(self):
        context = SessionContext(stage=Stage.INIT)
        session = PlanningSession(config=AppConfig(), rng=random.Random(1), context=context)
        assert session.history == []


class TestErrorRecovery:
    """Test cases for unexpected failures during a turn."""

    def setup_method(self):
        self.session = PlanningSession(config=AppConfig(), rng=random.Random(3))
        self.session.process_input("Create plan for Acme ($500k)")
        self.session.process_input("Apply 70/20/10 Rule")

    def test_unexpected_error_keeps_plan(self):
        plan = self.session.plan
        history_length = len(self.session.history)

        with patch.object(self.session.router, 'route', side_effect=RuntimeError("boom")):
            reply = self.session.process_input("pause row 1")

        assert reply.text == "Sorry, something went wrong handling that request. Your plan is unchanged."
        assert reply.suggested_replies == ('Help',)
        assert self.session.plan is plan
        assert len(self.session.history) == history_length + 2

    @patch('business_logic.planning_session.error_handler')
    def test_errors_are_logged(self, mock_handler):
        mock_handler.classify_error.return_value.user_message = "failed"

        with patch.object(self.session.router, 'route', side_effect=ValueError("bad")):
            reply = self.session.process_input("pause row 1")

        assert reply.text == "failed"
        mock_handler.classify_error.assert_called_once()
        mock_handler.log_error.assert_called_once()


class TestSessionIsolation:
    """Test cases for independent sessions."""

    def test_sessions_share_no_state(self):
        first = PlanningSession(config=AppConfig(), rng=random.Random(5))
        second = PlanningSession(config=AppConfig(), rng=random.Random(5))
        for session in (first, second):
            session.process_input("Create plan for Acme ($500k)")
            session.process_input("Apply 70/20/10 Rule")

        untouched_statuses = [p.status for p in second.plan.line_items]
        untouched_history = len(second.history)

        first.process_input("pause row 1")
        first.process_input("Change budget to $900k")

        assert first.plan.campaign.budget == 900000
        assert first.plan is not second.plan
        assert first.history is not second.history
        assert second.plan.campaign.budget == 500000
        assert [p.status for p in second.plan.line_items] == untouched_statuses
        assert len(second.history) == untouched_history
