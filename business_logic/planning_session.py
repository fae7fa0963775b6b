"""
Conversation state machine for building a media plan.

A PlanningSession owns one SessionContext. Each turn runs the global meta
commands (layout, help, undo, redo, history), then the command router
when a plan exists, then the fallback for the current stage. Whatever
happens, exactly one agent message is appended to the history.
"""

import copy
import logging
import random
import re
import uuid
from datetime import datetime
from typing import List, Optional

from models.data_models import (
    CommandResult, MediaPlan, Message, MessageRole, SessionContext,
    SideEffectAction, Stage, Strategy
)
from config.settings import AppConfig, config_manager
from .budget_allocator import BudgetAllocator
from .command_router import CommandRouter
from .entity_extractor import extract_budget_amount, extract_client_name, format_currency
from .error_handler import error_handler
from . import plan_mutator as mutator

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

LAYOUT_PATTERN = re.compile(r'(?:switch to|change to|set layout to|layout)\s+(left|right|bottom)', re.IGNORECASE)
HELP_PATTERN = re.compile(
    r'^\s*(?:help(?:\s+me)?|what can you do|suggestions?|show suggestions)\s*[?.!]*\s*$', re.IGNORECASE
)
UNDO_PATTERN = re.compile(r'^\s*(?:undo|revert|go back)\b', re.IGNORECASE)
REDO_PATTERN = re.compile(r'^\s*redo\b', re.IGNORECASE)
HISTORY_PATTERN = re.compile(r'\b(?:show history|action history|recent actions)\b', re.IGNORECASE)

LAYOUT_ACTIONS = {
    'left': SideEffectAction.LAYOUT_LEFT,
    'right': SideEffectAction.LAYOUT_RIGHT,
    'bottom': SideEffectAction.LAYOUT_BOTTOM,
}

CONFIRM_KEYWORDS = ('generate', 'show', 'yes', 'create')

WELCOME_TEXT = (
    "Welcome to the Media Plan Assistant. To get started, tell me the Client Name "
    "and Total Budget for your new campaign."
)
WELCOME_REPLIES = ('Create plan for Nike ($500k)', 'Create plan for Local Coffee Shop ($5k)')

MAX_UNDO_DEPTH = 20
MAX_ACTION_LOG = 50
HISTORY_DISPLAY_COUNT = 10


class PlanningSession:
    """
    Single conversation with its own context, random source and undo stack.

    Sessions never share mutable state, so one instance per conversation
    is safe without locking.
    """

    def __init__(self, config: Optional[AppConfig] = None,
                 rng: Optional[random.Random] = None,
                 context: Optional[SessionContext] = None,
                 session_id: Optional[str] = None):
        self.config = config or config_manager.load_config()
        self.rng = rng or random.Random(self.config.random_seed)
        self.session_id = session_id or uuid.uuid4().hex
        self.router = CommandRouter(self.config, self.rng)
        self.allocator = BudgetAllocator(self.rng, self.router.factory)
        self._undo_stack: List[MediaPlan] = []
        self._redo_stack: List[MediaPlan] = []
        self._action_log: List[str] = []

        if context is None:
            context = SessionContext()
            context.history.append(self._message(MessageRole.AGENT, WELCOME_TEXT, WELCOME_REPLIES))
        self.context = context

    @property
    def stage(self) -> Stage:
        return self.context.stage

    @property
    def plan(self) -> Optional[MediaPlan]:
        return self.context.plan

    @property
    def history(self) -> List[Message]:
        return self.context.history

    def process_input(self, text: str) -> Message:
        """
        Handle one user turn.

        Args:
            text: Raw user text

        Returns:
            The agent message appended to the history
        """
        self.context.history.append(self._message(MessageRole.USER, text))

        try:
            result = self._handle(text)
        except Exception as e:
            error_info = error_handler.classify_error(e, "planning_session")
            error_handler.log_error(error_info, f"session {self.session_id}")
            result = CommandResult(text=error_info.user_message, suggested_replies=['Help'])

        return self.apply_mutation(result, text)

    def apply_mutation(self, result: CommandResult, source_text: Optional[str] = None) -> Message:
        """
        Apply a command result to the context in a single step.

        Swaps the plan, records the undo snapshot, moves the stage and
        appends the agent message. Plan changes are also written to the
        action log shown by "show history".
        """
        previous = self.context.plan

        if result.clear_plan:
            self.context.plan = None
            self._undo_stack.clear()
            self._redo_stack.clear()
            self._action_log.clear()
        elif result.updated_plan is not None:
            if result.record_undo:
                if previous is not None:
                    self._push_undo(previous)
                self._redo_stack.clear()
            self.context.plan = result.updated_plan
            self._log_action(result, source_text)

        if result.new_stage is not None and result.new_stage != self.context.stage:
            logger.info(f"Session {self.session_id}: {self.context.stage.value} -> {result.new_stage.value}")
            self.context.stage = result.new_stage

        message = self._message(
            MessageRole.AGENT, result.text, tuple(result.suggested_replies), result.action
        )
        self.context.history.append(message)
        return message

    def _handle(self, text: str) -> CommandResult:
        layout_match = LAYOUT_PATTERN.search(text)
        if layout_match:
            position = layout_match.group(1).lower()
            return CommandResult(
                text=f"I've switched the layout to **{position}** position.",
                suggested_replies=['Continue planning'],
                action=LAYOUT_ACTIONS[position],
                rule_name='layout'
            )

        if HELP_PATTERN.match(text):
            return self._help()

        if UNDO_PATTERN.match(text):
            return self._undo()

        if REDO_PATTERN.match(text):
            return self._redo()

        if HISTORY_PATTERN.search(text):
            return self._show_history()

        if self.context.plan is not None and self.context.stage != Stage.FINISHED:
            result = self.router.route(text, self.context.plan)
            if result is not None:
                return result

        return self._stage_fallback(text)

    def _stage_fallback(self, text: str) -> CommandResult:
        stage = self.context.stage

        if stage == Stage.INIT:
            return self._start_plan(text)
        elif stage == Stage.BUDGETING:
            return self._choose_strategy(text)
        elif stage == Stage.CHANNEL_SELECTION:
            return mutator.generate_placements(self.context.plan, self.context.plan.strategy, self.allocator)
        elif stage == Stage.FINISHED:
            return CommandResult(
                text="Starting a new session. Who is the client?",
                suggested_replies=list(WELCOME_REPLIES),
                new_stage=Stage.INIT,
                clear_plan=True
            )

        return CommandResult(
            text="I'm listening. You can ask me to **Add channels**, **Change budget**, "
                 "**Optimize performance**, or **Export**.",
            suggested_replies=['Add TV', 'Set budget to $1M', 'Show Performance', 'Export PDF']
        )

    def _start_plan(self, text: str) -> CommandResult:
        budget = extract_budget_amount(text, self.config.default_budget)
        client_name = extract_client_name(text)
        plan = mutator.create_plan(client_name, budget)

        logger.info(f"Initialized plan for {client_name} with budget {budget:,.2f}")
        return CommandResult(
            text=f"Great! I've initialized a campaign for **{client_name}** with a budget of "
                 f"**{format_currency(budget)}**. \n\nHow would you like to allocate this budget "
                 "across channels? I recommend a 70/20/10 split for balanced growth.",
            suggested_replies=['Apply 70/20/10 Rule', 'Focus on Digital Only', 'Focus on Brand Awareness (TV/OOH)'],
            updated_plan=plan,
            new_stage=Stage.BUDGETING
        )

    def _choose_strategy(self, text: str) -> CommandResult:
        lowered = text.lower()

        strategy = None
        if '70/20/10' in lowered:
            strategy = Strategy.BALANCED
        elif 'digital' in lowered:
            strategy = Strategy.DIGITAL
        elif 'awareness' in lowered or 'tv' in lowered or 'ooh' in lowered:
            strategy = Strategy.AWARENESS

        if strategy is None and any(word in lowered for word in CONFIRM_KEYWORDS):
            strategy = self.context.plan.strategy or Strategy.BALANCED

        if strategy is None:
            # Unrecognised replies settle on the balanced mix
            plan = copy.deepcopy(self.context.plan)
            plan.strategy = Strategy.BALANCED
            return CommandResult(
                text="I'll draft a Balanced plan. Ready to see the placements?",
                suggested_replies=['Show me the plan'],
                updated_plan=plan,
                record_undo=False
            )

        return mutator.generate_placements(self.context.plan, strategy, self.allocator)

    def _help(self) -> CommandResult:
        if self.context.plan is None:
            return CommandResult(
                text="Here are some ways to get started:\n\n"
                     "• **'Create plan for Nike ($500k)'** - Start a new plan\n"
                     "• **'Create plan for Local Coffee Shop ($5k)'** - Start a small local plan\n"
                     "• **'Switch to left'** - Move the chat panel",
                suggested_replies=['Create plan for Nike ($500k)'],
                rule_name='help'
            )

        return CommandResult(
            text="Here's what I can help you with:\n\n"
                 "**Add Placements:**\n"
                 "• 'Add Google Search ads'\n"
                 "• 'Add ESPN SportsCenter'\n"
                 "• 'Add 3 social'\n\n"
                 "**Edit the Plan:**\n"
                 "• 'Pause row 2' / 'Resume row 2'\n"
                 "• 'Change budget for row 1 to $10k'\n"
                 "• 'Row 2 segment to sports fans'\n"
                 "• 'Delay start by 2 weeks'\n\n"
                 "**Optimize:**\n"
                 "• 'Pause underperformers'\n"
                 "• 'Shift budget to Search'\n\n"
                 "**Views & Export:**\n"
                 "• 'Show channel summary' / 'Export PDF'\n"
                 "• 'Undo' / 'Redo' / 'Show history'",
            suggested_replies=['Add TV placement', 'Pause underperformers'],
            rule_name='help'
        )

    def _undo(self) -> CommandResult:
        if not self._undo_stack:
            return CommandResult(text="There's nothing to undo yet.", rule_name='undo')

        restored = self._undo_stack.pop()
        self._redo_stack.append(self.context.plan)
        logger.info(f"Session {self.session_id}: restored plan version {restored.version}")
        return CommandResult(
            text=f"I've reverted the last change. Current Spend: {format_currency(restored.total_spend)}",
            suggested_replies=['Redo', 'Show Details', 'Export PDF'],
            updated_plan=restored,
            record_undo=False,
            rule_name='undo'
        )

    def _redo(self) -> CommandResult:
        if not self._redo_stack:
            return CommandResult(text="There's nothing to redo.", rule_name='redo')

        restored = self._redo_stack.pop()
        self._push_undo(self.context.plan)
        logger.info(f"Session {self.session_id}: reapplied plan version {restored.version}")
        return CommandResult(
            text=f"I've reapplied the change. Current Spend: {format_currency(restored.total_spend)}",
            suggested_replies=['Undo', 'Show Details'],
            updated_plan=restored,
            record_undo=False,
            rule_name='redo'
        )

    def _show_history(self) -> CommandResult:
        if not self._action_log:
            return CommandResult(
                text="No plan changes yet in this session.",
                suggested_replies=['Help'],
                rule_name='show-history'
            )

        recent = self._action_log[-HISTORY_DISPLAY_COUNT:]
        lines = [f"{index}. {entry}" for index, entry in enumerate(recent, start=1)]
        return CommandResult(
            text="**Recent changes:**\n\n" + "\n".join(lines),
            suggested_replies=['Undo', 'Show Details'],
            rule_name='show-history'
        )

    def _push_undo(self, plan: MediaPlan):
        self._undo_stack.append(plan)
        del self._undo_stack[:-MAX_UNDO_DEPTH]

    def _log_action(self, result: CommandResult, source_text: Optional[str]):
        plan = result.updated_plan
        label = f'"{source_text.strip()}"' if source_text else (result.rule_name or "update")
        self._action_log.append(
            f"{label}: version {plan.version}, spend {format_currency(plan.total_spend)}"
        )
        del self._action_log[:-MAX_ACTION_LOG]

    @staticmethod
    def _message(role: MessageRole, text: str, replies=(), action=None) -> Message:
        return Message(
            id=f"{role.value}-{uuid.uuid4().hex[:12]}",
            role=role,
            text=text,
            timestamp=datetime.now(),
            suggested_replies=tuple(replies),
            side_effect_action=action
        )
