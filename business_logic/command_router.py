"""
Ordered command routing for plan-editing instructions.

Each CommandRule pairs a matcher, which inspects the raw text and returns
the extracted entities (or None), with a handler that applies the plan
mutation. Rules are tried in order and the first match wins.
"""

import logging
import random
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from models.data_models import (
    ActionPayload, ActionType, Channel, CommandResult, GroupingMode, MediaPlan,
    PlacementStatus, SideEffectAction, Stage
)
from config.settings import AppConfig, config_manager
from data.reference_tables import (
    CHANNEL_KEYWORDS, ADDABLE_NETWORK_TOKENS, TV_NETWORK_NAMES, VENDOR_LOOKUP,
    SUPPORTED_CHANNEL_NAMES, INVENTORY_LISTINGS, INVENTORY_GENRES
)
from . import entity_extractor as extract
from . import plan_mutator as mutator
from .entity_extractor import VendorMatch
from .error_handler import (
    NoActivePlanError, PlanningError, RowNotFoundError, UnsupportedChannelError,
    error_handler
)
from .placement_factory import PlacementFactory

logger = logging.getLogger(__name__)

Entities = Dict[str, Any]

_CHANNEL_ALTERNATION = '|'.join(
    re.escape(k) for k in sorted(CHANNEL_KEYWORDS, key=len, reverse=True)
)
_NETWORK_ALTERNATION = '|'.join(
    re.escape(k) for k in sorted(ADDABLE_NETWORK_TOKENS, key=len, reverse=True)
)

CREATE_PATTERN = re.compile(r'\b(?:create|new|add)\s+(campaign|flight)\s+(?:for\s+)?(.+)', re.IGNORECASE)
BATCH_PATTERN = re.compile(
    r'\b(?:add|create|make|generate)\s+(\d+)\s+('
    r'connected tv|linear tv|streaming audio|social|display|tv|ctv|search|audio|video|native|radio|podcasts?|ooh'
    r')\b(?:.*?\bon\s+([a-z0-9+]+))?',
    re.IGNORECASE
)
ADD_CHANNEL_PATTERN = re.compile(
    rf'\badd\s+({_CHANNEL_ALTERNATION}|{_NETWORK_ALTERNATION})\b(?:\s+(.+))?$', re.IGNORECASE
)
ADD_FREEFORM_PATTERN = re.compile(r'^add\s+(.+)$', re.IGNORECASE)
BUDGET_DIRECTION_PATTERN = re.compile(
    r'\b(increase|raise|grow|decrease|cut|reduce|lower)\b.*\bbudget\b.*?\bby\b'
)
DATES_TRIGGER = re.compile(r'\b(?:dates?|run from|delay)\b')
PAUSE_ROW_PATTERN = re.compile(r'\bpause\s+(?:row\s+)?(\d+)\b')
PAUSE_NAME_PATTERN = re.compile(r'\bpause\s+(.+?)(?:\s+and\b|\s*$)')
RESUME_ROW_PATTERN = re.compile(r'\b(?:resume|unpause)\s+(?:row\s+)?(\d+)\b')
RESUME_NAME_PATTERN = re.compile(r'\b(?:resume|unpause)\s+(.+?)(?:\s+and\b|\s*$)')
DELETE_PATTERN = re.compile(r'\b(?:delete|remove)\s+row\s*#?\s*(\d+)\b')
SEGMENT_PATTERNS = (
    re.compile(r'row\s+(\d+).*?segment.*?to\s+(.+)', re.IGNORECASE),
    re.compile(r'change\s+segment.*?(\d+).*?to\s+(.+)', re.IGNORECASE),
)
INVENTORY_QUESTION_PATTERN = re.compile(r'\bwhat\b.*\b(?:avail(?:able)?|inventory)\b')
FINISH_PATTERN = re.compile(
    r'\b(?:finish(?:ed)?|done|wrap(?:\s+it)?\s+up|start\s+(?:a\s+)?new\s+campaign|start\s+over)\b'
)

OPTIMIZATION_VOCABULARY = ('underperform', 'performance', 'roas', 'optimiz', 'optimis', 'boost')
OPTIMIZE_TRIGGERS = ('performance', 'optimize', 'optimise', 'pause', 'boost', 'shift')
GROUPING_TRIGGERS = ('group', 'summary', 'detail', 'segment', 'line item', 'placement', 'flat')
DETAIL_TRIGGERS = ('detail', 'segment', 'line item', 'placement', 'flat')
GENERIC_ADD_PHRASES = (
    'another channel', 'a channel', 'channel', 'channels', 'more', 'another',
    'a placement', 'another placement', 'placement', 'placements'
)


@dataclass(frozen=True)
class CommandRule:
    """
    One intent in the routing table.

    Attributes:
        name: Rule identifier reported in logs and results
        matcher: (lowered_text, raw_text) -> entities, or None when not matched
        handler: (router, plan, entities) -> CommandResult
        requires_plan: Whether the handler needs an active plan
    """
    name: str
    matcher: Callable[[str, str], Optional[Entities]]
    handler: Callable[['CommandRouter', MediaPlan, Entities], CommandResult]
    requires_plan: bool = True


# Matchers

def match_inventory(lowered: str, raw: str) -> Optional[Entities]:
    if not INVENTORY_QUESTION_PATTERN.search(lowered):
        return None
    listing = next(
        (item for item in INVENTORY_LISTINGS if any(word in lowered for word in item.keywords)), None
    )
    return {'listing': listing}


def match_create(lowered: str, raw: str) -> Optional[Entities]:
    match = CREATE_PATTERN.search(raw)
    if not match:
        return None
    name = match.group(2).strip().strip('.,;:!?"\'')
    return {'kind': match.group(1).lower(), 'name': name} if name else None


def match_batch(lowered: str, raw: str) -> Optional[Entities]:
    match = BATCH_PATTERN.search(lowered)
    if not match:
        return None
    keyword = match.group(2)
    channel = CHANNEL_KEYWORDS.get(keyword) or CHANNEL_KEYWORDS.get(keyword.rstrip('s'), Channel.DISPLAY)
    return {'count': int(match.group(1)), 'channel': channel, 'network': match.group(3)}


def match_add_channel(lowered: str, raw: str) -> Optional[Entities]:
    match = ADD_CHANNEL_PATTERN.search(raw.strip())
    if not match:
        return None
    token = match.group(1).lower()
    rest = (match.group(2) or '').strip()
    return {'token': token, 'rest': rest, 'phrase': raw.strip()[match.start(1):]}


def match_add_freeform(lowered: str, raw: str) -> Optional[Entities]:
    match = ADD_FREEFORM_PATTERN.match(raw.strip())
    if not match:
        return None
    return {'phrase': match.group(1).strip()}


def match_change_budget(lowered: str, raw: str) -> Optional[Entities]:
    if 'budget' not in lowered:
        return None

    direction_match = BUDGET_DIRECTION_PATTERN.search(lowered)
    if direction_match:
        percent = extract.extract_percentage(lowered[direction_match.end():])
        if percent is not None:
            return {
                'mode': 'percent',
                'percent': percent,
                'increase': direction_match.group(1) in ('increase', 'raise', 'grow')
            }

    text = raw.strip()
    # A row reference always means a line-item budget, never the campaign's
    row_reference = extract.extract_row_reference(text)
    if row_reference:
        row, remainder = row_reference
        amount = extract.parse_money(remainder)
        if amount is None:
            return None
        return {'mode': 'row', 'row': row, 'amount': amount}

    amount = extract.parse_money(text)
    if amount is None:
        return None
    return {'mode': 'campaign', 'amount': amount}


def match_change_dates(lowered: str, raw: str) -> Optional[Entities]:
    if not DATES_TRIGGER.search(lowered):
        return None
    if 'delay' in lowered:
        amount, unit = extract.extract_delay(lowered)
        return {'mode': 'delay', 'amount': amount, 'unit': unit}
    date_range = extract.extract_date_range(lowered)
    if date_range:
        return {'mode': 'range', 'start': date_range[0], 'end': date_range[1]}
    return {'mode': 'guidance'}


def _match_status(lowered: str, row_pattern, name_pattern) -> Optional[Entities]:
    row_match = row_pattern.search(lowered)
    if row_match:
        return {'row': int(row_match.group(1))}
    name_match = name_pattern.search(lowered)
    if name_match:
        return {'term': name_match.group(1).strip()}
    return None


def match_pause(lowered: str, raw: str) -> Optional[Entities]:
    if 'unpause' in lowered or 'resume' in lowered:
        return None
    if any(word in lowered for word in OPTIMIZATION_VOCABULARY):
        return None
    return _match_status(lowered, PAUSE_ROW_PATTERN, PAUSE_NAME_PATTERN)


def match_resume(lowered: str, raw: str) -> Optional[Entities]:
    if 'resume' not in lowered and 'unpause' not in lowered:
        return None
    return _match_status(lowered, RESUME_ROW_PATTERN, RESUME_NAME_PATTERN)


def match_delete(lowered: str, raw: str) -> Optional[Entities]:
    match = DELETE_PATTERN.search(lowered)
    return {'row': int(match.group(1))} if match else None


def match_optimize(lowered: str, raw: str) -> Optional[Entities]:
    if not any(word in lowered for word in OPTIMIZE_TRIGGERS):
        return None
    if 'pause' in lowered:
        return {'mode': 'pause'}
    if 'shift' in lowered or 'boost' in lowered:
        return {'mode': 'boost'}
    return {'mode': 'insights'}


def match_export_slides(lowered: str, raw: str) -> Optional[Entities]:
    return {} if ('ppt' in lowered or 'powerpoint' in lowered) else None


def match_export_document(lowered: str, raw: str) -> Optional[Entities]:
    return {} if ('export' in lowered or 'pdf' in lowered) else None


def _match_segment_text(raw: str) -> Optional[Entities]:
    for pattern in SEGMENT_PATTERNS:
        match = pattern.search(raw)
        if match:
            return {'row': int(match.group(1)), 'segment': match.group(2).strip()}
    return None


def match_grouping(lowered: str, raw: str) -> Optional[Entities]:
    if not any(word in lowered for word in GROUPING_TRIGGERS):
        return None
    # Leave segment edits to the segment rule
    if _match_segment_text(raw):
        return None
    if any(word in lowered for word in DETAIL_TRIGGERS):
        return {'mode': GroupingMode.DETAILED}
    return {'mode': GroupingMode.CHANNEL_SUMMARY}


def match_segment(lowered: str, raw: str) -> Optional[Entities]:
    return _match_segment_text(raw)


def match_finish(lowered: str, raw: str) -> Optional[Entities]:
    return {} if FINISH_PATTERN.search(lowered) else None


# Handlers

def handle_inventory(router: 'CommandRouter', plan: MediaPlan, entities: Entities) -> CommandResult:
    listing = entities['listing']
    if listing is None:
        return CommandResult(
            text=f"I can show TV programming inventory by genre: {INVENTORY_GENRES}. "
                 "Try asking \"what sports programming is available?\"",
            suggested_replies=['What sports programming is available?', 'What news shows are available?']
        )

    lines = '\n'.join(f"• {program}" for program in listing.programs)
    return CommandResult(
        text=f"**{listing.title}:**\n\n{lines}",
        suggested_replies=list(listing.suggested_replies)
    )


def handle_create(router: 'CommandRouter', plan: MediaPlan, entities: Entities) -> CommandResult:
    if entities['kind'] == 'flight':
        action_type = ActionType.CREATE_FLIGHT
        text = f"Creating a new flight **{entities['name']}**."
    else:
        action_type = ActionType.CREATE_CAMPAIGN
        text = f"Creating a new campaign for **{entities['name']}**."
    return CommandResult(
        text=text,
        suggested_replies=['Show Details'],
        action=ActionPayload(type=action_type, payload={'name': entities['name']})
    )


def handle_batch(router: 'CommandRouter', plan: MediaPlan, entities: Entities) -> CommandResult:
    vendor = None
    if entities.get('network'):
        vendor = extract.classify_vendor(entities['network']).vendor
    return mutator.add_batch(
        plan, entities['channel'], entities['count'], router.factory, router.config, vendor=vendor
    )


def _unsupported_channel(term: str) -> UnsupportedChannelError:
    text = (
        f"Sorry, **{term}** is not a supported media channel.\n\n"
        f"{extract.unsupported_alternative(term)}.\n\n"
        f"Supported channels: {SUPPORTED_CHANNEL_NAMES}"
    )
    return UnsupportedChannelError(f"Unsupported channel '{term}'", text)


def handle_add_channel(router: 'CommandRouter', plan: MediaPlan, entities: Entities) -> CommandResult:
    unsupported = extract.find_unsupported_channel(entities['phrase'])
    if unsupported:
        raise _unsupported_channel(unsupported)

    token = entities['token']
    if token in CHANNEL_KEYWORDS:
        return mutator.add_placement(plan, CHANNEL_KEYWORDS[token], router.factory, router.config)

    vendor = TV_NETWORK_NAMES.get(token)
    if vendor is None:
        vendor = VENDOR_LOOKUP[token].display_name if token in VENDOR_LOOKUP else token.upper()
    program = entities['rest']
    if program and program.lower() in extract.VENDOR_NOISE_WORDS:
        program = ''
    match = VendorMatch(Channel.TV, vendor, program or None)
    return mutator.add_placement(plan, Channel.TV, router.factory, router.config, vendor_match=match)


def handle_add_freeform(router: 'CommandRouter', plan: MediaPlan, entities: Entities) -> CommandResult:
    phrase = entities['phrase']
    unsupported = extract.find_unsupported_channel(phrase)
    if unsupported:
        raise _unsupported_channel(unsupported)

    if phrase.lower() in GENERIC_ADD_PHRASES:
        return CommandResult(
            text=f"Which channel would you like to add? Supported channels: {SUPPORTED_CHANNEL_NAMES}.",
            suggested_replies=['Add Search', 'Add Social', 'Add TV']
        )

    match = extract.classify_vendor(phrase)
    return mutator.add_placement(plan, match.channel, router.factory, router.config, vendor_match=match)


def handle_change_budget(router: 'CommandRouter', plan: MediaPlan, entities: Entities) -> CommandResult:
    mode = entities['mode']
    if mode == 'percent':
        return mutator.scale_campaign_budget(plan, entities['percent'], entities['increase'])
    if mode == 'row':
        return mutator.change_row_budget(plan, entities['row'], entities['amount'])
    return mutator.change_campaign_budget(plan, entities['amount'])


def handle_change_dates(router: 'CommandRouter', plan: MediaPlan, entities: Entities) -> CommandResult:
    mode = entities['mode']
    if mode == 'delay':
        return mutator.delay_start(plan, entities['amount'], entities['unit'])
    if mode == 'range':
        return mutator.set_flight_dates(plan, entities['start'], entities['end'])
    return CommandResult(
        text="I've updated the flight dates. (Note: use 'Delay start' to shift the start date, "
             "or 'Run from 3/1/2025 to 3/31/2025' to set both dates).",
        suggested_replies=['Delay start by 1 month', 'Export PDF']
    )


def handle_pause(router: 'CommandRouter', plan: MediaPlan, entities: Entities) -> CommandResult:
    if 'row' in entities:
        return mutator.set_status_by_row(plan, entities['row'], PlacementStatus.PAUSED)
    return mutator.set_status_by_name(plan, entities['term'], PlacementStatus.PAUSED)


def handle_resume(router: 'CommandRouter', plan: MediaPlan, entities: Entities) -> CommandResult:
    if 'row' in entities:
        return mutator.set_status_by_row(plan, entities['row'], PlacementStatus.ACTIVE)
    return mutator.set_status_by_name(plan, entities['term'], PlacementStatus.ACTIVE)


def handle_delete(router: 'CommandRouter', plan: MediaPlan, entities: Entities) -> CommandResult:
    return mutator.delete_row(plan, entities['row'])


def handle_optimize(router: 'CommandRouter', plan: MediaPlan, entities: Entities) -> CommandResult:
    mode = entities['mode']
    if mode == 'pause':
        return mutator.pause_underperformers(plan, router.config.roas_pause_threshold)
    if mode == 'boost':
        return mutator.boost_search(plan, router.config.search_boost_factor)
    return CommandResult(
        text="I've analyzed the performance data. \n\n**Insights:**\n"
             "- **Search** is performing best (High ROAS).\n"
             "- **Display** has a low CTR.\n\n"
             "Would you like me to pause underperforming ads or shift budget to Search?",
        suggested_replies=['Pause underperformers', 'Shift budget to Search'],
        new_stage=Stage.OPTIMIZATION
    )


def handle_export_slides(router: 'CommandRouter', plan: MediaPlan, entities: Entities) -> CommandResult:
    return CommandResult(
        text="Generating your PowerPoint presentation now...",
        suggested_replies=['Start New Campaign'],
        action=SideEffectAction.EXPORT_PPT
    )


def handle_export_document(router: 'CommandRouter', plan: MediaPlan, entities: Entities) -> CommandResult:
    return CommandResult(
        text="Generating your PDF export now...",
        suggested_replies=['Start New Campaign'],
        action=SideEffectAction.EXPORT_PDF
    )


def handle_grouping(router: 'CommandRouter', plan: MediaPlan, entities: Entities) -> CommandResult:
    return mutator.set_grouping(plan, entities['mode'])


def handle_segment(router: 'CommandRouter', plan: MediaPlan, entities: Entities) -> CommandResult:
    return mutator.change_segment(plan, entities['row'], entities['segment'])


def handle_finish(router: 'CommandRouter', plan: MediaPlan, entities: Entities) -> CommandResult:
    return CommandResult(
        text=f"{mutator.summarize_plan(plan)}\n\nSend any message to start a new campaign.",
        suggested_replies=['Start New Campaign'],
        new_stage=Stage.FINISHED
    )


DEFAULT_RULES: List[CommandRule] = [
    CommandRule('inventory-query', match_inventory, handle_inventory, requires_plan=False),
    CommandRule('create-campaign-or-flight', match_create, handle_create, requires_plan=False),
    CommandRule('add-batch', match_batch, handle_batch),
    CommandRule('add-placement-by-channel', match_add_channel, handle_add_channel),
    CommandRule('add-placement-by-freeform-name', match_add_freeform, handle_add_freeform),
    CommandRule('change-budget', match_change_budget, handle_change_budget),
    CommandRule('change-dates', match_change_dates, handle_change_dates),
    CommandRule('pause-by-row-or-name', match_pause, handle_pause),
    CommandRule('resume-by-row-or-name', match_resume, handle_resume),
    CommandRule('delete-by-row', match_delete, handle_delete),
    CommandRule('optimize-performance', match_optimize, handle_optimize),
    CommandRule('export-to-slideshow', match_export_slides, handle_export_slides, requires_plan=False),
    CommandRule('export-to-document', match_export_document, handle_export_document, requires_plan=False),
    CommandRule('change-grouping-view', match_grouping, handle_grouping),
    CommandRule('change-segment-by-row', match_segment, handle_segment),
    CommandRule('finish-session', match_finish, handle_finish),
]


class CommandRouter:
    """
    First-match-wins router over an ordered rule list.

    Planning errors raised by a handler are converted into a response so
    that a matched rule always yields a CommandResult.
    """

    def __init__(self, config: Optional[AppConfig] = None,
                 rng: Optional[random.Random] = None,
                 rules: Optional[List[CommandRule]] = None):
        self.config = config or config_manager.load_config()
        self.rng = rng or random.Random(self.config.random_seed)
        self.factory = PlacementFactory(self.rng)
        self.rules = list(rules) if rules is not None else list(DEFAULT_RULES)

    def match(self, text: str):
        """Return the first matching rule and its entities, or (None, None)."""
        lowered = text.lower().strip()
        for rule in self.rules:
            entities = rule.matcher(lowered, text)
            if entities is not None:
                return rule, entities
        return None, None

    def route(self, text: str, plan: Optional[MediaPlan]) -> Optional[CommandResult]:
        """
        Route one instruction.

        Args:
            text: Raw user text
            plan: Current plan, may be None

        Returns:
            CommandResult from the winning rule, or None when no rule matched
        """
        rule, entities = self.match(text)
        if rule is None:
            logger.info(f"No command matched '{text}'")
            return None

        logger.info(f"Routed '{text}' to {rule.name}")

        try:
            if rule.requires_plan and plan is None:
                raise NoActivePlanError()
            result = rule.handler(self, plan, entities)
        except PlanningError as e:
            error_info = error_handler.classify_error(e, rule.name)
            error_handler.log_error(error_info, "command_router")
            if isinstance(e, RowNotFoundError):
                replies = ['Show Details']
            elif isinstance(e, UnsupportedChannelError):
                replies = ['Add Display', 'Add Social', 'Add TV']
            else:
                replies = []
            result = CommandResult(text=e.user_message, suggested_replies=replies)

        result.rule_name = rule.name
        return result
