"""
Core data models for the conversational media planner.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union


class Stage(Enum):
    """Position of a session in the guided plan-building workflow."""
    INIT = "INIT"
    BUDGETING = "BUDGETING"
    CHANNEL_SELECTION = "CHANNEL_SELECTION"
    REFINEMENT = "REFINEMENT"
    OPTIMIZATION = "OPTIMIZATION"
    FINISHED = "FINISHED"


class Strategy(Enum):
    """Budget allocation policies."""
    BALANCED = "BALANCED"
    DIGITAL = "DIGITAL"
    AWARENESS = "AWARENESS"


class GroupingMode(Enum):
    """Aggregation level used by the presentation layer."""
    DETAILED = "DETAILED"
    CHANNEL_SUMMARY = "CHANNEL_SUMMARY"


class Channel(Enum):
    """Fixed channel taxonomy."""
    SEARCH = "Search"
    SOCIAL = "Social"
    DISPLAY = "Display"
    TV = "TV"
    RADIO = "Radio"
    STREAMING_AUDIO = "Streaming Audio"
    PODCAST = "Podcast"
    PLACE_BASED_AUDIO = "Place-based Audio"
    OOH = "OOH"
    PRINT = "Print"


class CostMethod(Enum):
    """Unit pricing conventions. CPM is priced per thousand, the rest per unit."""
    CPM = "CPM"
    CPC = "CPC"
    SPOT = "Spot"
    FLAT = "Flat"


class PlacementStatus(Enum):
    """Lifecycle status of a line item."""
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    DRAFT = "DRAFT"


class MessageRole(Enum):
    USER = "user"
    AGENT = "agent"


class SideEffectAction(Enum):
    """Action tags consumed by the host application."""
    EXPORT_PDF = "EXPORT_PDF"
    EXPORT_PPT = "EXPORT_PPT"
    LAYOUT_LEFT = "LAYOUT_LEFT"
    LAYOUT_RIGHT = "LAYOUT_RIGHT"
    LAYOUT_BOTTOM = "LAYOUT_BOTTOM"


class ActionType(Enum):
    """Structured action types that carry a payload."""
    CREATE_CAMPAIGN = "CREATE_CAMPAIGN"
    CREATE_FLIGHT = "CREATE_FLIGHT"


@dataclass(frozen=True)
class ActionPayload:
    """Structured side-effect action with its payload."""
    type: ActionType
    payload: Dict[str, Any]


@dataclass(frozen=True)
class Message:
    """A single chat message. Created once and never modified."""
    id: str
    role: MessageRole
    text: str
    timestamp: datetime
    suggested_replies: Tuple[str, ...] = ()
    side_effect_action: Optional[Union[SideEffectAction, ActionPayload]] = None


@dataclass
class PlacementForecast:
    """Planned delivery for a line item."""
    impressions: int
    spend: float
    reach: int = 0


@dataclass
class PlacementPerformance:
    """Simulated actual delivery for a line item."""
    impressions: int
    clicks: int
    conversions: int
    ctr: float
    cvr: float
    roas: float


@dataclass
class Placement:
    """One buy against a vendor within a channel."""
    id: str
    name: str
    channel: Channel
    vendor: str
    ad_unit: str
    segment: str
    cost_method: CostMethod
    rate: float
    quantity: int
    total_cost: float
    status: PlacementStatus = PlacementStatus.ACTIVE
    forecast: Optional[PlacementForecast] = None
    performance: Optional[PlacementPerformance] = None

    @property
    def display_name(self) -> str:
        return f"{self.vendor} - {self.ad_unit}"


@dataclass
class Campaign:
    """Campaign owning the line items of a plan."""
    id: str
    name: str
    advertiser: str
    budget: float
    start_date: date
    end_date: date
    placements: List[Placement] = field(default_factory=list)


@dataclass
class PlanMetrics:
    """Rolled-up delivery metrics, always derived from the line items."""
    impressions: int = 0
    reach: int = 0
    frequency: float = 0.0
    cpm: float = 0.0


@dataclass
class MediaPlan:
    """Complete media plan being edited in a session."""
    id: str
    campaign: Campaign
    total_spend: float = 0.0
    remaining_budget: float = 0.0
    version: int = 1
    grouping_mode: GroupingMode = GroupingMode.DETAILED
    strategy: Strategy = Strategy.BALANCED
    metrics: PlanMetrics = field(default_factory=PlanMetrics)

    @property
    def line_items(self) -> List[Placement]:
        return self.campaign.placements


@dataclass
class SessionContext:
    """Conversation state owned by a single planning session."""
    stage: Stage = Stage.INIT
    plan: Optional[MediaPlan] = None
    history: List[Message] = field(default_factory=list)


@dataclass
class CommandResult:
    """Outcome of one handled command, applied by the session in a single step."""
    text: str
    suggested_replies: List[str] = field(default_factory=list)
    action: Optional[Union[SideEffectAction, ActionPayload]] = None
    updated_plan: Optional[MediaPlan] = None
    new_stage: Optional[Stage] = None
    rule_name: str = ""
    clear_plan: bool = False
    record_undo: bool = True
