"""
JSON persistence for planning sessions.

Snapshots a SessionContext to disk and restores it verbatim: stage, plan
with every line item, and the full message history.
"""

import logging
import json
import re
from dataclasses import asdict
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from models.data_models import (
    ActionPayload, ActionType, Campaign, Channel, CostMethod, GroupingMode,
    MediaPlan, Message, MessageRole, Placement, PlacementForecast,
    PlacementPerformance, PlacementStatus, PlanMetrics, SessionContext,
    SideEffectAction, Stage, Strategy
)

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SESSION_ID_PATTERN = re.compile(r'^[A-Za-z0-9_-]+$')


def placement_to_dict(placement: Placement) -> Dict[str, Any]:
    return {
        'id': placement.id,
        'name': placement.name,
        'channel': placement.channel.value,
        'vendor': placement.vendor,
        'ad_unit': placement.ad_unit,
        'segment': placement.segment,
        'cost_method': placement.cost_method.value,
        'rate': placement.rate,
        'quantity': placement.quantity,
        'total_cost': placement.total_cost,
        'status': placement.status.value,
        'forecast': asdict(placement.forecast) if placement.forecast else None,
        'performance': asdict(placement.performance) if placement.performance else None,
    }


def placement_from_dict(data: Dict[str, Any]) -> Placement:
    return Placement(
        id=data['id'],
        name=data['name'],
        channel=Channel(data['channel']),
        vendor=data['vendor'],
        ad_unit=data['ad_unit'],
        segment=data['segment'],
        cost_method=CostMethod(data['cost_method']),
        rate=data['rate'],
        quantity=data['quantity'],
        total_cost=data['total_cost'],
        status=PlacementStatus(data['status']),
        forecast=PlacementForecast(**data['forecast']) if data.get('forecast') else None,
        performance=PlacementPerformance(**data['performance']) if data.get('performance') else None,
    )


def plan_to_dict(plan: MediaPlan) -> Dict[str, Any]:
    campaign = plan.campaign
    return {
        'id': plan.id,
        'campaign': {
            'id': campaign.id,
            'name': campaign.name,
            'advertiser': campaign.advertiser,
            'budget': campaign.budget,
            'start_date': campaign.start_date.isoformat(),
            'end_date': campaign.end_date.isoformat(),
            'placements': [placement_to_dict(p) for p in campaign.placements],
        },
        'total_spend': plan.total_spend,
        'remaining_budget': plan.remaining_budget,
        'version': plan.version,
        'grouping_mode': plan.grouping_mode.value,
        'strategy': plan.strategy.value,
        'metrics': asdict(plan.metrics),
    }


def plan_from_dict(data: Dict[str, Any]) -> MediaPlan:
    campaign_data = data['campaign']
    campaign = Campaign(
        id=campaign_data['id'],
        name=campaign_data['name'],
        advertiser=campaign_data['advertiser'],
        budget=campaign_data['budget'],
        start_date=date.fromisoformat(campaign_data['start_date']),
        end_date=date.fromisoformat(campaign_data['end_date']),
        placements=[placement_from_dict(p) for p in campaign_data['placements']],
    )
    return MediaPlan(
        id=data['id'],
        campaign=campaign,
        total_spend=data['total_spend'],
        remaining_budget=data['remaining_budget'],
        version=data['version'],
        grouping_mode=GroupingMode(data['grouping_mode']),
        strategy=Strategy(data['strategy']),
        metrics=PlanMetrics(**data['metrics']),
    )


def _action_to_dict(action) -> Optional[Dict[str, Any]]:
    if action is None:
        return None
    if isinstance(action, ActionPayload):
        return {'type': action.type.value, 'payload': action.payload}
    return {'action': action.value}


def _action_from_dict(data: Optional[Dict[str, Any]]):
    if not data:
        return None
    if 'type' in data:
        return ActionPayload(type=ActionType(data['type']), payload=data['payload'])
    return SideEffectAction(data['action'])


def message_to_dict(message: Message) -> Dict[str, Any]:
    return {
        'id': message.id,
        'role': message.role.value,
        'text': message.text,
        'timestamp': message.timestamp.isoformat(),
        'suggested_replies': list(message.suggested_replies),
        'side_effect_action': _action_to_dict(message.side_effect_action),
    }


def message_from_dict(data: Dict[str, Any]) -> Message:
    return Message(
        id=data['id'],
        role=MessageRole(data['role']),
        text=data['text'],
        timestamp=datetime.fromisoformat(data['timestamp']),
        suggested_replies=tuple(data.get('suggested_replies', ())),
        side_effect_action=_action_from_dict(data.get('side_effect_action')),
    )


def context_to_dict(context: SessionContext) -> Dict[str, Any]:
    """Convert a SessionContext into JSON-serializable data."""
    return {
        'stage': context.stage.value,
        'plan': plan_to_dict(context.plan) if context.plan else None,
        'history': [message_to_dict(m) for m in context.history],
    }


def context_from_dict(data: Dict[str, Any]) -> SessionContext:
    """Rebuild a SessionContext from data produced by context_to_dict."""
    return SessionContext(
        stage=Stage(data['stage']),
        plan=plan_from_dict(data['plan']) if data.get('plan') else None,
        history=[message_from_dict(m) for m in data.get('history', [])],
    )


class SessionStore:
    """
    File-backed store of session snapshots.

    Each session is one JSON file named after its id in the store directory.
    """

    def __init__(self, store_dir: str = ".sessions"):
        """
        Initialize the SessionStore.

        Args:
            store_dir: Directory holding session snapshot files
        """
        self.store_dir = Path(store_dir)
        self.store_dir.mkdir(parents=True, exist_ok=True)

    def _session_file(self, session_id: str) -> Path:
        if not SESSION_ID_PATTERN.match(session_id):
            raise ValueError(f"Invalid session id: {session_id!r}")
        return self.store_dir / f"{session_id}.json"

    def save(self, session_id: str, context: SessionContext) -> Path:
        """
        Save a session snapshot to disk.

        Args:
            session_id: Identifier of the session
            context: Context to persist

        Returns:
            Path of the written file
        """
        session_file = self._session_file(session_id)
        snapshot = {
            'session_id': session_id,
            'saved_at': datetime.now().isoformat(),
            'context': context_to_dict(context),
        }

        try:
            with open(session_file, 'w') as f:
                json.dump(snapshot, f, indent=2, default=str)
        except OSError as e:
            logger.error(f"Error saving session {session_id}: {str(e)}")
            raise

        logger.info(f"Saved session {session_id} to {session_file}")
        return session_file

    def load(self, session_id: str) -> Optional[SessionContext]:
        """
        Load a session snapshot from disk.

        Args:
            session_id: Identifier of the session

        Returns:
            The restored SessionContext, or None if no snapshot exists
        """
        session_file = self._session_file(session_id)
        if not session_file.exists():
            logger.warning(f"No saved session {session_id}")
            return None

        try:
            with open(session_file, 'r') as f:
                snapshot = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error loading session {session_id}: {str(e)}")
            raise

        logger.info(f"Loaded session {session_id}")
        return context_from_dict(snapshot['context'])

    def delete(self, session_id: str) -> bool:
        """Delete a stored session. Returns True if a file was removed."""
        session_file = self._session_file(session_id)
        if session_file.exists():
            session_file.unlink()
            logger.info(f"Deleted session {session_id}")
            return True
        return False

    def list_sessions(self) -> List[str]:
        """List ids of stored sessions, most recently modified first."""
        files = sorted(self.store_dir.glob("*.json"), key=lambda f: f.stat().st_mtime, reverse=True)
        return [f.stem for f in files]
