"""
UI components for the conversational media planner.
"""

import streamlit as st
from typing import Any, Dict, List, Optional
from datetime import datetime
import logging
import pandas as pd

from models.data_models import (
    ActionPayload, ActionType, GroupingMode, MediaPlan, Message, MessageRole, SideEffectAction
)

logger = logging.getLogger(__name__)

DETAIL_COLUMNS = [
    'Row', 'Channel', 'Vendor', 'Ad Unit', 'Segment', 'Cost Method',
    'Rate', 'Quantity', 'Cost', 'Impressions', 'Status'
]


def plan_to_dataframe(plan: MediaPlan) -> pd.DataFrame:
    """
    Build the line-item table of a plan.

    Args:
        plan: MediaPlan to tabulate

    Returns:
        DataFrame with one row per placement, numbered from 1
    """
    rows = []
    for index, placement in enumerate(plan.line_items, start=1):
        if placement.performance is not None:
            impressions = placement.performance.impressions
        elif placement.forecast is not None:
            impressions = placement.forecast.impressions
        else:
            impressions = 0

        rows.append({
            'Row': index,
            'Channel': placement.channel.value,
            'Vendor': placement.vendor,
            'Ad Unit': placement.ad_unit,
            'Segment': placement.segment,
            'Cost Method': placement.cost_method.value,
            'Rate': placement.rate,
            'Quantity': placement.quantity,
            'Cost': placement.total_cost,
            'Impressions': impressions,
            'Status': placement.status.value
        })

    return pd.DataFrame(rows, columns=DETAIL_COLUMNS)


def channel_summary(plan: MediaPlan) -> pd.DataFrame:
    """
    Aggregate line items by channel.

    Returns:
        DataFrame with placement count, cost, impressions and share of spend
    """
    detail = plan_to_dataframe(plan)
    if detail.empty:
        return pd.DataFrame(columns=['Channel', 'Placements', 'Cost', 'Impressions', 'Share'])

    summary = (
        detail.groupby('Channel', sort=False)
        .agg(Placements=('Row', 'count'), Cost=('Cost', 'sum'), Impressions=('Impressions', 'sum'))
        .reset_index()
    )
    total = summary['Cost'].sum()
    summary['Share'] = summary['Cost'] / total * 100 if total > 0 else 0.0
    return summary.sort_values('Cost', ascending=False).reset_index(drop=True)


def plan_view(plan: MediaPlan) -> pd.DataFrame:
    """Table for the plan's current grouping mode. Never mutates the plan."""
    if plan.grouping_mode == GroupingMode.CHANNEL_SUMMARY:
        return channel_summary(plan)
    return plan_to_dataframe(plan)


def prepare_plan_csv_export(plan: MediaPlan) -> str:
    """
    Prepare CSV export data for a plan.

    Args:
        plan: MediaPlan to export

    Returns:
        CSV string with a short header block followed by the line items
    """
    campaign = plan.campaign
    header = [
        f"Media Plan Export: {campaign.name}",
        f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        f"Advertiser: {campaign.advertiser}",
        f"Flight: {campaign.start_date.isoformat()} to {campaign.end_date.isoformat()}",
        f"Budget: {campaign.budget:.2f}",
        f"Total Spend: {plan.total_spend:.2f}",
        f"Strategy: {plan.strategy.value}",
        ""
    ]
    return '\n'.join(header) + '\n' + plan_to_dataframe(plan).to_csv(index=False)


def prepare_plan_text_report(plan: MediaPlan) -> str:
    """Plain-text report handed to the document and slide exporters."""
    campaign = plan.campaign
    metrics = plan.metrics
    lines = [
        "MEDIA PLAN REPORT",
        "=" * 50,
        "",
        f"Campaign: {campaign.name}",
        f"Advertiser: {campaign.advertiser}",
        f"Flight: {campaign.start_date:%B %d, %Y} - {campaign.end_date:%B %d, %Y}",
        f"Strategy: {plan.strategy.value}",
        "",
        "SUMMARY",
        "-" * 20,
        f"Budget: ${campaign.budget:,.2f}",
        f"Total Spend: ${plan.total_spend:,.2f}",
        f"Remaining: ${plan.remaining_budget:,.2f}",
        f"Impressions: {metrics.impressions:,}",
        f"Reach: {metrics.reach:,}",
        f"Frequency: {metrics.frequency:.2f}",
        f"CPM: ${metrics.cpm:.2f}",
        "",
        "SPEND BY CHANNEL",
        "-" * 20
    ]

    for _, row in channel_summary(plan).iterrows():
        lines.append(f"• {row['Channel']}: ${row['Cost']:,.2f} ({row['Share']:.1f}%)")

    return '\n'.join(lines)


class ChatPanel:
    """
    Chat transcript with suggested-reply buttons and a message input.

    The transcript renders inside any container. The input box is pinned to
    the page bottom, so it is rendered separately at top level.
    """

    def __init__(self, key_prefix: str = "chat"):
        self.key_prefix = key_prefix

    def render(self, history: List[Message]) -> Optional[str]:
        """
        Render the conversation.

        Args:
            history: Messages in append order

        Returns:
            Suggested reply clicked during this run, if any
        """
        for message in history:
            role = "user" if message.role == MessageRole.USER else "assistant"
            with st.chat_message(role):
                st.markdown(message.text)

        return self._render_suggestions(history)

    def render_input(self) -> Optional[str]:
        """Message box for typed instructions."""
        return st.chat_input("Tell me what to change...", key=f"{self.key_prefix}_input")

    def _render_suggestions(self, history: List[Message]) -> Optional[str]:
        """Buttons for the suggested replies of the latest agent message."""
        last_agent = next((m for m in reversed(history) if m.role == MessageRole.AGENT), None)
        if last_agent is None or not last_agent.suggested_replies:
            return None

        clicked = None
        columns = st.columns(len(last_agent.suggested_replies))
        for index, (column, reply) in enumerate(zip(columns, last_agent.suggested_replies)):
            with column:
                if st.button(reply, key=f"{self.key_prefix}_{last_agent.id}_{index}", use_container_width=True):
                    clicked = reply
        return clicked


class PlanDisplayComponent:
    """
    Plan metrics and table in the plan's grouping mode.
    """

    def render(self, plan: Optional[MediaPlan]):
        """
        Render the current plan.

        Args:
            plan: Plan to display, or None before a plan exists
        """
        if plan is None:
            st.info("No plan yet. Tell the assistant the client name and budget to begin.")
            return

        campaign = plan.campaign
        st.subheader(f"📋 {campaign.name}")
        st.caption(
            f"{campaign.start_date:%b %d, %Y} - {campaign.end_date:%b %d, %Y} · "
            f"Strategy: {plan.strategy.value} · Version {plan.version}"
        )

        col1, col2, col3, col4 = st.columns(4)

        with col1:
            st.metric(
                "Total Spend",
                f"${plan.total_spend:,.0f}",
                delta=f"${plan.remaining_budget:,.0f} remaining"
            )

        with col2:
            st.metric(
                "Impressions",
                f"{plan.metrics.impressions:,}",
                help="Actual delivery where available, otherwise forecast"
            )

        with col3:
            st.metric(
                "Reach",
                f"{plan.metrics.reach:,}",
                help="Estimated as 40% of impressions"
            )

        with col4:
            st.metric("CPM", f"${plan.metrics.cpm:.2f}")

        if not plan.line_items:
            st.write("No placements yet.")
            return

        if plan.grouping_mode == GroupingMode.CHANNEL_SUMMARY:
            st.subheader("💰 Spend by Channel")
            summary = channel_summary(plan)
            st.dataframe(summary, use_container_width=True, hide_index=True)
            self._render_channel_chart(summary)
        else:
            st.subheader("💰 Line Items")
            st.dataframe(plan_to_dataframe(plan), use_container_width=True, hide_index=True)

    def _render_channel_chart(self, summary: pd.DataFrame):
        """Pie chart of spend share by channel."""
        try:
            import plotly.express as px

            fig = px.pie(summary, values='Cost', names='Channel', title='Spend Share by Channel')
            st.plotly_chart(fig, use_container_width=True)
        except Exception as e:
            logger.error(f"Error rendering channel chart: {str(e)}")


class PlanExportComponent:
    """
    Fulfils export side-effects with downloadable files.
    """

    def render_export(self, action: SideEffectAction, plan: Optional[MediaPlan]) -> Dict[str, Any]:
        """
        Offer downloads for an export action.

        Args:
            action: EXPORT_PDF or EXPORT_PPT
            plan: Plan to export

        Returns:
            Dictionary describing what was offered
        """
        if plan is None:
            st.warning("⚠️ There's no plan to export yet.")
            return {}

        file_stem = plan.campaign.name.lower().replace(' ', '_')
        label = "presentation" if action == SideEffectAction.EXPORT_PPT else "document"

        col1, col2 = st.columns(2)

        with col1:
            st.download_button(
                f"📄 Download {label} report",
                data=prepare_plan_text_report(plan),
                file_name=f"{file_stem}_{label}.txt",
                mime="text/plain",
                use_container_width=True
            )

        with col2:
            st.download_button(
                "📊 Download line items (CSV)",
                data=prepare_plan_csv_export(plan),
                file_name=f"{file_stem}.csv",
                mime="text/csv",
                use_container_width=True
            )

        logger.info(f"Offered {action.value} export for plan {plan.id}")
        return {'action': action.value, 'file_stem': file_stem}


def describe_action(action: ActionPayload) -> str:
    """Short user-facing description of a structured action."""
    kind = "campaign" if action.type == ActionType.CREATE_CAMPAIGN else "flight"
    return f"New {kind} requested: {action.payload.get('name', '')}"
