"""
Main entry point for the Media Plan Assistant application.
"""
import logging
import streamlit as st
from dotenv import load_dotenv

from config.settings import config_manager
from data.session_store import SessionStore
from business_logic.error_handler import error_handler
from business_logic.planning_session import PlanningSession
from models.data_models import ActionPayload, SideEffectAction
from ui.components import ChatPanel, PlanDisplayComponent, PlanExportComponent, describe_action

# Set up logging
logger = logging.getLogger(__name__)

load_dotenv()

LAYOUT_POSITIONS = {
    SideEffectAction.LAYOUT_LEFT: "left",
    SideEffectAction.LAYOUT_RIGHT: "right",
    SideEffectAction.LAYOUT_BOTTOM: "bottom",
}


def get_session(config) -> PlanningSession:
    """Return the PlanningSession bound to this browser session."""
    if 'planning_session' not in st.session_state:
        st.session_state.planning_session = PlanningSession(config=config)
        st.session_state.layout = "right"
        st.session_state.pending_export = None
    return st.session_state.planning_session


def apply_side_effect(message) -> None:
    """Record the host-side effect of the latest agent message."""
    action = message.side_effect_action
    if action is None:
        return

    if isinstance(action, ActionPayload):
        st.toast(describe_action(action))
        logger.info(f"Structured action {action.type.value}: {action.payload}")
    elif action in LAYOUT_POSITIONS:
        st.session_state.layout = LAYOUT_POSITIONS[action]
    else:
        st.session_state.pending_export = action


def render_sidebar(session: PlanningSession, store: SessionStore, config) -> None:
    """Session persistence controls."""
    with st.sidebar:
        st.header("💾 Sessions")
        st.caption(f"Session ID: {session.session_id}")

        if st.button("Save session", use_container_width=True):
            try:
                path = store.save(session.session_id, session.context)
                st.success(f"✅ Saved to {path}")
            except OSError as e:
                st.error(f"❌ Could not save session: {e}")

        saved = store.list_sessions()
        if saved:
            selected = st.selectbox("Saved sessions", saved)
            if st.button("Load session", use_container_width=True):
                try:
                    context = store.load(selected)
                except (OSError, ValueError) as e:
                    st.error(f"❌ Could not load session: {e}")
                else:
                    if context is not None:
                        st.session_state.planning_session = PlanningSession(
                            config=config, context=context, session_id=selected
                        )
                        st.rerun()

        if st.button("New session", use_container_width=True):
            st.session_state.planning_session = PlanningSession(config=config)
            st.session_state.pending_export = None
            st.rerun()


def render_workspace(session: PlanningSession) -> None:
    """Chat and plan panels arranged by the current layout."""
    chat = ChatPanel()
    display = PlanDisplayComponent()
    layout = st.session_state.get('layout', "right")

    if layout == "bottom":
        plan_area = st.container()
        chat_area = st.container()
    elif layout == "left":
        chat_area, plan_area = st.columns([2, 3])
    else:
        plan_area, chat_area = st.columns([3, 2])

    with plan_area:
        display.render(session.plan)
        if st.session_state.get('pending_export') is not None:
            st.subheader("📤 Export")
            PlanExportComponent().render_export(st.session_state.pending_export, session.plan)

    with chat_area:
        st.subheader("💬 Assistant")
        clicked = chat.render(session.history)

    user_text = chat.render_input() or clicked
    if user_text:
        reply = session.process_input(user_text)
        apply_side_effect(reply)
        st.rerun()


def main():
    """Main application entry point."""
    st.set_page_config(
        page_title="Media Plan Assistant",
        page_icon="📊",
        layout="wide",
        initial_sidebar_state="expanded"
    )

    st.title("🎯 Media Plan Assistant")
    st.markdown("Build and refine media plans by chatting with the assistant")

    # Load configuration
    try:
        config = config_manager.load_config()
    except ValueError as e:
        st.error(f"❌ Configuration Error: {e}")
        st.stop()

    store = SessionStore(config.session_cache_dir)
    session = get_session(config)

    render_sidebar(session, store, config)
    render_workspace(session)

    # Display current configuration (for development)
    with st.expander("System Information"):
        col1, col2 = st.columns(2)

        with col1:
            st.write("**Configuration:**")
            st.write(f"Default Budget: ${config.default_budget:,.0f}")
            st.write(f"Default Currency: {config.default_currency}")
            st.write(f"ROAS Pause Threshold: {config.roas_pause_threshold}")
            st.write(f"Search Boost Factor: {config.search_boost_factor}")

        with col2:
            st.write("**Session Status:**")
            st.write(f"Stage: {session.stage.value}")
            st.write(f"Messages: {len(session.history)}")
            st.write(f"Plan Version: {session.plan.version if session.plan else 'None'}")
            st.write(f"Layout: {st.session_state.get('layout', 'right')}")
            error_stats = error_handler.get_error_statistics()
            st.write(f"Errors (24h): {error_stats.get('recent_errors_24h', 0)}")


if __name__ == "__main__":
    main()
