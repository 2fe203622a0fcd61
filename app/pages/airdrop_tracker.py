"""
Airdrop Tracker page for farming tasks.
"""

import logging
from typing import Any, Dict, List, Optional

import streamlit as st

from app.models.airdrop import AirdropProject, AirdropStatus, Priority
from app.utils.error_handler import SmartWealthError, error_handler
from app.utils.notifications import get_notification_manager
from app.utils.state_management import DeleteConfirmation, FormState

logger = logging.getLogger(__name__)

PRIORITY_BADGES = {
    Priority.HIGH: "🔴",
    Priority.MEDIUM: "🟡",
    Priority.LOW: "🟢",
}


def _get_app_state():
    """Fetch the initialized app state, creating it if the page runs directly."""
    app_state = st.session_state.get("app_state")
    if not app_state:
        from app.main import get_app_state  # lazy import to avoid circulars

        app_state = get_app_state()
    if not getattr(app_state, "data_service", None):
        st.error("Services not initialized. Please refresh the page.")
        st.stop()
    return app_state


def show_airdrop_tracker_page() -> None:
    """Render the airdrop tracker."""
    st.title("🪂 Airdrop Tracker")

    app_state = _get_app_state()
    projects = app_state.data_service.airdrops

    render_status_counts(app_state, projects)
    render_airdrop_form(app_state)
    render_projects(app_state, filter_projects(projects))


def render_status_counts(app_state, projects: List[AirdropProject]) -> None:
    counts = app_state.analysis_service.airdrop_status_counts(projects)
    columns = st.columns(len(counts))
    for column, (status, count) in zip(columns, counts.items()):
        with column:
            st.metric(status, count)


def filter_projects(projects: List[AirdropProject]) -> List[AirdropProject]:
    selected = st.multiselect("Filter by status", [s.value for s in AirdropStatus], key="airdrop_status_filter")
    if not selected:
        return projects
    return [p for p in projects if p.status.value in selected]


def twitter_markdown(twitter_url: str) -> str:
    """A link for full URLs; handles and bare links are shown as typed."""
    if "://" in twitter_url:
        return f"[Twitter]({twitter_url})"
    return f"Twitter: `{twitter_url}`"


def render_projects(app_state, projects: List[AirdropProject]) -> None:
    if not projects:
        st.info("No airdrop projects to show.")
        return

    form_state = FormState("airdrop")
    confirmation = DeleteConfirmation("airdrops")
    for project in projects:
        with st.container(border=True):
            col1, col2, col3 = st.columns([4, 1, 1])
            with col1:
                st.markdown(f"{PRIORITY_BADGES[project.priority]} **{project.name}** · {project.status.value}")
                if project.twitter_url:
                    st.markdown(twitter_markdown(project.twitter_url))
                if project.notes:
                    st.caption(project.notes)
            with col2:
                if st.button("✏️ Edit", key=f"edit_airdrop_{project.id}", use_container_width=True):
                    form_state.open_edit(project.id)
                    st.rerun()
            with col3:
                if not confirmation.is_pending(project.id):
                    if st.button("🗑️ Delete", key=f"delete_airdrop_{project.id}", use_container_width=True):
                        confirmation.request(project.id)
                        st.rerun()
                elif st.button("Confirm", key=f"confirm_airdrop_{project.id}", type="primary",
                               use_container_width=True):
                    if app_state.data_service.delete_airdrop(project.id,
                                                             confirmed=confirmation.confirm(project.id)):
                        get_notification_manager().success(f"Deleted {project.name}")
                    st.rerun()


def render_airdrop_form(app_state) -> None:
    form_state = FormState("airdrop")
    if not form_state.is_open:
        if st.button("➕ Add Project"):
            form_state.open_new()
            st.rerun()
        return

    editing: Optional[AirdropProject] = None
    if form_state.editing_id:
        editing = next((p for p in app_state.data_service.airdrops if p.id == form_state.editing_id), None)

    statuses = [s.value for s in AirdropStatus]
    priorities = [p.value for p in Priority]
    with st.form("airdrop_form"):
        st.subheader("Edit Project" if editing else "Add Project")
        col1, col2 = st.columns(2)
        with col1:
            name = st.text_input("Project Name", value=editing.name if editing else "")
            twitter_url = st.text_input("Twitter URL", value=(editing.twitter_url or "") if editing else "")
        with col2:
            status = st.selectbox("Status", statuses, index=statuses.index(editing.status.value) if editing else 0)
            priority = st.selectbox("Priority", priorities,
                                    index=priorities.index(editing.priority.value) if editing else 1)
        notes = st.text_area("Notes / Tasks", value=(editing.notes or "") if editing else "")

        submitted = st.form_submit_button("Save", type="primary")
        cancelled = st.form_submit_button("Cancel")

    if cancelled:
        form_state.close()
        st.rerun()

    if submitted:
        fields: Dict[str, Any] = {
            "name": name,
            "twitter_url": twitter_url,
            "status": status,
            "priority": priority,
            "notes": notes,
        }
        try:
            if editing:
                app_state.data_service.update_airdrop(editing.id, **fields)
            else:
                app_state.data_service.add_airdrop(**fields)
            get_notification_manager().success(f"Saved {name}")
        except SmartWealthError as e:
            error_handler.handle_error(e, "Save Airdrop", log_level=logging.WARNING)
            return
        form_state.close()
        st.rerun()
