"""
Monthly P&L page: option results combined with manual entries.
"""

import logging
from datetime import date
from typing import List, Optional

import pandas as pd
import plotly.graph_objects as go
import streamlit as st

from app.models.pnl_entry import PnLEntry
from app.utils.error_handler import SmartWealthError, error_handler
from app.utils.notifications import get_notification_manager
from app.utils.state_management import DeleteConfirmation, FormState

logger = logging.getLogger(__name__)


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


def show_monthly_pnl_page() -> None:
    """Render the monthly P&L page."""
    st.title("💵 Monthly P&L")

    app_state = _get_app_state()
    data_service = app_state.data_service
    df = app_state.analysis_service.monthly_pnl(data_service.trades, data_service.pnl_entries)

    render_pnl_summary(df)
    render_pnl_chart(df)
    render_pnl_form(app_state)
    render_manual_entries(app_state, data_service.pnl_entries)


def render_pnl_summary(df: pd.DataFrame) -> None:
    total = float(df["total_pnl"].sum()) if not df.empty else 0.0
    options_total = float(df["options_pnl"].sum()) if not df.empty else 0.0
    manual_total = float(df["manual_pnl"].sum()) if not df.empty else 0.0

    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric("Total P&L", f"${total:,.2f}")
    with col2:
        st.metric("Options", f"${options_total:,.2f}")
    with col3:
        st.metric("Manual", f"${manual_total:,.2f}")


def render_pnl_chart(df: pd.DataFrame) -> None:
    if df.empty:
        st.info("No P&L yet. Record option trades or add a manual entry.")
        return

    fig = go.Figure()
    fig.add_trace(go.Bar(x=df["month"], y=df["options_pnl"], name="Options", marker_color="#3b82f6"))
    fig.add_trace(go.Bar(x=df["month"], y=df["manual_pnl"], name="Manual", marker_color="#a855f7"))
    fig.add_trace(go.Scatter(x=df["month"], y=df["total_pnl"], name="Total", mode="lines+markers",
                             line=dict(color="#10b981", width=2)))
    fig.update_layout(
        title="P&L by Month",
        barmode="relative",
        xaxis_title="Month",
        yaxis_title="USD",
        height=400,
        hovermode="x unified",
    )
    st.plotly_chart(fig, use_container_width=True)

    st.dataframe(
        df.rename(columns={"month": "Month", "options_pnl": "Options", "manual_pnl": "Manual",
                           "total_pnl": "Total"}),
        use_container_width=True,
        hide_index=True,
    )


def render_manual_entries(app_state, entries: List[PnLEntry]) -> None:
    st.subheader("Manual Entries")
    if not entries:
        st.caption("No manual entries.")
        return

    form_state = FormState("pnl")
    confirmation = DeleteConfirmation("manualPnL")
    for entry in entries:
        col1, col2, col3 = st.columns([4, 1, 1])
        with col1:
            st.write(f"**{entry.month}** · ${entry.amount:,.2f} · {entry.description or ''}")
        with col2:
            if st.button("✏️ Edit", key=f"edit_pnl_{entry.id}", use_container_width=True):
                form_state.open_edit(entry.id)
                st.rerun()
        with col3:
            if not confirmation.is_pending(entry.id):
                if st.button("🗑️ Delete", key=f"delete_pnl_{entry.id}", use_container_width=True):
                    confirmation.request(entry.id)
                    st.rerun()
            elif st.button("Confirm", key=f"confirm_pnl_{entry.id}", type="primary", use_container_width=True):
                if app_state.data_service.delete_pnl_entry(entry.id, confirmed=confirmation.confirm(entry.id)):
                    get_notification_manager().success(f"Deleted entry for {entry.month}")
                st.rerun()


def render_pnl_form(app_state) -> None:
    form_state = FormState("pnl")
    if not form_state.is_open:
        if st.button("➕ Add Entry"):
            form_state.open_new()
            st.rerun()
        return

    editing: Optional[PnLEntry] = None
    if form_state.editing_id:
        editing = next((e for e in app_state.data_service.pnl_entries if e.id == form_state.editing_id), None)

    with st.form("pnl_form"):
        st.subheader("Edit Entry" if editing else "Add Entry")
        col1, col2 = st.columns(2)
        with col1:
            month = st.text_input("Month (YYYY-MM)", value=editing.month if editing else date.today().strftime("%Y-%m"))
        with col2:
            amount = st.number_input("Amount (USD)", value=float(editing.amount) if editing else 0.0)
        description = st.text_input("Description", value=(editing.description or "") if editing else "")

        submitted = st.form_submit_button("Save", type="primary")
        cancelled = st.form_submit_button("Cancel")

    if cancelled:
        form_state.close()
        st.rerun()

    if submitted:
        try:
            if editing:
                app_state.data_service.update_pnl_entry(editing.id, month=month, amount=amount,
                                                        description=description)
            else:
                app_state.data_service.add_pnl_entry(month=month, amount=amount, description=description)
            get_notification_manager().success(f"Saved P&L entry for {month}")
        except SmartWealthError as e:
            error_handler.handle_error(e, "Save P&L Entry", log_level=logging.WARNING)
            return
        form_state.close()
        st.rerun()
