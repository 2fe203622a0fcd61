"""
Asset Dashboard page: net worth, allocation chart and the holdings table.
"""

import logging
from typing import Any, Dict, List, Optional

import pandas as pd
import plotly.graph_objects as go
import streamlit as st

from app.models.asset import Asset, AssetType
from app.services.price_service import apply_prices
from app.utils.error_handler import SmartWealthError, error_handler
from app.utils.notifications import get_notification_manager
from app.utils.state_management import DeleteConfirmation, FormState, get_loading_manager

logger = logging.getLogger(__name__)

TYPE_COLORS = {
    AssetType.STOCK.value: "#3b82f6",
    AssetType.CRYPTO.value: "#f59e0b",
    AssetType.CASH.value: "#10b981",
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


def show_asset_dashboard_page() -> None:
    """Render the asset dashboard."""
    st.title("📊 Asset Dashboard")

    app_state = _get_app_state()
    assets = app_state.data_service.assets

    render_summary(app_state, assets)
    render_allocation_chart(app_state, assets)
    render_asset_form(app_state)
    render_asset_table(app_state, assets)


def render_summary(app_state, assets: List[Asset]) -> None:
    total_value = app_state.analysis_service.total_value(assets)
    loading_manager = get_loading_manager()

    col1, col2, col3 = st.columns([2, 1, 1])
    with col1:
        st.metric("Total Net Worth (USD)", f"${total_value:,.2f}")
    with col2:
        st.metric("Holdings", len(assets))
    with col3:
        refreshing = loading_manager.is_loading("price_refresh")
        if st.button("🔄 Update Prices", disabled=refreshing or not assets, use_container_width=True):
            refresh_prices(app_state)


def refresh_prices(app_state) -> None:
    """Fetch live prices for every asset and persist the ones that changed."""
    loading_manager = get_loading_manager()
    notifications = get_notification_manager()
    assets = app_state.data_service.assets

    loading_manager.set_loading("price_refresh", True, "Fetching market prices...")
    try:
        with st.spinner("Fetching market prices..."):
            prices = app_state.price_service.fetch_market_prices(assets)
        if not prices:
            notifications.warning("No prices could be fetched. Please try again later.")
        else:
            app_state.data_service.apply_asset_prices(apply_prices(assets, prices))
            notifications.success(f"Updated prices for {len(prices)} assets")
    except SmartWealthError as e:
        error_handler.handle_error(e, "Price Refresh")
        notifications.error("Updating prices failed. Please try again later.")
    finally:
        loading_manager.clear_loading("price_refresh")
    st.rerun()


def render_allocation_chart(app_state, assets: List[Asset]) -> None:
    slices = [s for s in app_state.analysis_service.allocation(assets) if s["value"] > 0]
    if not slices:
        st.info("Add assets to see your allocation.")
        return

    fig = go.Figure(data=[
        go.Pie(
            labels=[s["name"] for s in slices],
            values=[s["value"] for s in slices],
            hole=0.45,
            marker=dict(colors=[TYPE_COLORS.get(s["type"], "#6b7280") for s in slices]),
            hovertemplate="%{label}<br>$%{value:,.2f}<br>%{percent}<extra></extra>",
        )
    ])
    fig.update_layout(title="Asset Allocation", height=380, margin=dict(t=50, b=10, l=10, r=10))
    st.plotly_chart(fig, use_container_width=True)


def _assets_dataframe(assets: List[Asset]) -> pd.DataFrame:
    return pd.DataFrame([
        {
            "Name": asset.name,
            "Ticker": asset.ticker or "",
            "Type": asset.type.value,
            "Quantity": asset.quantity,
            "Price": asset.current_price,
            "Value": asset.value,
            "Currency": asset.currency,
            "Last Updated": asset.last_updated or "",
        }
        for asset in assets
    ])


def render_asset_table(app_state, assets: List[Asset]) -> None:
    st.subheader("Holdings")
    if not assets:
        st.info("No assets yet. Use **Add Asset** to create one.")
        return

    st.dataframe(
        _assets_dataframe(assets),
        use_container_width=True,
        hide_index=True,
        column_config={
            "Price": st.column_config.NumberColumn(format="$%.2f"),
            "Value": st.column_config.NumberColumn(format="$%.2f"),
        },
    )

    form_state = FormState("asset")
    confirmation = DeleteConfirmation("assets")
    for asset in assets:
        col1, col2, col3 = st.columns([4, 1, 1])
        with col1:
            st.write(f"**{asset.display_key}** · {asset.name} · ${asset.value:,.2f}")
        with col2:
            if st.button("✏️ Edit", key=f"edit_asset_{asset.id}", use_container_width=True):
                form_state.open_edit(asset.id)
                st.rerun()
        with col3:
            _render_delete_button(app_state, asset, confirmation)


def _render_delete_button(app_state, asset: Asset, confirmation: DeleteConfirmation) -> None:
    if not confirmation.is_pending(asset.id):
        if st.button("🗑️ Delete", key=f"delete_asset_{asset.id}", use_container_width=True):
            confirmation.request(asset.id)
            st.rerun()
        return

    if st.button("Confirm", key=f"confirm_asset_{asset.id}", type="primary", use_container_width=True):
        if app_state.data_service.delete_asset(asset.id, confirmed=confirmation.confirm(asset.id)):
            get_notification_manager().success(f"Deleted {asset.name}")
        st.rerun()


def render_asset_form(app_state) -> None:
    form_state = FormState("asset")
    if not form_state.is_open:
        if st.button("➕ Add Asset"):
            form_state.open_new()
            st.rerun()
        return

    editing: Optional[Asset] = None
    if form_state.editing_id:
        editing = next((a for a in app_state.data_service.assets if a.id == form_state.editing_id), None)

    types = [t.value for t in AssetType]
    with st.form("asset_form"):
        st.subheader("Edit Asset" if editing else "Add Asset")
        col1, col2 = st.columns(2)
        with col1:
            name = st.text_input("Name", value=editing.name if editing else "")
            asset_type = st.selectbox("Type", types, index=types.index(editing.type.value) if editing else 0)
            quantity = st.number_input("Quantity", min_value=0.0, value=float(editing.quantity) if editing else 0.0,
                                       format="%.8f")
        with col2:
            ticker = st.text_input("Ticker", value=(editing.ticker or "") if editing else "")
            currency = st.text_input("Currency", value=editing.currency if editing else "USD")
            price = st.number_input("Current Price", min_value=0.0,
                                    value=float(editing.current_price) if editing else 0.0, format="%.4f")

        submitted = st.form_submit_button("Save", type="primary")
        cancelled = st.form_submit_button("Cancel")

    if cancelled:
        form_state.close()
        st.rerun()

    if submitted:
        fields: Dict[str, Any] = {
            "name": name,
            "ticker": ticker,
            "type": asset_type,
            "quantity": quantity,
            "current_price": price,
            "currency": currency,
        }
        try:
            if editing:
                app_state.data_service.update_asset(editing.id, **fields)
                get_notification_manager().success(f"Updated {name}")
            else:
                app_state.data_service.add_asset(**fields)
                get_notification_manager().success(f"Added {name}")
        except SmartWealthError as e:
            error_handler.handle_error(e, "Save Asset", log_level=logging.WARNING)
            return
        form_state.close()
        st.rerun()
