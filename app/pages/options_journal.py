"""
Options Journal page for short puts and long calls.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional

import pandas as pd
import streamlit as st

from app.models.option_trade import OptionStatus, OptionTrade, OptionType
from app.services.price_service import lookup_price
from app.utils.error_handler import SmartWealthError, error_handler
from app.utils.notifications import get_notification_manager
from app.utils.state_management import (
    DeleteConfirmation,
    FormState,
    get_loading_manager,
    get_session_value,
    with_loading_state,
)

logger = logging.getLogger(__name__)

MARKET_PRICES_KEY = "option_market_prices"


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


def show_options_journal_page() -> None:
    """Render the options journal."""
    st.title("📈 Options Journal")

    app_state = _get_app_state()
    trades = app_state.data_service.trades

    render_option_stats(app_state, trades)
    render_trade_form(app_state)
    render_trades_table(app_state, trades)


def render_option_stats(app_state, trades: List[OptionTrade]) -> None:
    stats = app_state.analysis_service.option_stats(trades)
    loading_manager = get_loading_manager()

    col1, col2, col3, col4 = st.columns([2, 2, 1, 1])
    with col1:
        st.metric("Total Put Premium", f"${stats.total_premium:,.2f}")
    with col2:
        st.metric("Open Put Collateral", f"${stats.open_collateral:,.2f}")
    with col3:
        st.metric("Open", stats.open_count)
    with col4:
        refreshing = loading_manager.is_loading("option_prices")
        if st.button("🔄 Update Prices", disabled=refreshing or not trades, use_container_width=True):
            refresh_underlying_prices(app_state, trades)


@with_loading_state("option_prices", "Fetching underlying prices...")
def _fetch_underlying_prices(app_state, tickers: List[str]) -> Dict[str, float]:
    return app_state.price_service.fetch_prices_for_tickers(tickers)


def refresh_underlying_prices(app_state, trades: List[OptionTrade]) -> None:
    """Look up current prices of the underlyings; they are kept for this session only."""
    tickers = sorted({trade.ticker for trade in trades})
    with st.spinner("Fetching underlying prices..."):
        prices = _fetch_underlying_prices(app_state, tickers)

    # Tickers that failed this time keep their previous price
    get_session_value(MARKET_PRICES_KEY, dict).update(prices)
    if prices:
        get_notification_manager().success(f"Fetched prices for {len(prices)} of {len(tickers)} tickers")
    else:
        get_notification_manager().warning("No underlying prices could be fetched")
    st.rerun()


def _market_price(ticker: str) -> Optional[float]:
    return lookup_price(get_session_value(MARKET_PRICES_KEY, dict), ticker)


def _trades_dataframe(app_state, trades: List[OptionTrade]) -> pd.DataFrame:
    analysis = app_state.analysis_service
    rows = []
    for trade in trades:
        market_price = _market_price(trade.ticker)
        distance = analysis.distance_to_strike(trade, market_price)
        rows.append({
            "Ticker": trade.ticker,
            "Type": "Short Put" if trade.type == OptionType.SHORT_PUT else "Long Call",
            "Status": trade.status.value,
            "Opened": trade.open_date,
            "Expiry": trade.expiry_date,
            "Strike": trade.strike_price,
            "Premium": trade.premium,
            "Collateral / Cost": trade.collateral_or_cost,
            "Close": trade.close_price,
            "ROI %": analysis.calculate_roi(trade),
            "Market": market_price,
            "To Strike": f"{distance.percent:+.1f}% {distance.label}" if distance else "",
        })
    return pd.DataFrame(rows)


def render_trades_table(app_state, trades: List[OptionTrade]) -> None:
    st.subheader("Trades")
    if not trades:
        st.info("No option trades yet. Use **Add Trade** to record one.")
        return

    st.dataframe(
        _trades_dataframe(app_state, trades),
        use_container_width=True,
        hide_index=True,
        column_config={
            "Strike": st.column_config.NumberColumn(format="$%.2f"),
            "Premium": st.column_config.NumberColumn(format="$%.2f"),
            "Collateral / Cost": st.column_config.NumberColumn(format="$%.2f"),
            "Close": st.column_config.NumberColumn(format="$%.2f"),
            "ROI %": st.column_config.NumberColumn(format="%.2f%%"),
            "Market": st.column_config.NumberColumn(format="$%.2f"),
        },
    )

    form_state = FormState("trade")
    confirmation = DeleteConfirmation("trades")
    for trade in trades:
        col1, col2, col3 = st.columns([4, 1, 1])
        with col1:
            st.write(f"**{trade.ticker}** {trade.type.value} @ {trade.strike_price:g} · {trade.status.value}")
        with col2:
            if st.button("✏️ Edit", key=f"edit_trade_{trade.id}", use_container_width=True):
                form_state.open_edit(trade.id)
                st.rerun()
        with col3:
            if not confirmation.is_pending(trade.id):
                if st.button("🗑️ Delete", key=f"delete_trade_{trade.id}", use_container_width=True):
                    confirmation.request(trade.id)
                    st.rerun()
            elif st.button("Confirm", key=f"confirm_trade_{trade.id}", type="primary", use_container_width=True):
                if app_state.data_service.delete_trade(trade.id, confirmed=confirmation.confirm(trade.id)):
                    get_notification_manager().success(f"Deleted {trade.ticker} trade")
                st.rerun()


def _parse_date(value: str) -> Optional[date]:
    try:
        return date.fromisoformat(value) if value else None
    except ValueError:
        return None


def render_trade_form(app_state) -> None:
    form_state = FormState("trade")
    if not form_state.is_open:
        if st.button("➕ Add Trade"):
            form_state.open_new()
            st.rerun()
        return

    editing: Optional[OptionTrade] = None
    if form_state.editing_id:
        editing = next((t for t in app_state.data_service.trades if t.id == form_state.editing_id), None)

    types = [t.value for t in OptionType]
    statuses = [s.value for s in OptionStatus]
    with st.form("trade_form"):
        st.subheader("Edit Trade" if editing else "Add Trade")
        col1, col2, col3 = st.columns(3)
        with col1:
            ticker = st.text_input("Ticker", value=editing.ticker if editing else "")
            option_type = st.selectbox("Type", types, index=types.index(editing.type.value) if editing else 0)
            status = st.selectbox("Status", statuses, index=statuses.index(editing.status.value) if editing else 0)
        with col2:
            open_date = st.date_input("Open Date",
                                      value=_parse_date(editing.open_date) if editing else date.today())
            expiry_date = st.date_input("Expiry Date",
                                        value=_parse_date(editing.expiry_date) if editing else None)
            strike = st.number_input("Strike Price", min_value=0.0,
                                     value=float(editing.strike_price) if editing else 0.0)
        with col3:
            premium = st.number_input("Premium (total)", min_value=0.0,
                                      value=float(editing.premium) if editing else 0.0)
            collateral = st.number_input("Collateral / Cost", min_value=0.0,
                                         value=float(editing.collateral_or_cost) if editing else 0.0)
            close_price = st.number_input("Close Price", min_value=0.0, value=editing.close_price if editing else None,
                                          help="Cost to buy back a put, or proceeds from selling a call")
        notes = st.text_area("Notes", value=(editing.notes or "") if editing else "")

        submitted = st.form_submit_button("Save", type="primary")
        cancelled = st.form_submit_button("Cancel")

    if cancelled:
        form_state.close()
        st.rerun()

    if submitted:
        fields: Dict[str, Any] = {
            "ticker": ticker,
            "type": option_type,
            "status": status,
            "open_date": open_date,
            "expiry_date": expiry_date,
            "strike_price": strike,
            "premium": premium,
            "collateral_or_cost": collateral,
            "close_price": close_price,
            "notes": notes,
        }
        try:
            if editing:
                app_state.data_service.update_trade(editing.id, **fields)
                get_notification_manager().success(f"Updated {ticker.upper()} trade")
            else:
                app_state.data_service.add_trade(**fields)
                get_notification_manager().success(f"Added {ticker.upper()} trade")
        except SmartWealthError as e:
            error_handler.handle_error(e, "Save Trade", log_level=logging.WARNING)
            return
        form_state.close()
        st.rerun()
