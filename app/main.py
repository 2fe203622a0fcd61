"""
Main Streamlit application entry point with navigation and the cloud sync sidebar.
"""

from typing import Optional

import streamlit as st

from app.services.analysis_service import AnalysisService
from app.services.config_service import AppSettings, ConfigService
from app.services.data_service import DataService
from app.services.price_service import PriceService
from app.services.storage.local_store import LocalStore
from app.services.sync_service import SyncResult, SyncService, SyncStatus
from app.utils.error_handler import error_handler, handle_exceptions
from app.utils.logging_config import get_logger, setup_application_logging
from app.utils.notifications import get_notification_manager, render_notifications
from app.utils.state_management import clear_session_values, get_loading_manager

SYNC_OPERATIONS = ("gist_upload", "gist_download")

settings = AppSettings.from_env()
setup_application_logging(log_level=settings.log_level, data_path=settings.data_path)
logger = get_logger(__name__)


class AppState:
    """Owns the services for one browser session."""

    def __init__(self, settings: AppSettings):
        self.settings = settings
        self.store: Optional[LocalStore] = None
        self.config_service: Optional[ConfigService] = None
        self.data_service: Optional[DataService] = None
        self.price_service: Optional[PriceService] = None
        self.analysis_service: Optional[AnalysisService] = None
        self.sync_service: Optional[SyncService] = None
        self.initialization_error: Optional[str] = None

        self.loading_manager = get_loading_manager()
        self.notification_manager = get_notification_manager()

    def initialize_services(self) -> None:
        """Build the storage, config, data, price, analysis and sync services."""
        try:
            self.store = LocalStore(self.settings.data_path)
            self.config_service = ConfigService(self.store, self.settings)
            self.data_service = DataService(self.store)
            self.price_service = PriceService.from_settings(self.settings)
            self.analysis_service = AnalysisService()
            self.sync_service = SyncService(self.data_service, self.config_service)
            logger.info(f"Services ready, data in {self.settings.data_path}")
        except Exception as e:
            logger.error(f"Could not start services for {self.settings.data_path}: {e}")
            self.initialization_error = str(e)
            raise

    def has_initialization_error(self) -> bool:
        return self.initialization_error is not None

    def run_sync(self, operation: str) -> SyncResult:
        """Run an upload or download with the sync controls disabled meanwhile."""
        self.loading_manager.set_loading(operation, True, "Processing...")
        try:
            if operation == "gist_upload":
                return self.sync_service.upload()
            result = self.sync_service.download()
            if result.ok:
                # Restored records invalidate open forms and pending deletes
                clear_session_values("form_")
                clear_session_values("pending_delete_")
            return result
        finally:
            self.loading_manager.clear_loading(operation)


def get_app_state() -> AppState:
    """The session's AppState, built on the first run of a browser session."""
    if "app_state" not in st.session_state:
        app_state = AppState(settings)
        st.session_state.app_state = app_state
        try:
            app_state.initialize_services()
        except Exception as e:
            error_handler.handle_error(e, "Service Initialization", show_to_user=True)

    return st.session_state.app_state


def setup_page_config() -> None:
    st.set_page_config(
        page_title="SmartWealth HK",
        page_icon="💰",
        layout="wide",
        initial_sidebar_state="expanded",
    )


def render_sidebar_navigation() -> str:
    """Page picker plus the cloud sync controls; returns the selected page id."""
    st.sidebar.title("💰 SmartWealth HK")

    pages = {
        "Asset Dashboard": "asset_dashboard",
        "Options Journal": "options_journal",
        "Monthly P&L": "monthly_pnl",
        "Airdrop Tracker": "airdrop_tracker",
    }

    selected_page = st.sidebar.radio("Navigate to:", options=list(pages.keys()), key="page_selector")

    render_sync_controls()

    return pages[selected_page]


def render_sync_controls() -> None:
    """Render the cloud sync section: credentials, upload/download and status."""
    st.sidebar.divider()
    st.sidebar.subheader("☁️ Cloud Sync")

    app_state = get_app_state()
    if app_state.has_initialization_error():
        st.sidebar.caption("Sync unavailable")
        return

    config_service = app_state.config_service
    sync_service = app_state.sync_service
    sync_config = config_service.get_sync_config()

    with st.sidebar.expander("Sync Settings", expanded=not sync_config.has_token()):
        with st.form("sync_settings_form"):
            token = st.text_input("GitHub Token (Gist)", value=sync_config.github_token,
                                  type="password", help="The token needs the `gist` scope.")
            gist_id = st.text_input("Gist ID (auto-filled)", value=sync_config.gist_id)
            if st.form_submit_button("Save", use_container_width=True):
                config_service.update_sync_config(github_token=token.strip(), gist_id=gist_id.strip())
                get_notification_manager().success("Sync settings saved")
                st.rerun()

        if sync_config.has_gist() and st.button("Clear Gist ID", key="clear_gist_id", use_container_width=True):
            config_service.clear_gist_id()
            get_notification_manager().info("Gist ID cleared. The next upload creates a new Gist.")
            st.rerun()

    busy = app_state.loading_manager.any_loading(*SYNC_OPERATIONS)
    col1, col2 = st.sidebar.columns(2)
    with col1:
        upload = st.button("⬆️ Upload", key="gist_upload_button", disabled=busy, use_container_width=True)
    with col2:
        download = st.button("⬇️ Download", key="gist_download_button", disabled=busy, use_container_width=True)

    if upload or download:
        operation = "gist_upload" if upload else "gist_download"
        with st.sidebar:
            with st.spinner("Processing..."):
                result = app_state.run_sync(operation)
        if result.ok:
            st.rerun()

    status_container = st.sidebar.container()
    if sync_service.message and sync_service.status != SyncStatus.IDLE:
        if sync_service.status == SyncStatus.ERROR:
            status_container.error(sync_service.message)
        else:
            status_container.success(sync_service.message)

    last_sync = config_service.get_sync_config().last_sync_time
    if last_sync:
        st.sidebar.caption(f"Last sync: {last_sync}")


def render_messages() -> None:
    """Queued notifications first, then stop the run if the services failed to start."""
    app_state = get_app_state()

    render_notifications()

    if app_state.has_initialization_error():
        st.error(f"Application initialization failed: {app_state.initialization_error}")
        st.info(f"Details are in {app_state.settings.data_path}/logs/errors.log. Fix the problem, then reload the page.")
        st.stop()


@handle_exceptions(context="Main Application", show_to_user=True)
def main() -> None:
    setup_page_config()

    get_app_state()

    selected_page = render_sidebar_navigation()

    render_messages()

    if selected_page == "asset_dashboard":
        from app.pages.asset_dashboard import show_asset_dashboard_page

        show_asset_dashboard_page()
    elif selected_page == "options_journal":
        from app.pages.options_journal import show_options_journal_page

        show_options_journal_page()
    elif selected_page == "monthly_pnl":
        from app.pages.monthly_pnl import show_monthly_pnl_page

        show_monthly_pnl_page()
    elif selected_page == "airdrop_tracker":
        from app.pages.airdrop_tracker import show_airdrop_tracker_page

        show_airdrop_tracker_page()
    else:
        st.error(f"Unknown page: {selected_page}")


if __name__ == "__main__":
    main()
