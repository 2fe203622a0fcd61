"""
Unit tests for the main Streamlit application wiring.
"""

import shutil
import tempfile
from unittest.mock import Mock, patch

import pytest

# Keep the import from configuring real log handlers
with patch('app.utils.logging_config.setup_application_logging'), \
     patch('streamlit.session_state', {}):

    from app.main import (
        AppState,
        get_app_state,
        main,
        render_sidebar_navigation,
    )

from app.services.config_service import AppSettings
from app.services.sync_service import SyncResult, SyncStatus


class FakeSessionState(dict):
    """Dict with the attribute access Streamlit's session state allows."""

    def __getattr__(self, name):
        try:
            return self[name]
        except KeyError:
            raise AttributeError(name)

    def __setattr__(self, name, value):
        self[name] = value


@pytest.fixture
def managers():
    with patch('app.main.get_loading_manager') as loading, \
         patch('app.main.get_notification_manager') as notifications:
        yield loading.return_value, notifications.return_value


@pytest.fixture
def temp_data_dir():
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir)


class TestAppState:
    """Test cases for AppState."""

    def test_initialization(self, managers):
        app_state = AppState(AppSettings())

        assert app_state.data_service is None
        assert app_state.sync_service is None
        assert app_state.initialization_error is None
        assert not app_state.has_initialization_error()

    def test_initialize_services_success(self, managers, temp_data_dir):
        app_state = AppState(AppSettings(data_path=temp_data_dir))
        app_state.initialize_services()

        assert len(app_state.data_service.assets) == 3
        assert app_state.sync_service.data_service is app_state.data_service
        assert app_state.price_service.gemini is None
        assert app_state.config_service.get_settings().data_path == temp_data_dir

    def test_initialize_services_failure(self, managers):
        with patch('app.main.LocalStore', side_effect=OSError("read-only file system")):
            app_state = AppState(AppSettings())
            with pytest.raises(OSError):
                app_state.initialize_services()

        assert app_state.has_initialization_error()
        assert "read-only" in app_state.initialization_error

    def test_run_sync_upload(self, managers):
        loading_manager, _ = managers
        app_state = AppState(AppSettings())
        app_state.sync_service = Mock()
        app_state.sync_service.upload.return_value = SyncResult(SyncStatus.SUCCESS, "Upload Successful!")

        result = app_state.run_sync("gist_upload")

        assert result.ok
        app_state.sync_service.download.assert_not_called()
        loading_manager.set_loading.assert_called_once_with("gist_upload", True, "Processing...")
        loading_manager.clear_loading.assert_called_once_with("gist_upload")

    def test_run_sync_download_resets_forms(self, managers):
        app_state = AppState(AppSettings())
        app_state.sync_service = Mock()
        app_state.sync_service.download.return_value = SyncResult(SyncStatus.SUCCESS, "Data Restored!")

        with patch('app.main.clear_session_values') as mock_clear:
            app_state.run_sync("gist_download")

        assert [c.args[0] for c in mock_clear.call_args_list] == ["form_", "pending_delete_"]

    def test_failed_download_keeps_forms(self, managers):
        app_state = AppState(AppSettings())
        app_state.sync_service = Mock()
        app_state.sync_service.download.return_value = SyncResult(SyncStatus.ERROR, "Invalid Gist format")

        with patch('app.main.clear_session_values') as mock_clear:
            result = app_state.run_sync("gist_download")

        assert not result.ok
        mock_clear.assert_not_called()

    def test_loading_cleared_when_sync_raises(self, managers):
        loading_manager, _ = managers
        app_state = AppState(AppSettings())
        app_state.sync_service = Mock()
        app_state.sync_service.upload.side_effect = RuntimeError("boom")

        with pytest.raises(RuntimeError):
            app_state.run_sync("gist_upload")
        loading_manager.clear_loading.assert_called_once_with("gist_upload")


class TestGetAppState:
    """Test cases for get_app_state."""

    def test_created_once_per_session(self, managers):
        state = FakeSessionState()
        with patch('streamlit.session_state', state), \
             patch.object(AppState, 'initialize_services') as mock_init:
            first = get_app_state()
            second = get_app_state()

        assert first is second
        assert state["app_state"] is first
        mock_init.assert_called_once()

    def test_initialization_error_reported(self, managers):
        with patch('streamlit.session_state', FakeSessionState()), \
             patch.object(AppState, 'initialize_services', side_effect=OSError("disk")), \
             patch('app.main.error_handler.handle_error') as mock_handle:
            app_state = get_app_state()

        assert isinstance(app_state, AppState)
        assert mock_handle.call_args[0][1] == "Service Initialization"


class TestNavigation:
    """Test cases for sidebar navigation and routing."""

    @pytest.mark.parametrize("label,page", [
        ("Asset Dashboard", "asset_dashboard"),
        ("Options Journal", "options_journal"),
        ("Monthly P&L", "monthly_pnl"),
        ("Airdrop Tracker", "airdrop_tracker"),
    ])
    def test_render_sidebar_navigation(self, label, page):
        with patch('app.main.st') as mock_st, patch('app.main.render_sync_controls') as mock_sync:
            mock_st.sidebar.radio.return_value = label
            assert render_sidebar_navigation() == page
        mock_sync.assert_called_once()

    def test_main_unknown_page(self):
        with patch('app.main.st') as mock_st, \
             patch('app.main.setup_page_config'), \
             patch('app.main.get_app_state'), \
             patch('app.main.render_messages'), \
             patch('app.main.render_sidebar_navigation', return_value="settings"):
            main()

        mock_st.error.assert_called_once_with("Unknown page: settings")

    def test_main_routes_to_page(self):
        with patch('app.main.setup_page_config'), \
             patch('app.main.get_app_state'), \
             patch('app.main.render_messages'), \
             patch('app.main.render_sidebar_navigation', return_value="monthly_pnl"), \
             patch('app.pages.monthly_pnl.show_monthly_pnl_page') as mock_page:
            main()

        mock_page.assert_called_once()
