"""
Unit tests for error reporting.
"""

import logging
import shutil
import tempfile
from datetime import datetime
from unittest.mock import patch

import pytest

from app.integrations.base_client import (
    APIError,
    AuthenticationError,
    NetworkError,
    NotFoundError,
    RateLimitError,
)
from app.utils.error_handler import (
    DataValidationError,
    ErrorHandler,
    RecordNotFoundError,
    SmartWealthError,
    error_kind,
    format_user_message,
    handle_exceptions,
    recovery_hint,
)


class TestSmartWealthError:
    """Test the application exception classes."""

    def test_fields(self):
        error = DataValidationError("Quantity must be positive", "INVALID_INPUT", "Enter a number above 0")

        assert str(error) == "Quantity must be positive"
        assert error.error_code == "INVALID_INPUT"
        assert error.recovery_suggestion == "Enter a number above 0"
        assert isinstance(error.timestamp, datetime)
        assert isinstance(error, SmartWealthError)

    def test_defaults(self):
        error = RecordNotFoundError("asset 9 not found")

        assert error.error_code == "GENERAL_ERROR"
        assert error.recovery_suggestion is None


class TestRecoveryHints:
    """Test hints attached to failures."""

    def test_app_error_uses_own_suggestion(self):
        assert recovery_hint(DataValidationError("bad", recovery_suggestion="Fix it")) == "Fix it"

    def test_not_found(self):
        assert recovery_hint(NotFoundError("no quote for XYZ")) == "The remote resource no longer exists."

    @pytest.mark.parametrize("error,fragment", [
        (AuthenticationError("rejected", 401), "gist scope"),
        (RateLimitError("slow down", 429), "Wait a minute"),
        (NetworkError("timed out"), "internet connection"),
    ])
    def test_integration_hints(self, error, fragment):
        assert fragment in recovery_hint(error)

    def test_no_hint(self):
        assert recovery_hint(APIError("server error", 500)) is None
        assert recovery_hint(KeyError("x")) is None

    def test_error_kind(self):
        assert error_kind(RecordNotFoundError("gone", "NOT_FOUND")) == "NOT_FOUND"
        assert error_kind(NetworkError("timed out")) == "NetworkError"


class TestFormatUserMessage:
    """Test messages shown in the UI."""

    def test_app_error_with_suggestion(self):
        error = DataValidationError("Quantity must be positive", recovery_suggestion="Enter a number above 0")
        message = format_user_message(error, "Save Asset")

        assert message.startswith("**Save Asset:** Quantity must be positive")
        assert message.endswith("**Suggestion:** Enter a number above 0")

    def test_integration_error(self):
        message = format_user_message(AuthenticationError("github rejected the credentials", 401))

        assert message.startswith("github rejected the credentials (HTTP 401)")
        assert "gist scope" in message

    def test_unexpected_error(self):
        assert format_user_message(KeyError("x")) == "An unexpected error occurred: 'x'"


class TestErrorHandler:
    """Test ErrorHandler class."""

    def setup_method(self):
        self.error_handler = ErrorHandler()

    @patch('streamlit.error')
    def test_handle_app_error(self, mock_st_error):
        error = DataValidationError("Strike must be positive", "INVALID_INPUT")

        with patch.object(self.error_handler.logger, 'log') as mock_log:
            self.error_handler.handle_error(error, "Save Trade", log_level=logging.WARNING)

        args, kwargs = mock_log.call_args
        assert args[0] == logging.WARNING
        assert args[1] == "Save Trade failed [INVALID_INPUT]: Strike must be positive"
        assert kwargs["exc_info"] is True
        mock_st_error.assert_called_once_with("**Save Trade:** Strike must be positive")

    @patch('streamlit.error')
    def test_handle_unexpected_error(self, mock_st_error):
        with patch.object(self.error_handler.logger, 'log') as mock_log:
            self.error_handler.handle_error(ValueError("boom"), "Price Refresh")

        assert mock_log.call_args[0][0] == logging.ERROR
        mock_st_error.assert_called_once_with("**Price Refresh:** An unexpected error occurred: boom")

    def test_hidden_from_user(self):
        with patch.object(self.error_handler.logger, 'log') as mock_log, \
             patch('streamlit.error') as mock_st_error:
            self.error_handler.handle_error(ValueError("quiet"), show_to_user=False)

        assert "unknown context" in mock_log.call_args[0][1]
        mock_st_error.assert_not_called()


class TestHandleExceptions:
    """Test the reporting decorator."""

    def test_reports_and_returns_none(self):
        @handle_exceptions(context="Main Application")
        def render():
            raise RecordNotFoundError("gone")

        with patch('app.utils.error_handler.error_handler.handle_error') as mock_handle:
            assert render() is None

        args = mock_handle.call_args[0]
        assert isinstance(args[0], RecordNotFoundError)
        assert args[1] == "Main Application"

    def test_default_context(self):
        @handle_exceptions()
        def render():
            raise ValueError("boom")

        with patch('app.utils.error_handler.error_handler.handle_error') as mock_handle:
            render()

        assert mock_handle.call_args[0][1].endswith(".render")

    def test_reraise(self):
        @handle_exceptions(context="Main Application", reraise=True)
        def render():
            raise ValueError("boom")

        with patch('app.utils.error_handler.error_handler.handle_error') as mock_handle:
            with pytest.raises(ValueError):
                render()
        mock_handle.assert_called_once()

    def test_success_passes_through(self):
        @handle_exceptions(context="Main Application")
        def render():
            return "ok"

        with patch('app.utils.error_handler.error_handler.handle_error') as mock_handle:
            assert render() == "ok"
        mock_handle.assert_not_called()


class TestErrorHandlerLogging:
    """Errors end up in the log files."""

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()

    def teardown_method(self):
        root_logger = logging.getLogger()
        for handler in list(root_logger.handlers):
            handler.close()
        root_logger.handlers.clear()
        root_logger.setLevel(logging.WARNING)
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    @patch('streamlit.error')
    def test_written_to_both_files(self, mock_st_error):
        from app.utils.logging_config import LoggingConfig

        logging_config = LoggingConfig(self.temp_dir)
        logging_config.setup_logging(log_level="DEBUG", console_output=False)

        ErrorHandler().handle_error(DataValidationError("Duplicate assets id 1", "DUPLICATE_ID"), "Restore")

        log_files = {f.name: f for f in logging_config.get_log_files()}
        main_log = log_files["smartwealth.log"].read_text()
        assert "Restore failed [DUPLICATE_ID]: Duplicate assets id 1" in main_log
        assert "DUPLICATE_ID" in log_files["errors.log"].read_text()
