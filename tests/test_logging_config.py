"""
Unit tests for the logging configuration system.
"""

import logging
import logging.handlers
import os
import shutil
import tempfile
import time
from pathlib import Path
from unittest.mock import patch

from app.utils import logging_config as logging_module
from app.utils.logging_config import (
    LoggingConfig,
    SecretRedactingFilter,
    SmartWealthFormatter,
    get_logger,
    setup_application_logging,
)


def make_record(level, msg):
    return logging.LogRecord(
        name="app.services.sync_service",
        level=level,
        pathname="/path/to/sync_service.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=None,
        func="upload"
    )


def reset_root_logger():
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        handler.close()
    root_logger.handlers.clear()
    root_logger.setLevel(logging.WARNING)


class TestSmartWealthFormatter:
    """Test custom log formatter."""

    def test_format_info_message(self):
        formatted = SmartWealthFormatter().format(make_record(logging.INFO, "Upload Successful!"))

        assert "app.services.sync_service" in formatted
        assert "INFO" in formatted
        assert "Upload Successful!" in formatted
        assert "/path/to/sync_service.py" not in formatted

    def test_format_error_message(self):
        formatted = SmartWealthFormatter().format(make_record(logging.ERROR, "Sync failed"))

        assert "ERROR" in formatted
        assert "Sync failed" in formatted
        assert "/path/to/sync_service.py:42 in upload" in formatted


class TestLoggingConfig:
    """Test LoggingConfig class."""

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()
        self.logging_config = LoggingConfig(self.temp_dir)

    def teardown_method(self):
        reset_root_logger()
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_initialization(self):
        assert self.logging_config.data_path == Path(self.temp_dir)
        assert self.logging_config.log_dir == Path(self.temp_dir) / "logs"
        assert not self.logging_config._configured

    def test_setup_logging_default(self):
        with patch.dict(os.environ, {}, clear=True):
            self.logging_config.setup_logging()

        root_logger = logging.getLogger()
        assert self.logging_config._configured
        assert root_logger.level == logging.INFO
        assert len(root_logger.handlers) == 3
        assert self.logging_config.log_dir.exists()

    def test_setup_logging_custom_level(self):
        self.logging_config.setup_logging(log_level="debug")
        assert logging.getLogger().level == logging.DEBUG

    @patch.dict(os.environ, {'LOG_LEVEL': 'WARNING'})
    def test_setup_logging_env_level(self):
        self.logging_config.setup_logging()
        assert logging.getLogger().level == logging.WARNING

    def test_invalid_level_falls_back_to_info(self):
        self.logging_config.setup_logging(log_level="LOUD", file_output=False)
        assert logging.getLogger().level == logging.INFO

    def test_console_only(self):
        self.logging_config.setup_logging(file_output=False)

        assert len(logging.getLogger().handlers) == 1
        assert not self.logging_config.log_dir.exists()

    def test_setup_is_idempotent(self):
        self.logging_config.setup_logging(console_output=False)
        self.logging_config.setup_logging(console_output=False)
        assert len(logging.getLogger().handlers) == 2

    def test_error_log_only_receives_errors(self):
        self.logging_config.setup_logging(console_output=False)
        logger = logging.getLogger("app.services.price_service")

        logger.info("Fetched 3 prices")
        logger.error("CoinGecko request failed")

        errors = (self.logging_config.log_dir / "errors.log").read_text()
        main = (self.logging_config.log_dir / "smartwealth.log").read_text()
        assert "CoinGecko request failed" in errors
        assert "Fetched 3 prices" not in errors
        assert "Fetched 3 prices" in main

    def test_tokens_redacted_in_files(self):
        self.logging_config.setup_logging(console_output=False)
        token = "ghp_" + "a" * 36

        logging.getLogger("app.services.sync_service").error("Upload failed for token %s", token)

        for name in ("smartwealth.log", "errors.log"):
            content = (self.logging_config.log_dir / name).read_text()
            assert token not in content
            assert "[TOKEN_REDACTED]" in content

    def test_noisy_libraries_quieted(self):
        self.logging_config.setup_logging(log_level="DEBUG", file_output=False)

        assert logging.getLogger("urllib3").level == logging.WARNING
        assert logging.getLogger("app.services").level == logging.DEBUG

    def test_get_log_files(self):
        assert self.logging_config.get_log_files() == []

        self.logging_config.log_dir.mkdir(parents=True)
        (self.logging_config.log_dir / "smartwealth.log").write_text("x")
        (self.logging_config.log_dir / "notes.txt").write_text("x")

        assert [f.name for f in self.logging_config.get_log_files()] == ["smartwealth.log"]

    def test_cleanup_old_logs(self):
        self.logging_config.log_dir.mkdir(parents=True)
        old_log = self.logging_config.log_dir / "old.log"
        new_log = self.logging_config.log_dir / "new.log"
        old_log.write_text("old")
        new_log.write_text("new")

        stale = time.time() - 40 * 24 * 60 * 60
        os.utime(old_log, (stale, stale))

        assert self.logging_config.cleanup_old_logs(days_to_keep=30) == 1
        assert not old_log.exists()
        assert new_log.exists()


class TestModuleHelpers:
    """Test module-level helpers."""

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()
        self.saved_config = logging_module.logging_config

    def teardown_method(self):
        logging_module.logging_config = self.saved_config
        reset_root_logger()
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_setup_application_logging(self):
        config = setup_application_logging("ERROR", self.temp_dir)

        assert config is logging_module.logging_config
        assert config.data_path == Path(self.temp_dir)
        assert logging.getLogger().level == logging.ERROR

    def test_rerun_keeps_existing_handlers(self):
        with patch.object(LoggingConfig, "cleanup_old_logs", return_value=0) as mock_cleanup:
            first = setup_application_logging("INFO", self.temp_dir)
            handlers = list(logging.getLogger().handlers)
            second = setup_application_logging("INFO", self.temp_dir)

        assert second is first
        assert logging.getLogger().handlers == handlers
        mock_cleanup.assert_called_once()

    def test_new_data_path_closes_old_file_handlers(self):
        other_dir = tempfile.mkdtemp()
        try:
            setup_application_logging("INFO", self.temp_dir)
            old_files = [h for h in logging.getLogger().handlers
                         if isinstance(h, logging.handlers.RotatingFileHandler)]

            setup_application_logging("INFO", other_dir)

            assert len(old_files) == 2
            assert all(h.stream is None for h in old_files)
            assert not any(h in logging.getLogger().handlers for h in old_files)
        finally:
            reset_root_logger()
            shutil.rmtree(other_dir, ignore_errors=True)

    def test_get_logger(self):
        assert get_logger("app.pages.monthly_pnl").name == "app.pages.monthly_pnl"


class TestSecretRedactingFilter:
    """Test the credential filter on its own."""

    def test_plain_message_untouched(self):
        record = make_record(logging.INFO, "Fetched %d prices")
        record.args = (3,)

        assert SecretRedactingFilter().filter(record)
        assert record.getMessage() == "Fetched 3 prices"
        assert record.args == (3,)

    def test_api_key_in_url_masked(self):
        record = make_record(logging.WARNING, "GET https://example.com/generate?key=AIzaSyExampleKey123")

        SecretRedactingFilter().filter(record)

        assert "AIzaSyExampleKey123" not in record.getMessage()
        assert "key=[API_KEY_REDACTED]" in record.getMessage()
