"""
Logging configuration for the SmartWealth tracker.

Records go to the console and to two rotating files under <data_path>/logs:
smartwealth.log gets everything at the configured level, errors.log only
ERROR and above. GitHub tokens and API keys are redacted before any handler
writes a record.
"""

import logging
import logging.handlers
import os
import sys
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional

from app.utils.validators import DataValidator

APP_LOG_FILE = "smartwealth.log"
ERROR_LOG_FILE = "errors.log"

APP_COMPONENTS = ("app.services", "app.integrations", "app.utils", "app.pages")
NOISY_LIBRARIES = ("urllib3", "requests", "streamlit")

# Long enough to keep tracebacks intact
MAX_REDACTED_LENGTH = 20000


class SmartWealthFormatter(logging.Formatter):
    """Formatter that appends the source location to error records."""

    BASE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    LOCATION_SUFFIX = "\n%(pathname)s:%(lineno)d in %(funcName)s"

    def __init__(self):
        super().__init__(self.BASE_FORMAT)
        self._error_formatter = logging.Formatter(self.BASE_FORMAT + self.LOCATION_SUFFIX)

    def format(self, record):
        if record.levelno >= logging.ERROR:
            return self._error_formatter.format(record)
        return super().format(record)


class SecretRedactingFilter(logging.Filter):
    """Rewrites the record message with credentials masked."""

    def filter(self, record):
        message = record.getMessage()
        redacted = DataValidator.sanitize_for_logging(message, max_length=MAX_REDACTED_LENGTH)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


class LoggingConfig:
    """Configures the root logger once per process."""

    def __init__(self, data_path: str = "data"):
        self.data_path = Path(data_path)
        self.log_dir = self.data_path / "logs"
        self._configured = False

    def setup_logging(
        self,
        log_level: str = None,
        console_output: bool = True,
        file_output: bool = True,
        max_file_size: int = 5 * 1024 * 1024,
        backup_count: int = 3
    ) -> None:
        """
        Install handlers on the root logger.

        Args:
            log_level: Level name; falls back to LOG_LEVEL, then INFO
            console_output: Log to stdout
            file_output: Log to the rotating files
            max_file_size: Bytes before a file rotates
            backup_count: Rotated files kept per log
        """
        if self._configured:
            return

        level = self._get_log_level(log_level)
        handlers = []
        if console_output:
            handlers.append(self._handler(logging.StreamHandler(sys.stdout), level))
        if file_output:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            handlers.append(self._handler(self._rotating(APP_LOG_FILE, max_file_size, backup_count), level))
            handlers.append(self._handler(self._rotating(ERROR_LOG_FILE, max_file_size, backup_count),
                                          logging.ERROR))

        root_logger = logging.getLogger()
        root_logger.setLevel(level)
        for old_handler in list(root_logger.handlers):
            root_logger.removeHandler(old_handler)
            old_handler.close()
        for handler in handlers:
            root_logger.addHandler(handler)

        for component in APP_COMPONENTS:
            logging.getLogger(component).setLevel(level)
        for library in NOISY_LIBRARIES:
            logging.getLogger(library).setLevel(logging.WARNING)

        self._configured = True
        logging.getLogger(__name__).info(
            f"Logging configured at {logging.getLevelName(level)}"
            + (f", files in {self.log_dir}" if file_output else "")
        )

    def is_configured_for(self, data_path: str) -> bool:
        return self._configured and self.data_path == Path(data_path)

    def _rotating(self, filename: str, max_bytes: int, backup_count: int) -> logging.Handler:
        return logging.handlers.RotatingFileHandler(
            self.log_dir / filename,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )

    @staticmethod
    def _handler(handler: logging.Handler, level: int) -> logging.Handler:
        handler.setLevel(level)
        handler.setFormatter(SmartWealthFormatter())
        handler.addFilter(SecretRedactingFilter())
        return handler

    @staticmethod
    def _get_log_level(log_level: Optional[str]) -> int:
        name = (log_level or os.getenv("LOG_LEVEL") or "INFO").upper()
        level = logging.getLevelName(name)
        # getLevelName returns a "Level X" string for unknown names
        return level if isinstance(level, int) else logging.INFO

    def get_log_files(self) -> List[Path]:
        """Current log files (rotated backups excluded)."""
        if not self.log_dir.exists():
            return []
        return sorted(f for f in self.log_dir.iterdir() if f.suffix == ".log")

    def cleanup_old_logs(self, days_to_keep: int = 30) -> int:
        """
        Delete log files not modified within ``days_to_keep`` days.

        Returns:
            Number of files deleted
        """
        cutoff = (datetime.now() - timedelta(days=days_to_keep)).timestamp()
        deleted = 0
        for log_file in self.get_log_files():
            if log_file.stat().st_mtime >= cutoff:
                continue
            try:
                log_file.unlink()
                deleted += 1
            except OSError as e:
                logging.getLogger(__name__).warning(f"Could not delete old log file {log_file}: {e}")
        return deleted


logging_config = LoggingConfig()


def setup_application_logging(log_level: str = None, data_path: str = "data") -> LoggingConfig:
    """
    Configure logging for the app's data directory, prune stale log files
    and return the active config.

    Streamlit re-executes the entry script on every interaction; calls after
    the first for the same directory return the active config untouched.
    """
    global logging_config
    if logging_config.is_configured_for(data_path):
        return logging_config
    logging_config = LoggingConfig(data_path)
    logging_config.setup_logging(log_level=log_level)
    logging_config.cleanup_old_logs()
    return logging_config


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
