"""
Error reporting for the SmartWealth tracker.

Service code raises ``SmartWealthError`` subclasses for problems the user can
fix (bad input, unknown ids) and lets ``IntegrationError`` describe remote
failures. Pages hand either to ``error_handler``, which logs the error and
shows a short message in the UI.
"""

import functools
import logging
from datetime import datetime
from typing import Callable, Optional

import streamlit as st

from app.integrations.base_client import (
    AuthenticationError,
    IntegrationError,
    NetworkError,
    NotFoundError,
    RateLimitError,
)


class SmartWealthError(Exception):
    """An error the user can act on."""

    def __init__(self, message: str, error_code: str = None, recovery_suggestion: str = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or "GENERAL_ERROR"
        self.recovery_suggestion = recovery_suggestion
        self.timestamp = datetime.now()


class DataValidationError(SmartWealthError):
    """A record or form value failed validation."""
    pass


class RecordNotFoundError(SmartWealthError):
    """An update targeted an id that is not in the collection."""
    pass


INTEGRATION_HINTS = [
    (AuthenticationError, "Check that the GitHub token is valid and has the gist scope."),
    (RateLimitError, "The service is throttling requests. Wait a minute and try again."),
    (NotFoundError, "The remote resource no longer exists."),
    (NetworkError, "Check your internet connection and try again."),
]


def recovery_hint(error: Exception) -> Optional[str]:
    """What the user can do about ``error``, if anything useful can be said."""
    if isinstance(error, SmartWealthError):
        return error.recovery_suggestion
    for error_type, hint in INTEGRATION_HINTS:
        if isinstance(error, error_type):
            return hint
    return None


def error_kind(error: Exception) -> str:
    if isinstance(error, SmartWealthError):
        return error.error_code
    return type(error).__name__


def format_user_message(error: Exception, context: str = None) -> str:
    """Markdown shown in ``st.error`` for ``error``."""
    if isinstance(error, SmartWealthError):
        text = error.message
    elif isinstance(error, IntegrationError):
        text = str(error)
    else:
        text = f"An unexpected error occurred: {error}"

    hint = recovery_hint(error)
    if hint:
        text += f"\n\n**Suggestion:** {hint}"
    return f"**{context}:** {text}" if context else text


class ErrorHandler:
    """Logs errors and reports them in the UI."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def handle_error(
        self,
        error: Exception,
        context: str = None,
        show_to_user: bool = True,
        log_level: int = logging.ERROR
    ) -> None:
        """
        Record ``error``.

        The log line carries the context and error kind; the traceback is
        attached whenever one is available. With ``show_to_user`` the page
        also gets an ``st.error`` box.
        """
        where = context or "unknown context"
        self.logger.log(log_level, f"{where} failed [{error_kind(error)}]: {error}", exc_info=True)

        if show_to_user:
            st.error(format_user_message(error, context))


error_handler = ErrorHandler()


def handle_exceptions(
    context: str = None,
    show_to_user: bool = True,
    log_level: int = logging.ERROR,
    reraise: bool = False
):
    """
    Decorator that reports any exception from the wrapped function.

    The wrapped call returns None after a handled error unless ``reraise``
    is set.
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                error_handler.handle_error(e, context or f"{func.__module__}.{func.__name__}",
                                           show_to_user, log_level)
                if reraise:
                    raise
                return None
        return wrapper
    return decorator
