"""
Session-state helpers for the Streamlit pages: in-flight operation flags,
the record currently being edited, and two-step delete confirmation.
"""

import logging
from datetime import datetime
from functools import wraps
from typing import Any, Callable, Dict, Optional

import streamlit as st

logger = logging.getLogger(__name__)


class LoadingStateManager:
    """
    Tracks long-running operations (price refresh, gist upload/download).

    Buttons that start an operation are disabled while it is in flight, so a
    second click is never queued.
    """

    def __init__(self, key_prefix: str = "loading_"):
        self._key_prefix = key_prefix

    def _key(self, operation: str) -> str:
        return f"{self._key_prefix}{operation}"

    def set_loading(self, operation: str, is_loading: bool, message: Optional[str] = None) -> None:
        """
        Set loading state for an operation.

        Args:
            operation: Operation name
            is_loading: Whether the operation is running
            message: Optional progress message
        """
        st.session_state[self._key(operation)] = {
            "is_loading": is_loading,
            "message": message,
            "timestamp": datetime.now(),
        }

    def is_loading(self, operation: str) -> bool:
        data = st.session_state.get(self._key(operation), {})
        return isinstance(data, dict) and data.get("is_loading", False)

    def clear_loading(self, operation: str) -> None:
        self.set_loading(operation, False)

    def any_loading(self, *operations: str) -> bool:
        """True if any of the named operations is in flight."""
        return any(self.is_loading(op) for op in operations)


def with_loading_state(operation_name: str, loading_message: str = "Loading..."):
    """
    Decorator that marks ``operation_name`` as loading while the function runs.

    The flag is cleared even when the function raises.
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            loading_manager = get_loading_manager()
            loading_manager.set_loading(operation_name, True, loading_message)
            try:
                return func(*args, **kwargs)
            finally:
                loading_manager.clear_loading(operation_name)

        return wrapper

    return decorator


class FormState:
    """
    Open/closed state of a page's add/edit form.

    ``editing_id`` is None when the form adds a new record.
    """

    def __init__(self, form_name: str):
        self._open_key = f"form_open_{form_name}"
        self._editing_key = f"form_editing_{form_name}"

    @property
    def is_open(self) -> bool:
        return bool(st.session_state.get(self._open_key, False))

    @property
    def editing_id(self) -> Optional[str]:
        return st.session_state.get(self._editing_key)

    def open_new(self) -> None:
        st.session_state[self._open_key] = True
        st.session_state[self._editing_key] = None

    def open_edit(self, record_id: str) -> None:
        st.session_state[self._open_key] = True
        st.session_state[self._editing_key] = record_id

    def close(self) -> None:
        st.session_state[self._open_key] = False
        st.session_state[self._editing_key] = None


class DeleteConfirmation:
    """
    Two-step delete: the first click arms the confirmation, the second confirms.

    Only one record per collection can be pending at a time.
    """

    def __init__(self, collection: str):
        self._key = f"pending_delete_{collection}"

    @property
    def pending_id(self) -> Optional[str]:
        return st.session_state.get(self._key)

    def request(self, record_id: str) -> None:
        logger.debug(f"Delete requested for {record_id}")
        st.session_state[self._key] = record_id

    def is_pending(self, record_id: str) -> bool:
        return self.pending_id == record_id

    def confirm(self, record_id: str) -> bool:
        """Consume the pending request; True only if it was for ``record_id``."""
        confirmed = self.is_pending(record_id)
        self.cancel()
        return confirmed

    def cancel(self) -> None:
        st.session_state[self._key] = None


def get_loading_manager() -> LoadingStateManager:
    """Get or create the session's loading state manager."""
    if "loading_manager" not in st.session_state:
        st.session_state.loading_manager = LoadingStateManager()

    return st.session_state.loading_manager


def get_session_value(key: str, factory: Callable[[], Any]) -> Any:
    """Return ``st.session_state[key]``, creating it with ``factory`` on first use."""
    if key not in st.session_state:
        st.session_state[key] = factory()
        logger.debug(f"Created new session value for key '{key}'")
    return st.session_state[key]


def clear_session_values(prefix: str) -> Dict[str, Any]:
    """Remove every session key starting with ``prefix`` and return what was removed."""
    removed = {key: st.session_state[key] for key in list(st.session_state.keys()) if str(key).startswith(prefix)}
    for key in removed:
        del st.session_state[key]
    return removed
