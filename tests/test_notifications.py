"""
Unit tests for notification utilities.
"""

from datetime import datetime, timedelta
from unittest.mock import Mock, patch

import pytest

from app.utils.notifications import (
    Notification,
    NotificationManager,
    NotificationType,
    get_notification_manager,
    render_notifications,
)


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
def session_state():
    state = FakeSessionState()
    with patch('streamlit.session_state', state):
        yield state


class TestNotification:
    """Test cases for Notification."""

    def test_defaults(self):
        notification = Notification("Saved", NotificationType.SUCCESS)
        assert notification.duration is None
        assert isinstance(notification.created_at, datetime)
        assert not notification.is_expired()

    def test_expiry(self):
        created = datetime(2024, 5, 1, 12, 0, 0)
        notification = Notification("Saved", NotificationType.INFO, timedelta(seconds=5), created)

        assert not notification.is_expired(created + timedelta(seconds=5))
        assert notification.is_expired(created + timedelta(seconds=6))


class TestNotificationManager:
    """Test cases for NotificationManager."""

    def test_add_by_type(self, session_state):
        manager = NotificationManager()
        manager.success("a")
        manager.error("b")
        manager.warning("c")
        manager.info("d")

        queue = session_state["notifications"]
        assert [n.type for n in queue] == [
            NotificationType.SUCCESS,
            NotificationType.ERROR,
            NotificationType.WARNING,
            NotificationType.INFO,
        ]

    def test_queue_is_bounded(self, session_state):
        manager = NotificationManager(max_notifications=3)
        for i in range(5):
            manager.info(f"message {i}")

        assert [n.message for n in session_state["notifications"]] == ["message 2", "message 3", "message 4"]

    def test_one_shot_notifications_consumed(self, session_state):
        manager = NotificationManager()
        manager.success("Asset saved")
        manager.info("Sticky", duration=timedelta(minutes=5))

        assert [n.message for n in manager.pending()] == ["Asset saved", "Sticky"]
        assert [n.message for n in manager.pending()] == ["Sticky"]

    def test_expired_notifications_dropped(self, session_state):
        manager = NotificationManager()
        stale = manager.warning("Old", duration=timedelta(seconds=1))
        stale.created_at = datetime.now() - timedelta(minutes=1)

        assert manager.pending() == []
        assert session_state["notifications"] == []

    def test_render_uses_matching_element(self, session_state):
        manager = NotificationManager()
        manager.success("Upload Successful!")
        manager.error("Failed to fetch Gist")
        container = Mock()

        manager.render_notifications(container)

        container.success.assert_called_once_with("Upload Successful!")
        container.error.assert_called_once_with("Failed to fetch Gist")
        container.warning.assert_not_called()

    def test_render_defaults_to_streamlit(self, session_state):
        manager = NotificationManager()
        manager.warning("Prices unavailable")

        with patch('streamlit.warning') as mock_warning:
            manager.render_notifications()
        mock_warning.assert_called_once_with("Prices unavailable")


class TestModuleHelpers:
    """Test cases for the module-level shortcuts."""

    def test_manager_cached_in_session(self, session_state):
        assert get_notification_manager() is get_notification_manager()

    def test_render_notifications(self, session_state):
        get_notification_manager().success("Data Restored!")
        container = Mock()
        render_notifications(container)
        container.success.assert_called_once_with("Data Restored!")
