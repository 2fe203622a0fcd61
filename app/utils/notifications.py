"""
User notification system for feedback that must survive a Streamlit rerun.

Pages call ``st.rerun()`` after every mutation, so messages are queued in
session state and rendered at the top of the next run.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import List, Optional

import streamlit as st

logger = logging.getLogger(__name__)


class NotificationType(Enum):
    """Types of notifications."""
    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass
class Notification:
    """A queued user message."""

    message: str
    type: NotificationType
    duration: Optional[timedelta] = None
    created_at: datetime = field(default_factory=datetime.now)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.duration is None:
            return False
        return (now or datetime.now()) - self.created_at > self.duration


class NotificationManager:
    """
    Queue of notifications kept in session state.

    Notifications without a duration are shown once and then dropped; timed
    ones stay until they expire.
    """

    def __init__(self, session_key: str = "notifications", max_notifications: int = 10):
        self.session_key = session_key
        self.max_notifications = max_notifications

    def _queue(self) -> List[Notification]:
        if self.session_key not in st.session_state:
            st.session_state[self.session_key] = []
        return st.session_state[self.session_key]

    def add_notification(self, message: str, notification_type: NotificationType,
                         duration: Optional[timedelta] = None) -> Notification:
        notification = Notification(message, notification_type, duration)
        queue = self._queue()
        queue.append(notification)
        del queue[:-self.max_notifications]
        logger.debug(f"Queued {notification_type.value} notification: {message}")
        return notification

    def success(self, message: str, duration: Optional[timedelta] = None) -> Notification:
        return self.add_notification(message, NotificationType.SUCCESS, duration)

    def error(self, message: str, duration: Optional[timedelta] = None) -> Notification:
        return self.add_notification(message, NotificationType.ERROR, duration)

    def warning(self, message: str, duration: Optional[timedelta] = None) -> Notification:
        return self.add_notification(message, NotificationType.WARNING, duration)

    def info(self, message: str, duration: Optional[timedelta] = None) -> Notification:
        return self.add_notification(message, NotificationType.INFO, duration)

    def pending(self) -> List[Notification]:
        """Notifications to show on this run; one-shot ones are consumed."""
        queue = self._queue()
        now = datetime.now()
        active = [n for n in queue if not n.is_expired(now)]
        st.session_state[self.session_key] = [n for n in active if n.duration is not None]
        return active

    def render_notifications(self, container=None) -> None:
        """Render pending notifications with the matching Streamlit element."""
        target = container or st
        renderers = {
            NotificationType.SUCCESS: target.success,
            NotificationType.ERROR: target.error,
            NotificationType.WARNING: target.warning,
            NotificationType.INFO: target.info,
        }
        for notification in self.pending():
            renderers[notification.type](notification.message)


def get_notification_manager() -> NotificationManager:
    """Get or create the session's notification manager."""
    if "notification_manager" not in st.session_state:
        st.session_state.notification_manager = NotificationManager()

    return st.session_state.notification_manager


def render_notifications(container=None) -> None:
    get_notification_manager().render_notifications(container)
