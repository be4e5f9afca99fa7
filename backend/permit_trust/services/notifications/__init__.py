"""Dashboard notifications."""

from permit_trust.services.notifications.exceptions import NotificationNotFound
from permit_trust.services.notifications.notification_service import NotificationService

__all__ = ["NotificationNotFound", "NotificationService"]
