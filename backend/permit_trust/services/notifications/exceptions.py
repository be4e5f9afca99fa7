"""Notification domain exceptions."""

from permit_trust.services.exceptions import NotFoundError


class NotificationNotFound(NotFoundError):
    """Notification not found."""

    pass
