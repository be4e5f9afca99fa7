"""Database models."""

# ruff: noqa: I001 - app_users must be registered before tables that reference it
from sqlmodel import SQLModel

from permit_trust.models.enums import PermitStatus, UserRole
from permit_trust.models.app_user import AppUser
from permit_trust.models.permit import Permit
from permit_trust.models.scan_event import ScanEvent
from permit_trust.models.notification import Notification, NotificationRead
from permit_trust.models.sequence_counter import SequenceCounter, SequenceCounterReset

__all__ = [
    "SQLModel",
    "AppUser",
    "Notification",
    "NotificationRead",
    "Permit",
    "PermitStatus",
    "ScanEvent",
    "SequenceCounter",
    "SequenceCounterReset",
    "UserRole",
]
