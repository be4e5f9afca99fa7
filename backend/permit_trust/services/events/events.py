"""Event definitions for live dashboard updates.

Every event travels on the bus as its JSON model dump (``type`` plus fields)
and is forwarded to stream clients unchanged as one SSE ``data:`` frame.
"""

from datetime import datetime
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field

from permit_trust.services.events.channels import (
    ADMIN_SCOPE,
    APPROVER_SCOPE,
    REVIEWER_SCOPE,
    channel_for,
    vendor_scope,
)


class EventType(StrEnum):
    """Event types - serializes to string value in JSON."""

    CONNECTED = "connected"
    HEARTBEAT = "heartbeat"
    NOTIFICATION_NEW = "notification:new"
    NOTIFICATION_UNREAD_COUNT = "notification:unread_count"
    SCAN_RECORDED = "scan:recorded"
    PERMIT_APPROVED = "permit:approved"


# =============================================================================
# Base Class
# =============================================================================


class BaseEvent(BaseModel):
    """Base class for all events.

    Defines common interface:
    - type: EventType value
    - get_scopes(): audience scopes the event is delivered to
    - to_message(): wire form published on the bus
    """

    type: EventType

    def get_scopes(self) -> list[str]:
        """Return audience scopes for this event."""
        raise NotImplementedError

    def get_channels(self) -> list[str]:
        return [channel_for(scope) for scope in self.get_scopes()]

    def to_message(self) -> str:
        return self.model_dump_json()


# =============================================================================
# Stream control events (sent by the stream itself, never published)
# =============================================================================


class ConnectedEvent(BaseEvent):
    """First frame of every stream. ``live`` is False when the bus subscription failed."""

    type: Literal[EventType.CONNECTED] = EventType.CONNECTED
    scope: str
    user_id: str
    role: str
    live: bool = True

    def get_scopes(self) -> list[str]:
        return [self.scope]


class HeartbeatEvent(BaseEvent):
    type: Literal[EventType.HEARTBEAT] = EventType.HEARTBEAT
    timestamp: datetime

    def get_scopes(self) -> list[str]:
        return []


# =============================================================================
# Domain events
# =============================================================================


class NotificationNewEvent(BaseEvent):
    """A persisted notification was created for ``scope``."""

    type: Literal[EventType.NOTIFICATION_NEW] = EventType.NOTIFICATION_NEW
    id: int
    scope: str
    vendor_id: str | None = None
    notification_type: str
    title: str
    message: str
    data: dict[str, Any] | None = None
    created_at: datetime

    def get_scopes(self) -> list[str]:
        return [self.scope]


class UnreadCountEvent(BaseEvent):
    type: Literal[EventType.NOTIFICATION_UNREAD_COUNT] = EventType.NOTIFICATION_UNREAD_COUNT
    scope: str
    vendor_id: str | None = None
    unread_count: int

    def get_scopes(self) -> list[str]:
        return [self.scope]


class ScanRecordedEvent(BaseEvent):
    """A permit token was scanned and the scan persisted.

    Delivered to the reviewing roles and the owning vendor's private scope.
    """

    type: Literal[EventType.SCAN_RECORDED] = EventType.SCAN_RECORDED
    scan_id: str
    permit_id: str
    document_number: str | None = None
    vendor_id: str
    vendor_name: str
    scanned_by: str
    scanner_name: str | None = None
    scanned_at: datetime
    location: str | None = None

    def get_scopes(self) -> list[str]:
        return [REVIEWER_SCOPE, APPROVER_SCOPE, ADMIN_SCOPE, vendor_scope(self.vendor_id)]


class PermitApprovedEvent(BaseEvent):
    type: Literal[EventType.PERMIT_APPROVED] = EventType.PERMIT_APPROVED
    permit_id: str
    document_number: str
    vendor_id: str
    approved_at: datetime

    def get_scopes(self) -> list[str]:
        return [APPROVER_SCOPE, vendor_scope(self.vendor_id)]


# Discriminated union of everything a stream client can receive
StreamEvent = Annotated[
    ConnectedEvent
    | HeartbeatEvent
    | NotificationNewEvent
    | UnreadCountEvent
    | ScanRecordedEvent
    | PermitApprovedEvent,
    Field(discriminator="type"),
]
