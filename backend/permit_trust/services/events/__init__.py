"""Live event fan-out to dashboard streams."""

from permit_trust.services.events.broadcaster import EventBroadcaster, Subscription
from permit_trust.services.events.channels import (
    InvalidScope,
    channel_for,
    normalize_scope,
    resolve_scope,
    vendor_scope,
)
from permit_trust.services.events.dispatcher import EventDispatcher
from permit_trust.services.events.events import (
    BaseEvent,
    ConnectedEvent,
    EventType,
    HeartbeatEvent,
    NotificationNewEvent,
    PermitApprovedEvent,
    ScanRecordedEvent,
    StreamEvent,
    UnreadCountEvent,
)
from permit_trust.services.events.sse import EventStream

__all__ = [
    "BaseEvent",
    "ConnectedEvent",
    "EventBroadcaster",
    "EventDispatcher",
    "EventStream",
    "EventType",
    "HeartbeatEvent",
    "InvalidScope",
    "NotificationNewEvent",
    "PermitApprovedEvent",
    "ScanRecordedEvent",
    "StreamEvent",
    "Subscription",
    "UnreadCountEvent",
    "channel_for",
    "normalize_scope",
    "resolve_scope",
    "vendor_scope",
]
