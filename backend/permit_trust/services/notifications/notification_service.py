"""Persisted dashboard notifications."""

from typing import Any

import structlog
from sqlalchemy import exists, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from permit_trust.models.notification import Notification, NotificationRead
from permit_trust.models.types import utc_now
from permit_trust.services.auth.identity import Identity
from permit_trust.services.events.channels import VENDOR_SCOPE, normalize_scope, resolve_scope
from permit_trust.services.events.dispatcher import EventDispatcher
from permit_trust.services.events.events import NotificationNewEvent, UnreadCountEvent
from permit_trust.services.notifications.exceptions import NotificationNotFound

logger = structlog.get_logger(__name__)


def _vendor_id_of(scope: str) -> str | None:
    prefix = f"{VENDOR_SCOPE}:"
    return scope[len(prefix) :] if scope.startswith(prefix) else None


class NotificationService:
    """Creates notifications, tracks read receipts and announces unread counts."""

    def __init__(self, session: AsyncSession, dispatcher: EventDispatcher):
        self.session = session
        self.dispatcher = dispatcher

    async def create(
        self,
        scope: str,
        *,
        notification_type: str,
        title: str,
        message: str,
        data: dict[str, Any] | None = None,
    ) -> Notification:
        """Persist a notification for ``scope`` and announce it after commit."""
        scope = normalize_scope(scope)
        notification = Notification(
            scope=scope,
            vendor_id=_vendor_id_of(scope),
            type=notification_type,
            title=title,
            message=message,
            data=data,
        )
        self.session.add(notification)
        await self.session.commit()
        logger.info("Created notification", notification_id=notification.id, scope=scope, type=notification_type)

        if notification.id is None:
            raise RuntimeError("Notification was committed without an id")
        self.dispatcher.dispatch(
            NotificationNewEvent(
                id=notification.id,
                scope=scope,
                vendor_id=notification.vendor_id,
                notification_type=notification.type,
                title=notification.title,
                message=notification.message,
                data=notification.data,
                created_at=notification.created_at,
            )
        )
        await self._announce_unread_count(scope)
        return notification

    async def unread_count(self, scope: str, *, user_id: str | None = None) -> int:
        """Notifications in ``scope`` without a read receipt (from ``user_id`` if given, from anyone otherwise)."""
        read_filter = NotificationRead.notification_id == Notification.id
        if user_id is not None:
            read_filter = read_filter & (NotificationRead.user_id == user_id)  # type: ignore[assignment]
        statement = (
            select(func.count())
            .select_from(Notification)
            .where(Notification.scope == scope)
            .where(~exists().where(read_filter))
        )
        result = await self.session.execute(statement)
        return result.scalar() or 0

    async def mark_read(self, notification_id: int, user: Identity) -> int:
        """Record that ``user`` read the notification. Returns the user's unread count for its scope.

        Raises:
            NotificationNotFound: No such notification.
            AuthorizationError: The notification's scope is not visible to ``user``.
        """
        notification = await self.session.get(Notification, notification_id)
        if notification is None:
            raise NotificationNotFound(notification_id)
        resolve_scope(user, notification.scope)

        result = await self.session.execute(
            select(NotificationRead).where(
                NotificationRead.notification_id == notification_id,
                NotificationRead.user_id == user.user_id,
            )
        )
        receipt = result.scalars().first()
        if receipt is None:
            receipt = NotificationRead(notification_id=notification_id, user_id=user.user_id)
        else:
            receipt.read_at = utc_now()
        self.session.add(receipt)
        await self.session.commit()

        await self._announce_unread_count(notification.scope)
        return await self.unread_count(notification.scope, user_id=user.user_id)

    async def _announce_unread_count(self, scope: str) -> None:
        count = await self.unread_count(scope)
        self.dispatcher.dispatch(UnreadCountEvent(scope=scope, vendor_id=_vendor_id_of(scope), unread_count=count))
