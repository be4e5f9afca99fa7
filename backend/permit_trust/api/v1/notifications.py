"""Notification read receipts."""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from permit_trust.api.v1.dependencies import CurrentIdentityDep, NotificationServiceDep
from permit_trust.services.exceptions import AuthorizationError
from permit_trust.services.notifications.exceptions import NotificationNotFound

router = APIRouter(tags=["notifications"])


class MarkReadResponse(BaseModel):
    notification_id: int
    unread_count: int


@router.post(
    "/notifications/{notification_id}/read",
    response_model=MarkReadResponse,
    operation_id="markNotificationRead",
)
async def mark_notification_read(
    notification_id: int,
    identity: CurrentIdentityDep,
    service: NotificationServiceDep,
) -> MarkReadResponse:
    """Mark a notification as read and return the caller's remaining unread count."""
    try:
        unread = await service.mark_read(notification_id, identity)
    except NotificationNotFound:
        raise HTTPException(status_code=404, detail="Notification not found")
    except AuthorizationError:
        # Do not reveal notifications outside the caller's scopes
        raise HTTPException(status_code=404, detail="Notification not found")
    return MarkReadResponse(notification_id=notification_id, unread_count=unread)
