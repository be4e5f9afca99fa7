"""Persisted dashboard notifications and per-user read receipts."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, Integer, UniqueConstraint
from sqlmodel import Field, SQLModel

from permit_trust.models.types import ULIDType, utc_now


class Notification(SQLModel, table=True):
    """Notification addressed to an audience scope ("reviewer", "vendor:<id>", ...)."""

    __tablename__ = "notifications"
    __table_args__ = (Index("ix_notifications_scope_created_at", "scope", "created_at"),)

    id: int | None = Field(default=None, primary_key=True)
    scope: str = Field(max_length=64)
    vendor_id: str | None = Field(default=None, sa_column=Column(ULIDType, nullable=True, index=True))
    type: str = Field(max_length=64)
    title: str
    message: str
    data: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON, nullable=True))
    created_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime(timezone=True), nullable=False))


class NotificationRead(SQLModel, table=True):
    """Read receipt; one row per (notification, user)."""

    __tablename__ = "notification_reads"
    __table_args__ = (UniqueConstraint("notification_id", "user_id", name="uq_notification_read_user"),)

    id: int | None = Field(default=None, primary_key=True)
    notification_id: int = Field(
        sa_column=Column(Integer, ForeignKey("notifications.id", ondelete="CASCADE"), nullable=False, index=True),
    )
    user_id: str = Field(sa_column=Column(ULIDType, ForeignKey("app_users.id"), nullable=False))
    read_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime(timezone=True), nullable=False))
