"""Append-only audit trail of permit token scans."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index
from sqlmodel import Field, SQLModel

from permit_trust.models.types import ULIDType, new_ulid, utc_now


class ScanEvent(SQLModel, table=True):
    """One verification scan of a permit token.

    Rows are never updated or deleted by the application and are not
    deduplicated: two scans by the same verifier a second apart are two rows.
    """

    __tablename__ = "scan_events"
    __table_args__ = (
        Index("ix_scan_events_permit_scanned_at", "permit_id", "scanned_at"),
        Index("ix_scan_events_scanned_by_scanned_at", "scanned_by", "scanned_at"),
    )

    id: str = Field(
        default_factory=new_ulid,
        max_length=26,
        sa_column=Column(ULIDType, primary_key=True),
    )
    permit_id: str = Field(
        sa_column=Column(ULIDType, ForeignKey("permits.id", ondelete="CASCADE"), nullable=False),
    )
    scanned_by: str = Field(sa_column=Column(ULIDType, ForeignKey("app_users.id"), nullable=False))
    # Display name snapshot so the trail stays readable if the user is renamed
    scanner_name: str | None = None
    scanned_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime(timezone=True), nullable=False))
    location: str | None = None
    notes: str | None = None
