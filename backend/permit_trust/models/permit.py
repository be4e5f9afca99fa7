"""Permit record mapped from the external permit store."""

from datetime import date, datetime

from sqlalchemy import Column, DateTime, ForeignKey
from sqlmodel import Field, SQLModel

from permit_trust.models.enums import PERMIT_STATUS_SA_ENUM, PermitStatus
from permit_trust.models.types import ULIDType, new_ulid, utc_now


class Permit(SQLModel, table=True):
    """Work permit (SIMLOK) submitted by a vendor.

    Only the columns the trust subsystem reads or writes are mapped here;
    the permit lifecycle itself is owned by the permit store.
    """

    __tablename__ = "permits"

    # ULID stored as PostgreSQL UUID
    id: str = Field(
        default_factory=new_ulid,
        max_length=26,
        sa_column=Column(ULIDType, primary_key=True),
    )
    vendor_id: str = Field(
        sa_column=Column(ULIDType, ForeignKey("app_users.id"), index=True, nullable=False),
    )
    vendor_name: str
    job_description: str
    work_location: str
    implementation_start_date: date | None = None
    implementation_end_date: date | None = None
    status: PermitStatus = Field(
        default=PermitStatus.PENDING,
        sa_column=Column(PERMIT_STATUS_SA_ENUM, nullable=False, index=True),
    )

    # Assigned once on approval: "2024/0001/SMKT/OPR"
    document_number: str | None = Field(default=None, unique=True, index=True)

    approved_at: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    created_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime(timezone=True), nullable=False))

    @property
    def is_approved(self) -> bool:
        return self.status == PermitStatus.APPROVED
