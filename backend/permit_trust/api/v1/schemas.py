"""API schemas shared across endpoints."""

from datetime import date, datetime

from pydantic import BaseModel, field_serializer

from permit_trust.models.enums import PermitStatus
from permit_trust.models.permit import Permit
from permit_trust.models.scan_event import ScanEvent
from permit_trust.utils.datetime_utils import to_api_timezone


def serialize_api_datetime(dt: datetime | None) -> str | None:
    """Serialize datetime to API timezone."""
    localized_dt = to_api_timezone(dt)
    return localized_dt.isoformat() if localized_dt is not None else None


class PermitSummary(BaseModel):
    """Permit fields shown to verifiers and approvers."""

    id: str
    document_number: str | None
    vendor_id: str
    vendor_name: str
    job_description: str
    work_location: str
    implementation_start_date: date | None
    implementation_end_date: date | None
    status: PermitStatus
    approved_at: datetime | None

    @field_serializer("approved_at")
    def serialize_approved_at(self, dt: datetime | None) -> str | None:
        return serialize_api_datetime(dt)

    @classmethod
    def from_model(cls, permit: Permit) -> "PermitSummary":
        """Create response from Permit model."""
        return cls(
            id=permit.id,
            document_number=permit.document_number,
            vendor_id=permit.vendor_id,
            vendor_name=permit.vendor_name,
            job_description=permit.job_description,
            work_location=permit.work_location,
            implementation_start_date=permit.implementation_start_date,
            implementation_end_date=permit.implementation_end_date,
            status=permit.status,
            approved_at=permit.approved_at,
        )


class ScanEventResponse(BaseModel):
    """One entry of the scan audit trail."""

    id: str
    permit_id: str
    scanned_by: str
    scanner_name: str | None
    scanned_at: datetime
    location: str | None
    notes: str | None

    @field_serializer("scanned_at")
    def serialize_scanned_at(self, dt: datetime) -> str | None:
        return serialize_api_datetime(dt)

    @classmethod
    def from_model(cls, scan: ScanEvent) -> "ScanEventResponse":
        """Create response from ScanEvent model."""
        return cls(
            id=scan.id,
            permit_id=scan.permit_id,
            scanned_by=scan.scanned_by,
            scanner_name=scan.scanner_name,
            scanned_at=scan.scanned_at,
            location=scan.location,
            notes=scan.notes,
        )

    @classmethod
    def from_optional(cls, scan: ScanEvent | None) -> "ScanEventResponse | None":
        return cls.from_model(scan) if scan is not None else None
