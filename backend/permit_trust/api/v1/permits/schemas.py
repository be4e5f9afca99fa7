"""API schemas for permit, scan and document number endpoints."""

from datetime import datetime

from pydantic import BaseModel, field_serializer

from permit_trust.api.v1.schemas import PermitSummary, ScanEventResponse, serialize_api_datetime
from permit_trust.services.sequence.counter_service import CounterInfo


class PermitScansResponse(BaseModel):
    """Scan history of a single permit, newest first."""

    permit_id: str
    has_been_scanned: bool
    latest_scan: ScanEventResponse | None
    scans: list[ScanEventResponse]


class ScanHistoryResponse(BaseModel):
    """Paginated scan history across permits."""

    scans: list[ScanEventResponse]
    total: int


class ApprovalResponse(BaseModel):
    """Result of approving a permit."""

    permit: PermitSummary
    document_number: str
    token: str


class TokenResponse(BaseModel):
    """Freshly issued permit token."""

    permit_id: str
    token: str
    expires_at: datetime

    @field_serializer("expires_at")
    def serialize_expires_at(self, dt: datetime) -> str | None:
        return serialize_api_datetime(dt)


class CounterInfoResponse(BaseModel):
    """Document number counter for one period, with the next number previewed."""

    period: int
    last_issued: int
    next_value: int
    next_document_number: str
    exists: bool
    updated_at: datetime | None

    @field_serializer("updated_at")
    def serialize_updated_at(self, dt: datetime | None) -> str | None:
        return serialize_api_datetime(dt)

    @classmethod
    def from_info(cls, info: CounterInfo, next_document_number: str) -> "CounterInfoResponse":
        return cls(
            period=info.period,
            last_issued=info.last_issued,
            next_value=info.next_value,
            next_document_number=next_document_number,
            exists=info.exists,
            updated_at=info.updated_at,
        )
