"""Permit token verification endpoint used by field verifiers."""

from datetime import datetime

import structlog
from fastapi import APIRouter, Response
from pydantic import BaseModel, Field, field_serializer

from permit_trust.api.v1.dependencies import VerificationServiceDep, VerifierDep
from permit_trust.api.v1.schemas import PermitSummary, ScanEventResponse, serialize_api_datetime
from permit_trust.services.tokens.results import TokenFormat
from permit_trust.services.verification.verification_service import VerificationOutcome, VerificationStatus

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["verification"])

# Each outcome gets its own HTTP status so clients can branch without parsing messages
STATUS_CODES: dict[VerificationStatus, int] = {
    VerificationStatus.VALID: 200,
    VerificationStatus.MALFORMED: 400,
    VerificationStatus.INVALID_SIGNATURE: 400,
    VerificationStatus.EXPIRED: 410,
    VerificationStatus.NOT_FOUND: 404,
    VerificationStatus.NOT_APPROVED: 409,
}


class VerifyRequest(BaseModel):
    """Scanned token and where it was scanned."""

    token: str = Field(min_length=1, max_length=4096)
    location: str | None = Field(default=None, max_length=255)
    notes: str | None = Field(default=None, max_length=2000)


class VerifyResponse(BaseModel):
    """Verification outcome."""

    status: VerificationStatus
    valid: bool
    message: str
    permit_id: str | None = None
    token_format: TokenFormat | None = None
    authenticated: bool | None = None
    issued_at: datetime | None = None
    expires_at: datetime | None = None
    permit: PermitSummary | None = None
    scan: ScanEventResponse | None = None
    previous_scan: ScanEventResponse | None = None

    @field_serializer("issued_at", "expires_at")
    def serialize_token_times(self, dt: datetime | None) -> str | None:
        return serialize_api_datetime(dt)

    @classmethod
    def from_outcome(cls, outcome: VerificationOutcome) -> "VerifyResponse":
        token = outcome.token
        return cls(
            status=outcome.status,
            valid=outcome.valid,
            message=outcome.message,
            permit_id=token.permit_id if token else None,
            token_format=token.format if token else None,
            authenticated=token.authenticated if token else None,
            issued_at=token.issued_at if token else None,
            expires_at=token.expires_at if token else None,
            permit=PermitSummary.from_model(outcome.permit) if outcome.permit else None,
            scan=ScanEventResponse.from_optional(outcome.scan),
            previous_scan=ScanEventResponse.from_optional(outcome.previous_scan),
        )


@router.post(
    "/verify",
    response_model=VerifyResponse,
    operation_id="verifyPermitToken",
    responses={code: {"model": VerifyResponse} for code in set(STATUS_CODES.values()) if code != 200},
)
async def verify_permit_token(
    body: VerifyRequest,
    actor: VerifierDep,
    service: VerificationServiceDep,
    response: Response,
) -> VerifyResponse:
    """Verify a scanned permit token and record the scan when it is valid."""
    outcome = await service.verify(body.token, actor, location=body.location, notes=body.notes)
    response.status_code = STATUS_CODES[outcome.status]
    return VerifyResponse.from_outcome(outcome)
