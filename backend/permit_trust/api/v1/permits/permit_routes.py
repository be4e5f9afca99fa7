"""Permit approval and token issuance endpoints."""

import structlog
from fastapi import APIRouter, HTTPException

from permit_trust.api.v1.dependencies import ApproverDep, IssuanceServiceDep, StaffDep, TokenCodecDep
from permit_trust.api.v1.permits.schemas import ApprovalResponse, TokenResponse
from permit_trust.api.v1.schemas import PermitSummary
from permit_trust.services.permits.exceptions import PermitAlreadyApproved, PermitNotApproved, PermitNotFound
from permit_trust.services.sequence.exceptions import CounterContentionError

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["permits"])

# Seconds a client should wait before retrying an approval that hit counter contention
CONTENTION_RETRY_AFTER = "1"


@router.post("/permits/{permit_id}/approve", response_model=ApprovalResponse, operation_id="approvePermit")
async def approve_permit(
    permit_id: str,
    actor: ApproverDep,
    service: IssuanceServiceDep,
) -> ApprovalResponse:
    """Approve a permit: issue its document number and a signed token."""
    try:
        result = await service.approve(permit_id, actor)
    except PermitNotFound:
        raise HTTPException(status_code=404, detail="Permit not found")
    except PermitAlreadyApproved:
        raise HTTPException(status_code=409, detail="Permit is already approved")
    except CounterContentionError:
        raise HTTPException(
            status_code=503,
            detail="Document number could not be issued in time, please retry",
            headers={"Retry-After": CONTENTION_RETRY_AFTER},
        )

    return ApprovalResponse(
        permit=PermitSummary.from_model(result.permit),
        document_number=result.document_number,
        token=result.token,
    )


@router.post("/permits/{permit_id}/token", response_model=TokenResponse, operation_id="reissuePermitToken")
async def reissue_token(
    permit_id: str,
    _identity: StaffDep,
    service: IssuanceServiceDep,
    codec: TokenCodecDep,
) -> TokenResponse:
    """Issue a new token for an approved permit (e.g. after the printed one expired)."""
    try:
        token = await service.reissue_token(permit_id)
    except PermitNotFound:
        raise HTTPException(status_code=404, detail="Permit not found")
    except PermitNotApproved:
        raise HTTPException(status_code=409, detail="Permit is not approved")

    decoded = codec.decode(token)
    if decoded.token is None or decoded.token.expires_at is None:
        raise RuntimeError("Freshly issued token did not decode")
    return TokenResponse(permit_id=decoded.token.permit_id, token=token, expires_at=decoded.token.expires_at)
