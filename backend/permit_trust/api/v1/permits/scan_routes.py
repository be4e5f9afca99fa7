"""Scan audit trail endpoints."""

from datetime import datetime

from fastapi import APIRouter, Query

from permit_trust.api.v1.dependencies import ScanServiceDep, StaffDep
from permit_trust.api.v1.permits.schemas import PermitScansResponse, ScanHistoryResponse
from permit_trust.api.v1.schemas import ScanEventResponse

router = APIRouter(tags=["scans"])


@router.get("/permits/{permit_id}/scans", response_model=PermitScansResponse, operation_id="listPermitScans")
async def list_permit_scans(
    permit_id: str,
    _identity: StaffDep,
    service: ScanServiceDep,
    limit: int | None = Query(default=None, ge=1, le=500),
) -> PermitScansResponse:
    """List scans of one permit, newest first."""
    scans = await service.list_scans(permit_id, limit=limit)
    return PermitScansResponse(
        permit_id=permit_id,
        has_been_scanned=bool(scans),
        latest_scan=ScanEventResponse.from_model(scans[0]) if scans else None,
        scans=[ScanEventResponse.from_model(scan) for scan in scans],
    )


@router.get("/scans", response_model=ScanHistoryResponse, operation_id="listScanHistory")
async def list_scan_history(
    _identity: StaffDep,
    service: ScanServiceDep,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=200),
    permit_id: str | None = None,
    scanned_by: str | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
) -> ScanHistoryResponse:
    """Scan history across permits with filters and pagination."""
    scans, total = await service.scan_history(
        skip=skip,
        limit=limit,
        permit_id=permit_id,
        scanned_by=scanned_by,
        date_from=date_from,
        date_to=date_to,
    )
    return ScanHistoryResponse(scans=[ScanEventResponse.from_model(scan) for scan in scans], total=total)
