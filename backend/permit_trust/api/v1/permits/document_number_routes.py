"""Document number counter endpoints (read-only)."""

from fastapi import APIRouter, Path

from permit_trust.api.v1.dependencies import CounterServiceDep, StaffDep
from permit_trust.api.v1.permits.schemas import CounterInfoResponse

router = APIRouter(tags=["document-numbers"])


@router.get(
    "/document-numbers/{period}",
    response_model=CounterInfoResponse,
    operation_id="getDocumentNumberCounter",
)
async def get_document_number_counter(
    _identity: StaffDep,
    service: CounterServiceDep,
    period: int = Path(ge=2000, le=9999),
) -> CounterInfoResponse:
    """Current counter for a period and a preview of the next document number.

    Previewing never reserves a number.
    """
    info = await service.get_info(period)
    return CounterInfoResponse.from_info(info, service.format(info.next_value, period))
