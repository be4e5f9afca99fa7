"""Access to the permit records the trust subsystem depends on."""

from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from permit_trust.models.enums import PermitStatus
from permit_trust.models.permit import Permit
from permit_trust.models.types import parse_ulid, utc_now
from permit_trust.services.permits.exceptions import PermitAlreadyApproved, PermitNotFound

logger = structlog.get_logger(__name__)


class PermitStore:
    """Find permits and assign document numbers.

    Ids that are not ULIDs cannot exist in the store, so lookups treat
    them as missing instead of failing on the column type.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_permit(self, permit_id: str, *, for_update: bool = False) -> Permit | None:
        canonical = parse_ulid(permit_id)
        if canonical is None:
            return None
        return await self.session.get(Permit, canonical, with_for_update=for_update)

    async def get_permit(self, permit_id: str, *, for_update: bool = False) -> Permit:
        permit = await self.find_permit(permit_id, for_update=for_update)
        if permit is None:
            raise PermitNotFound(permit_id)
        return permit

    async def permit_exists(self, permit_id: str) -> bool:
        canonical = parse_ulid(permit_id)
        if canonical is None:
            return False
        result = await self.session.execute(select(Permit.id).where(Permit.id == canonical))
        return result.first() is not None

    async def assign_document_number(
        self,
        permit_id: str,
        document_number: str,
        *,
        approved_at: datetime | None = None,
    ) -> Permit:
        """Record ``document_number`` on the permit and mark it approved.

        Flushes but does not commit; the caller owns the transaction.
        """
        permit = await self.get_permit(permit_id)
        if permit.document_number is not None:
            raise PermitAlreadyApproved(f"Permit {permit.id} already has number {permit.document_number}")
        now = utc_now()
        permit.document_number = document_number
        permit.status = PermitStatus.APPROVED
        permit.approved_at = approved_at or now
        permit.updated_at = now
        self.session.add(permit)
        await self.session.flush()
        logger.info("Assigned document number", permit_id=permit.id, document_number=document_number)
        return permit
