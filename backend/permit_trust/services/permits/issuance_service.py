"""Permit approval: number issuance, token signing and announcements.

The counter increment and the number assignment commit together, so a
failed approval never consumes a number. Notifications and events go out
only after that commit.
"""

from dataclasses import dataclass
from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from permit_trust.models.permit import Permit
from permit_trust.models.types import utc_now
from permit_trust.services.auth.identity import Identity
from permit_trust.services.events.channels import vendor_scope
from permit_trust.services.events.dispatcher import EventDispatcher
from permit_trust.services.events.events import PermitApprovedEvent
from permit_trust.services.notifications.notification_service import NotificationService
from permit_trust.services.permits.exceptions import PermitAlreadyApproved, PermitNotApproved
from permit_trust.services.permits.permit_store import PermitStore
from permit_trust.services.sequence.counter_service import SequenceCounterService
from permit_trust.services.tokens.codec import TokenCodec
from permit_trust.utils.datetime_utils import current_period, ensure_utc

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ApprovalResult:
    permit: Permit
    document_number: str
    token: str


class PermitIssuanceService:
    """Approves permits and issues their scannable tokens."""

    def __init__(
        self,
        session: AsyncSession,
        codec: TokenCodec,
        dispatcher: EventDispatcher,
        *,
        counter: SequenceCounterService | None = None,
    ):
        self.session = session
        self.codec = codec
        self.dispatcher = dispatcher
        self.permits = PermitStore(session)
        self.counter = counter or SequenceCounterService(session)
        self.notifications = NotificationService(session, dispatcher)

    async def approve(self, permit_id: str, actor: Identity, *, now: datetime | None = None) -> ApprovalResult:
        """Approve ``permit_id``: issue its document number and a fresh token.

        Raises:
            PermitNotFound: The permit does not exist.
            PermitAlreadyApproved: The permit already has a document number.
            CounterContentionError: No number could be issued in time; nothing was changed.
        """
        moment = ensure_utc(now) if now is not None else utc_now()
        permit = await self.permits.get_permit(permit_id, for_update=True)
        if permit.document_number is not None:
            raise PermitAlreadyApproved(f"Permit {permit.id} already has number {permit.document_number}")

        period = current_period(moment)
        document_number = await self.counter.issue_document_number(period, commit=False)
        permit = await self.permits.assign_document_number(permit.id, document_number, approved_at=moment)
        await self.session.commit()
        logger.info(
            "Approved permit",
            permit_id=permit.id,
            document_number=document_number,
            approved_by=actor.user_id,
        )

        token = self.codec.encode(permit.id, moment)
        await self._announce(permit, document_number, moment)
        return ApprovalResult(permit=permit, document_number=document_number, token=token)

    async def _announce(self, permit: Permit, document_number: str, approved_at: datetime) -> None:
        self.dispatcher.dispatch(
            PermitApprovedEvent(
                permit_id=permit.id,
                document_number=document_number,
                vendor_id=permit.vendor_id,
                approved_at=approved_at,
            )
        )
        try:
            await self.notifications.create(
                vendor_scope(permit.vendor_id),
                notification_type="permit_approved",
                title="Permit approved",
                message=f"Your permit for {permit.job_description} was approved as {document_number}.",
                data={"permit_id": permit.id, "document_number": document_number},
            )
        except Exception as e:
            # The approval is already committed; the vendor notice is best-effort
            logger.error(
                "Failed to create approval notification",
                error=str(e),
                permit_id=permit.id,
                document_number=document_number,
            )

    async def reissue_token(self, permit_id: str, *, now: datetime | None = None) -> str:
        """New token for an approved permit whose printed token has expired.

        Raises:
            PermitNotFound: The permit does not exist.
            PermitNotApproved: The permit has no document number yet.
        """
        permit = await self.permits.get_permit(permit_id)
        if not permit.is_approved:
            raise PermitNotApproved(f"Permit {permit.id} is not approved")
        logger.info("Reissued permit token", permit_id=permit.id)
        return self.codec.encode(permit.id, now)
