"""Verification of scanned permit tokens.

Maps every decode outcome to a distinct verification status and only
records a scan when the permit is genuinely valid.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from permit_trust.config import settings
from permit_trust.models.permit import Permit
from permit_trust.models.scan_event import ScanEvent
from permit_trust.services.auth.identity import Identity
from permit_trust.services.events.dispatcher import EventDispatcher
from permit_trust.services.permits.permit_store import PermitStore
from permit_trust.services.scans.scan_service import ScanService
from permit_trust.services.tokens.codec import TokenCodec
from permit_trust.services.tokens.results import DecodeResult, DecodeStatus, PermitToken

logger = structlog.get_logger(__name__)


class VerificationStatus(StrEnum):
    VALID = "valid"
    MALFORMED = "malformed"
    INVALID_SIGNATURE = "invalid_signature"
    EXPIRED = "expired"
    NOT_FOUND = "not_found"
    NOT_APPROVED = "not_approved"


MESSAGES: dict[VerificationStatus, str] = {
    VerificationStatus.VALID: "Permit is valid.",
    VerificationStatus.MALFORMED: "The scanned code is not a permit token.",
    VerificationStatus.INVALID_SIGNATURE: "The permit token signature is invalid. The document may have been altered.",
    VerificationStatus.EXPIRED: "The permit token has expired. Ask the permit holder to request a reissued token.",
    VerificationStatus.NOT_FOUND: "The permit referenced by this token no longer exists.",
    VerificationStatus.NOT_APPROVED: "The permit referenced by this token has not been approved.",
}

_DECODE_STATUS_MAP: dict[DecodeStatus, VerificationStatus] = {
    DecodeStatus.MALFORMED: VerificationStatus.MALFORMED,
    DecodeStatus.INVALID_SIGNATURE: VerificationStatus.INVALID_SIGNATURE,
    DecodeStatus.EXPIRED: VerificationStatus.EXPIRED,
}


@dataclass(frozen=True)
class VerificationOutcome:
    status: VerificationStatus
    message: str
    token: PermitToken | None = None
    permit: Permit | None = None
    scan: ScanEvent | None = None
    previous_scan: ScanEvent | None = None

    @property
    def valid(self) -> bool:
        return self.status == VerificationStatus.VALID


class VerificationService:
    """Decodes a scanned token, checks the permit and records the scan."""

    def __init__(
        self,
        session: AsyncSession,
        codec: TokenCodec,
        dispatcher: EventDispatcher,
        *,
        allow_unsigned: bool | None = None,
    ):
        self.codec = codec
        self.permits = PermitStore(session)
        self.scans = ScanService(session, dispatcher)
        self.allow_unsigned = allow_unsigned if allow_unsigned is not None else settings.allow_unsigned_tokens

    @staticmethod
    def _outcome(status: VerificationStatus, **kwargs: object) -> VerificationOutcome:
        return VerificationOutcome(status=status, message=MESSAGES[status], **kwargs)  # type: ignore[arg-type]

    async def verify(
        self,
        raw_token: str,
        actor: Identity,
        *,
        location: str | None = None,
        notes: str | None = None,
        now: datetime | None = None,
    ) -> VerificationOutcome:
        decoded: DecodeResult = self.codec.decode(raw_token, now=now)
        log = logger.bind(scanned_by=actor.user_id, token_prefix=raw_token[:12])

        if not decoded.ok:
            status = _DECODE_STATUS_MAP[decoded.status]
            log.info("Rejected permit token", status=status, detail=decoded.detail)
            return self._outcome(status, token=decoded.token)

        token = decoded.token
        if token is None:
            raise RuntimeError("Successful decode carried no token")
        if not token.authenticated and not self.allow_unsigned:
            log.info("Rejected unsigned permit token", permit_id=token.permit_id)
            return self._outcome(VerificationStatus.INVALID_SIGNATURE, token=token)

        permit = await self.permits.find_permit(token.permit_id)
        if permit is None:
            log.info("Permit token references missing permit", permit_id=token.permit_id)
            return self._outcome(VerificationStatus.NOT_FOUND, token=token)
        if not permit.is_approved:
            log.info("Permit token references unapproved permit", permit_id=permit.id, permit_status=permit.status)
            return self._outcome(VerificationStatus.NOT_APPROVED, token=token, permit=permit)

        previous = await self.scans.latest_scan(permit.id)
        scan = await self.scans.record_scan(permit.id, actor, location=location, notes=notes)
        log.info("Verified permit token", permit_id=permit.id, format=token.format, scan_id=scan.id)
        return self._outcome(VerificationStatus.VALID, token=token, permit=permit, scan=scan, previous_scan=previous)
