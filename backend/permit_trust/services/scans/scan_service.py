"""Append-only scan audit trail.

This service records verification scans and answers history queries.
Events are dispatched only after the scan is committed.
"""

from datetime import datetime

import structlog
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from permit_trust.models.permit import Permit
from permit_trust.models.scan_event import ScanEvent
from permit_trust.models.types import parse_ulid, utc_now
from permit_trust.services.auth.identity import Identity
from permit_trust.services.events.dispatcher import EventDispatcher
from permit_trust.services.events.events import ScanRecordedEvent
from permit_trust.services.permits.exceptions import PermitNotFound
from permit_trust.services.permits.permit_store import PermitStore
from permit_trust.utils.datetime_utils import ensure_utc

logger = structlog.get_logger(__name__)


class ScanService:
    """Records scans and reads scan history."""

    def __init__(self, session: AsyncSession, dispatcher: EventDispatcher):
        self.session = session
        self.dispatcher = dispatcher
        self.permits = PermitStore(session)

    async def record_scan(
        self,
        permit_id: str,
        actor: Identity,
        *,
        location: str | None = None,
        notes: str | None = None,
        scanned_at: datetime | None = None,
    ) -> ScanEvent:
        """Persist one scan of ``permit_id`` by ``actor``.

        Every call inserts a new row, including repeated scans of the same
        permit by the same verifier.

        Raises:
            PermitNotFound: The permit does not exist.
        """
        permit = await self.permits.find_permit(permit_id)
        if permit is None:
            raise PermitNotFound(permit_id)

        scan = ScanEvent(
            permit_id=permit.id,
            scanned_by=actor.user_id,
            scanner_name=actor.display_name,
            scanned_at=scanned_at or utc_now(),
            location=location,
            notes=notes,
        )
        self.session.add(scan)
        await self.session.commit()
        logger.info("Recorded scan", scan_id=scan.id, permit_id=permit.id, scanned_by=actor.user_id)

        self.dispatcher.dispatch(self._scan_event(scan, permit))
        return scan

    @staticmethod
    def _scan_event(scan: ScanEvent, permit: Permit) -> ScanRecordedEvent:
        return ScanRecordedEvent(
            scan_id=scan.id,
            permit_id=permit.id,
            document_number=permit.document_number,
            vendor_id=permit.vendor_id,
            vendor_name=permit.vendor_name,
            scanned_by=scan.scanned_by,
            scanner_name=scan.scanner_name,
            scanned_at=scan.scanned_at,
            location=scan.location,
        )

    async def list_scans(self, permit_id: str, *, limit: int | None = None) -> list[ScanEvent]:
        """Scans of ``permit_id``, newest first. Unknown permits have no scans."""
        canonical = parse_ulid(permit_id)
        if canonical is None:
            return []
        statement = (
            select(ScanEvent)
            .where(ScanEvent.permit_id == canonical)
            .order_by(ScanEvent.scanned_at.desc(), ScanEvent.id.desc())  # type: ignore[attr-defined]
        )
        if limit is not None:
            statement = statement.limit(limit)
        result = await self.session.execute(statement)
        return list(result.scalars().all())

    async def latest_scan(self, permit_id: str) -> ScanEvent | None:
        scans = await self.list_scans(permit_id, limit=1)
        return scans[0] if scans else None

    async def has_been_scanned(self, permit_id: str) -> bool:
        return await self.latest_scan(permit_id) is not None

    async def scan_history(
        self,
        *,
        skip: int = 0,
        limit: int = 50,
        permit_id: str | None = None,
        scanned_by: str | None = None,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
    ) -> tuple[list[ScanEvent], int]:
        """Scans across permits with filters and pagination. Returns (scans, total_count)."""
        filters = []
        if permit_id is not None:
            canonical = parse_ulid(permit_id)
            if canonical is None:
                return [], 0
            filters.append(ScanEvent.permit_id == canonical)
        if scanned_by is not None:
            actor_id = parse_ulid(scanned_by)
            if actor_id is None:
                return [], 0
            filters.append(ScanEvent.scanned_by == actor_id)
        if date_from is not None:
            filters.append(ScanEvent.scanned_at >= ensure_utc(date_from))  # type: ignore[operator]
        if date_to is not None:
            filters.append(ScanEvent.scanned_at <= ensure_utc(date_to))  # type: ignore[operator]

        scans_statement = (
            select(ScanEvent)
            .where(*filters)
            .order_by(ScanEvent.scanned_at.desc(), ScanEvent.id.desc())  # type: ignore[attr-defined]
            .offset(skip)
            .limit(limit)
        )
        scans_result = await self.session.execute(scans_statement)
        scans = list(scans_result.scalars().all())

        # Get total count (efficient - uses SQL COUNT)
        count_statement = select(func.count()).select_from(ScanEvent).where(*filters)
        count_result = await self.session.execute(count_statement)
        total = count_result.scalar() or 0

        return scans, total
