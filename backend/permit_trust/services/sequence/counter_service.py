"""Per-period document number counter.

Issuance is a single ``INSERT ... ON CONFLICT (period) DO UPDATE SET
last_issued = last_issued + 1 RETURNING last_issued`` statement, so the
database row lock is the only serialization point. That holds across any
number of worker processes; there is no in-process lock.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime

import structlog
from sqlalchemy import func, select, text
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Executable

from permit_trust.config import settings
from permit_trust.models.sequence_counter import SequenceCounter, SequenceCounterReset
from permit_trust.models.types import utc_now
from permit_trust.services.sequence.exceptions import CounterContentionError, InvalidCounterReset
from permit_trust.services.sequence.formatting import format_document_number

logger = structlog.get_logger(__name__)

_counters = SequenceCounter.__table__  # type: ignore[attr-defined]

# Fragments of driver messages that mean "gave up waiting", not "store is down"
_CONTENTION_MARKERS = (
    "lock timeout",
    "lock_timeout",
    "statement timeout",
    "canceling statement",
    "could not serialize",
    "deadlock detected",
    "database is locked",
)


def _is_contention(error: DBAPIError) -> bool:
    message = str(error.orig or error).lower()
    return any(marker in message for marker in _CONTENTION_MARKERS)


@dataclass(frozen=True)
class CounterInfo:
    """Snapshot of a period counter for display and administration."""

    period: int
    last_issued: int
    exists: bool
    updated_at: datetime | None

    @property
    def next_value(self) -> int:
        return self.last_issued + 1


class SequenceCounterService:
    """Issues, previews and (administratively) resets per-period counters."""

    def __init__(
        self,
        session: AsyncSession,
        *,
        lock_timeout_ms: int | None = None,
        transaction_timeout: float | None = None,
        width: int | None = None,
        suffix: str | None = None,
    ):
        self.session = session
        self.lock_timeout_ms = lock_timeout_ms if lock_timeout_ms is not None else settings.counter_lock_timeout_ms
        self.transaction_timeout = (
            transaction_timeout if transaction_timeout is not None else settings.counter_transaction_timeout
        )
        self.width = width if width is not None else settings.document_number_width
        self.suffix = suffix if suffix is not None else settings.document_number_suffix

    @property
    def _dialect(self) -> str:
        return self.session.get_bind().dialect.name

    def _upsert_increment(self, period: int) -> Executable:
        insert = pg_insert if self._dialect == "postgresql" else sqlite_insert
        stmt = insert(_counters).values(period=period, last_issued=1, updated_at=utc_now())
        return stmt.on_conflict_do_update(
            index_elements=[_counters.c.period],
            set_={
                "last_issued": _counters.c.last_issued + 1,
                "updated_at": stmt.excluded.updated_at,
            },
        ).returning(_counters.c.last_issued)

    async def _apply_timeouts(self) -> None:
        """Bound lock waits and statement time for the current transaction (PostgreSQL only)."""
        if self._dialect != "postgresql":
            return
        statement_timeout_ms = int(self.transaction_timeout * 1000)
        # SET does not accept bind parameters; both values are ints
        await self.session.execute(text(f"SET LOCAL lock_timeout = {int(self.lock_timeout_ms)}"))
        await self.session.execute(text(f"SET LOCAL statement_timeout = {statement_timeout_ms}"))

    async def issue_next(self, period: int, *, commit: bool = True) -> int:
        """Atomically increment the counter for ``period`` and return the new value.

        With ``commit=False`` the increment joins the caller's transaction, so
        the row stays locked until the caller commits (or rolls back, in which
        case the number is not consumed).

        Raises:
            CounterContentionError: The lock could not be acquired or the
                transaction did not finish within its timeout.
        """
        try:
            async with asyncio.timeout(self.transaction_timeout):
                await self._apply_timeouts()
                result = await self.session.execute(self._upsert_increment(period))
                value: int = result.scalar_one()
                if commit:
                    await self.session.commit()
        except TimeoutError as e:
            await self.session.rollback()
            logger.warning("Counter issuance timed out", period=period, timeout=self.transaction_timeout)
            raise CounterContentionError(period, "transaction timed out") from e
        except DBAPIError as e:
            await self.session.rollback()
            if _is_contention(e):
                logger.warning("Counter issuance hit lock contention", period=period, error=str(e.orig))
                raise CounterContentionError(period, "lock not acquired in time") from e
            raise

        logger.info("Issued document number", period=period, value=value)
        return value

    async def issue_document_number(self, period: int, *, commit: bool = True) -> str:
        """Issue the next number for ``period`` and format it."""
        value = await self.issue_next(period, commit=commit)
        return self.format(value, period)

    def format(self, number: int, period: int) -> str:
        return format_document_number(number, period, width=self.width, suffix=self.suffix)

    async def _current(self, period: int) -> SequenceCounter | None:
        # Issuance bypasses the ORM, so never trust an identity-mapped copy
        statement = (
            select(SequenceCounter)
            .where(SequenceCounter.period == period)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(statement)
        return result.scalars().first()

    async def preview_next(self, period: int) -> int:
        """Value the next issuance would return. Never reserves a number."""
        result = await self.session.execute(
            select(func.coalesce(func.max(_counters.c.last_issued), 0)).where(_counters.c.period == period)
        )
        current: int = result.scalar_one()
        return current + 1

    async def get_info(self, period: int) -> CounterInfo:
        counter = await self._current(period)
        if counter is None:
            return CounterInfo(period=period, last_issued=0, exists=False, updated_at=None)
        return CounterInfo(
            period=period,
            last_issued=counter.last_issued,
            exists=True,
            updated_at=counter.updated_at,
        )

    async def list_counters(self) -> list[CounterInfo]:
        """All counters, most recent period first."""
        result = await self.session.execute(
            select(SequenceCounter)
            .order_by(SequenceCounter.period.desc())  # type: ignore[attr-defined]
            .execution_options(populate_existing=True)
        )
        return [
            CounterInfo(period=c.period, last_issued=c.last_issued, exists=True, updated_at=c.updated_at)
            for c in result.scalars().all()
        ]

    async def reset(self, period: int, *, reset_to: int, actor: str, reason: str) -> SequenceCounterReset:
        """Set the counter for ``period`` to ``reset_to`` and record who did it and why.

        Dangerous: resetting below the highest number already issued makes
        the next issuance produce a duplicate document number. Only exposed
        through the admin CLI.
        """
        if reset_to < 0:
            raise InvalidCounterReset("Counter cannot be reset to a negative value")
        if not actor.strip():
            raise InvalidCounterReset("Counter reset requires an actor")
        if not reason.strip():
            raise InvalidCounterReset("Counter reset requires a reason")

        result = await self.session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.period == period)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        counter = result.scalars().first()
        previous = counter.last_issued if counter is not None else 0
        if counter is None:
            counter = SequenceCounter(period=period, last_issued=reset_to)
        else:
            counter.last_issued = reset_to
            counter.updated_at = utc_now()
        self.session.add(counter)

        audit = SequenceCounterReset(
            period=period,
            previous_value=previous,
            reset_to=reset_to,
            reset_by=actor.strip(),
            reason=reason.strip(),
        )
        self.session.add(audit)
        await self.session.commit()

        logger.warning(
            "Sequence counter reset",
            period=period,
            previous_value=previous,
            reset_to=reset_to,
            actor=audit.reset_by,
            reason=audit.reason,
        )
        return audit

    async def list_resets(self, period: int | None = None) -> list[SequenceCounterReset]:
        statement = select(SequenceCounterReset).order_by(
            SequenceCounterReset.created_at.desc()  # type: ignore[attr-defined]
        )
        if period is not None:
            statement = statement.where(SequenceCounterReset.period == period)
        result = await self.session.execute(statement)
        return list(result.scalars().all())
