"""Per-period document number sequence and its reset audit trail."""

from datetime import datetime

from sqlalchemy import BigInteger, CheckConstraint, Column, DateTime
from sqlmodel import Field, SQLModel

from permit_trust.models.types import utc_now


class SequenceCounter(SQLModel, table=True):
    """Document number counter, one row per period (calendar year).

    Rows are created lazily by the first issuance for a period and are
    incremented with a single INSERT ... ON CONFLICT DO UPDATE ... RETURNING
    statement, so concurrent issuers never observe the same value.
    """

    __tablename__ = "sequence_counters"
    __table_args__ = (CheckConstraint("last_issued >= 0", name="ck_sequence_counters_last_issued"),)

    period: int = Field(primary_key=True)
    last_issued: int = Field(default=0, sa_type=BigInteger)
    updated_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime(timezone=True), nullable=False))


class SequenceCounterReset(SQLModel, table=True):
    """Audit row written atomically with every administrative counter reset."""

    __tablename__ = "sequence_counter_resets"

    id: int | None = Field(default=None, primary_key=True)
    period: int = Field(index=True)
    previous_value: int = Field(sa_type=BigInteger)
    reset_to: int = Field(sa_type=BigInteger)
    reset_by: str
    reason: str
    created_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime(timezone=True), nullable=False))
