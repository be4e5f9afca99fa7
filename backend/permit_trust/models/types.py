"""Custom SQLAlchemy types and column defaults for the application."""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import Uuid
from sqlalchemy.types import TypeDecorator
from ulid import ULID


def utc_now() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(UTC)


def new_ulid() -> str:
    """Generate a new ULID string."""
    return str(ULID())


def parse_ulid(value: str) -> str | None:
    """Return the canonical ULID string, or None if value is not a ULID."""
    try:
        return str(ULID.from_str(value))
    except ValueError:
        return None


class ULIDType(TypeDecorator[str]):
    """SQLAlchemy type that stores ULID as a UUID column.

    - Database: UUID on PostgreSQL (16 bytes, efficient indexing), CHAR(32) elsewhere
    - Python: ULID object or string
    - API: 26-character string (via Pydantic serialization)
    """

    impl = Uuid
    cache_ok = True

    def process_bind_param(self, value: str | ULID | None, dialect: Any) -> UUID | None:
        """Convert ULID string/object to UUID for storage."""
        if value is None:
            return None
        if isinstance(value, str):
            value = ULID.from_str(value)
        if isinstance(value, ULID):
            return value.to_uuid()
        raise ValueError(f"Cannot convert {type(value)} to ULID")

    def process_result_value(self, value: UUID | None, dialect: Any) -> str | None:
        """Convert UUID back to ULID string."""
        if value is None:
            return None
        return str(ULID.from_uuid(value))
