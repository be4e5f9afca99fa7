"""Datetime utility functions."""

from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo

from permit_trust.config import settings

# Business timezone: API responses and document number periods
API_TIMEZONE = ZoneInfo(settings.timezone)


def ensure_utc(dt: datetime) -> datetime:
    """Return dt as an aware UTC datetime (naive values are assumed to be UTC)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def to_api_timezone(dt: datetime | None) -> datetime | None:
    """Convert a datetime to API timezone (from config).

    Args:
        dt: Datetime to convert (can be None)

    Returns:
        Datetime in API timezone, or None if input was None
    """
    if dt is None:
        return None
    return ensure_utc(dt).astimezone(API_TIMEZONE)


def current_period(now: datetime | None = None) -> int:
    """Calendar year in the business timezone, used as the document number period."""
    moment = ensure_utc(now) if now is not None else datetime.now(UTC)
    return moment.astimezone(API_TIMEZONE).year


EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def to_epoch_millis(dt: datetime) -> int:
    return (ensure_utc(dt) - EPOCH) // timedelta(milliseconds=1)


def from_epoch_millis(millis: int) -> datetime:
    """Inverse of to_epoch_millis; raises OverflowError outside datetime's range."""
    return EPOCH + timedelta(milliseconds=millis)
