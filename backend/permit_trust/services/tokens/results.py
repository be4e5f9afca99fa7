"""Typed results of token decoding."""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum


class DecodeStatus(StrEnum):
    OK = "ok"
    MALFORMED = "malformed"
    INVALID_SIGNATURE = "invalid_signature"
    EXPIRED = "expired"


class TokenFormat(StrEnum):
    COMPACT = "compact"
    LEGACY = "legacy"
    BARE = "bare"


@dataclass(frozen=True)
class PermitToken:
    """Logical content of a scanned token.

    Bare identifiers carry no signature and no validity window, so
    ``authenticated`` is False and both timestamps are None.
    """

    permit_id: str
    format: TokenFormat
    authenticated: bool
    issued_at: datetime | None = None
    expires_at: datetime | None = None


@dataclass(frozen=True)
class DecodeResult:
    """Outcome of decoding one raw token.

    ``token`` is present whenever the structure was recognized, including
    for INVALID_SIGNATURE and EXPIRED, so callers can report which permit
    was presented. ``signature_valid`` and ``expired`` are independent.
    """

    status: DecodeStatus
    token: PermitToken | None = None
    signature_valid: bool = False
    expired: bool = False
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == DecodeStatus.OK

    @classmethod
    def malformed(cls, detail: str) -> "DecodeResult":
        return cls(status=DecodeStatus.MALFORMED, detail=detail)
