"""Permit token encoding and decoding."""

from collections.abc import Callable, Sequence
from datetime import UTC, datetime, timedelta

import structlog

from permit_trust.config import settings
from permit_trust.services.tokens.decoders import (
    DEFAULT_DECODERS,
    DecoderContext,
    TokenDecoder,
    encode_compact,
)
from permit_trust.services.tokens.results import DecodeResult
from permit_trust.services.tokens.signing import TokenSigner
from permit_trust.utils.datetime_utils import ensure_utc

logger = structlog.get_logger(__name__)

# Anything longer cannot have come from one of our QR codes
MAX_TOKEN_LENGTH = 2048


def _utc_now() -> datetime:
    return datetime.now(UTC)


class TokenCodec:
    """Encodes permit tokens and decodes every format still in circulation.

    Decoding is pure: no I/O, and ``now`` can be passed explicitly.
    """

    def __init__(
        self,
        secret: str,
        *,
        validity: timedelta = timedelta(hours=24),
        clock_skew: timedelta = timedelta(0),
        prefix: str = "SL",
        decoders: Sequence[type[TokenDecoder]] = DEFAULT_DECODERS,
        clock: Callable[[], datetime] = _utc_now,
    ):
        if validity <= timedelta(0):
            raise ValueError("Token validity must be positive")
        if clock_skew < timedelta(0):
            raise ValueError("Clock skew cannot be negative")
        self.context = DecoderContext(
            signer=TokenSigner(secret),
            prefix=prefix,
            validity=validity,
            clock_skew=clock_skew,
        )
        self.decoders = [decoder(self.context) for decoder in decoders]
        self.clock = clock

    @classmethod
    def from_settings(cls) -> "TokenCodec":
        return cls(
            settings.token_signing_secret,
            validity=timedelta(hours=settings.token_validity_hours),
            clock_skew=timedelta(seconds=settings.token_clock_skew_seconds),
            prefix=settings.token_prefix,
        )

    @property
    def validity(self) -> timedelta:
        return self.context.validity

    def encode(self, permit_id: str, issued_at: datetime | None = None) -> str:
        """Produce a compact signed token for ``permit_id``.

        Millisecond precision: ``issued_at`` is truncated to whole milliseconds.
        """
        if not permit_id or not permit_id.isascii() or not permit_id.isalnum():
            raise ValueError("Permit id must be a non-empty alphanumeric string")
        return encode_compact(self.context, permit_id, ensure_utc(issued_at or self.clock()))

    def decode(self, token: str, *, now: datetime | None = None) -> DecodeResult:
        """Decode ``token`` with the first decoder that recognizes its structure."""
        if not isinstance(token, str):
            return DecodeResult.malformed("token must be a string")
        raw = token.strip()
        if not raw:
            return DecodeResult.malformed("token is empty")
        if len(raw) > MAX_TOKEN_LENGTH:
            return DecodeResult.malformed("token is too long")

        moment = ensure_utc(now or self.clock())
        for decoder in self.decoders:
            if decoder.matches(raw):
                result = decoder.decode(raw, moment)
                logger.debug(
                    "Decoded permit token",
                    format=decoder.format,
                    status=result.status,
                    token_prefix=raw[:12],
                )
                return result
        return DecodeResult.malformed("unrecognized token format")
