"""Ordered, pluggable decoders for the token formats in circulation.

Each decoder claims a raw token by structure (``matches``) and then fully
decides its outcome (``decode``). The codec asks decoders in order and
the first one that matches wins, so supporting a new format means adding
a decoder, not editing a branch chain.
"""

import base64
import binascii
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from permit_trust.services.tokens.results import DecodeResult, DecodeStatus, PermitToken, TokenFormat
from permit_trust.services.tokens.signing import TokenSigner, signatures_match
from permit_trust.utils.datetime_utils import from_epoch_millis, to_epoch_millis

BARE_ID_MIN_LENGTH = 21

# Envelopes may be URL-safe and unpadded
_URLSAFE_TO_STANDARD = str.maketrans("-_", "+/")


@dataclass(frozen=True)
class DecoderContext:
    """What every decoder needs to judge a token."""

    signer: TokenSigner
    prefix: str
    validity: timedelta
    clock_skew: timedelta


def _is_identifier(value: str) -> bool:
    return bool(value) and value.isascii() and value.isalnum()


class TokenDecoder(ABC):
    """One serialized token format."""

    format: TokenFormat

    def __init__(self, context: DecoderContext):
        self.context = context

    @abstractmethod
    def matches(self, raw: str) -> bool:
        """Whether ``raw`` has this format's structure."""

    @abstractmethod
    def decode(self, raw: str, now: datetime) -> DecodeResult:
        """Decode a token this decoder matched."""

    def _judge(self, token: PermitToken, signature_valid: bool, now: datetime) -> DecodeResult:
        if token.expires_at is None:
            raise ValueError("Signed tokens must carry an expiry")
        expired = now - self.context.clock_skew > token.expires_at
        if not signature_valid:
            status = DecodeStatus.INVALID_SIGNATURE
        elif expired:
            status = DecodeStatus.EXPIRED
        else:
            status = DecodeStatus.OK
        return DecodeResult(status=status, token=token, signature_valid=signature_valid, expired=expired)


class CompactTokenDecoder(TokenDecoder):
    """``SL:<permitId>:<millis>:<signature>``

    Current tokens carry the issue time and an HMAC signature. Tokens printed
    by the previous generator share the same shape but carry the expiry and
    a salted SHA-256 signature; those are recognized by their signature.
    """

    format = TokenFormat.COMPACT

    def matches(self, raw: str) -> bool:
        return raw.startswith(f"{self.context.prefix}:")

    def decode(self, raw: str, now: datetime) -> DecodeResult:
        parts = raw.split(":", 3)
        if len(parts) != 4:
            return DecodeResult.malformed("compact token must have four ':'-separated parts")
        _, permit_id, issued_raw, signature = parts
        if not _is_identifier(permit_id):
            return DecodeResult.malformed("compact token has an invalid permit id")
        if not (issued_raw.isascii() and issued_raw.isdigit()):
            return DecodeResult.malformed("compact token has an invalid issue time")
        if not signature:
            return DecodeResult.malformed("compact token has no signature")

        millis = int(issued_raw)
        signer = self.context.signer
        signature_valid = True
        try:
            stamp = from_epoch_millis(millis)
            if signatures_match(signer.sign(permit_id, millis), signature):
                issued_at, expires_at = stamp, stamp + self.context.validity
            elif signatures_match(signer.sign_legacy(permit_id, millis), signature):
                # Previous generator: the time field is the expiry
                issued_at, expires_at = stamp - self.context.validity, stamp
            else:
                signature_valid = False
                issued_at, expires_at = stamp, stamp + self.context.validity
        except (OverflowError, OSError, ValueError):
            return DecodeResult.malformed("compact token time is out of range")

        token = PermitToken(
            permit_id=permit_id,
            format=self.format,
            authenticated=True,
            issued_at=issued_at,
            expires_at=expires_at,
        )
        return self._judge(token, signature_valid, now)


class LegacyEnvelopeDecoder(TokenDecoder):
    """``SL|<base64(JSON)>`` with keys ``id``/``i``, ``exp``/``e``, ``sig``/``s``."""

    format = TokenFormat.LEGACY

    def matches(self, raw: str) -> bool:
        return raw.startswith(f"{self.context.prefix}|")

    @staticmethod
    def _field(data: dict[str, Any], long_key: str, short_key: str) -> Any:
        return data[long_key] if long_key in data else data.get(short_key)

    def decode(self, raw: str, now: datetime) -> DecodeResult:
        encoded = raw[len(self.context.prefix) + 1 :].translate(_URLSAFE_TO_STANDARD).rstrip("=")
        try:
            data = json.loads(base64.b64decode(encoded + "=" * (-len(encoded) % 4), validate=True))
        except (binascii.Error, ValueError, RecursionError):
            return DecodeResult.malformed("legacy token envelope is not base64 JSON")
        if not isinstance(data, dict):
            return DecodeResult.malformed("legacy token envelope is not an object")

        permit_id = self._field(data, "id", "i")
        expires_at_ms = self._field(data, "exp", "e")
        signature = self._field(data, "sig", "s")
        if not isinstance(permit_id, str) or not _is_identifier(permit_id):
            return DecodeResult.malformed("legacy token has an invalid permit id")
        if isinstance(expires_at_ms, bool) or not isinstance(expires_at_ms, int):
            return DecodeResult.malformed("legacy token has an invalid expiry")
        if not isinstance(signature, str) or not signature:
            return DecodeResult.malformed("legacy token has no signature")

        try:
            expires_at = from_epoch_millis(expires_at_ms)
            issued_at = expires_at - self.context.validity
        except (OverflowError, OSError, ValueError):
            return DecodeResult.malformed("legacy token expiry is out of range")

        token = PermitToken(
            permit_id=permit_id,
            format=self.format,
            authenticated=True,
            issued_at=issued_at,
            expires_at=expires_at,
        )
        expected = self.context.signer.sign_legacy(permit_id, expires_at_ms)
        return self._judge(token, signatures_match(expected, signature), now)


class BareIdentifierDecoder(TokenDecoder):
    """A plain permit id, as printed on the earliest documents.

    Structurally accepted but unauthenticated; whether it is honoured is
    the verifier's policy decision.
    """

    format = TokenFormat.BARE

    def matches(self, raw: str) -> bool:
        return ":" not in raw and "|" not in raw and len(raw) >= BARE_ID_MIN_LENGTH and _is_identifier(raw)

    def decode(self, raw: str, now: datetime) -> DecodeResult:
        token = PermitToken(permit_id=raw, format=self.format, authenticated=False)
        return DecodeResult(status=DecodeStatus.OK, token=token, signature_valid=False, expired=False)


DEFAULT_DECODERS: tuple[type[TokenDecoder], ...] = (
    CompactTokenDecoder,
    LegacyEnvelopeDecoder,
    BareIdentifierDecoder,
)


def encode_compact(context: DecoderContext, permit_id: str, issued_at: datetime) -> str:
    issued_at_ms = to_epoch_millis(issued_at)
    signature = context.signer.sign(permit_id, issued_at_ms)
    return f"{context.prefix}:{permit_id}:{issued_at_ms}:{signature}"
