"""Signed permit tokens."""

from permit_trust.services.tokens.codec import TokenCodec
from permit_trust.services.tokens.decoders import (
    BareIdentifierDecoder,
    CompactTokenDecoder,
    DecoderContext,
    LegacyEnvelopeDecoder,
    TokenDecoder,
)
from permit_trust.services.tokens.results import DecodeResult, DecodeStatus, PermitToken, TokenFormat
from permit_trust.services.tokens.signing import TokenSigner, signatures_match

__all__ = [
    "BareIdentifierDecoder",
    "CompactTokenDecoder",
    "DecodeResult",
    "DecodeStatus",
    "DecoderContext",
    "LegacyEnvelopeDecoder",
    "PermitToken",
    "TokenCodec",
    "TokenDecoder",
    "TokenFormat",
    "TokenSigner",
    "signatures_match",
]
